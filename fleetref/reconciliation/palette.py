"""Customer color auto-assignment."""

from __future__ import annotations

from collections.abc import Sequence

PALETTE = [
    "#EF4444",  # red
    "#F97316",  # orange
    "#EABC42",  # amber
    "#22C55E",  # green
    "#14B8A6",  # teal
    "#84CC16",  # lime
    "#3B82F6",  # blue
    "#8B5CF6",  # violet
    "#EC4899",  # pink
    "#F43F5E",  # rose
]


def next_color(used: Sequence[str]) -> str:
    """Pick the next palette color.

    Returns the first palette color not in ``used``. Once every color is taken,
    cycles through the palette by the number of colors handed out so far, so a
    caller that appends each returned color to ``used`` gets a deterministic
    round-robin.

    Args:
        used: Colors already taken (active customers plus earlier picks in the
              current batch), in assignment order

    Returns:
        Hex color string
    """
    taken = {color.upper() for color in used}
    for color in PALETTE:
        if color not in taken:
            return color
    return PALETTE[len(used) % len(PALETTE)]
