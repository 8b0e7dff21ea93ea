"""Conflict policy for writes over confirmed reference data."""

from __future__ import annotations

from dataclasses import dataclass

from fleetref.models import ConflictMode, SourceTier


@dataclass(frozen=True)
class ConflictDecision:
    """Outcome of the conflict policy for one update.

    Attributes:
        conflict: The update would overwrite a confirmed entity with a lower tier
        blocking: The update is excluded unless the commit overrides conflicts
        warning: The downgrade proceeds but must be reported
    """

    conflict: bool = False
    blocking: bool = False
    warning: bool = False


NO_CONFLICT = ConflictDecision()


def resolve(
    existing_source: SourceTier | str,
    mode: ConflictMode | str,
    incoming_source: SourceTier | str = SourceTier.IMPORTED,
) -> ConflictDecision:
    """Decide how an update over an existing entity is treated.

    A conflict exists only when the existing entity is confirmed and the
    incoming record is not. What happens then depends on ``mode``:

    - allow: proceeds silently, source downgraded
    - warn: proceeds, source downgraded, warning recorded
    - reject: blocked (error recorded) unless overridden at commit
    """
    existing_source = SourceTier(existing_source)
    incoming_source = SourceTier(incoming_source)
    mode = ConflictMode(mode)

    if existing_source != SourceTier.CONFIRMED or incoming_source == SourceTier.CONFIRMED:
        return NO_CONFLICT

    if mode == ConflictMode.ALLOW:
        return ConflictDecision(conflict=True)
    if mode == ConflictMode.WARN:
        return ConflictDecision(conflict=True, warning=True)
    return ConflictDecision(conflict=True, blocking=True)
