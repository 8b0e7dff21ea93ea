"""JSON envelope handling for list exports.

SharePoint/OData list exports wrap their records in one of three shapes:

- bare array:          ``[{...}, {...}]``
- OData v4 ("value"):  ``{"value": [{...}]}``
- OData v2 ("d"):      ``{"d": {"results": [{...}]}}``
"""

from __future__ import annotations

import json
from typing import Any


class EnvelopeError(ValueError):
    """Payload is not valid JSON or not a recognized record envelope."""


def load_json(raw: str) -> Any:
    """Decode a JSON payload.

    Raises:
        EnvelopeError: If the payload is not valid JSON
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise EnvelopeError(f"Invalid JSON: {e}") from e


def unwrap_envelope(payload: Any) -> list[Any]:
    """Extract the record list from a decoded JSON payload.

    Args:
        payload: Decoded JSON (bare array or OData wrapper)

    Returns:
        The list of records (items are not checked)

    Raises:
        EnvelopeError: If the payload is not one of the supported shapes
    """
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        value = payload.get("value")
        if isinstance(value, list):
            return value

        d = payload.get("d")
        if isinstance(d, dict) and isinstance(d.get("results"), list):
            return d["results"]

    raise EnvelopeError(
        'Unrecognized JSON format. Expected bare array, {"value": [...]}, '
        'or {"d": {"results": [...]}}'
    )
