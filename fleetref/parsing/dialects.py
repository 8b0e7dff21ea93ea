"""Record dialects and field aliasing.

Two record dialects reach the importer:

- ``legacy``: SharePoint list items keyed by ``Title`` with opaque
  ``field_N`` columns for aircraft.
- ``simplified``: the engine's own field names, in snake_case or camelCase.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from fleetref.models import DataType


class Dialect(str, Enum):
    LEGACY = "legacy"
    SIMPLIFIED = "simplified"
    UNKNOWN = "unknown"


LEGACY_KEY = "Title"

NATURAL_KEYS = {
    DataType.CUSTOMER: "name",
    DataType.AIRCRAFT: "registration",
}

# Legacy column -> record field
LEGACY_CUSTOMER_FIELDS = {
    "Title": "name",
    "country": "country",
    "established": "established",
    "group": "group_parent",
    "base": "base_airport",
    "website": "website",
    "mocphone": "moc_phone",
    "iata": "iata_code",
    "icao": "icao_code",
    "ID": "sp_id",
    "GUID": "guid",
}

LEGACY_AIRCRAFT_FIELDS = {
    "Title": "registration",
    "field_1": "lessor",
    "field_2": "operator",
    "field_3": "category",
    "field_4": "manufacturer",
    "field_5": "model",
    "field_6": "age",
    "ID": "sp_id",
    "GUID": "guid",
}

LEGACY_FIELDS = {
    DataType.CUSTOMER: LEGACY_CUSTOMER_FIELDS,
    DataType.AIRCRAFT: LEGACY_AIRCRAFT_FIELDS,
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def canonical_key(key: str) -> str:
    """Normalize a header or JSON key to snake_case.

    ``displayName`` -> ``display_name``, ``Serial Number`` -> ``serial_number``,
    ``GUID`` -> ``guid``.
    """
    key = key.strip()
    key = _CAMEL_BOUNDARY.sub("_", key)
    key = _SEPARATORS.sub("_", key)
    return key.lower()


def detect_dialect(record: Any, data_type: DataType) -> Dialect:
    """Tag a single record with its dialect."""
    if not isinstance(record, dict):
        return Dialect.UNKNOWN
    if LEGACY_KEY in record:
        return Dialect.LEGACY

    natural_key = NATURAL_KEYS[data_type]
    if any(canonical_key(str(k)) == natural_key for k in record):
        return Dialect.SIMPLIFIED

    return Dialect.UNKNOWN


def alias_fields(record: dict[str, Any], dialect: Dialect, data_type: DataType) -> dict[str, Any]:
    """Map a raw record onto record field names.

    Legacy records keep only the known legacy columns. Simplified records have
    every key converted to snake_case; unknown keys are dropped later by the
    record model.
    """
    if dialect == Dialect.LEGACY:
        mapping = LEGACY_FIELDS[data_type]
        fields = {mapping[k]: v for k, v in record.items() if k in mapping}
        if data_type == DataType.CUSTOMER and "name" in fields:
            fields["display_name"] = fields["name"]
        return fields

    return {canonical_key(str(k)): v for k, v in record.items()}
