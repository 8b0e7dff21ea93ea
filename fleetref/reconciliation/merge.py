"""Merge policy for import records over existing entities.

Precedence for every field: incoming non-empty value > existing value >
default. The incoming record's source tier always becomes the entity's source
(a confirmed entity overwritten by an imported record is downgraded; the
conflict policy decides whether that write is allowed).

Customer fields:

    ==============  =========================  ==================
    field           incoming                   default
    ==============  =========================  ==================
    name            via rename plan only       (natural key)
    display_name    record.display_name        name
    color           record.color               palette at commit
    color_text      record.color_text          #ffffff
    metadata        record.<field>             None
    sp_id / guid    record value if present    None
    ==============  =========================  ==================

Aircraft fields:

    =====================  ==================================  =======
    field                  incoming                            default
    =====================  ==================================  =======
    registration           via rename plan only                key
    aircraft_type          record.model unless "Unknown"       None
    aircraft_model_id      lookup of record.model              None
    manufacturer_id        lookup of record.manufacturer       None
    engine_type_id         lookup of record.engine_type        None
    operator_id            fuzzy match (null when unmatched)   None
    operator_raw           record.operator (always)
    operator_confidence    fuzzy confidence (always)
    metadata               record.<field>                      None
    =====================  ==================================  =======

``canonical_type`` is not merged: the validator derives it from the merged
``aircraft_type`` and registration.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fleetref.models import (
    Aircraft,
    AircraftRecord,
    Customer,
    CustomerRecord,
    FuzzyMatchResult,
)

UNKNOWN_MODEL = "Unknown"

CUSTOMER_METADATA_FIELDS = (
    "country",
    "established",
    "group_parent",
    "base_airport",
    "website",
    "moc_phone",
    "iata_code",
    "icao_code",
)

AIRCRAFT_METADATA_FIELDS = ("serial_number", "age", "lessor", "category")


@dataclass(frozen=True)
class AircraftLookups:
    """Store lookups resolved for one aircraft record."""

    operator: FuzzyMatchResult
    aircraft_model_id: UUID | None = None
    manufacturer_id: UUID | None = None
    engine_type_id: UUID | None = None


def _pick(incoming, existing):
    return incoming if incoming not in (None, "") else existing


def _model_code(record: AircraftRecord) -> str | None:
    return record.model if record.model != UNKNOWN_MODEL else None


def new_customer(
    record: CustomerRecord, sort_order: int, default_text_color: str = "#ffffff"
) -> Customer:
    """Build a pending customer (no id, color may still be unassigned)."""
    metadata = {name: getattr(record, name) for name in CUSTOMER_METADATA_FIELDS}
    return Customer(
        name=record.name,
        display_name=record.display_name or record.name,
        color=record.color,
        color_text=record.color_text or default_text_color,
        is_active=True,
        sort_order=sort_order,
        sp_id=record.sp_id,
        guid=record.guid,
        source=record.source,
        **metadata,
    )


def merge_customer(existing: Customer, record: CustomerRecord, name: str) -> Customer:
    """Merge a record over an existing (or pending) customer.

    Args:
        existing: Current entity
        record: Incoming record
        name: Natural key after rename planning
    """
    update = {
        field_name: _pick(getattr(record, field_name), getattr(existing, field_name))
        for field_name in CUSTOMER_METADATA_FIELDS
    }
    update.update(
        name=name,
        display_name=_pick(record.display_name, existing.display_name),
        color=_pick(record.color, existing.color),
        color_text=_pick(record.color_text, existing.color_text),
        sp_id=_pick(record.sp_id, existing.sp_id),
        guid=_pick(record.guid, existing.guid),
        source=record.source,
    )
    return existing.model_copy(update=update)


def new_aircraft(record: AircraftRecord, lookups: AircraftLookups) -> Aircraft:
    """Build a pending aircraft (no id, canonical type not yet derived)."""
    metadata = {name: getattr(record, name) for name in AIRCRAFT_METADATA_FIELDS}
    return Aircraft(
        registration=record.registration,
        sp_id=record.sp_id,
        guid=record.guid,
        aircraft_type=_model_code(record),
        aircraft_model_id=lookups.aircraft_model_id,
        operator_id=lookups.operator.entity_id if lookups.operator.matched else None,
        manufacturer_id=lookups.manufacturer_id,
        engine_type_id=lookups.engine_type_id,
        operator_raw=record.operator,
        operator_match_confidence=lookups.operator.confidence,
        source=record.source,
        is_active=True,
        **metadata,
    )


def merge_aircraft(
    existing: Aircraft,
    record: AircraftRecord,
    lookups: AircraftLookups,
    registration: str,
) -> Aircraft:
    """Merge a record over an existing (or pending) aircraft.

    Args:
        existing: Current entity
        record: Incoming record
        lookups: Resolved operator match and lookup-table ids for ``record``
        registration: Natural key after rename planning
    """
    update = {
        field_name: _pick(getattr(record, field_name), getattr(existing, field_name))
        for field_name in AIRCRAFT_METADATA_FIELDS
    }
    operator_id = lookups.operator.entity_id if lookups.operator.matched else None
    update.update(
        registration=registration,
        sp_id=_pick(record.sp_id, existing.sp_id),
        guid=_pick(record.guid, existing.guid),
        aircraft_type=_pick(_model_code(record), existing.aircraft_type),
        aircraft_model_id=_pick(lookups.aircraft_model_id, existing.aircraft_model_id),
        operator_id=operator_id,
        manufacturer_id=_pick(lookups.manufacturer_id, existing.manufacturer_id),
        engine_type_id=_pick(lookups.engine_type_id, existing.engine_type_id),
        operator_raw=record.operator,
        operator_match_confidence=lookups.operator.confidence,
        source=record.source,
    )
    return existing.model_copy(update=update)
