"""Import validation: classify records as adds and updates without writing.

``validate`` is pure. It works on a ``StoreSnapshot`` and never touches the
database, so the same function serves the preview endpoint and the committer's
re-validation inside its transaction.

Per record:
1. Resolve identity (GUID, then natural key)
2. Existing entity -> plan rename, merge, apply conflict policy
3. No existing entity -> pending add
4. Aircraft only: fuzzy-match the operator, resolve lookup ids, canonicalize
   the type

Records that resolve to the same pending add or the same existing entity as an
earlier record are merged onto that earlier entry (one write, one warning).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from fleetref.canonical.type_canonicalizer import TypeCanonicalizer
from fleetref.config import get_config
from fleetref.db.snapshots import StoreSnapshot
from fleetref.matching.fuzzy_matcher import EXACT_SCORE, FuzzyMatcher
from fleetref.models import (
    Aircraft,
    AircraftRecord,
    ConflictMode,
    Customer,
    CustomerRecord,
    DataType,
    Entity,
    FuzzyMatchDetail,
    ImportRecord,
    ImportSummary,
    InputFormat,
    ParseResult,
    UpdateDetail,
    ValidationDetails,
    ValidationResult,
)
from fleetref.parsing import parse
from fleetref.reconciliation import policy
from fleetref.reconciliation.identity import IdentityResolver, entity_labels
from fleetref.reconciliation.merge import (
    AircraftLookups,
    merge_aircraft,
    merge_customer,
    new_aircraft,
    new_customer,
)
from fleetref.reconciliation.palette import next_color

logger = logging.getLogger(__name__)

ADD = "add"
UPDATE = "update"


@dataclass
class _Batch:
    """Write set accumulated while walking one batch.

    ``claimed_keys`` and ``claimed_guids`` map natural keys and GUIDs already used
    by a pending add or update to ("add" | "update", index).
    """

    adds: list[Entity] = field(default_factory=list)
    updates: list[UpdateDetail] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    updates_by_id: dict[Any, int] = field(default_factory=dict)
    claimed_keys: dict[str, tuple[str, int]] = field(default_factory=dict)
    claimed_guids: dict[str, tuple[str, int]] = field(default_factory=dict)

    def claim(self, entity: Entity, kind: str, index: int) -> None:
        self.claimed_keys[entity.natural_key] = (kind, index)
        if entity.guid:
            self.claimed_guids[entity.guid] = (kind, index)

    def pending_claim(self, record: ImportRecord) -> tuple[str, int] | None:
        if record.guid and record.guid in self.claimed_guids:
            return self.claimed_guids[record.guid]
        return self.claimed_keys.get(record.natural_key)


def resolve_mode(mode: ConflictMode | str | None) -> ConflictMode:
    """Explicit mode, else the configured default (IMPORT_CONFLICT_MODE)."""
    if mode is None:
        return ConflictMode(get_config().imports.conflict_mode)
    return ConflictMode(mode)


def _update_detail(existing: Entity, new: Entity, mode: ConflictMode) -> UpdateDetail:
    decision = policy.resolve(existing.source, mode, new.source)
    return UpdateDetail(
        existing=existing,
        new=new,
        conflict=decision.conflict,
        blocking=decision.blocking,
    )


def _duplicate_warning(record: ImportRecord) -> str:
    label, _ = entity_labels(record)
    return (
        f'{label} "{record.natural_key}" appears more than once in this import; '
        "later values merged onto the first occurrence"
    )


def _walk(
    records: Sequence[ImportRecord],
    entities: Sequence[Entity],
    mode: ConflictMode,
    build_new: Callable[[ImportRecord, int], Entity],
    merge: Callable[[Entity, ImportRecord, str], Entity],
) -> _Batch:
    """Classify records into adds and updates.

    Args:
        records: Records of one entity kind
        entities: Existing entities of that kind
        mode: Conflict mode
        build_new: (record, position among adds) -> pending entity
        merge: (entity, record, natural key) -> merged entity
    """
    resolver = IdentityResolver(entities)
    batch = _Batch()

    for record in records:
        match = resolver.find_existing(record)

        if match is not None and match.entity.id in batch.updates_by_id:
            index = batch.updates_by_id[match.entity.id]
            previous = batch.updates[index]
            merged = merge(previous.new, record, previous.new.natural_key)
            batch.updates[index] = _update_detail(previous.existing, merged, mode)
            batch.warnings.append(_duplicate_warning(record))
            continue

        if match is not None:
            plan = resolver.plan_rename(record, match, batch.claimed_keys)
            if plan.warning:
                batch.warnings.append(plan.warning)
            merged = merge(match.entity, record, plan.key)
            batch.updates.append(_update_detail(match.entity, merged, mode))
            index = len(batch.updates) - 1
            batch.updates_by_id[match.entity.id] = index
            batch.claim(merged, UPDATE, index)
            continue

        claim = batch.pending_claim(record)
        if claim is not None:
            kind, index = claim
            if kind == ADD:
                pending = batch.adds[index]
                batch.adds[index] = merge(pending, record, pending.natural_key)
                batch.claim(batch.adds[index], ADD, index)
            else:
                previous = batch.updates[index]
                merged = merge(previous.new, record, previous.new.natural_key)
                batch.updates[index] = _update_detail(previous.existing, merged, mode)
            batch.warnings.append(_duplicate_warning(record))
            continue

        pending = build_new(record, len(batch.adds))
        batch.adds.append(pending)
        batch.claim(pending, ADD, len(batch.adds) - 1)

    for detail in batch.updates:
        if not detail.conflict:
            continue
        label, _ = entity_labels(detail.existing)
        key = detail.existing.natural_key
        if detail.blocking:
            batch.errors.append(
                f'{label} "{key}" has confirmed source and cannot be overwritten (mode: reject)'
            )
        elif mode == ConflictMode.WARN:
            batch.warnings.append(
                f'{label} "{key}" has confirmed source and will be downgraded to '
                f"{detail.new.source.value}"
            )

    return batch


def assign_colors(adds: Sequence[Entity], used: Sequence[str]) -> list[Entity]:
    """Give every pending customer without a color the next palette color.

    Colors are threaded through the batch: each color (given or assigned) is
    appended to the used list before the next pick.
    """
    taken = list(used)
    result: list[Entity] = []
    for entity in adds:
        if isinstance(entity, Customer) and not entity.color:
            entity = entity.model_copy(update={"color": next_color(taken)})
        if isinstance(entity, Customer):
            taken.append(entity.color)
        result.append(entity)
    return result


def validate_customers(
    records: Sequence[CustomerRecord],
    snapshot: StoreSnapshot,
    mode: ConflictMode | str | None = None,
    fmt: InputFormat | None = None,
) -> ValidationResult:
    """Validate customer records against a snapshot."""
    mode = resolve_mode(mode)
    config = get_config()
    base_sort_order = len(snapshot.customers)

    def build_new(record: CustomerRecord, position: int) -> Customer:
        return new_customer(
            record,
            sort_order=base_sort_order + position + 1,
            default_text_color=config.imports.default_text_color,
        )

    batch = _walk(records, snapshot.customers, mode, build_new, merge_customer)
    adds = assign_colors(batch.adds, snapshot.active_colors)

    return ValidationResult(
        valid=not batch.errors,
        data_type=DataType.CUSTOMER,
        format=fmt,
        summary=ImportSummary(
            total=len(records),
            to_add=len(adds),
            to_update=len(batch.updates),
            conflicts=sum(1 for u in batch.updates if u.conflict),
        ),
        details=ValidationDetails(
            add=adds,
            update=batch.updates,
            warnings=batch.warnings,
            errors=batch.errors,
        ),
        records=list(records),
    )


def validate_aircraft(
    records: Sequence[AircraftRecord],
    snapshot: StoreSnapshot,
    mode: ConflictMode | str | None = None,
    fmt: InputFormat | None = None,
) -> ValidationResult:
    """Validate aircraft records against a snapshot.

    Besides classification, every record's operator is fuzzy-matched against
    active customers, lookup ids are resolved by exact name/code, and the
    merged type is canonicalized with the snapshot's rule table.
    """
    mode = resolve_mode(mode)
    config = get_config()
    matcher = FuzzyMatcher(config.matching.fuzzy_min_score)
    canonicalizer = TypeCanonicalizer(
        snapshot.rules, exact_priority_threshold=config.matching.exact_priority_threshold
    )

    warnings: list[str] = []
    fuzzy_matches: list[FuzzyMatchDetail] = []
    invalid_operators = 0
    lookups_by_record: dict[int, AircraftLookups] = {}

    for record in records:
        operator = matcher.match(record.operator, snapshot.customers)
        if not operator.matched:
            invalid_operators += 1
            warnings.append(
                f'Aircraft "{record.registration}": Operator "{record.operator}" not found '
                f"(confidence: {operator.confidence}%)"
            )
        elif operator.confidence < EXACT_SCORE:
            fuzzy_matches.append(
                FuzzyMatchDetail(
                    registration=record.registration,
                    raw_operator=record.operator,
                    matched_customer=operator.entity_name,
                    confidence=operator.confidence,
                )
            )

        lookups_by_record[id(record)] = AircraftLookups(
            operator=operator,
            aircraft_model_id=snapshot.aircraft_models.get(record.model),
            manufacturer_id=(
                snapshot.manufacturers.get(record.manufacturer) if record.manufacturer else None
            ),
            engine_type_id=(
                snapshot.engine_types.get(record.engine_type) if record.engine_type else None
            ),
        )

    def with_canonical(aircraft: Aircraft) -> Aircraft:
        resolved = canonicalizer.canonicalize(aircraft.aircraft_type, aircraft.registration)
        return aircraft.model_copy(update={"canonical_type": resolved.canonical})

    def build_new(record: AircraftRecord, position: int) -> Aircraft:
        return with_canonical(new_aircraft(record, lookups_by_record[id(record)]))

    def merge(existing: Aircraft, record: AircraftRecord, registration: str) -> Aircraft:
        merged = merge_aircraft(existing, record, lookups_by_record[id(record)], registration)
        return with_canonical(merged)

    batch = _walk(records, snapshot.aircraft, mode, build_new, merge)

    return ValidationResult(
        valid=not batch.errors,
        data_type=DataType.AIRCRAFT,
        format=fmt,
        summary=ImportSummary(
            total=len(records),
            to_add=len(batch.adds),
            to_update=len(batch.updates),
            conflicts=sum(1 for u in batch.updates if u.conflict),
            invalid_operators=invalid_operators,
        ),
        details=ValidationDetails(
            add=batch.adds,
            update=batch.updates,
            warnings=warnings + batch.warnings,
            errors=batch.errors,
            fuzzy_matches=fuzzy_matches,
        ),
        records=list(records),
    )


def validate(
    records: Sequence[ImportRecord],
    snapshot: StoreSnapshot,
    mode: ConflictMode | str | None = None,
    fmt: InputFormat | None = None,
) -> ValidationResult:
    """Validate records of the snapshot's data type.

    Args:
        records: Parsed import records
        snapshot: Store snapshot for the same data type
        mode: Conflict mode (defaults to IMPORT_CONFLICT_MODE)
        fmt: Input format, recorded on the result

    Returns:
        ValidationResult (nothing is written)

    Raises:
        ValueError: If a record does not belong to the snapshot's data type
    """
    expected = CustomerRecord if snapshot.data_type == DataType.CUSTOMER else AircraftRecord
    for record in records:
        if not isinstance(record, expected):
            raise ValueError(
                f"{type(record).__name__} cannot be validated as {snapshot.data_type.value}"
            )

    if snapshot.data_type == DataType.CUSTOMER:
        result = validate_customers(records, snapshot, mode, fmt)
    else:
        result = validate_aircraft(records, snapshot, mode, fmt)

    logger.info(
        "Validated %d %s records: %d to add, %d to update, %d conflicts",
        result.summary.total,
        snapshot.data_type.value,
        result.summary.to_add,
        result.summary.to_update,
        result.summary.conflicts,
    )
    return result


def fold_parse_messages(
    result: ValidationResult,
    parse_errors: Sequence[str],
    parse_warnings: Sequence[str],
    rows_rejected: int,
    fatal: bool = False,
) -> ValidationResult:
    """Prefix parser errors/warnings onto a validation result."""
    errors = list(parse_errors) + result.details.errors
    details = result.details.model_copy(
        update={
            "errors": errors,
            "warnings": list(parse_warnings) + result.details.warnings,
        }
    )
    return result.model_copy(
        update={
            "valid": not errors,
            "details": details,
            "rows_rejected": rows_rejected,
            "parse_errors": list(parse_errors),
            "parse_warnings": list(parse_warnings),
            "fatal": fatal,
        }
    )


def from_parse(
    parsed: ParseResult, data_type: DataType | str, fmt: InputFormat | str
) -> ValidationResult:
    """Wrap parser output in a not-yet-validated result.

    ``revalidate`` fills in the reconciliation details. A fatal parse is
    already final: it carries no records and only the parser's messages.
    """
    data_type = DataType(data_type)
    return ValidationResult(
        valid=not parsed.errors,
        data_type=data_type,
        format=InputFormat(fmt),
        summary=ImportSummary(
            total=len(parsed.data),
            invalid_operators=0 if data_type == DataType.AIRCRAFT else None,
        ),
        details=ValidationDetails(
            errors=list(parsed.errors), warnings=list(parsed.warnings)
        ),
        records=parsed.data,
        rows_rejected=0 if parsed.fatal else len(parsed.errors),
        parse_errors=list(parsed.errors),
        parse_warnings=list(parsed.warnings),
        fatal=parsed.fatal,
    )


def validate_content(
    content: str,
    fmt: InputFormat | str,
    data_type: DataType | str,
    snapshot: StoreSnapshot,
    mode: ConflictMode | str | None = None,
) -> ValidationResult:
    """Parse a raw payload and validate the surviving records.

    A fatal parse error yields an invalid result with no records.
    """
    parsed = parse(content, InputFormat(fmt), DataType(data_type))
    return revalidate(from_parse(parsed, data_type, fmt), snapshot, mode)


def revalidate(
    previous: ValidationResult,
    snapshot: StoreSnapshot,
    mode: ConflictMode | str | None = None,
) -> ValidationResult:
    """Re-run validation of an earlier result's records against a fresh snapshot.

    Parser messages and the rejected-row count carry over unchanged.
    """
    if previous.fatal:
        return previous
    result = validate(previous.records, snapshot, mode, previous.format)
    return fold_parse_messages(
        result, previous.parse_errors, previous.parse_warnings, previous.rows_rejected
    )
