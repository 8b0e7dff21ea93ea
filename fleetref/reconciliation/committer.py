"""Transactional commit of master data imports.

``commit_import`` re-validates the batch against a fresh snapshot inside the
transaction, writes every add and every admitted update, and appends one row to
``master_data_import_log``. Any exception rolls the whole batch back; a
``failed`` audit row is then written in a separate transaction.

The session passed in must not have a transaction in progress: the committer
manages its own with ``session.begin()``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetref.core.logging import bind_import_context
from fleetref.db.models import AircraftModel, CustomerModel, MasterDataImportLogModel
from fleetref.db.snapshots import StoreSnapshot, load_snapshot
from fleetref.models import (
    AircraftRecord,
    CommitOptions,
    CommitResult,
    CommitSummary,
    CustomerRecord,
    DataType,
    Entity,
    ImportRecord,
    UpdateDetail,
    ValidationResult,
)
from fleetref.reconciliation.identity import entity_labels
from fleetref.reconciliation.validator import (
    assign_colors,
    resolve_mode,
    revalidate,
    validate,
)

logger = logging.getLogger(__name__)
events = structlog.get_logger(__name__)

_ROW_MODELS = {
    DataType.CUSTOMER: CustomerModel,
    DataType.AIRCRAFT: AircraftModel,
}


def _infer_data_type(records: Sequence[ImportRecord]) -> DataType:
    if not records:
        raise ValueError("data_type is required when committing an empty record list")
    if isinstance(records[0], CustomerRecord):
        return DataType.CUSTOMER
    if isinstance(records[0], AircraftRecord):
        return DataType.AIRCRAFT
    raise ValueError(f"Unsupported record type: {type(records[0]).__name__}")


def _column_values(entity: Entity) -> dict[str, Any]:
    """Entity fields as column values (enums unwrapped, id excluded)."""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in entity.model_dump(exclude={"id"}).items()
    }


def audit_warnings(result: ValidationResult) -> list[str]:
    """Warnings stored on the audit row, including partial operator matches."""
    warnings = list(result.details.warnings)
    for match in result.details.fuzzy_matches or []:
        warnings.append(
            f'{match.registration}: "{match.raw_operator}" -> "{match.matched_customer}" '
            f"({match.confidence}%)"
        )
    return warnings


async def _insert_add(
    session: AsyncSession, data_type: DataType, entity: Entity, user_id: str
) -> None:
    row = _ROW_MODELS[data_type](
        **_column_values(entity),
        created_by=user_id,
        updated_by=user_id,
    )
    session.add(row)


async def _apply_update(
    session: AsyncSession, data_type: DataType, detail: UpdateDetail, user_id: str
) -> None:
    row = await session.get(_ROW_MODELS[data_type], detail.existing.id)
    if row is None:
        label, _ = entity_labels(detail.existing)
        raise LookupError(f'{label} "{detail.existing.natural_key}" no longer exists')

    for key, value in _column_values(detail.new).items():
        setattr(row, key, value)
    row.updated_by = user_id


def _log_row(
    data_type: DataType,
    options: CommitOptions,
    result: ValidationResult | None,
    status: str,
    records_total: int,
    summary: CommitSummary,
    errors: list[str],
    warnings: list[str],
) -> MasterDataImportLogModel:
    fmt = result.format if result is not None and result.format else options.format
    return MasterDataImportLogModel(
        id=uuid4(),
        data_type=data_type.value,
        source=options.source.value,
        format=fmt.value,
        file_name=options.file_name,
        records_total=records_total,
        records_added=summary.added,
        records_updated=summary.updated,
        records_skipped=summary.skipped,
        imported_by=options.user_id,
        status=status,
        warnings=warnings,
        errors=errors,
    )


def _prepare(
    payload: ValidationResult | Sequence[ImportRecord],
    snapshot: StoreSnapshot,
    options: CommitOptions,
) -> ValidationResult:
    mode = resolve_mode(options.conflict_mode)
    if isinstance(payload, ValidationResult):
        if options.trust_validation:
            return payload
        return revalidate(payload, snapshot, mode)
    return validate(payload, snapshot, mode, options.format)


async def _record_failure(
    session: AsyncSession,
    data_type: DataType,
    options: CommitOptions,
    records_total: int,
    message: str,
) -> UUID | None:
    """Write a failed audit row in its own transaction."""
    try:
        async with session.begin():
            log = _log_row(
                data_type,
                options,
                None,
                "failed",
                records_total,
                CommitSummary(skipped=records_total),
                errors=[message],
                warnings=[],
            )
            session.add(log)
            await session.flush()
            return log.id
    except SQLAlchemyError:
        logger.exception("Could not write failed import log entry")
        return None


async def commit_import(
    session: AsyncSession,
    payload: ValidationResult | Sequence[ImportRecord],
    options: CommitOptions,
    data_type: DataType | str | None = None,
) -> CommitResult:
    """Commit an import batch in one transaction.

    Args:
        session: Idle async session (no transaction in progress)
        payload: Parsed records, or a ValidationResult from a preview
        options: Channel, format, user and conflict handling options
        data_type: Required only for an empty record list

    Returns:
        CommitResult. ``success`` is False when the batch was blocked by
        validation errors (without ``override_conflicts``), could not be parsed,
        or the write failed; a failed audit row is written in each case.

    Raises:
        ValueError: If the data type cannot be determined
    """
    if isinstance(payload, ValidationResult):
        data_type = payload.data_type
        records_total = len(payload.records) + payload.rows_rejected
    else:
        payload = list(payload)
        data_type = DataType(data_type) if data_type else _infer_data_type(payload)
        records_total = len(payload)

    with bind_import_context(data_type, options.source, options.format):
        try:
            async with session.begin():
                snapshot = await load_snapshot(session, data_type)
                result = _prepare(payload, snapshot, options)
                warnings = audit_warnings(result)

                if result.fatal or (result.details.errors and not options.override_conflicts):
                    summary = CommitSummary(skipped=records_total)
                    log = _log_row(
                        data_type,
                        options,
                        result,
                        "failed",
                        records_total,
                        summary,
                        errors=result.details.errors,
                        warnings=warnings,
                    )
                    session.add(log)
                    await session.flush()
                    logger.warning(
                        "Import of %d %s records blocked by %d validation errors",
                        records_total,
                        data_type.value,
                        len(result.details.errors),
                    )
                    return CommitResult(
                        success=False,
                        blocked=True,
                        log_id=log.id,
                        summary=summary,
                        errors=result.details.errors,
                        warnings=warnings,
                    )

                adds = assign_colors(result.details.add, snapshot.active_colors)
                for entity in adds:
                    await _insert_add(session, data_type, entity, options.user_id)
                await session.flush()

                updated = 0
                skipped = result.rows_rejected
                for detail in result.details.update:
                    if detail.blocking and not options.override_conflicts:
                        skipped += 1
                        continue
                    await _apply_update(session, data_type, detail, options.user_id)
                    updated += 1

                summary = CommitSummary(added=len(adds), updated=updated, skipped=skipped)
                log = _log_row(
                    data_type,
                    options,
                    result,
                    "success",
                    records_total,
                    summary,
                    errors=[],
                    warnings=warnings,
                )
                session.add(log)
                await session.flush()
                log_id = log.id

        except Exception as e:
            logger.exception("Import commit of %s records failed, rolled back", data_type.value)
            log_id = await _record_failure(session, data_type, options, records_total, str(e))
            return CommitResult(
                success=False,
                log_id=log_id,
                summary=CommitSummary(skipped=records_total),
                errors=[str(e)],
            )

        events.info(
            "Committed import",
            added=summary.added,
            updated=summary.updated,
            skipped=summary.skipped,
            log_id=log_id,
        )
        return CommitResult(success=True, log_id=log_id, summary=summary, warnings=warnings)
