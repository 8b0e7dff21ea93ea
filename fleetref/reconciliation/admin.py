"""Master data administration: bulk confirm, import history, CSV export."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import pandas as pd
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleetref.config import get_config
from fleetref.db.models import AircraftModel, CustomerModel, MasterDataImportLogModel
from fleetref.models import DataType, ImportHistoryPage, ImportLogEntry, SourceTier

logger = logging.getLogger(__name__)

CUSTOMER_EXPORT_COLUMNS = [
    "id",
    "name",
    "display_name",
    "color",
    "color_text",
    "country",
    "iata_code",
    "icao_code",
    "guid",
    "is_active",
    "source",
]

AIRCRAFT_EXPORT_COLUMNS = [
    "registration",
    "guid",
    "aircraft_type",
    "canonical_type",
    "aircraft_model_id",
    "operator_id",
    "manufacturer_id",
    "engine_type_id",
    "serial_number",
    "age",
    "lessor",
    "category",
    "operator_raw",
    "operator_match_confidence",
    "source",
    "is_active",
]


async def _confirm(
    session: AsyncSession, model, key_column, keys: Sequence[str], user_id: str
) -> int:
    if not keys:
        raise ValueError("At least one key is required")

    result = await session.execute(
        update(model)
        .where(key_column.in_(list(keys)))
        .values(source=SourceTier.CONFIRMED.value, updated_by=user_id, updated_at=func.now())
    )
    return result.rowcount


async def confirm_customers(session: AsyncSession, names: Sequence[str], user_id: str) -> int:
    """Mark customers as confirmed by name.

    Returns:
        Number of customers updated (unknown names are ignored)

    Raises:
        ValueError: If ``names`` is empty
    """
    count = await _confirm(session, CustomerModel, CustomerModel.name, names, user_id)
    logger.info("Confirmed %d customers", count)
    return count


async def confirm_aircraft(
    session: AsyncSession, registrations: Sequence[str], user_id: str
) -> int:
    """Mark aircraft as confirmed by registration.

    Returns:
        Number of aircraft updated (unknown registrations are ignored)

    Raises:
        ValueError: If ``registrations`` is empty
    """
    count = await _confirm(
        session, AircraftModel, AircraftModel.registration, registrations, user_id
    )
    logger.info("Confirmed %d aircraft", count)
    return count


async def list_import_history(
    session: AsyncSession,
    page: int = 1,
    page_size: int | None = None,
    data_type: DataType | None = None,
) -> ImportHistoryPage:
    """Page through the import audit log, newest first.

    Args:
        session: Open async session
        page: 1-based page number
        page_size: Entries per page (defaults to IMPORT_HISTORY_PAGE_SIZE)
        data_type: Restrict to one data type

    Raises:
        ValueError: If page or page_size is less than 1
    """
    if page_size is None:
        page_size = get_config().imports.history_page_size
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be at least 1")

    count_stmt = select(func.count()).select_from(MasterDataImportLogModel)
    stmt = select(MasterDataImportLogModel).order_by(
        MasterDataImportLogModel.imported_at.desc(), MasterDataImportLogModel.id
    )
    if data_type is not None:
        count_stmt = count_stmt.where(MasterDataImportLogModel.data_type == data_type.value)
        stmt = stmt.where(MasterDataImportLogModel.data_type == data_type.value)

    total = (await session.execute(count_stmt)).scalar_one()
    rows = (
        await session.execute(stmt.limit(page_size).offset((page - 1) * page_size))
    ).scalars().all()

    return ImportHistoryPage(
        entries=[ImportLogEntry.model_validate(row) for row in rows],
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )


async def _export(session: AsyncSession, model, order_column, columns: list[str]) -> str:
    rows = (await session.execute(select(model).order_by(order_column))).scalars().all()
    df = pd.DataFrame(
        [{column: getattr(row, column) for column in columns} for row in rows],
        columns=columns,
    )
    return df.to_csv(index=False)


async def export_customers_csv(session: AsyncSession) -> str:
    """All customers as CSV (header row always present)."""
    return await _export(session, CustomerModel, CustomerModel.sort_order, CUSTOMER_EXPORT_COLUMNS)


async def export_aircraft_csv(session: AsyncSession) -> str:
    """All aircraft as CSV (header row always present)."""
    return await _export(session, AircraftModel, AircraftModel.registration, AIRCRAFT_EXPORT_COLUMNS)
