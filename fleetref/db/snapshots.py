"""Read-only snapshots of the reference data store.

The validator is pure: it works on a ``StoreSnapshot`` loaded up front rather
than querying the database record by record. The committer loads a fresh
snapshot inside its transaction before re-validating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetref.db.models import (
    AircraftModel,
    AircraftModelModel,
    AircraftTypeMappingModel,
    CustomerModel,
    EngineTypeModel,
    ManufacturerModel,
)
from fleetref.models import Aircraft, Customer, DataType, MappingRule

logger = logging.getLogger(__name__)


@dataclass
class StoreSnapshot:
    """Everything validation needs to know about the store for one data type.

    Attributes:
        data_type: Entity kind being imported
        customers: All customers (active and inactive)
        aircraft: All aircraft (empty for customer imports)
        manufacturers: Manufacturer name -> id
        aircraft_models: Model code -> id
        engine_types: Engine type name -> id
        rules: Aircraft type mapping rules (all, including inactive)
    """

    data_type: DataType
    customers: list[Customer] = field(default_factory=list)
    aircraft: list[Aircraft] = field(default_factory=list)
    manufacturers: dict[str, UUID] = field(default_factory=dict)
    aircraft_models: dict[str, UUID] = field(default_factory=dict)
    engine_types: dict[str, UUID] = field(default_factory=dict)
    rules: list[MappingRule] = field(default_factory=list)

    @property
    def entities(self) -> list[Customer] | list[Aircraft]:
        """Existing entities of the snapshot's data type."""
        if self.data_type == DataType.CUSTOMER:
            return self.customers
        return self.aircraft

    @property
    def active_colors(self) -> list[str]:
        """Colors currently held by active customers."""
        return [c.color for c in self.customers if c.is_active and c.color]


async def load_snapshot(session: AsyncSession, data_type: DataType) -> StoreSnapshot:
    """Load a snapshot of the store for validating one import.

    Args:
        session: Open async session (may be inside a transaction)
        data_type: Entity kind being imported

    Returns:
        StoreSnapshot
    """
    result = await session.execute(select(CustomerModel).order_by(CustomerModel.sort_order))
    customers = [Customer.model_validate(row) for row in result.scalars().all()]

    snapshot = StoreSnapshot(data_type=data_type, customers=customers)

    if data_type == DataType.AIRCRAFT:
        result = await session.execute(select(AircraftModel).order_by(AircraftModel.id))
        snapshot.aircraft = [Aircraft.model_validate(row) for row in result.scalars().all()]

        result = await session.execute(select(ManufacturerModel.name, ManufacturerModel.id))
        snapshot.manufacturers = {name: id_ for name, id_ in result.all()}

        result = await session.execute(
            select(AircraftModelModel.model_code, AircraftModelModel.id)
        )
        snapshot.aircraft_models = {code: id_ for code, id_ in result.all()}

        result = await session.execute(select(EngineTypeModel.name, EngineTypeModel.id))
        snapshot.engine_types = {name: id_ for name, id_ in result.all()}

        result = await session.execute(
            select(AircraftTypeMappingModel).order_by(AircraftTypeMappingModel.id)
        )
        snapshot.rules = [MappingRule.model_validate(row) for row in result.scalars().all()]

    logger.debug(
        "Loaded %s snapshot: %d customers, %d aircraft",
        data_type.value,
        len(snapshot.customers),
        len(snapshot.aircraft),
    )
    return snapshot
