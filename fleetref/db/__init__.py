"""Database layer for FleetRef with async SQLAlchemy."""

from fleetref.db.connection import get_session, init_db
from fleetref.db.models import (
    AircraftModel,
    AircraftModelModel,
    AircraftTypeMappingModel,
    Base,
    CustomerModel,
    EngineTypeModel,
    ManufacturerModel,
    MasterDataImportLogModel,
)
from fleetref.db.snapshots import StoreSnapshot, load_snapshot

__all__ = [
    "Base",
    "CustomerModel",
    "AircraftModel",
    "ManufacturerModel",
    "AircraftModelModel",
    "EngineTypeModel",
    "AircraftTypeMappingModel",
    "MasterDataImportLogModel",
    "StoreSnapshot",
    "get_session",
    "init_db",
    "load_snapshot",
]
