"""SQLAlchemy async database models for FleetRef.

Reference (master) data tables, the lookup tables aircraft rows point at,
the aircraft type mapping rule table, and the append-only import audit log.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


SOURCE_TIER_CHECK = "source IN ('inferred', 'imported', 'confirmed')"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CustomerModel(Base):
    """Customer / operator master record."""

    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str] = mapped_column(Text, nullable=False)
    color_text: Mapped[str] = mapped_column(Text, nullable=False, default="#ffffff")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # External identifiers (SharePoint list item id / GUID)
    sp_id: Mapped[int | None] = mapped_column(Integer)
    guid: Mapped[str | None] = mapped_column(Text, unique=True)

    # Extended metadata
    country: Mapped[str | None] = mapped_column(Text)
    established: Mapped[str | None] = mapped_column(Text)
    group_parent: Mapped[str | None] = mapped_column(Text)
    base_airport: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(Text)
    moc_phone: Mapped[str | None] = mapped_column(Text)
    iata_code: Mapped[str | None] = mapped_column(Text)
    icao_code: Mapped[str | None] = mapped_column(Text)

    # Trust level of the last write
    source: Mapped[str] = mapped_column(Text, nullable=False, default="inferred")

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(Text)
    updated_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(SOURCE_TIER_CHECK, name="check_customer_source_valid"),
        Index("idx_customers_active", "is_active"),
    )


class ManufacturerModel(Base):
    """Aircraft manufacturer lookup."""

    __tablename__ = "manufacturers"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AircraftModelModel(Base):
    """Aircraft model code lookup ("767-200(F)", "777F")."""

    __tablename__ = "aircraft_models"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    model_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    canonical_type: Mapped[str] = mapped_column(Text, nullable=False)
    manufacturer_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("manufacturers.id")
    )
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class EngineTypeModel(Base):
    """Engine type lookup ("CF6-80C2", "PW4000")."""

    __tablename__ = "engine_types"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    manufacturer: Mapped[str | None] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AircraftModel(Base):
    """Aircraft master record.

    operator_raw / operator_match_confidence are kept apart from operator_id so a
    later import can re-attempt the fuzzy match without losing provenance.
    """

    __tablename__ = "aircraft"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    registration: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    sp_id: Mapped[int | None] = mapped_column(Integer)
    guid: Mapped[str | None] = mapped_column(Text, unique=True)

    # Raw model code as imported plus its canonical family
    aircraft_type: Mapped[str | None] = mapped_column(Text)
    canonical_type: Mapped[str] = mapped_column(Text, nullable=False, default="Unknown")

    # Foreign keys to lookup tables
    aircraft_model_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("aircraft_models.id")
    )
    operator_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("customers.id"), index=True
    )
    manufacturer_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("manufacturers.id")
    )
    engine_type_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("engine_types.id")
    )

    # Extended metadata
    serial_number: Mapped[str | None] = mapped_column(Text)
    age: Mapped[str | None] = mapped_column(Text)  # "41.1 Years", as exported
    lessor: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)

    # Fuzzy match provenance
    operator_raw: Mapped[str | None] = mapped_column(Text)
    operator_match_confidence: Mapped[int | None] = mapped_column(Integer)

    source: Mapped[str] = mapped_column(Text, nullable=False, default="inferred")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(Text)
    updated_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(SOURCE_TIER_CHECK, name="check_aircraft_source_valid"),
        CheckConstraint(
            "operator_match_confidence IS NULL OR "
            "(operator_match_confidence >= 0 AND operator_match_confidence <= 100)",
            name="check_operator_confidence_range",
        ),
    )


class AircraftTypeMappingModel(Base):
    """Operator-managed rule mapping raw type strings to canonical families."""

    __tablename__ = "aircraft_type_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    canonical_type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target: Mapped[str | None] = mapped_column(Text)  # NULL: inferred from pattern
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "canonical_type IN ('B777', 'B767', 'B747', 'B757', 'B737', 'Unknown')",
            name="check_canonical_type_valid",
        ),
        CheckConstraint(
            "target IS NULL OR target IN ('type', 'registration')",
            name="check_mapping_target_valid",
        ),
        Index("idx_type_mappings_active_priority", "is_active", "priority"),
    )


class MasterDataImportLogModel(Base):
    """Append-only audit trail for customer and aircraft imports.

    One row per commit attempt, written for successful and failed commits alike.
    """

    __tablename__ = "master_data_import_log"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    data_type: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    format: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str | None] = mapped_column(Text)

    records_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    imported_by: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    warnings: Mapped[list | None] = mapped_column(JSON, default=list)
    errors: Mapped[list | None] = mapped_column(JSON, default=list)

    __table_args__ = (
        CheckConstraint(
            "data_type IN ('customer', 'aircraft')", name="check_import_data_type_valid"
        ),
        CheckConstraint("source IN ('file', 'paste', 'api')", name="check_import_source_valid"),
        CheckConstraint("format IN ('csv', 'json')", name="check_import_format_valid"),
        CheckConstraint("status IN ('success', 'failed')", name="check_import_status_valid"),
        CheckConstraint("records_total >= 0", name="check_records_total_non_negative"),
        Index("idx_import_log_type_time", "data_type", "imported_at"),
    )
