"""FleetRef Pydantic models for type-safe master data reconciliation.

Import records are what the parsers produce, entities are snapshots of store
rows, and the result models are what validate/commit hand back to callers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceTier(str, Enum):
    """Trust level of the last write to a reference entity."""

    INFERRED = "inferred"  # Synthesized by the system, store-only
    IMPORTED = "imported"
    CONFIRMED = "confirmed"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {
    SourceTier.INFERRED: 0,
    SourceTier.IMPORTED: 1,
    SourceTier.CONFIRMED: 2,
}


class DataType(str, Enum):
    """Reference entity kinds handled by the import engine."""

    CUSTOMER = "customer"
    AIRCRAFT = "aircraft"


class InputFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


class ImportChannel(str, Enum):
    """How a batch reached the engine."""

    FILE = "file"
    PASTE = "paste"
    API = "api"


class ConflictMode(str, Enum):
    """Policy for writes that would downgrade a confirmed entity."""

    ALLOW = "allow"
    WARN = "warn"
    REJECT = "reject"


class CanonicalType(str, Enum):
    """Canonical aircraft families."""

    B777 = "B777"
    B767 = "B767"
    B747 = "B747"
    B757 = "B757"
    B737 = "B737"
    UNKNOWN = "Unknown"


class MatchConfidence(str, Enum):
    """Confidence tier of a type canonicalization."""

    EXACT = "exact"
    PATTERN = "pattern"
    FALLBACK = "fallback"


class RuleTarget(str, Enum):
    """Field a mapping rule pattern is tested against."""

    TYPE = "type"
    REGISTRATION = "registration"


# ============================================================================
# Import records (parser output)
# ============================================================================


class _ImportRecord(BaseModel):
    """Fields shared by every normalized import record."""

    model_config = ConfigDict(str_strip_whitespace=True)

    sp_id: int | None = None
    guid: str | None = None
    source: SourceTier = SourceTier.IMPORTED

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: SourceTier) -> SourceTier:
        if v == SourceTier.INFERRED:
            raise ValueError("source must be 'imported' or 'confirmed'")
        return v

    @field_validator("guid")
    @classmethod
    def blank_guid_is_none(cls, v: str | None) -> str | None:
        return v or None


class CustomerRecord(_ImportRecord):
    """Customer/operator record from any supported input format."""

    name: str = Field(min_length=1)
    display_name: str | None = None
    color: str | None = None
    color_text: str | None = None
    country: str | None = None
    established: str | None = None
    group_parent: str | None = None
    base_airport: str | None = None
    website: str | None = None
    moc_phone: str | None = None
    iata_code: str | None = None
    icao_code: str | None = None

    @property
    def natural_key(self) -> str:
        return self.name


class AircraftRecord(_ImportRecord):
    """Aircraft record from any supported input format."""

    registration: str = Field(min_length=1)
    model: str = "Unknown"  # Model code, e.g. "767-300(F)"
    operator: str = "Unknown"  # Free-text operator, fuzzy matched to a customer
    manufacturer: str | None = None
    engine_type: str | None = None
    serial_number: str | None = None
    lessor: str | None = None
    age: str | None = None
    category: str | None = None

    @property
    def natural_key(self) -> str:
        return self.registration


ImportRecord = Union[CustomerRecord, AircraftRecord]


class ParseResult(BaseModel):
    """Outcome of parsing one payload into import records."""

    valid: bool
    data: list[ImportRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    fatal: bool = False  # Whole payload unusable (bad JSON, missing headers)


# ============================================================================
# Reference entities (store snapshots)
# ============================================================================


class Customer(BaseModel):
    """Customer row as seen by the reconciliation engine."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None  # None until inserted
    name: str
    display_name: str
    color: str | None = None
    color_text: str = "#ffffff"
    is_active: bool = True
    sort_order: int = 0
    sp_id: int | None = None
    guid: str | None = None
    country: str | None = None
    established: str | None = None
    group_parent: str | None = None
    base_airport: str | None = None
    website: str | None = None
    moc_phone: str | None = None
    iata_code: str | None = None
    icao_code: str | None = None
    source: SourceTier = SourceTier.INFERRED

    @property
    def natural_key(self) -> str:
        return self.name


class Aircraft(BaseModel):
    """Aircraft row as seen by the reconciliation engine."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None  # None until inserted
    registration: str
    sp_id: int | None = None
    guid: str | None = None
    aircraft_type: str | None = None
    canonical_type: CanonicalType = CanonicalType.UNKNOWN
    aircraft_model_id: UUID | None = None
    operator_id: UUID | None = None
    manufacturer_id: UUID | None = None
    engine_type_id: UUID | None = None
    serial_number: str | None = None
    age: str | None = None
    lessor: str | None = None
    category: str | None = None
    operator_raw: str | None = None
    operator_match_confidence: int | None = Field(default=None, ge=0, le=100)
    source: SourceTier = SourceTier.INFERRED
    is_active: bool = True

    @property
    def natural_key(self) -> str:
        return self.registration


Entity = Union[Customer, Aircraft]


class MappingRule(BaseModel):
    """Aircraft type canonicalization rule."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None  # Autoincrement id doubles as insertion order
    pattern: str = Field(min_length=1)
    canonical_type: CanonicalType
    priority: int = 0
    is_active: bool = True
    description: str | None = None
    target: RuleTarget | None = None  # None: inferred from pattern shape


# ============================================================================
# Matching results
# ============================================================================


class FuzzyMatchResult(BaseModel):
    """Best candidate for a free-text name."""

    matched: bool
    entity_id: UUID | None = None
    entity_name: str
    confidence: int = Field(ge=0, le=100)


class CanonicalizedType(BaseModel):
    """Result of resolving a raw aircraft type string."""

    raw: str
    canonical: CanonicalType
    confidence: MatchConfidence
    rule_id: int | None = None


# ============================================================================
# Validation / commit results
# ============================================================================


class ImportSummary(BaseModel):
    total: int = 0
    to_add: int = 0
    to_update: int = 0
    conflicts: int = 0
    invalid_operators: int | None = None  # Aircraft only


class UpdateDetail(BaseModel):
    """One existing entity and what it would become."""

    existing: Entity
    new: Entity
    conflict: bool = False  # Overwrites a confirmed entity with a lower tier
    blocking: bool = False  # Rejected by policy; admitted only with override


class FuzzyMatchDetail(BaseModel):
    """Operator matched below 100% confidence, surfaced for review."""

    registration: str
    raw_operator: str
    matched_customer: str
    confidence: int


class ValidationDetails(BaseModel):
    add: list[Entity] = Field(default_factory=list)
    update: list[UpdateDetail] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    fuzzy_matches: list[FuzzyMatchDetail] | None = None  # Aircraft only


class ValidationResult(BaseModel):
    """Preview of what a commit would do. Never persisted.

    ``parse_errors``/``parse_warnings`` keep the parser's own messages (they are
    also folded into ``details``) so a commit can re-validate ``records``
    without losing them.
    """

    valid: bool
    data_type: DataType
    format: InputFormat | None = None
    summary: ImportSummary
    details: ValidationDetails
    records: list[ImportRecord] = Field(default_factory=list)
    rows_rejected: int = 0  # Rows dropped by the parser
    parse_errors: list[str] = Field(default_factory=list)
    parse_warnings: list[str] = Field(default_factory=list)
    fatal: bool = False  # Payload could not be parsed at all


class CommitSummary(BaseModel):
    added: int = 0
    updated: int = 0
    skipped: int = 0


class CommitResult(BaseModel):
    success: bool
    blocked: bool = False  # Stopped by validation errors, nothing written
    log_id: UUID | None = None
    summary: CommitSummary = Field(default_factory=CommitSummary)
    errors: list[str] | None = None
    warnings: list[str] | None = None


class CommitOptions(BaseModel):
    """Caller-supplied options for a commit."""

    source: ImportChannel = ImportChannel.FILE
    format: InputFormat = InputFormat.CSV
    file_name: str | None = None
    user_id: str
    override_conflicts: bool = False
    conflict_mode: ConflictMode | None = None  # None: use configured default
    trust_validation: bool = False  # Skip re-validation of a supplied result


class ImportLogEntry(BaseModel):
    """Audit log row as returned by the history listing."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    imported_at: datetime
    data_type: DataType
    source: ImportChannel
    format: InputFormat
    file_name: str | None = None
    records_total: int
    records_added: int
    records_updated: int
    records_skipped: int
    imported_by: str
    status: Literal["success", "failed"]
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @field_validator("warnings", "errors", mode="before")
    @classmethod
    def none_is_empty(cls, v: list[str] | None) -> list[str]:
        return v or []


class ImportHistoryPage(BaseModel):
    """One page of the import audit log, newest first."""

    entries: list[ImportLogEntry]
    page: int
    page_size: int
    total: int
    total_pages: int
