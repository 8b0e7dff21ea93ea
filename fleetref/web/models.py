"""Shared Pydantic models for the FleetRef web API.

Request/response bodies for the import, aircraft type and master data routes.
Domain results (ValidationResult, CommitResult, MappingRule, ...) are returned
as-is from fleetref.models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from fleetref.models import CanonicalType, ConflictMode, ImportChannel, InputFormat, RuleTarget


# ============================================================================
# Import Models
# ============================================================================


class ValidateImportRequest(BaseModel):
    """Used by: POST /api/import/{data_type}/validate"""

    content: str
    format: InputFormat
    conflict_mode: ConflictMode | None = None


class CommitImportRequest(BaseModel):
    """Used by: POST /api/import/{data_type}/commit"""

    content: str
    format: InputFormat
    source: ImportChannel = ImportChannel.FILE
    file_name: str | None = None
    override_conflicts: bool = False
    conflict_mode: ConflictMode | None = None


# ============================================================================
# Aircraft Type Mapping Models
# ============================================================================


class MappingRuleCreate(BaseModel):
    """Used by: POST /api/aircraft-types"""

    pattern: str = Field(min_length=1)
    canonical_type: CanonicalType
    priority: int = 0
    is_active: bool = True
    description: str | None = None
    target: RuleTarget | None = None


class MappingRuleUpdate(BaseModel):
    """Used by: PUT /api/aircraft-types/{rule_id}. Unset fields are left alone."""

    pattern: str | None = Field(default=None, min_length=1)
    canonical_type: CanonicalType | None = None
    priority: int | None = None
    is_active: bool | None = None
    description: str | None = None
    target: RuleTarget | None = None


class RawTypeCheckRequest(BaseModel):
    """Used by: POST /api/aircraft-types/test"""

    raw_type: str = Field(min_length=1)
    registration: str | None = None


class ResetRulesResponse(BaseModel):
    success: bool = True
    restored: int


# ============================================================================
# Master Data Models
# ============================================================================


class ConfirmRequest(BaseModel):
    """Used by: POST /api/master-data/{data_type}/confirm

    ``keys`` are customer names or aircraft registrations.
    """

    keys: list[str] = Field(min_length=1)


class ConfirmResponse(BaseModel):
    success: bool = True
    count: int
