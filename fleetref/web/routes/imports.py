"""Master data import routes.

Routes:
- GET  /api/import/history              - Paged import audit log
- POST /api/import/{data_type}/validate - Dry-run preview of a payload
- POST /api/import/{data_type}/commit   - Validate and commit a payload
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from fleetref.db.connection import get_session
from fleetref.db.snapshots import load_snapshot
from fleetref.models import (
    CommitOptions,
    CommitResult,
    DataType,
    ImportHistoryPage,
    ValidationResult,
)
from fleetref.parsing import parse
from fleetref.reconciliation.admin import list_import_history
from fleetref.reconciliation.committer import commit_import
from fleetref.reconciliation.validator import from_parse, validate_content
from fleetref.web.dependencies import get_data_type, get_user_id
from fleetref.web.models import CommitImportRequest, ValidateImportRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/import", tags=["imports"])


@router.get("/history", response_model=ImportHistoryPage)
async def import_history(
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=200),
    data_type: str | None = None,
):
    """Import audit log, newest first."""
    type_filter = get_data_type(data_type) if data_type else None
    async with get_session() as session:
        return await list_import_history(session, page, page_size, type_filter)


@router.post("/{data_type}/validate", response_model=ValidationResult)
async def validate_import(
    body: ValidateImportRequest,
    data_type: DataType = Depends(get_data_type),
):
    """Preview what a commit of this payload would do. Nothing is written."""
    async with get_session() as session:
        snapshot = await load_snapshot(session, data_type)

    return validate_content(body.content, body.format, data_type, snapshot, body.conflict_mode)


@router.post("/{data_type}/commit", response_model=CommitResult)
async def commit_payload(
    body: CommitImportRequest,
    data_type: DataType = Depends(get_data_type),
    user_id: str = Depends(get_user_id),
):
    """Parse, re-validate and commit a payload in one transaction.

    422 when the payload cannot be parsed at all, 400 when validation errors
    block the batch (the attempt is still audited), 500 when the write fails.
    """
    parsed = parse(body.content, body.format, data_type)
    if parsed.fatal:
        raise HTTPException(status_code=422, detail={"errors": parsed.errors})

    options = CommitOptions(
        source=body.source,
        format=body.format,
        file_name=body.file_name,
        user_id=user_id,
        override_conflicts=body.override_conflicts,
        conflict_mode=body.conflict_mode,
    )
    async with get_session() as session:
        result = await commit_import(session, from_parse(parsed, data_type, body.format), options)

    if not result.success:
        status_code = 400 if result.blocked else 500
        raise HTTPException(status_code=status_code, detail=result.model_dump(mode="json"))

    return result
