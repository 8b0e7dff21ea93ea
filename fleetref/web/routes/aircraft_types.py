"""Aircraft type mapping rule routes.

Routes:
- GET    /api/aircraft-types           - List rules
- POST   /api/aircraft-types           - Create a rule
- PUT    /api/aircraft-types/{rule_id} - Update a rule
- DELETE /api/aircraft-types/{rule_id} - Delete a rule
- POST   /api/aircraft-types/reset     - Restore the default rule set
- POST   /api/aircraft-types/test      - Canonicalize a raw type with current rules
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from fleetref.canonical import rules_repository
from fleetref.canonical.rules_repository import ConfigurationError
from fleetref.db.connection import get_session
from fleetref.models import CanonicalizedType, MappingRule
from fleetref.web.models import (
    MappingRuleCreate,
    MappingRuleUpdate,
    RawTypeCheckRequest,
    ResetRulesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/aircraft-types", tags=["aircraft-types"])


@router.get("", response_model=list[MappingRule])
async def list_rules(include_inactive: bool = True):
    async with get_session() as session:
        return await rules_repository.list_rules(session, include_inactive=include_inactive)


@router.post("", response_model=MappingRule, status_code=status.HTTP_201_CREATED)
async def create_rule(body: MappingRuleCreate):
    async with get_session() as session:
        return await rules_repository.create_rule(session, MappingRule(**body.model_dump()))


@router.put("/{rule_id}", response_model=MappingRule)
async def update_rule(rule_id: int, body: MappingRuleUpdate):
    """Apply the fields present in the body; omitted fields are left alone."""
    try:
        async with get_session() as session:
            rule = await rules_repository.update_rule(
                session, rule_id, body.model_dump(exclude_unset=True)
            )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if rule is None:
        raise HTTPException(status_code=404, detail="Mapping rule not found")
    return rule


@router.delete("/{rule_id}")
async def delete_rule(rule_id: int):
    async with get_session() as session:
        deleted = await rules_repository.delete_rule(session, rule_id)

    if not deleted:
        raise HTTPException(status_code=404, detail="Mapping rule not found")
    return {"success": True}


@router.post("/reset", response_model=ResetRulesResponse)
async def reset_rules():
    """Replace every rule with the shipped defaults."""
    try:
        async with get_session() as session:
            restored = await rules_repository.reset_to_defaults(session)
    except ConfigurationError as e:
        logger.error("Default aircraft type rules unavailable: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return ResetRulesResponse(restored=restored)


@router.post("/test", response_model=CanonicalizedType)
async def check_raw_type(body: RawTypeCheckRequest):
    """Show how a raw type string (and optional registration) would resolve."""
    async with get_session() as session:
        return await rules_repository.test_raw_type(session, body.raw_type, body.registration)
