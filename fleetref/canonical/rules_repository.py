"""Persistence for aircraft type mapping rules.

CRUD over the ``aircraft_type_mappings`` table, reset-to-defaults from
``config/aircraft_type_mappings.yaml``, and the standalone "what would this
string resolve to" check used by the admin API and CLI.

Functions take an open ``AsyncSession`` and flush; committing is left to the
caller (``get_session()`` commits on exit).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetref.canonical.type_canonicalizer import TypeCanonicalizer, sort_rules
from fleetref.config import get_config
from fleetref.db.models import AircraftTypeMappingModel
from fleetref.models import CanonicalizedType, MappingRule

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("pattern", "canonical_type", "priority", "is_active", "description", "target")


class ConfigurationError(Exception):
    """Configuration file is invalid or missing."""

    pass


def load_default_rules(path: Path | None = None) -> list[MappingRule]:
    """Load default mapping rules from YAML.

    Args:
        path: Path to aircraft_type_mappings.yaml
              (defaults to config/aircraft_type_mappings.yaml)

    Returns:
        Rules in file order (no ids)

    Raises:
        ConfigurationError: If the file is missing, not valid YAML, or a rule
            is malformed
    """
    if path is None:
        path = get_config().type_mappings_path

    if not path.exists():
        raise ConfigurationError(f"Aircraft type mappings not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise ConfigurationError(f"Expected a 'rules' list in {path}")

    rules = []
    for idx, item in enumerate(data["rules"]):
        try:
            rules.append(MappingRule.model_validate(item))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid rule at index {idx} in {path}: {e}") from e

    return rules


def _to_rule(row: AircraftTypeMappingModel) -> MappingRule:
    return MappingRule.model_validate(row)


async def list_rules(session: AsyncSession, include_inactive: bool = True) -> list[MappingRule]:
    """List rules in evaluation order (priority desc, id asc)."""
    stmt = select(AircraftTypeMappingModel).order_by(
        AircraftTypeMappingModel.priority.desc(), AircraftTypeMappingModel.id
    )
    if not include_inactive:
        stmt = stmt.where(AircraftTypeMappingModel.is_active.is_(True))

    result = await session.execute(stmt)
    return [_to_rule(row) for row in result.scalars().all()]


async def load_active_rules(session: AsyncSession) -> list[MappingRule]:
    """Active rules, sorted for evaluation."""
    return sort_rules(await list_rules(session, include_inactive=False))


async def create_rule(session: AsyncSession, rule: MappingRule) -> MappingRule:
    """Insert a new rule. Any id on ``rule`` is ignored."""
    row = AircraftTypeMappingModel(
        pattern=rule.pattern,
        canonical_type=rule.canonical_type.value,
        priority=rule.priority,
        is_active=rule.is_active,
        description=rule.description,
        target=rule.target.value if rule.target else None,
    )
    session.add(row)
    await session.flush()
    await session.refresh(row)

    logger.info("Created aircraft type mapping %s: %r -> %s", row.id, row.pattern, row.canonical_type)
    return _to_rule(row)


async def update_rule(
    session: AsyncSession, rule_id: int, updates: dict[str, Any]
) -> MappingRule | None:
    """Apply a partial update to a rule.

    Args:
        session: Open async session
        rule_id: Rule id
        updates: Field -> new value; unknown fields are ignored

    Returns:
        Updated rule, or None if no rule has that id

    Raises:
        ValueError: If the merged rule is invalid
    """
    row = await session.get(AircraftTypeMappingModel, rule_id)
    if row is None:
        return None

    merged = _to_rule(row).model_dump()
    merged.update({k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS})
    try:
        rule = MappingRule.model_validate(merged)
    except ValidationError as e:
        raise ValueError(str(e)) from e

    row.pattern = rule.pattern
    row.canonical_type = rule.canonical_type.value
    row.priority = rule.priority
    row.is_active = rule.is_active
    row.description = rule.description
    row.target = rule.target.value if rule.target else None

    await session.flush()
    await session.refresh(row)
    return _to_rule(row)


async def delete_rule(session: AsyncSession, rule_id: int) -> bool:
    """Delete a rule. Returns False if it did not exist."""
    row = await session.get(AircraftTypeMappingModel, rule_id)
    if row is None:
        return False

    await session.delete(row)
    await session.flush()
    logger.info("Deleted aircraft type mapping %s", rule_id)
    return True


async def reset_to_defaults(session: AsyncSession, path: Path | None = None) -> int:
    """Replace every rule with the YAML defaults.

    The defaults are loaded (and validated) before anything is deleted, so a
    broken file leaves the table untouched.

    Returns:
        Number of rules restored

    Raises:
        ConfigurationError: If the defaults file is invalid
    """
    defaults = load_default_rules(path)

    await session.execute(delete(AircraftTypeMappingModel))
    for rule in defaults:
        session.add(
            AircraftTypeMappingModel(
                pattern=rule.pattern,
                canonical_type=rule.canonical_type.value,
                priority=rule.priority,
                is_active=rule.is_active,
                description=rule.description,
                target=rule.target.value if rule.target else None,
            )
        )
    await session.flush()

    logger.info("Restored %d default aircraft type mappings", len(defaults))
    return len(defaults)


async def test_raw_type(
    session: AsyncSession, raw_type: str, registration: str | None = None
) -> CanonicalizedType:
    """Canonicalize one string against the current active rules."""
    canonicalizer = TypeCanonicalizer(
        await load_active_rules(session),
        exact_priority_threshold=get_config().matching.exact_priority_threshold,
    )
    return canonicalizer.canonicalize(raw_type, registration)
