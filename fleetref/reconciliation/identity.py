"""Identity resolution for import records.

An incoming record is matched to at most one existing entity: by GUID when
both sides carry one, otherwise by exact natural key (customer name, aircraft
registration). A GUID match whose natural key differs is a rename.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from enum import Enum

from fleetref.db.snapshots import StoreSnapshot
from fleetref.models import Customer, CustomerRecord, Entity, ImportRecord


def entity_labels(entity: Entity | ImportRecord) -> tuple[str, str]:
    """Human labels for messages: ("Customer", "name") or ("Aircraft", "registration")."""
    if isinstance(entity, (Customer, CustomerRecord)):
        return "Customer", "name"
    return "Aircraft", "registration"


class MatchedBy(str, Enum):
    GUID = "guid"
    NATURAL_KEY = "natural_key"


@dataclass(frozen=True)
class IdentityMatch:
    entity: Entity
    matched_by: MatchedBy


@dataclass(frozen=True)
class RenamePlan:
    """Natural key the updated entity ends up with, plus any warning."""

    key: str
    warning: str | None = None


class IdentityResolver:
    """Indexes existing entities by GUID and natural key."""

    def __init__(self, entities: Iterable[Entity]):
        self.by_guid: dict[str, Entity] = {}
        self.by_key: dict[str, Entity] = {}
        for entity in entities:
            if entity.guid:
                self.by_guid[entity.guid] = entity
            self.by_key[entity.natural_key] = entity

    def find_existing(self, record: ImportRecord) -> IdentityMatch | None:
        """Find the existing entity a record refers to, GUID first."""
        if record.guid:
            entity = self.by_guid.get(record.guid)
            if entity is not None:
                return IdentityMatch(entity=entity, matched_by=MatchedBy.GUID)

        entity = self.by_key.get(record.natural_key)
        if entity is not None:
            return IdentityMatch(entity=entity, matched_by=MatchedBy.NATURAL_KEY)

        return None

    def plan_rename(
        self,
        record: ImportRecord,
        match: IdentityMatch,
        claimed_keys: Collection[str] = (),
    ) -> RenamePlan:
        """Decide the natural key of an entity matched by ``record``.

        Only GUID matches can rename. The rename is applied unless the new key
        already belongs to a different existing entity (active or not) or was
        claimed by an earlier record in the same batch; either way a warning is
        produced.
        """
        entity = match.entity
        old_key = entity.natural_key
        new_key = record.natural_key

        if match.matched_by != MatchedBy.GUID or new_key == old_key:
            return RenamePlan(key=old_key)

        label, key_name = entity_labels(entity)
        prefix = f'{label} GUID "{record.guid}": {key_name} changed from "{old_key}" to "{new_key}"'

        holder = self.by_key.get(new_key)
        if holder is not None and holder.id != entity.id:
            return RenamePlan(
                key=old_key,
                warning=f'{prefix} but "{new_key}" already exists, keeping old {key_name}',
            )

        if new_key in claimed_keys:
            return RenamePlan(
                key=old_key,
                warning=(
                    f'{prefix} but "{new_key}" is already used earlier in this import, '
                    f"keeping old {key_name}"
                ),
            )

        return RenamePlan(key=new_key, warning=prefix)


def find_existing(record: ImportRecord, snapshot: StoreSnapshot) -> IdentityMatch | None:
    """Convenience function: resolve one record against a snapshot."""
    return IdentityResolver(snapshot.entities).find_existing(record)


def plan_rename(
    record: ImportRecord,
    match: IdentityMatch,
    snapshot: StoreSnapshot,
    claimed_keys: Collection[str] = (),
) -> RenamePlan:
    """Convenience function: plan a GUID rename against a snapshot."""
    return IdentityResolver(snapshot.entities).plan_rename(record, match, claimed_keys)
