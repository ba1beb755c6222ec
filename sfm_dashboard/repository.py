"""
Collection access for entity snapshots.

Repository is the interface the hosting layer supplies; the core only
reads snapshots from it and writes back values produced by the lifecycle
and KPI functions. InMemoryRepository backs the simulator, the Streamlit
app and the tests. It keeps insertion order and hands out the stored
immutable values directly.

To swap in a remote store:
    Implement the Repository protocol over the query/mutation client;
    list() must return a fresh snapshot on every call.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Iterable
from typing import Protocol

from .exceptions import NotFound
from .filters import filter_entities
from .models import Category, Workstation

logger = logging.getLogger(__name__)

STORED_KINDS = ("kpis", "actions", "problems", "workstations")


class Repository(Protocol):
    def list(self, kind: str, filter_spec: dict | None = None) -> list: ...

    def get(self, kind: str, entity_id: str): ...

    def create(self, kind: str, entity): ...

    def update(self, kind: str, entity_id: str, patch: dict): ...

    def replace(self, kind: str, entity): ...

    def delete(self, kind: str, entity_id: str) -> None: ...

    def category_by_code(self, code: str) -> Category: ...

    def workstation(self, workstation_id: str) -> Workstation: ...


class InMemoryRepository:
    """Dict-backed Repository implementation."""

    def __init__(
        self,
        kpis: Iterable = (),
        actions: Iterable = (),
        problems: Iterable = (),
        workstations: Iterable = (),
        categories: Iterable[Category] = (),
    ) -> None:
        self._tables: dict[str, dict[str, object]] = {kind: {} for kind in STORED_KINDS}
        for kind, entities in (
            ("kpis", kpis),
            ("actions", actions),
            ("problems", problems),
            ("workstations", workstations),
        ):
            for entity in entities:
                self._tables[kind][entity.id] = entity
        self._categories: dict[str, Category] = {c.code: c for c in categories}

    def _table(self, kind: str) -> dict[str, object]:
        if kind not in self._tables:
            raise ValueError(f"Unknown entity kind: '{kind}'")
        return self._tables[kind]

    def list(self, kind: str, filter_spec: dict | None = None) -> list:
        entities = list(self._table(kind).values())
        if filter_spec:
            entities = filter_entities(entities, **filter_spec)
        return entities

    def get(self, kind: str, entity_id: str):
        try:
            return self._table(kind)[entity_id]
        except KeyError:
            raise NotFound(kind, entity_id) from None

    def create(self, kind: str, entity):
        """Store `entity`; an empty id is replaced with a generated one."""
        table = self._table(kind)
        if not entity.id:
            entity = dataclasses.replace(entity, id=uuid.uuid4().hex[:12])
        if entity.id in table:
            raise ValueError(f"{kind} '{entity.id}' already exists")
        table[entity.id] = entity
        logger.info("Created %s %s", kind, entity.id)
        return entity

    def update(self, kind: str, entity_id: str, patch: dict):
        current = self.get(kind, entity_id)
        updated = dataclasses.replace(current, **patch)
        self._table(kind)[entity_id] = updated
        logger.info("Updated %s %s: %s", kind, entity_id, sorted(patch))
        return updated

    def replace(self, kind: str, entity):
        """Overwrite the stored value for `entity.id` (last write wins)."""
        self.get(kind, entity.id)
        self._table(kind)[entity.id] = entity
        return entity

    def delete(self, kind: str, entity_id: str) -> None:
        table = self._table(kind)
        if entity_id not in table:
            raise NotFound(kind, entity_id)
        del table[entity_id]
        logger.info("Deleted %s %s", kind, entity_id)

    def categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.display_order)

    def category_by_code(self, code: str) -> Category:
        try:
            return self._categories[code]
        except KeyError:
            raise NotFound("category", code) from None

    def workstation(self, workstation_id: str) -> Workstation:
        return self.get("workstations", workstation_id)
