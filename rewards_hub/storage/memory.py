# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
In-Memory Gateway — dict-backed EntityGateway for tests and local tooling.

Records are deep-copied in and out so callers never alias stored state,
which lets tests inspect exactly what would have been persisted.
"""

from __future__ import annotations

import copy
import uuid
from collections import Counter
from typing import Any, Dict, List, Optional

from rewards_hub.core.errors import RecordNotFoundError
from rewards_hub.storage.entities import Entity
from rewards_hub.storage.gateway import EntityGateway, Record, parse_order_by


class InMemoryEntityGateway(EntityGateway):
    """Stores records in insertion order, keyed by ``id``."""

    def __init__(self, entity: Entity) -> None:
        super().__init__(entity)
        self._rows: Dict[str, Record] = {}

    # ── Test helpers ────────────────────────────────────────────

    def raw_rows(self) -> List[Record]:
        """Exactly what is stored, without any decorator in the way."""
        return [copy.deepcopy(r) for r in self._rows.values()]

    def seed(self, *records: Record) -> None:
        for record in records:
            row = copy.deepcopy(dict(record))
            row.setdefault("id", str(uuid.uuid4()))
            self._rows[row["id"]] = row

    # ── Internals ───────────────────────────────────────────────

    @staticmethod
    def _matches(row: Record, where) -> bool:
        return all(row.get(k) == v for k, v in (where or {}).items())

    def _select(self, where) -> List[Record]:
        return [r for r in self._rows.values() if self._matches(r, where)]

    def _single(self, where) -> Optional[Record]:
        rows = self._select(where)
        if len(rows) > 1:
            raise ValueError(f"{self.entity}: filter {dict(where or {})} matched {len(rows)} records")
        return rows[0] if rows else None

    def _insert(self, data) -> Record:
        row = copy.deepcopy(dict(data))
        row.setdefault("id", str(uuid.uuid4()))
        if row["id"] in self._rows:
            raise ValueError(f"{self.entity}: duplicate id {row['id']!r}")
        self._rows[row["id"]] = row
        return copy.deepcopy(row)

    # ── Reads ───────────────────────────────────────────────────

    async def find_unique(self, where):
        row = self._single(where)
        return copy.deepcopy(row) if row is not None else None

    async def find_first(self, where=None, order_by=None):
        rows = await self.find_many(where, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def find_many(self, where=None, order_by=None, limit=None, offset=0):
        rows = self._select(where)
        order = parse_order_by(order_by)
        if order:
            column, descending = order
            rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column)), reverse=descending)
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    async def count(self, where=None):
        return len(self._select(where))

    async def aggregate(self, where=None, *, sum_fields=(), avg_fields=(), min_fields=(), max_fields=()):
        rows = self._select(where)
        result: Dict[str, Any] = {"_count": len(rows)}

        def values(field):
            return [r[field] for r in rows if r.get(field) is not None]

        if sum_fields:
            result["_sum"] = {f: (sum(values(f)) if values(f) else None) for f in sum_fields}
        if avg_fields:
            result["_avg"] = {
                f: (sum(values(f)) / len(values(f)) if values(f) else None) for f in avg_fields
            }
        if min_fields:
            result["_min"] = {f: (min(values(f)) if values(f) else None) for f in min_fields}
        if max_fields:
            result["_max"] = {f: (max(values(f)) if values(f) else None) for f in max_fields}
        return result

    async def group_by(self, by, where=None):
        counts = Counter(tuple(r.get(col) for col in by) for r in self._select(where))
        return [
            {**dict(zip(by, key)), "_count": n}
            for key, n in counts.items()
        ]

    # ── Writes ──────────────────────────────────────────────────

    async def create(self, data):
        return self._insert(data)

    async def create_many(self, data):
        items = [data] if isinstance(data, dict) else list(data)
        for item in items:
            self._insert(item)
        return len(items)

    async def update(self, where, data):
        row = self._single(where)
        if row is None:
            raise RecordNotFoundError(str(self.entity))
        row.update(copy.deepcopy(dict(data)))
        return copy.deepcopy(row)

    async def update_many(self, where, data):
        rows = self._select(where)
        for row in rows:
            row.update(copy.deepcopy(dict(data)))
        return len(rows)

    async def delete(self, where):
        row = self._single(where)
        if row is None:
            raise RecordNotFoundError(str(self.entity))
        return self._rows.pop(row["id"])

    async def delete_many(self, where=None):
        rows = self._select(where)
        for row in rows:
            del self._rows[row["id"]]
        return len(rows)

    async def upsert(self, where, create, update):
        if self._single(where) is not None:
            return await self.update(where, update)
        return self._insert(create)
