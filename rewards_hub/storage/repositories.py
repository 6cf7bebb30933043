# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
SQL Gateway — EntityGateway backed by SQLAlchemy async sessions.

Each operation runs in its own session/transaction taken from the injected
Database. Filters are translated column by column; an unknown field name is
rejected rather than silently ignored.
"""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, inspect, select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import MultipleResultsFound

from rewards_hub.core.errors import RecordNotFoundError
from rewards_hub.storage.database import Database
from rewards_hub.storage.entities import Entity
from rewards_hub.storage.gateway import EntityGateway, Record, parse_order_by
from rewards_hub.storage.models import MODELS


class SqlEntityGateway(EntityGateway):
    def __init__(self, db: Database, entity: Entity) -> None:
        super().__init__(entity)
        self.db = db
        self._model = MODELS[entity]
        self._fields = [attr.key for attr in inspect(self._model).column_attrs]

    # ── Translation helpers ─────────────────────────────────────

    def _column(self, name: str):
        if name not in self._fields:
            raise ValueError(f"{self.entity} has no field {name!r}")
        return getattr(self._model, name)

    def _conditions(self, where) -> list:
        return [self._column(k) == v for k, v in (where or {}).items()]

    def _checked(self, data) -> Dict[str, Any]:
        for key in data:
            self._column(key)
        return dict(data)

    def _to_record(self, obj) -> Record:
        return {name: getattr(obj, name) for name in self._fields}

    def _select(self, where, order_by=None):
        query = select(self._model).where(*self._conditions(where))
        order = parse_order_by(order_by)
        if order:
            column, descending = order
            col = self._column(column)
            query = query.order_by(col.desc() if descending else col.asc())
        return query

    async def _load_single(self, session, where):
        result = await session.execute(self._select(where))
        try:
            return result.scalars().one_or_none()
        except MultipleResultsFound:
            raise ValueError(
                f"{self.entity}: filter {dict(where or {})} matched more than one record"
            ) from None

    # ── Reads ───────────────────────────────────────────────────

    async def find_unique(self, where):
        async with self.db.session() as session:
            obj = await self._load_single(session, where)
            return self._to_record(obj) if obj is not None else None

    async def find_first(self, where=None, order_by=None):
        async with self.db.session() as session:
            result = await session.execute(self._select(where, order_by).limit(1))
            obj = result.scalars().first()
            return self._to_record(obj) if obj is not None else None

    async def find_many(self, where=None, order_by=None, limit=None, offset=0):
        query = self._select(where, order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        async with self.db.session() as session:
            result = await session.execute(query)
            return [self._to_record(obj) for obj in result.scalars().all()]

    async def count(self, where=None):
        query = select(func.count()).select_from(self._model).where(*self._conditions(where))
        async with self.db.session() as session:
            result = await session.execute(query)
            return result.scalar() or 0

    async def aggregate(self, where=None, *, sum_fields=(), avg_fields=(), min_fields=(), max_fields=()):
        sections = {
            "_sum": (func.sum, sum_fields),
            "_avg": (func.avg, avg_fields),
            "_min": (func.min, min_fields),
            "_max": (func.max, max_fields),
        }
        columns = [func.count().label("_count")]
        for section, (fn, fields) in sections.items():
            for name in fields:
                columns.append(fn(self._column(name)).label(f"{section}__{name}"))

        query = select(*columns).select_from(self._model).where(*self._conditions(where))
        async with self.db.session() as session:
            row = (await session.execute(query)).one()._mapping

        result: Dict[str, Any] = {"_count": row["_count"]}
        for section, (_, fields) in sections.items():
            if fields:
                result[section] = {name: row[f"{section}__{name}"] for name in fields}
        return result

    async def group_by(self, by, where=None):
        keys = [self._column(name) for name in by]
        query = (
            select(*keys, func.count().label("_count"))
            .where(*self._conditions(where))
            .group_by(*keys)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            return [dict(row._mapping) for row in result.all()]

    # ── Writes ──────────────────────────────────────────────────

    async def create(self, data):
        obj = self._model(**self._checked(data))
        async with self.db.session() as session:
            session.add(obj)
            await session.flush()
            return self._to_record(obj)

    async def create_many(self, data):
        items = [data] if isinstance(data, dict) else list(data)
        objs = [self._model(**self._checked(item)) for item in items]
        async with self.db.session() as session:
            session.add_all(objs)
            await session.flush()
        return len(objs)

    async def update(self, where, data):
        values = self._checked(data)
        async with self.db.session() as session:
            obj = await self._load_single(session, where)
            if obj is None:
                raise RecordNotFoundError(str(self.entity))
            for key, value in values.items():
                setattr(obj, key, value)
            await session.flush()
            return self._to_record(obj)

    async def update_many(self, where, data):
        query = (
            sa_update(self._model)
            .where(*self._conditions(where))
            .values(**self._checked(data))
            .execution_options(synchronize_session=False)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            return result.rowcount

    async def delete(self, where):
        async with self.db.session() as session:
            obj = await self._load_single(session, where)
            if obj is None:
                raise RecordNotFoundError(str(self.entity))
            record = self._to_record(obj)
            await session.delete(obj)
            await session.flush()
            return record

    async def delete_many(self, where=None):
        query = (
            sa_delete(self._model)
            .where(*self._conditions(where))
            .execution_options(synchronize_session=False)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            return result.rowcount

    async def upsert(self, where, create, update):
        async with self.db.session() as session:
            obj = await self._load_single(session, where)
            if obj is None:
                obj = self._model(**self._checked(create))
                session.add(obj)
            else:
                for key, value in self._checked(update).items():
                    setattr(obj, key, value)
            await session.flush()
            return self._to_record(obj)
