# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Entity Gateway — The storage interface every caller goes through.

One gateway instance serves one entity type. Tenant isolation and field
encryption are GatewayDecorators composed around a base gateway:

    TenantIsolationGateway(FieldEncryptionGateway(SqlEntityGateway(db, Entity.USER)))

Filters (``where``) are equality predicates ``{column: value}``. Payloads and
returned records are plain dicts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from rewards_hub.core.errors import RecordNotFoundError
from rewards_hub.storage.entities import Entity

Record = Dict[str, Any]
Where = Optional[Mapping[str, Any]]
Payload = Mapping[str, Any]
BulkPayload = Union[Payload, Sequence[Payload]]


class EntityGateway(ABC):
    """Async CRUD interface for a single entity type."""

    def __init__(self, entity: Entity) -> None:
        self.entity = entity

    # ── Reads ───────────────────────────────────────────────────

    @abstractmethod
    async def find_unique(self, where: Where) -> Optional[Record]:
        """Return the single matching record, or None. Multiple matches raise ValueError."""

    @abstractmethod
    async def find_first(
        self, where: Where = None, order_by: Optional[str] = None
    ) -> Optional[Record]:
        ...

    @abstractmethod
    async def find_many(
        self,
        where: Where = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Record]:
        """``order_by`` is a column name; prefix with ``-`` for descending."""

    @abstractmethod
    async def count(self, where: Where = None) -> int:
        ...

    @abstractmethod
    async def aggregate(
        self,
        where: Where = None,
        *,
        sum_fields: Sequence[str] = (),
        avg_fields: Sequence[str] = (),
        min_fields: Sequence[str] = (),
        max_fields: Sequence[str] = (),
    ) -> Dict[str, Any]:
        """
        Returns ``{"_count": n, "_sum": {...}, "_avg": {...}, ...}``.

        Only the requested sections are present besides ``_count``.
        """

    @abstractmethod
    async def group_by(self, by: Sequence[str], where: Where = None) -> List[Record]:
        """One record per distinct ``by`` tuple, each with a ``_count`` key."""

    # ── Writes ──────────────────────────────────────────────────

    @abstractmethod
    async def create(self, data: Payload) -> Record:
        ...

    @abstractmethod
    async def create_many(self, data: BulkPayload) -> int:
        ...

    @abstractmethod
    async def update(self, where: Where, data: Payload) -> Record:
        """Update exactly one record. Raises RecordNotFoundError on no match."""

    @abstractmethod
    async def update_many(self, where: Where, data: Payload) -> int:
        """Returns the number of rows updated (zero is not an error)."""

    @abstractmethod
    async def delete(self, where: Where) -> Record:
        """Delete exactly one record and return it. Raises RecordNotFoundError on no match."""

    @abstractmethod
    async def delete_many(self, where: Where = None) -> int:
        ...

    @abstractmethod
    async def upsert(self, where: Where, create: Payload, update: Payload) -> Record:
        ...

    # ── Conveniences ────────────────────────────────────────────

    async def find_unique_or_raise(self, where: Where) -> Record:
        record = await self.find_unique(where)
        if record is None:
            raise RecordNotFoundError(str(self.entity))
        return record

    async def find_first_or_raise(
        self, where: Where = None, order_by: Optional[str] = None
    ) -> Record:
        record = await self.find_first(where, order_by=order_by)
        if record is None:
            raise RecordNotFoundError(str(self.entity))
        return record

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.entity}>"


class GatewayDecorator(EntityGateway):
    """Forwards every operation to an inner gateway. Subclasses override what they rewrite."""

    def __init__(self, inner: EntityGateway) -> None:
        super().__init__(inner.entity)
        self._inner = inner

    @property
    def inner(self) -> EntityGateway:
        return self._inner

    async def find_unique(self, where):
        return await self._inner.find_unique(where)

    async def find_first(self, where=None, order_by=None):
        return await self._inner.find_first(where, order_by=order_by)

    async def find_many(self, where=None, order_by=None, limit=None, offset=0):
        return await self._inner.find_many(where, order_by=order_by, limit=limit, offset=offset)

    async def count(self, where=None):
        return await self._inner.count(where)

    async def aggregate(self, where=None, *, sum_fields=(), avg_fields=(), min_fields=(), max_fields=()):
        return await self._inner.aggregate(
            where,
            sum_fields=sum_fields,
            avg_fields=avg_fields,
            min_fields=min_fields,
            max_fields=max_fields,
        )

    async def group_by(self, by, where=None):
        return await self._inner.group_by(by, where)

    async def create(self, data):
        return await self._inner.create(data)

    async def create_many(self, data):
        return await self._inner.create_many(data)

    async def update(self, where, data):
        return await self._inner.update(where, data)

    async def update_many(self, where, data):
        return await self._inner.update_many(where, data)

    async def delete(self, where):
        return await self._inner.delete(where)

    async def delete_many(self, where=None):
        return await self._inner.delete_many(where)

    async def upsert(self, where, create, update):
        return await self._inner.upsert(where, create, update)


def parse_order_by(order_by: Optional[str]) -> Optional[tuple]:
    """``"-created_at"`` -> ``("created_at", True)``; None passes through."""
    if not order_by:
        return None
    if order_by.startswith("-"):
        return order_by[1:], True
    return order_by, False
