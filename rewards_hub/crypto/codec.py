# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Field Encryption Codec — Encrypt registered fields on write, decrypt on read.

Application code always sees plaintext; storage only ever sees
``iv:authTag:cipher`` strings for the fields in ENCRYPTED_FIELDS.

Write side: any encryption failure aborts the operation, so plaintext is
never persisted where ciphertext was expected.

Read side: a field that fails to decrypt is isolated. Scalars become None,
list elements keep their stored value, and sibling fields and records are
returned normally. A User whose mfa_secret cannot be decrypted is flagged
with mfa_reprovision_required so MFA can be set up again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from rewards_hub.core.errors import DecryptError, EncryptionError
from rewards_hub.crypto.cipher import FieldCipher
from rewards_hub.storage.entities import (
    CONDITIONALLY_ENCRYPTED_ENTITIES,
    ENCRYPTION_FLAG,
    decrypt_failure_marker,
    encrypted_fields_for,
)
from rewards_hub.storage.gateway import EntityGateway, GatewayDecorator, Record

logger = logging.getLogger("rewards.crypto")


class FieldEncryptionGateway(GatewayDecorator):
    """Transparently encrypts/decrypts the entity's registered fields."""

    def __init__(self, inner: EntityGateway, cipher: FieldCipher) -> None:
        super().__init__(inner)
        self._cipher = cipher
        self._fields = encrypted_fields_for(self.entity)
        self._conditional = self.entity in CONDITIONALLY_ENCRYPTED_ENTITIES

    @property
    def active(self) -> bool:
        return bool(self._fields)

    def _opted_out(self, row) -> bool:
        # Only an explicit False disables encryption; a missing flag means encrypt
        return self._conditional and row.get(ENCRYPTION_FLAG) is False

    # ── Write path ──────────────────────────────────────────────

    def _encrypt_value(self, value):
        if self._cipher.is_encrypted(value):
            return value
        return self._cipher.encrypt(value)

    def encrypt_payload(self, data, opted_out: Optional[bool] = None) -> Dict[str, Any]:
        """
        Return a copy of ``data`` with registered fields encrypted.

        ``opted_out`` overrides the payload's own flag; updates pass the
        state resolved against the stored row.
        """
        payload = dict(data)
        if opted_out is None:
            opted_out = self._opted_out(payload)
        if not self.active or opted_out:
            return payload
        for field in self._fields:
            value = payload.get(field)
            if value is None:
                continue
            try:
                if isinstance(value, (list, tuple)):
                    payload[field] = [self._encrypt_value(v) for v in value]
                else:
                    payload[field] = self._encrypt_value(value)
            except EncryptionError as e:
                logger.error(
                    "[encryption] Refusing to write %s.%s: %s", self.entity, field, e.message,
                    extra={"model": str(self.entity)},
                )
                raise
        return payload

    def _resolved_opt_out(self, data, stored: Record) -> bool:
        if ENCRYPTION_FLAG in data:
            return data[ENCRYPTION_FLAG] is False
        return self._opted_out(stored)

    def _recode_stored(self, field: str, value, now_off: bool):
        if not now_off:
            return self._encrypt_value(value)
        if not self._cipher.is_encrypted(value):
            return value
        try:
            return self._cipher.decrypt(value)
        except DecryptError as e:
            logger.error(
                "[encryption] Cannot decrypt %s.%s while disabling encryption: %s",
                self.entity, field, e.message,
                extra={"model": str(self.entity)},
            )
            return None

    def update_payload(self, data, stored: Optional[Record]) -> Dict[str, Any]:
        """
        Encrypt an update payload against the row it will be applied to.

        For conditionally encrypted entities the effective flag is the payload
        flag if present, otherwise the stored one. When the flag flips, stored
        values the payload leaves alone are re-encoded to match it.
        """
        if not self._conditional or stored is None:
            return self.encrypt_payload(data)
        was_off = self._opted_out(stored)
        now_off = self._resolved_opt_out(data, stored)
        payload = self.encrypt_payload(data, opted_out=now_off)
        if was_off == now_off:
            return payload
        for field in self._fields:
            if field in payload or stored.get(field) is None:
                continue
            try:
                payload[field] = self._recode_stored(field, stored[field], now_off)
            except EncryptionError as e:
                logger.error(
                    "[encryption] Refusing to write %s.%s: %s", self.entity, field, e.message,
                    extra={"model": str(self.entity)},
                )
                raise
        return payload

    # ── Read path ───────────────────────────────────────────────

    def _decrypt_list(self, field: str, values: List[Any]) -> List[Any]:
        decrypted = []
        for value in values:
            try:
                decrypted.append(self._cipher.decrypt(value))
            except DecryptError as e:
                logger.error(
                    "[encryption] Failed to decrypt array item in %s.%s: %s",
                    self.entity, field, e.message,
                    extra={"model": str(self.entity)},
                )
                decrypted.append(value)
        return decrypted

    def decrypt_record(self, record: Optional[Record]) -> Optional[Record]:
        """Decrypt registered fields of ``record`` in place and return it."""
        if not record or not self.active or self._opted_out(record):
            return record
        for field in self._fields:
            value = record.get(field)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                record[field] = self._decrypt_list(field, list(value))
                continue
            try:
                record[field] = self._cipher.decrypt(value)
            except DecryptError as e:
                logger.error(
                    "[encryption] Failed to decrypt %s.%s: %s", self.entity, field, e.message,
                    extra={"model": str(self.entity)},
                )
                record[field] = None
                marker = decrypt_failure_marker(self.entity, field)
                if marker:
                    record[marker] = True
        return record

    # ── Reads ───────────────────────────────────────────────────

    async def find_unique(self, where):
        return self.decrypt_record(await self._inner.find_unique(where))

    async def find_first(self, where=None, order_by=None):
        return self.decrypt_record(await self._inner.find_first(where, order_by=order_by))

    async def find_many(self, where=None, order_by=None, limit=None, offset=0):
        records = await self._inner.find_many(where, order_by=order_by, limit=limit, offset=offset)
        return [self.decrypt_record(r) for r in records]

    # ── Writes ──────────────────────────────────────────────────

    async def _stored(self, where) -> Optional[Record]:
        if not self._conditional:
            return None
        return await self._inner.find_unique(where)

    async def create(self, data):
        return self.decrypt_record(await self._inner.create(self.encrypt_payload(data)))

    async def create_many(self, data):
        if isinstance(data, dict):
            return await self._inner.create_many(self.encrypt_payload(data))
        return await self._inner.create_many([self.encrypt_payload(item) for item in data])

    async def update(self, where, data):
        payload = self.update_payload(data, await self._stored(where))
        return self.decrypt_record(await self._inner.update(where, payload))

    async def update_many(self, where, data):
        if not self._conditional:
            return await self._inner.update_many(where, self.encrypt_payload(data))

        rows = await self._inner.find_many(where)
        if not rows:
            return 0
        states = {self._resolved_opt_out(data, row) for row in rows}
        unchanged = all(self._opted_out(row) == self._resolved_opt_out(data, row) for row in rows)
        if len(states) == 1 and unchanged:
            return await self._inner.update_many(where, self.encrypt_payload(data, opted_out=states.pop()))

        # Mixed or flipping flags: each row gets its own payload
        for row in rows:
            await self._inner.update({"id": row["id"]}, self.update_payload(data, row))
        return len(rows)

    async def delete(self, where):
        return self.decrypt_record(await self._inner.delete(where))

    async def upsert(self, where, create, update):
        stored = await self._stored(where)
        record = await self._inner.upsert(
            where, self.encrypt_payload(create), self.update_payload(update, stored)
        )
        return self.decrypt_record(record)
