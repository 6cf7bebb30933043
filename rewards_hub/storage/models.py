# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
ORM Models — Table definitions for the rewards platform.

Tenant-scoped tables carry a ``tenant_id`` column holding the owning shop's
id. Columns listed in ENCRYPTED_FIELDS store ``iv:tag:cipher`` strings and are
declared as Text (or JSON for lists) so ciphertext always fits.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, Type

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from rewards_hub.storage.database import Base
from rewards_hub.storage.entities import Entity

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow():
    return datetime.now(timezone.utc)


def _genuuid():
    return str(uuid.uuid4())


def _tenant_column():
    return Column(String(64), nullable=False, index=True)


# ── Tenancy ─────────────────────────────────────────────────

class Shop(Base):
    __tablename__ = "shops"

    id = Column(String(64), primary_key=True, default=_genuuid)
    name = Column(String(256), nullable=False)
    slug = Column(String(128), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Shop {self.slug}>"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(String(64), primary_key=True, default=_genuuid)
    # Null only for platform super admins
    tenant_id = Column(String(64), nullable=True, index=True)
    email = Column(String(320), nullable=False)
    password_hash = Column(String(128), nullable=True)
    first_name = Column(String(128), nullable=True)
    last_name = Column(String(128), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_super_admin = Column(Boolean, nullable=False, default=False)
    mfa_enabled = Column(Boolean, nullable=False, default=False)
    mfa_secret = Column(Text, nullable=True)
    mfa_backup_codes = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<User {self.email}>"


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),)

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    name = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Department(Base):
    __tablename__ = "departments"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    name = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ── Rewards ─────────────────────────────────────────────────

class Receipt(Base):
    __tablename__ = "receipts"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    user_id = Column(String(64), nullable=True, index=True)
    amount_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="pending")  # pending/approved/rejected
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    name = Column(String(256), nullable=False)
    status = Column(String(32), nullable=False, default="draft")
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    campaign_id = Column(String(64), nullable=True, index=True)
    code = Column(String(64), nullable=False)
    value_cents = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="active")
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Redemption(Base):
    __tablename__ = "redemptions"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    voucher_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Ad(Base):
    __tablename__ = "ads"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    title = Column(String(256), nullable=False)
    image_url = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ── Compliance ──────────────────────────────────────────────

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    user_id = Column(String(64), nullable=True)
    action = Column(String(32), nullable=False)
    resource = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=True)
    changes = Column(JSONType, nullable=True)
    is_suspicious = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class GdprConsent(Base):
    __tablename__ = "gdpr_consents"

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    user_id = Column(String(64), nullable=False, index=True)
    consent_type = Column(String(64), nullable=False)
    granted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ── Configuration & secrets ─────────────────────────────────

class ShopConfig(Base):
    __tablename__ = "shop_configs"
    __table_args__ = (UniqueConstraint("tenant_id", "key", name="uq_shop_configs_tenant_key"),)

    id = Column(String(64), primary_key=True, default=_genuuid)
    tenant_id = _tenant_column()
    key = Column(String(128), nullable=False)
    value = Column(Text, nullable=True)
    is_encrypted = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class SystemConfig(Base):
    __tablename__ = "system_configs"

    id = Column(String(64), primary_key=True, default=_genuuid)
    key = Column(String(128), nullable=False, unique=True)
    value = Column(Text, nullable=True)
    is_encrypted = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class Integration(Base):
    __tablename__ = "integrations"

    id = Column(String(64), primary_key=True, default=_genuuid)
    provider = Column(String(64), nullable=False)
    config = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class BillingConfig(Base):
    __tablename__ = "billing_configs"

    id = Column(String(64), primary_key=True, default=_genuuid)
    provider = Column(String(64), nullable=False)
    api_key = Column(Text, nullable=True)
    webhook_secret = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


MODELS: Dict[Entity, Type[Base]] = {
    Entity.SHOP: Shop,
    Entity.USER: User,
    Entity.RECEIPT: Receipt,
    Entity.VOUCHER: Voucher,
    Entity.CAMPAIGN: Campaign,
    Entity.REDEMPTION: Redemption,
    Entity.AD: Ad,
    Entity.AUDIT_LOG: AuditLog,
    Entity.GDPR_CONSENT: GdprConsent,
    Entity.SHOP_CONFIG: ShopConfig,
    Entity.DEPARTMENT: Department,
    Entity.ROLE: Role,
    Entity.SYSTEM_CONFIG: SystemConfig,
    Entity.INTEGRATION: Integration,
    Entity.BILLING_CONFIG: BillingConfig,
}
