# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Entity Registry — Compiled-in tenancy and encryption configuration.

Which entities are tenant-scoped and which fields are encrypted at rest is
fixed at build time; nothing here is runtime-configurable.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class Entity(str, Enum):
    SHOP = "Shop"
    USER = "User"
    RECEIPT = "Receipt"
    VOUCHER = "Voucher"
    CAMPAIGN = "Campaign"
    REDEMPTION = "Redemption"
    AD = "Ad"
    AUDIT_LOG = "AuditLog"
    GDPR_CONSENT = "GdprConsent"
    SHOP_CONFIG = "ShopConfig"
    DEPARTMENT = "Department"
    ROLE = "Role"
    SYSTEM_CONFIG = "SystemConfig"
    INTEGRATION = "Integration"
    BILLING_CONFIG = "BillingConfig"

    def __str__(self) -> str:
        return self.value


TENANT_SCOPED_ENTITIES: FrozenSet[Entity] = frozenset({
    Entity.SHOP,
    Entity.USER,
    Entity.RECEIPT,
    Entity.VOUCHER,
    Entity.CAMPAIGN,
    Entity.REDEMPTION,
    Entity.AD,
    Entity.AUDIT_LOG,
    Entity.GDPR_CONSENT,
    Entity.SHOP_CONFIG,
    Entity.DEPARTMENT,
    Entity.ROLE,
})

# The tenant record itself: never filtered by tenant_id, but still needs a context.
ROOT_TENANT_ENTITY = Entity.SHOP

TENANT_KEY = "tenant_id"

ENCRYPTED_FIELDS: Dict[Entity, Tuple[str, ...]] = {
    Entity.USER: ("mfa_secret", "mfa_backup_codes"),
    Entity.SYSTEM_CONFIG: ("value",),
    Entity.SHOP_CONFIG: ("value",),
    Entity.INTEGRATION: ("config",),
    Entity.BILLING_CONFIG: ("api_key", "webhook_secret"),
}

# Entities whose encrypted fields are skipped when the row says is_encrypted=False
CONDITIONALLY_ENCRYPTED_ENTITIES: FrozenSet[Entity] = frozenset({
    Entity.SYSTEM_CONFIG,
    Entity.SHOP_CONFIG,
})

ENCRYPTION_FLAG = "is_encrypted"


def is_tenant_scoped(entity: Entity) -> bool:
    return entity in TENANT_SCOPED_ENTITIES


def encrypted_fields_for(entity: Entity) -> Tuple[str, ...]:
    return ENCRYPTED_FIELDS.get(entity, ())


# Set on a returned record when the named field could not be decrypted
DECRYPT_FAILURE_MARKERS: Dict[Entity, Dict[str, str]] = {
    Entity.USER: {"mfa_secret": "mfa_reprovision_required"},
}


def decrypt_failure_marker(entity: Entity, field: str) -> Optional[str]:
    return DECRYPT_FAILURE_MARKERS.get(entity, {}).get(field)
