# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for JWT access tokens carrying the TenantContext."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from rewards_hub.auth.tokens import create_access_token, decode_access_token
from rewards_hub.core.config import RewardsSettings
from rewards_hub.core.errors import InvalidTokenError


class TestAccessTokens:
    def test_round_trip(self, test_settings, tenant_a):
        token = create_access_token(tenant_a, cfg=test_settings)
        ctx = decode_access_token(token, cfg=test_settings)
        assert ctx == tenant_a

    def test_super_admin_round_trip(self, test_settings, super_admin):
        ctx = decode_access_token(create_access_token(super_admin, cfg=test_settings), cfg=test_settings)
        assert ctx.is_super_admin is True
        assert ctx.tenant_id is None

    def test_expired(self, test_settings, tenant_a):
        token = create_access_token(tenant_a, expires_minutes=-1, cfg=test_settings)
        with pytest.raises(InvalidTokenError, match="expired"):
            decode_access_token(token, cfg=test_settings)

    def test_wrong_secret(self, test_settings, tenant_a):
        token = create_access_token(tenant_a, cfg=test_settings)
        other = RewardsSettings(_env_file=None, JWT_SECRET_KEY="another-secret-that-is-long-enough!!")
        with pytest.raises(InvalidTokenError):
            decode_access_token(token, cfg=other)

    def test_wrong_audience(self, test_settings, tenant_a):
        token = create_access_token(tenant_a, cfg=test_settings)
        other = test_settings.model_copy(update={"JWT_AUDIENCE": "someone-else"})
        with pytest.raises(InvalidTokenError):
            decode_access_token(token, cfg=other)

    def test_wrong_token_type(self, test_settings):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user_a",
                "type": "refresh",
                "iss": test_settings.JWT_ISSUER,
                "aud": test_settings.JWT_AUDIENCE,
                "exp": now + timedelta(minutes=5),
            },
            test_settings.JWT_SECRET_KEY,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError, match="Not an access token"):
            decode_access_token(token, cfg=test_settings)

    def test_garbage(self, test_settings):
        with pytest.raises(InvalidTokenError):
            decode_access_token("not.a.jwt", cfg=test_settings)

    def test_short_secret_refused(self, tenant_a):
        weak = RewardsSettings(_env_file=None, JWT_SECRET_KEY="short")
        with pytest.raises(RuntimeError, match="JWT_SECRET_KEY"):
            create_access_token(tenant_a, cfg=weak)
