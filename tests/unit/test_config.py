# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for RewardsSettings configuration."""

from rewards_hub.core.config import RewardsSettings


class TestRewardsSettings:
    def test_defaults(self):
        s = RewardsSettings(_env_file=None)
        assert s.REDIS_URL == "redis://localhost:6379/0"
        assert "postgresql" in s.DATABASE_URL
        assert s.JWT_ALGORITHM == "HS256"
        assert s.ACCESS_TOKEN_TTL_MINUTES == 15
        assert s.BCRYPT_ROUNDS == 12
        assert s.AUDIT_STREAM_ENABLED is True
        assert s.REWARDS_ENV == "dev"

    def test_custom_values(self):
        s = RewardsSettings(
            _env_file=None,
            REDIS_URL="redis://custom:6380/1",
            ENCRYPTION_KEY="ab" * 32,
            BCRYPT_ROUNDS=10,
        )
        assert s.REDIS_URL == "redis://custom:6380/1"
        assert s.ENCRYPTION_KEY == "ab" * 32
        assert s.BCRYPT_ROUNDS == 10

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("AUDIT_EMIT_TIMEOUT", "2.5")
        s = RewardsSettings(_env_file=None)
        assert s.AUDIT_EMIT_TIMEOUT == 2.5
