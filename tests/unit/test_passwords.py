# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for password hashing and strength rules."""

import pytest

from rewards_hub.auth.passwords import (
    generate_secure_password,
    hash_password,
    needs_rehash,
    validate_password_strength,
    verify_password,
)


class TestHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("Sup3r$ecret", rounds=4)
        assert hashed.startswith("$2")
        assert verify_password("Sup3r$ecret", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("Sup3r$ecret", rounds=4) != hash_password("Sup3r$ecret", rounds=4)

    @pytest.mark.parametrize("password", ["", "short"])
    def test_hash_rejects_weak_input(self, password):
        with pytest.raises(ValueError):
            hash_password(password, rounds=4)

    def test_long_password_hashes(self):
        hashed = hash_password("A1!" + "x" * 200, rounds=4)
        assert verify_password("A1!" + "x" * 200, hashed)

    def test_verify_malformed_hash(self):
        assert verify_password("Sup3r$ecret", "not-a-hash") is False
        assert verify_password("", "$2b$04$abc") is False

    def test_needs_rehash(self):
        hashed = hash_password("Sup3r$ecret", rounds=4)
        assert needs_rehash(hashed, rounds=4) is False
        assert needs_rehash(hashed, rounds=12) is True
        assert needs_rehash("garbage", rounds=4) is True


class TestStrength:
    @pytest.mark.parametrize("password,fragment", [
        ("", "required"),
        ("Ab1!", "at least 8"),
        ("A1!" + "a" * 130, "less than 128"),
        ("ABCDEFG1!", "lowercase"),
        ("abcdefg1!", "uppercase"),
        ("Abcdefgh!", "number"),
        ("Abcdefgh1", "special"),
    ])
    def test_rejections(self, password, fragment):
        check = validate_password_strength(password)
        assert check.valid is False
        assert fragment in check.message

    def test_strong_password(self):
        assert validate_password_strength("Sup3r$ecret").valid is True

    @pytest.mark.parametrize("length", [4, 16, 40])
    def test_generated_passwords_are_strong(self, length):
        password = generate_secure_password(length)
        assert len(password) == max(length, 8)
        assert validate_password_strength(password).valid
