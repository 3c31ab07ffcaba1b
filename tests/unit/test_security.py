"""Tests for password hashing and access tokens."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from src.simflow.core.config import get_settings
from src.simflow.core.security import (
    ACCESS_TOKEN_TYPE,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)

pytestmark = pytest.mark.unit


class TestPasswordHashing:
    def test_round_trip(self):
        hashed = hash_password("correct horse battery")
        assert hashed != "correct horse battery"
        assert verify_password("correct horse battery", hashed)

    def test_wrong_password(self):
        assert not verify_password("guess", hash_password("correct horse battery"))

    def test_garbage_hash(self):
        assert not verify_password("anything", "not-an-argon2-hash")


class TestAccessTokens:
    def test_token_carries_role(self):
        user_id = uuid4()

        payload = decode_token(create_access_token(user_id, "Engineer"))

        assert payload is not None
        assert payload["sub"] == str(user_id)
        assert payload["role"] == "Engineer"
        assert payload["type"] == ACCESS_TOKEN_TYPE

    def test_expired_token_rejected(self):
        token = create_access_token(uuid4(), "Admin", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_foreign_signature_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": ACCESS_TOKEN_TYPE},
            "some-other-secret-that-is-long-enough",
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(token) is None

    def test_garbage_rejected(self):
        assert decode_token("not.a.token") is None
