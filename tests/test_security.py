"""Tests for access tokens and password hashing."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from backoffice.core.security import TokenIssuer, hash_password, verify_password

SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class TestTokenIssuer:

    def test_round_trip_preserves_identity(self, issuer):
        token = issuer.issue(42, "editor@example.com", ["ContentManager", "User"])

        claims = issuer.decode(token)

        assert claims is not None
        assert claims.user_id == 42
        assert claims.email == "editor@example.com"
        assert claims.roles == ("ContentManager", "User")
        assert issuer.validate(token) is True
        assert issuer.extract_user_id(token) == 42

    def test_expiry_follows_configuration(self, issuer):
        claims = issuer.decode(issuer.issue(1, "a@example.com", []))

        assert claims.expires_at - claims.issued_at == timedelta(minutes=60)

    def test_each_token_has_unique_jti(self, issuer):
        first = issuer.decode(issuer.issue(1, "a@example.com", ["User"]))
        second = issuer.decode(issuer.issue(1, "a@example.com", ["User"]))

        assert first.jti and second.jti
        assert first.jti != second.jti

    def test_standard_claims_present(self, issuer):
        token = issuer.issue(7, "a@example.com", ["Admin"])

        payload = jwt.get_unverified_claims(token)

        assert payload["sub"] == "7"
        assert payload["iss"] == "StudyBridge"
        assert payload["aud"] == "StudyBridge-Users"
        assert payload["roles"] == ["Admin"]
        assert {"jti", "iat", "exp"} <= payload.keys()

    def test_wrong_key_rejected(self, issuer):
        other = TokenIssuer(secret="another-secret-key-of-sufficient-length-0000")
        token = other.issue(1, "a@example.com", ["Admin"])

        assert issuer.validate(token) is False
        assert issuer.extract_user_id(token) is None
        assert issuer.decode(token) is None

    def test_expired_token_rejected(self):
        expired = TokenIssuer(secret=SECRET, expiry_minutes=-1)

        token = expired.issue(1, "a@example.com", [])

        assert expired.validate(token) is False

    @pytest.mark.parametrize("field,value", [
        ("issuer", "SomeoneElse"),
        ("audience", "Other-Users"),
    ])
    def test_wrong_issuer_or_audience_rejected(self, issuer, field, value):
        foreign = TokenIssuer(secret=SECRET, **{field: value})

        assert issuer.validate(foreign.issue(1, "a@example.com", [])) is False

    def test_token_without_subject_rejected(self, issuer):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"exp": now + timedelta(minutes=5), "iss": "StudyBridge", "aud": "StudyBridge-Users"},
            SECRET,
            algorithm="HS256",
        )

        assert issuer.decode(token) is None

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage_rejected(self, issuer, token):
        assert issuer.validate(token) is False


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")

        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed) is True
        assert verify_password("wrong-pass", hashed) is False
