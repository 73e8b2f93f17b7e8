"""Tests for secret hashing and session credentials."""

import hashlib
from datetime import datetime, timedelta, timezone

from jose import jwt

from portal.core.config import settings
from portal.core.security import (
    create_access_token,
    hash_secret,
    verify_and_update,
    verify_secret,
    verify_token,
)
from portal.models.user import User, UserRole

ISSUED = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _user(role: UserRole = UserRole.DEVELOPER) -> User:
    return User(
        id="a1b2c3d4e5f60718",
        account_code="dev-0a1b2c3d",
        display_name="Dana Dev",
        email="dana@acme.com",
        password_hash="unused",
        role=role.value,
    )


# ===================================================================
# Secret hashing
# ===================================================================

class TestSecretHashing:
    def test_hash_is_salted(self) -> None:
        first = hash_secret("correct horse")
        second = hash_secret("correct horse")
        assert first != second
        assert verify_secret("correct horse", first)
        assert verify_secret("correct horse", second)

    def test_wrong_secret_rejected(self) -> None:
        digest = hash_secret("correct horse")
        assert verify_secret("battery staple", digest) is False

    def test_empty_or_corrupt_inputs_fail_closed(self) -> None:
        digest = hash_secret("x")
        assert verify_secret("", digest) is False
        assert verify_secret("x", "") is False
        assert verify_secret("x", "not-a-digest") is False

    def test_legacy_digest_verifies_and_is_upgraded(self) -> None:
        legacy = hashlib.sha256(b"old-password").hexdigest()
        assert verify_secret("old-password", legacy)

        valid, new_digest = verify_and_update("old-password", legacy)
        assert valid is True
        assert new_digest is not None
        assert new_digest.startswith("$pbkdf2-sha256$")
        assert verify_secret("old-password", new_digest)

    def test_current_digest_needs_no_upgrade(self) -> None:
        valid, new_digest = verify_and_update("pw", hash_secret("pw"))
        assert valid is True
        assert new_digest is None


# ===================================================================
# Session credentials
# ===================================================================

class TestAccessTokens:
    def test_round_trip_carries_identity(self) -> None:
        token = create_access_token(_user(), now=ISSUED)
        payload = verify_token(token, now=ISSUED + timedelta(hours=1))
        assert payload is not None
        assert payload.sub == "a1b2c3d4e5f60718"
        assert payload.role == UserRole.DEVELOPER
        assert payload.account_code == "dev-0a1b2c3d"
        assert payload.exp - payload.iat == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    def test_actor_rebuilt_from_claims(self) -> None:
        payload = verify_token(create_access_token(_user(UserRole.ADMIN), now=ISSUED), now=ISSUED)
        actor = payload.to_actor()
        assert actor.id == "a1b2c3d4e5f60718"
        assert actor.is_admin

    def test_token_valid_until_expiry(self) -> None:
        token = create_access_token(_user(), expires_delta=timedelta(hours=24), now=ISSUED)
        assert verify_token(token, now=ISSUED + timedelta(hours=24) - timedelta(seconds=1)) is not None
        assert verify_token(token, now=ISSUED + timedelta(hours=24)) is None
        assert verify_token(token, now=ISSUED + timedelta(days=2)) is None

    def test_tampered_payload_rejected(self) -> None:
        token = create_access_token(_user(), now=ISSUED)
        header, payload, signature = token.split(".")
        flipped = payload[:10] + ("A" if payload[10] != "A" else "B") + payload[11:]
        assert verify_token(".".join([header, flipped, signature]), now=ISSUED) is None

    def test_foreign_signature_rejected(self) -> None:
        claims = {
            "sub": "a1b2c3d4e5f60718",
            "account_code": "dev-0a1b2c3d",
            "display_name": "Dana Dev",
            "email": "dana@acme.com",
            "role": "admin",
            "iat": 1740819600,
            "exp": 1740819600 + 3600,
        }
        forged = jwt.encode(claims, "some-other-key", algorithm="HS256")
        assert verify_token(forged, now=ISSUED) is None

    def test_incomplete_claims_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "a1b2c3d4e5f60718", "exp": 1740819600 + 3600},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        assert verify_token(token, now=ISSUED) is None

    def test_garbage_rejected(self) -> None:
        assert verify_token("not-a-token") is None
        assert verify_token("") is None
        assert verify_token(None) is None
