"""Tests for the session token service."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from filehost.config import Settings
from filehost.errors import InvalidToken
from filehost.services.tokens import TokenService

SECRET = "unit-test-secret"  # noqa: S105
ISSUED_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def token_service():
    return TokenService(SECRET, max_age=timedelta(minutes=60))


class TestIssue:
    """Tests for TokenService.issue."""

    def test_claims_carry_subject_and_lifetime(self, token_service):
        """Issued claims hold the subject id and expire max_age after iat."""
        token = token_service.issue(42, now=ISSUED_AT)

        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "42"
        assert claims["iat"] == int(ISSUED_AT.timestamp())
        assert claims["exp"] - claims["iat"] == 3600

    def test_same_claims_give_same_token(self, token_service):
        """Signing is deterministic for identical claims."""
        assert token_service.issue(1, now=ISSUED_AT) == token_service.issue(1, now=ISSUED_AT)

    def test_different_issue_times_give_different_tokens(self, token_service):
        """iat makes each issuance unique."""
        later = ISSUED_AT + timedelta(seconds=1)
        assert token_service.issue(1, now=ISSUED_AT) != token_service.issue(1, now=later)

    def test_rejects_non_positive_max_age(self):
        with pytest.raises(ValueError):
            TokenService(SECRET, max_age=timedelta(0))

    def test_from_settings(self):
        """Settings supply the secret, algorithm and lifetime."""
        settings = Settings(jwt_secret="from-settings", jwt_expiration_minutes=5)
        service = TokenService.from_settings(settings)

        assert service.secret == "from-settings"
        assert service.algorithm == "HS256"
        assert service.max_age == timedelta(minutes=5)


class TestVerify:
    """Tests for TokenService.verify."""

    def test_valid_just_before_expiry(self, token_service):
        """A token verifies one second before it expires."""
        token = token_service.issue(7, now=ISSUED_AT)

        claims = token_service.verify(token, now=ISSUED_AT + timedelta(minutes=60, seconds=-1))

        assert claims.sub == "7"
        assert claims.exp == int(ISSUED_AT.timestamp()) + 3600

    def test_valid_exactly_at_expiry(self, token_service):
        """Expiry is strict: now == exp still verifies."""
        token = token_service.issue(7, now=ISSUED_AT)

        claims = token_service.verify(token, now=ISSUED_AT + timedelta(minutes=60))

        assert claims.sub == "7"

    def test_expired_just_after_expiry(self, token_service):
        """A token fails one second after it expires."""
        token = token_service.issue(7, now=ISSUED_AT)

        with pytest.raises(InvalidToken):
            token_service.verify(token, now=ISSUED_AT + timedelta(minutes=60, seconds=1))

    def test_fresh_token_verifies_against_wall_clock(self, token_service):
        token = token_service.issue(3)
        assert token_service.verify(token).sub == "3"

    def test_different_secret_fails(self, token_service):
        """A token signed with another secret never verifies."""
        other = TokenService("another-secret", max_age=timedelta(minutes=60))
        token = other.issue(7, now=ISSUED_AT)

        with pytest.raises(InvalidToken):
            token_service.verify(token, now=ISSUED_AT)

    def test_tampered_payload_fails(self, token_service):
        """Swapping the payload breaks the signature."""
        token = token_service.issue(7, now=ISSUED_AT)
        forged = token_service.issue(8, now=ISSUED_AT)
        header, _, signature = token.split(".")
        _, forged_payload, _ = forged.split(".")

        with pytest.raises(InvalidToken):
            token_service.verify(f"{header}.{forged_payload}.{signature}", now=ISSUED_AT)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage_fails(self, token_service, token):
        with pytest.raises(InvalidToken):
            token_service.verify(token, now=ISSUED_AT)

    def test_missing_expiry_fails(self, token_service):
        """Tokens without integer exp/iat claims are rejected."""
        token = jwt.encode({"sub": "7", "iat": int(ISSUED_AT.timestamp())}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidToken):
            token_service.verify(token, now=ISSUED_AT)
