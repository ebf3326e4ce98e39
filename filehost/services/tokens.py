"""Signed, time-bounded session tokens."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from filehost.config import Settings
from filehost.errors import AuthError, InvalidToken


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of a session token."""

    sub: str
    iat: int
    exp: int


class TokenService:
    """Issues and verifies HS256 JWTs carrying a subject id.

    Tokens are valid for their whole lifetime; there is no revocation list.
    """

    def __init__(self, secret: str, max_age: timedelta, algorithm: str = "HS256"):
        if max_age <= timedelta(0):
            raise ValueError("Token max age must be positive")
        self.secret = secret
        self.max_age = max_age
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            max_age=timedelta(minutes=settings.jwt_expiration_minutes),
            algorithm=settings.jwt_algorithm,
        )

    def issue(self, subject_id: int, now: datetime | None = None) -> str:
        """Create a signed token for ``subject_id`` issued at ``now``."""
        now = now or datetime.now(UTC)
        issued_at = int(now.timestamp())
        claims = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + int(self.max_age.total_seconds()),
        }
        try:
            return jwt.encode(claims, self.secret, algorithm=self.algorithm)
        except JOSEError as e:
            raise AuthError(f"JWT error: {e}") from e

    def verify(self, token: str, now: datetime | None = None) -> TokenClaims:
        """Check signature and expiry, returning the claims.

        Raises:
            InvalidToken: bad signature, malformed token or ``now`` past ``exp``.
        """
        now = now or datetime.now(UTC)
        try:
            # Expiry is checked against ``now`` below rather than the wall clock
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidToken() from e

        exp = payload.get("exp")
        iat = payload.get("iat")
        sub = payload.get("sub")
        if not isinstance(exp, int) or not isinstance(iat, int) or sub is None:
            raise InvalidToken()
        if now.timestamp() > exp:
            raise InvalidToken("Token has expired")

        return TokenClaims(sub=str(sub), iat=iat, exp=exp)
