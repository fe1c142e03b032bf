"""Password hashing and JWT claim issuing/validation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import bcrypt
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from backoffice.core.config import Settings, settings

logger = logging.getLogger(__name__)

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


@dataclass(frozen=True)
class TokenClaims:
    """Identity facts carried by a validated access token."""

    user_id: int
    email: str
    roles: tuple[str, ...]
    jti: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Issues and validates signed, expiring access tokens.

    Validation never raises: a token that cannot be verified yields
    ``False`` / ``None`` and callers must treat that as a deny.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "StudyBridge",
        audience: str = "StudyBridge-Users",
        expiry_minutes: int = 1440,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._lifetime = timedelta(minutes=expiry_minutes)

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenIssuer":
        return cls(
            secret=config.JWT_SECRET,
            algorithm=config.JWT_ALGORITHM,
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
            expiry_minutes=config.JWT_EXPIRY_MINUTES,
        )

    def issue(self, user_id: int, email: str, roles: Iterable[str]) -> str:
        """Create a signed access token for the given identity and roles."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "email": email,
            "roles": [str(role) for role in roles],
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetime,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Optional[TokenClaims]:
        """Verify signature, issuer, audience and expiry; ``None`` on any failure."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"leeway": 0, "require_exp": True, "require_sub": True},
            )
            return TokenClaims(
                user_id=int(payload["sub"]),
                email=payload.get("email", ""),
                roles=tuple(payload.get("roles", [])),
                jti=payload.get("jti", ""),
                issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (JWTError, KeyError, TypeError, ValueError) as e:
            logger.debug("Rejected access token: %s", e)
            return None

    def validate(self, token: str) -> bool:
        return self.decode(token) is not None

    def extract_user_id(self, token: str) -> Optional[int]:
        claims = self.decode(token)
        return claims.user_id if claims else None


token_issuer = TokenIssuer.from_settings(settings)
