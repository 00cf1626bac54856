"""
Admin authentication: signed session tokens and credential checks.

Tokens are HS256 JWTs carrying ``username``, ``iat`` and ``exp``. There is no
revocation list; expiry is the only way a token stops being valid.
"""

from __future__ import annotations

import enum
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from traveltrail.config import MIN_SECRET_LENGTH
from traveltrail.errors import AuthError, ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=2)
CLOCK_SKEW_SECONDS = 15
AUTH_SCHEMES = ("Bearer", "AdminToken")


class TokenErrorKind(enum.Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    INVALID = "invalid"


class TokenError(Exception):
    def __init__(self, kind: TokenErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind

    def to_auth_error(self) -> AuthError:
        # Clients only learn "expired" vs "otherwise invalid".
        if self.kind is TokenErrorKind.EXPIRED:
            return AuthError("Session expired", code="TOKEN_EXPIRED")
        return AuthError("Invalid credentials", code="INVALID_TOKEN")


@dataclass(frozen=True)
class TokenClaims:
    username: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AdminPrincipal:
    username: str


def redact_token(token: str) -> str:
    return f"{token[:15]}..." if token else "<empty>"


class TokenCodec:
    """Issues and verifies admin session tokens with a single shared secret."""

    def __init__(self, secret: Optional[str], lifetime: timedelta = TOKEN_LIFETIME):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"ADMIN_SECRET must be set and at least {MIN_SECRET_LENGTH} characters"
            )
        self._secret = secret
        self.lifetime = lifetime

    def issue(self, username: str, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenError(TokenErrorKind.EXPIRED, str(exc)) from exc
        except jwt.InvalidSignatureError as exc:
            raise TokenError(TokenErrorKind.BAD_SIGNATURE, str(exc)) from exc
        except jwt.DecodeError as exc:
            raise TokenError(TokenErrorKind.MALFORMED, str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise TokenError(TokenErrorKind.INVALID, str(exc)) from exc

        username = decoded.get("username")
        if not isinstance(username, str) or not username:
            raise TokenError(TokenErrorKind.INVALID, "username claim missing")
        return TokenClaims(
            username=username,
            issued_at=datetime.fromtimestamp(decoded["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
        )


def parse_authorization_header(header: Optional[str]) -> str:
    """Return the token from ``Bearer <token>`` or ``AdminToken <token>``."""
    parts = (header or "").split()
    if len(parts) != 2 or parts[0] not in AUTH_SCHEMES:
        raise AuthError(
            "Authorization header must be: Bearer <token> or AdminToken <token>",
            code="INVALID_AUTH_HEADER",
        )
    return parts[1]


def authenticate(header: Optional[str], codec: TokenCodec) -> AdminPrincipal:
    token = parse_authorization_header(header)
    try:
        claims = codec.verify(token)
    except TokenError as exc:
        logger.warning(
            "Token verification failed (%s) for %s", exc.kind.value, redact_token(token)
        )
        raise exc.to_auth_error() from exc
    logger.debug("Valid token for admin %s", claims.username)
    return AdminPrincipal(username=claims.username)


class AdminCredentials:
    """Configured admin username and bcrypt password hash."""

    def __init__(self, username: Optional[str], password_hash: Optional[str]):
        self.username = username
        self.password_hash = password_hash

    def _password_matches(self, password: str) -> bool:
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), self.password_hash.encode("utf-8")
            )
        except ValueError as exc:
            # Raised for an unusable ADMIN_PASSWORD_HASH or an over-long password.
            logger.error("bcrypt password check failed: %s", exc)
            return False

    def check(self, username: Optional[str], password: Optional[str]) -> str:
        """Validate a login attempt and return the cleaned username."""
        clean_username = (username or "").strip()
        clean_password = (password or "").strip()
        if not clean_username or not clean_password:
            raise ValidationError(
                "Username and password are required", code="MISSING_CREDENTIALS"
            )
        if not self.username or not self.password_hash:
            logger.error("Admin credentials not configured")
            raise ConfigurationError()

        # Both checks always run so a wrong username costs as much as a wrong password.
        username_valid = hmac.compare_digest(
            clean_username.encode("utf-8"), self.username.encode("utf-8")
        )
        password_valid = self._password_matches(clean_password)
        if not (username_valid and password_valid):
            logger.warning("Rejected admin login for %r", clean_username)
            raise AuthError("Invalid username or password", code="INVALID_CREDENTIALS")
        return clean_username
