from passlib.context import CryptContext
from passlib.hash import pbkdf2_sha256
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import secrets
import uuid
import jwt

from .config import JwtConfig
from .errors import InvalidToken, TokenExpired
from .models import Role, User, utcnow

UNKNOWN_ROLE_NAME = "Unknown"


class PasswordHasher:
    """
    Salted, iterated one-way password hashing.

    Hashes use the modular crypt format, so the stored string names its scheme,
    rounds and salt. pbkdf2_sha256 is the default scheme; sha256_crypt hashes
    from older deployments, and pbkdf2_sha256 hashes below the current default
    rounds, still verify and are reported as needing a rehash.
    """

    def __init__(self, schemes=("pbkdf2_sha256", "sha256_crypt")):
        # Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
        self.context = CryptContext(
            schemes=list(schemes),
            deprecated="auto",
            pbkdf2_sha256__min_rounds=pbkdf2_sha256.default_rounds,
        )

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        verified, _ = self.verify_and_update(password, password_hash)
        return verified

    def verify_and_update(self, password: str, password_hash: str) -> Tuple[bool, Optional[str]]:
        """
        Verify a password and rehash it when the stored hash is outdated.

        Returns:
            Tuple of (verified, new_hash)
            - verified: True if the password matches
            - new_hash: replacement hash when the stored one uses a deprecated
              scheme or weaker parameters, otherwise None
        """
        if not password_hash:
            return False, None
        try:
            return self.context.verify_and_update(password, password_hash)
        except (ValueError, TypeError):
            # Unrecognised or malformed hash string
            return False, None

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self.context.needs_update(password_hash)
        except (ValueError, TypeError):
            return True


class TokenIssuer:
    """Issues signed JWT access tokens and opaque refresh tokens."""

    def __init__(self, config: JwtConfig):
        if not config.secret_key or not config.secret_key.strip():
            raise ValueError("JWT secret key not configured")
        self.config = config

    @property
    def access_token_ttl_seconds(self) -> int:
        return self.config.expiry_minutes * 60

    def issue_access_token(self, user: User, role: Optional[Role] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "name": user.full_name or user.email,
            "role": role.name if role is not None else UNKNOWN_ROLE_NAME,
            "role_id": user.role_id,
            "status": user.status,
            "jti": str(uuid.uuid4()),
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "iat": now,
            "exp": now + timedelta(minutes=self.config.expiry_minutes),
        }
        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)

    def issue_refresh_token(self) -> str:
        # 64 random bytes; uniqueness is enforced by the users.refresh_token index
        return secrets.token_urlsafe(64)

    def refresh_token_expiry(self) -> datetime:
        return utcnow() + timedelta(days=self.config.refresh_token_expiry_days)

    def decode_access_token(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                options={"require": ["exp", "sub", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Invalid token") from exc
