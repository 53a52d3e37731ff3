"""
FastAPI dependencies shared by the routers.

The hasher and token issuer are built once at import; a missing signing key
fails here, at startup, rather than on the first login.
"""
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from typing import Optional

from .auth import PasswordHasher, TokenIssuer
from .config import get_jwt_config, settings
from .db import get_db
from .errors import Forbidden, InvalidToken
from .repositories import LoginLogRepository, RoleRepository, UserRepository
from .service import AuthService

password_hasher = PasswordHasher()
token_issuer = TokenIssuer(get_jwt_config(settings))


class NotAuthenticated(InvalidToken):
    default_message = "Not authenticated"


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(
        users=UserRepository(db),
        roles=RoleRepository(db),
        login_logs=LoginLogRepository(db),
        hasher=password_hasher,
        tokens=token_issuer,
        default_role_id=settings.DEFAULT_ROLE_ID,
    )


def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> dict:
    """Decode the bearer access token and return its claims."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise NotAuthenticated()
    token = authorization.split(" ", 1)[1].strip()
    return token_issuer.decode_access_token(token)


def require_admin(claims: dict = Depends(get_current_user)) -> dict:
    if claims.get("role") != settings.ADMIN_ROLE_NAME:
        raise Forbidden()
    return claims
