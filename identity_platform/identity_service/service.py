"""
Authentication and user administration flows.

AuthService is built per request around the request's repositories. Each
method is one read-modify-write against the store; concurrent logins for the
same user overwrite each other's refresh token (last writer wins).
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from .config import settings
from .auth import PasswordHasher, TokenIssuer, UNKNOWN_ROLE_NAME
from .errors import (
    AccountNotActive,
    DuplicateEmail,
    InvalidCredentials,
    InvalidToken,
    MissingToken,
    PasswordMismatch,
    RoleNotFound,
    TokenExpired,
    UserNotFound,
    ValidationError,
)
from .models import USER_STATUSES, Role, User, utcnow
from .repositories import LoginLogRepository, RoleRepository, UserRepository
from .schemas import LoginResponse, RegisterResponse, RoleOut, UserOut
from .utils.event_logger import record_login_attempt

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
REGISTRATION_MESSAGE = "Registration successful. Please verify your email."


def to_user_out(user: User, role: Optional[Role]) -> UserOut:
    """Flatten a user and its role into the public profile."""
    if role is None:
        role_out = RoleOut(id=0, name=UNKNOWN_ROLE_NAME, description=None)
    else:
        role_out = RoleOut(id=role.id, name=role.name, description=role.description)
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        status=user.status,
        email_verified=bool(user.email_verified),
        role=role_out,
    )


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        roles: RoleRepository,
        login_logs: LoginLogRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        default_role_id: Optional[int] = None,
        log: logging.Logger = logger,
    ):
        self.users = users
        self.roles = roles
        self.login_logs = login_logs
        self.hasher = hasher
        self.tokens = tokens
        self.default_role_id = default_role_id if default_role_id is not None else settings.DEFAULT_ROLE_ID
        self.log = log

    # ---------------- Registration / Login ----------------

    def register(
        self,
        full_name: str,
        email: str,
        phone: str,
        password: str,
        confirm_password: str,
    ) -> RegisterResponse:
        email = email.strip()
        if self.users.exists_by_email(email):
            raise DuplicateEmail()

        if password != confirm_password:
            raise PasswordMismatch()

        user = User(
            email=email,
            full_name=full_name,
            phone=phone,
            password_hash=self.hasher.hash(password),
            role_id=self.default_role_id,
            status=ACTIVE,
            email_verified=False,
            otp_attempts=0,
        )
        user = self._create(user)
        self.log.info("User registered: user_id=%s, email=%s", user.id, user.email)

        return RegisterResponse(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name or "",
            message=REGISTRATION_MESSAGE,
        )

    def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResponse:
        email = (email or "").strip()
        user = self.users.get_by_email(email) if email else None

        if user is None:
            self._record_login("FAILED", None, email, "User not found", ip_address, user_agent)
            raise InvalidCredentials()

        verified, upgraded_hash = self.hasher.verify_and_update(password or "", user.password_hash)
        if not verified:
            self._record_login("FAILED", user.id, email, "Invalid password", ip_address, user_agent)
            raise InvalidCredentials()

        status = user.status
        if status != ACTIVE:
            # The log write may roll back the session and expire user
            self._record_login(
                "BLOCKED", user.id, email, f"Account is {status}", ip_address, user_agent
            )
            raise AccountNotActive(status)

        if upgraded_hash:
            user.password_hash = upgraded_hash
            self.log.info("Password hash upgraded: user_id=%s", user.id)

        response = self._issue_tokens(user)
        self._record_login("SUCCESS", user.id, email, None, ip_address, user_agent)
        return response

    # ---------------- Refresh tokens ----------------

    def logout(self, refresh_token: str) -> None:
        if not refresh_token:
            raise MissingToken()

        user = self.users.get_by_refresh_token(refresh_token)
        if user is None:
            raise InvalidToken()

        user.refresh_token = None
        user.refresh_token_expires_at = None
        self.users.update(user)
        self.log.info("User logged out: user_id=%s", user.id)

    def refresh_token(self, refresh_token: str) -> LoginResponse:
        if not refresh_token:
            raise MissingToken()

        user = self.users.get_by_refresh_token(refresh_token)
        if user is None:
            raise InvalidToken()

        if user.refresh_token_expires_at is None or user.refresh_token_expires_at < utcnow():
            raise TokenExpired()

        if user.status != ACTIVE:
            raise AccountNotActive(user.status)

        # Persisting the new token is what invalidates the old one
        return self._issue_tokens(user)

    # ---------------- Admin user management ----------------

    def admin_create_user(
        self,
        full_name: str,
        email: str,
        password: str,
        role_name: str,
        phone: Optional[str] = None,
    ) -> UserOut:
        required = (
            ("full_name", full_name),
            ("email", email),
            ("password", password),
            ("role_name", role_name),
        )
        for field_name, value in required:
            if _is_blank(value):
                raise ValidationError(f"{field_name} is required")

        email = email.strip()
        if self.users.exists_by_email(email):
            raise DuplicateEmail()

        role = self.roles.get_by_name(role_name.strip())
        if role is None:
            raise RoleNotFound(f"Role '{role_name.strip()}' not found")

        user = User(
            email=email,
            full_name=full_name.strip(),
            phone=phone or None,
            password_hash=self.hasher.hash(password),
            role_id=role.id,
            status=ACTIVE,
            email_verified=False,
            otp_attempts=0,
        )
        user = self._create(user)
        self.log.info("User created by admin: user_id=%s, role=%s", user.id, role.name)
        return to_user_out(user, role)

    def admin_update_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        password: Optional[str] = None,
        status: Optional[str] = None,
    ) -> UserOut:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        if email is not None:
            if _is_blank(email):
                raise ValidationError("Email cannot be empty")
            normalized_email = email.strip()
            existing = self.users.get_by_email(normalized_email)
            if existing is not None and existing.id != user.id:
                raise DuplicateEmail()
            user.email = normalized_email

        if not _is_blank(full_name):
            user.full_name = full_name.strip()

        if phone:
            user.phone = phone

        if password is not None:
            if _is_blank(password):
                raise ValidationError("Password cannot be empty")
            user.password_hash = self.hasher.hash(password)

        if status is not None:
            if status not in USER_STATUSES:
                raise ValidationError(
                    f"Status must be one of: {', '.join(USER_STATUSES)}"
                )
            user.status = status

        try:
            user = self.users.update(user)
        except IntegrityError as exc:
            self.users.db.rollback()
            raise DuplicateEmail() from exc

        self.log.info("User updated by admin: user_id=%s", user.id)
        return to_user_out(user, self.roles.get_by_id(user.role_id))

    def list_users(self) -> List[UserOut]:
        roles: Dict[int, Role] = {role.id: role for role in self.roles.get_all()}
        return [to_user_out(user, roles.get(user.role_id)) for user in self.users.get_all()]

    def get_user(self, user_id: str) -> UserOut:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return to_user_out(user, self.roles.get_by_id(user.role_id))

    # ---------------- Helpers ----------------

    def _create(self, user: User) -> User:
        try:
            return self.users.create(user)
        except IntegrityError as exc:
            # Lost a race on the unique email index
            self.users.db.rollback()
            raise DuplicateEmail() from exc

    def _issue_tokens(self, user: User) -> LoginResponse:
        role = self.roles.get_by_id(user.role_id)
        access_token = self.tokens.issue_access_token(user, role)

        user.refresh_token = self.tokens.issue_refresh_token()
        user.refresh_token_expires_at = self.tokens.refresh_token_expiry()
        user = self.users.update(user)

        return LoginResponse(
            access_token=access_token,
            refresh_token=user.refresh_token,
            token_type="bearer",
            expires_in=self.tokens.access_token_ttl_seconds,
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role_id=user.role_id,
        )

    def _record_login(self, status, user_id, email, failure_reason, ip_address, user_agent):
        record_login_attempt(
            self.login_logs,
            status,
            user_id=user_id,
            email=email,
            failure_reason=failure_reason,
            ip_address=ip_address,
            user_agent=user_agent,
            log=self.log,
        )
