from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Text, Enum, Index
from datetime import datetime, timezone
from .db import Base
import uuid

USER_STATUSES = ("ACTIVE", "INACTIVE", "SUSPENDED")
LOGIN_STATUSES = ("SUCCESS", "FAILED", "BLOCKED")
AUDIT_ACTIONS = (
    "CREATE", "UPDATE", "DELETE", "ACTIVATE", "DEACTIVATE",
    "SUSPEND", "RESET_PASSWORD", "CHANGE_ROLE",
)
AUDIT_ENTITY_TYPES = ("USER", "STAFF")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(*USER_STATUSES, name="user_status"), default="ACTIVE", nullable=False, index=True)
    email_verified = Column(Boolean, default=False, nullable=False)

    # JWT refresh token
    refresh_token = Column(String(500), unique=True, nullable=True, index=True)
    refresh_token_expires_at = Column(DateTime, nullable=True)

    # Reserved for email verification / password reset / 2FA
    otp_code = Column(String(10), nullable=True)
    otp_purpose = Column(String(50), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class LoginLog(Base):
    __tablename__ = "user_login_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Null when the attempted email did not match any user
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    login_at = Column(DateTime, default=utcnow, nullable=False)
    ip_address = Column(String(50), nullable=True)
    user_agent = Column(String(500), nullable=True)
    status = Column(Enum(*LOGIN_STATUSES, name="login_status"), nullable=False)
    failure_reason = Column(String(255), nullable=True)

    __table_args__ = (
        Index('ix_login_logs_user_id', 'user_id'),
        Index('ix_login_logs_login_at', 'login_at'),
        Index('ix_login_logs_status', 'status'),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "login_at": self.login_at.isoformat() if self.login_at else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "status": self.status,
            "failure_reason": self.failure_reason,
        }


class AuditLog(Base):
    __tablename__ = "user_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    performed_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    action = Column(Enum(*AUDIT_ACTIONS, name="audit_action"), nullable=False)
    entity_type = Column(Enum(*AUDIT_ENTITY_TYPES, name="audit_entity_type"), default="USER", nullable=False)
    # JSON snapshots, stored as opaque text
    old_values = Column(Text, nullable=True)
    new_values = Column(Text, nullable=True)
    description = Column(String(500), nullable=True)
    ip_address = Column(String(50), nullable=True)
    performed_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_audit_logs_user_id', 'user_id'),
        Index('ix_audit_logs_performed_by', 'performed_by'),
        Index('ix_audit_logs_action', 'action'),
        Index('ix_audit_logs_entity_type', 'entity_type'),
        Index('ix_audit_logs_performed_at', 'performed_at'),
    )

    def to_dict(self) -> dict:
        """
        Serialize AuditLog to dictionary for API responses.

        Returns:
            Dictionary with all audit fields, datetimes in ISO 8601 format
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "performed_by": self.performed_by,
            "action": self.action,
            "entity_type": self.entity_type,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "description": self.description,
            "ip_address": self.ip_address,
            "performed_at": self.performed_at.isoformat() if self.performed_at else None,
        }
