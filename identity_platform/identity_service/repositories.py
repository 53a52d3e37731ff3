"""
Repositories over a SQLAlchemy session.

Cross-entity lookups are explicit calls (a user's role is fetched through
RoleRepository.get_by_id(user.role_id)); the models carry no relationships.
"""
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from .errors import RoleInUse
from .models import AuditLog, LoginLog, Role, User, utcnow

DEFAULT_LIMIT = 100


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        return self.db.query(User).filter(User.refresh_token == refresh_token).first()

    def get_all(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at.asc()).all()

    def exists_by_email(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def create(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        user.updated_at = utcnow()
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user_id: str) -> bool:
        user = self.get_by_id(user_id)
        if not user:
            return False
        self.db.delete(user)
        self.db.commit()
        return True


class RoleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, role_id: int) -> Optional[Role]:
        if role_id is None:
            return None
        return self.db.get(Role, role_id)

    def get_by_name(self, name: str) -> Optional[Role]:
        return self.db.query(Role).filter(Role.name == name).first()

    def get_all(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.id.asc()).all()

    def delete(self, role_id: int) -> bool:
        role = self.get_by_id(role_id)
        if not role:
            return False
        in_use = self.db.query(func.count(User.id)).filter(User.role_id == role_id).scalar()
        if in_use:
            raise RoleInUse(f"Role '{role.name}' is assigned to {in_use} user(s)")
        self.db.delete(role)
        self.db.commit()
        return True


class LoginLogRepository:
    """Append-only store of authentication attempts."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, log: LoginLog) -> LoginLog:
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def get_by_user_id(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[LoginLog]:
        return (
            self.db.query(LoginLog)
            .filter(LoginLog.user_id == user_id)
            .order_by(LoginLog.login_at.desc(), LoginLog.id.desc())
            .limit(limit)
            .all()
        )

    def get_recent(self, limit: int = DEFAULT_LIMIT, status: Optional[str] = None) -> List[LoginLog]:
        query = self.db.query(LoginLog)
        if status:
            query = query.filter(LoginLog.status == status)
        return query.order_by(LoginLog.login_at.desc(), LoginLog.id.desc()).limit(limit).all()


class AuditLogRepository:
    """Append-only store of administrative actions on users."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, log: AuditLog) -> AuditLog:
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def _newest(self, query, limit: int) -> List[AuditLog]:
        return query.order_by(AuditLog.performed_at.desc(), AuditLog.id.desc()).limit(limit).all()

    def get_by_user_id(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[AuditLog]:
        return self._newest(self.db.query(AuditLog).filter(AuditLog.user_id == user_id), limit)

    def get_by_performer_id(self, performer_id: str, limit: int = DEFAULT_LIMIT) -> List[AuditLog]:
        return self._newest(self.db.query(AuditLog).filter(AuditLog.performed_by == performer_id), limit)

    def get_by_action(self, action: str, limit: int = DEFAULT_LIMIT) -> List[AuditLog]:
        return self._newest(self.db.query(AuditLog).filter(AuditLog.action == action), limit)
