"""
Tests for the SQLAlchemy repositories.
"""
import json
from datetime import timedelta

import pytest

from identity_platform.identity_service.errors import RoleInUse
from identity_platform.identity_service.models import AuditLog, LoginLog, Role, User, utcnow
from identity_platform.identity_service.repositories import (
    AuditLogRepository,
    LoginLogRepository,
    RoleRepository,
    UserRepository,
)


def make_user(users, email, role_id=5, **fields):
    return users.create(User(email=email, password_hash="hash", role_id=role_id, **fields))


def test_user_lookups(db_session):
    users = UserRepository(db_session)
    alice = make_user(users, "alice@example.com", refresh_token="rt-1", refresh_token_expires_at=utcnow())

    assert users.get_by_id(alice.id).email == "alice@example.com"
    assert users.get_by_email("alice@example.com").id == alice.id
    assert users.get_by_refresh_token("rt-1").id == alice.id
    assert users.exists_by_email("alice@example.com")
    assert not users.exists_by_email("bob@example.com")
    assert users.get_by_email("bob@example.com") is None
    assert users.get_by_refresh_token("rt-unknown") is None


def test_user_defaults(db_session):
    user = make_user(UserRepository(db_session), "alice@example.com")

    assert len(user.id) == 36
    assert user.status == "ACTIVE"
    assert user.email_verified is False
    assert user.otp_attempts == 0
    assert user.otp_code is None
    assert user.created_at is not None


def test_user_update_and_delete(db_session):
    users = UserRepository(db_session)
    alice = make_user(users, "alice@example.com")
    created_updated_at = alice.updated_at

    alice.full_name = "Alice Liddell"
    users.update(alice)
    assert users.get_by_id(alice.id).full_name == "Alice Liddell"
    assert alice.updated_at >= created_updated_at

    assert users.delete(alice.id) is True
    assert users.get_by_id(alice.id) is None
    assert users.delete(alice.id) is False


def test_get_all_users(db_session):
    users = UserRepository(db_session)
    make_user(users, "a@example.com")
    make_user(users, "b@example.com")

    assert {u.email for u in users.get_all()} == {"a@example.com", "b@example.com"}


def test_role_lookups(db_session):
    roles = RoleRepository(db_session)

    assert roles.get_by_id(5).name == "Customer"
    assert roles.get_by_name("Admin").id == 1
    assert roles.get_by_name("Wizard") is None
    assert roles.get_by_id(None) is None
    assert [r.name for r in roles.get_all()] == ["Admin", "Manager", "Staff", "Support", "Customer"]
    assert all(r.is_system for r in roles.get_all())


def test_role_delete_refuses_roles_in_use(db_session):
    roles = RoleRepository(db_session)
    make_user(UserRepository(db_session), "a@example.com", role_id=3)

    with pytest.raises(RoleInUse):
        roles.delete(3)
    assert roles.get_by_id(3) is not None

    db_session.add(Role(name="Temporary"))
    db_session.commit()
    temporary = roles.get_by_name("Temporary")
    assert roles.delete(temporary.id) is True
    assert roles.get_by_name("Temporary") is None
    assert roles.delete(999) is False


def test_login_log_queries(db_session):
    users = UserRepository(db_session)
    alice = make_user(users, "alice@example.com")
    logs = LoginLogRepository(db_session)
    now = utcnow()

    logs.create(LoginLog(user_id=alice.id, status="FAILED", failure_reason="Invalid password",
                         login_at=now - timedelta(minutes=2)))
    logs.create(LoginLog(user_id=alice.id, status="SUCCESS", login_at=now - timedelta(minutes=1)))
    logs.create(LoginLog(user_id=None, status="FAILED", failure_reason="User not found", login_at=now))

    alice_logs = logs.get_by_user_id(alice.id)
    assert [entry.status for entry in alice_logs] == ["SUCCESS", "FAILED"]
    assert len(logs.get_by_user_id(alice.id, limit=1)) == 1

    failed = logs.get_recent(status="FAILED")
    assert [entry.failure_reason for entry in failed] == ["User not found", "Invalid password"]
    assert len(logs.get_recent()) == 3


def test_audit_log_queries(db_session):
    users = UserRepository(db_session)
    admin = make_user(users, "admin@example.com", role_id=1)
    alice = make_user(users, "alice@example.com")
    bob = make_user(users, "bob@example.com")
    audit = AuditLogRepository(db_session)
    now = utcnow()

    audit.create(AuditLog(
        user_id=alice.id, performed_by=admin.id, action="CREATE",
        new_values=json.dumps({"email": alice.email}), performed_at=now - timedelta(minutes=3),
    ))
    audit.create(AuditLog(
        user_id=alice.id, performed_by=admin.id, action="SUSPEND",
        old_values=json.dumps({"status": "ACTIVE"}), new_values=json.dumps({"status": "SUSPENDED"}),
        description="Suspended after chargeback", ip_address="10.0.0.5", performed_at=now - timedelta(minutes=2),
    ))
    audit.create(AuditLog(
        user_id=bob.id, performed_by=alice.id, action="UPDATE", performed_at=now - timedelta(minutes=1),
    ))

    assert [entry.action for entry in audit.get_by_user_id(alice.id)] == ["SUSPEND", "CREATE"]
    assert [entry.action for entry in audit.get_by_performer_id(admin.id)] == ["SUSPEND", "CREATE"]
    assert [entry.user_id for entry in audit.get_by_action("UPDATE")] == [bob.id]
    assert len(audit.get_by_user_id(alice.id, limit=1)) == 1

    suspended = audit.get_by_action("SUSPEND")[0].to_dict()
    assert suspended["entity_type"] == "USER"
    assert json.loads(suspended["new_values"]) == {"status": "SUSPENDED"}
    assert suspended["performed_at"] is not None
