"""
Shared pytest configuration.

Environment is set before the service modules are imported: settings are read
at import time and the service refuses to start without a signing key.
"""
import os
import tempfile

TEST_SECRET = "test-secret-key-for-identity-service-0123456789"

_tmp_dir = tempfile.mkdtemp(prefix="identity_tests_")
os.environ.setdefault("JWT_SECRET_KEY", TEST_SECRET)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_tmp_dir, 'identity_test.db')}")
os.environ.setdefault("LOG_DIR", os.path.join(_tmp_dir, "logs"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from identity_platform.identity_service.auth import PasswordHasher, TokenIssuer  # noqa: E402
from identity_platform.identity_service.config import JwtConfig  # noqa: E402
from identity_platform.identity_service.db import Base, SessionLocal, engine, seed_roles  # noqa: E402
from identity_platform.identity_service import models  # noqa: E402,F401
from identity_platform.identity_service.repositories import (  # noqa: E402
    LoginLogRepository,
    RoleRepository,
    UserRepository,
)
from identity_platform.identity_service.service import AuthService  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    # Drop all tables and recreate them before each test
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_roles(db)
    finally:
        db.close()


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def jwt_config():
    return JwtConfig(secret_key=TEST_SECRET)


@pytest.fixture
def service(db_session, jwt_config):
    return AuthService(
        users=UserRepository(db_session),
        roles=RoleRepository(db_session),
        login_logs=LoginLogRepository(db_session),
        hasher=PasswordHasher(),
        tokens=TokenIssuer(jwt_config),
    )


@pytest.fixture
def client():
    from identity_platform.identity_service.main import app

    with TestClient(app) as c:
        yield c
