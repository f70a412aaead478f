"""
Test configuration and fixtures.

Settings are read at import time, so the environment is prepared before
anything from planejar is imported: no seeding on startup, no AI key, no
e-mail key and uploads in a temporary directory.
"""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="planejar-tests-")
os.environ["OPENAI_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planejar.auth import create_access_token, get_password_hash
from planejar.db import Base, get_db
from planejar.models import ClientType, Role, User
from planejar.schemas import NewClientData, ProjectCreate

# Test database URL (in-memory SQLite)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database session override and rate limiting off."""
    from fastapi.testclient import TestClient
    from planejar.main import app
    from planejar.rate_limit import limiter

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter_enabled = limiter.enabled
    limiter.enabled = False
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        limiter.enabled = limiter_enabled
        app.dependency_overrides.clear()


def make_user(db_session, email, role, password="senha123", name=None, client_type=None, **extra):
    extra.setdefault("is_active", True)
    user = User(
        email=email,
        name=name or email.split("@")[0].title(),
        password_hash=get_password_hash(password),
        role=role,
        client_type=client_type,
        qualification_data={},
        **extra
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def headers_for(user):
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "admin@test.com", Role.ADMINISTRATOR, password="admin123", name="Admin Test")


@pytest.fixture
def consultant_user(db_session):
    return make_user(db_session, "consultor@test.com", Role.CONSULTANT, name="Consultor Test")


@pytest.fixture
def auxiliary_user(db_session):
    return make_user(db_session, "auxiliar@test.com", Role.AUXILIARY, name="Auxiliar Test")


@pytest.fixture
def auth_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def consultant_headers(consultant_user):
    return headers_for(consultant_user)


@pytest.fixture
def auxiliary_headers(auxiliary_user):
    return headers_for(auxiliary_user)


@pytest.fixture
def project(db_session, consultant_user, auxiliary_user):
    """A fresh project with two partner clients (Ana first, Bruno second)."""
    from planejar.services import project_service

    data = ProjectCreate(
        name="Holding Família Teste",
        main_client=NewClientData(name="Ana Sócia", email="ana@test.com"),
        additional_clients=[NewClientData(name="Bruno Sócio", email="bruno@test.com")],
        auxiliary_id=auxiliary_user.id,
    )
    return project_service.create_project(db_session, data, consultant_user)


@pytest.fixture
def partners(project):
    return list(project.clients)


@pytest.fixture
def partner_headers(partners):
    return [headers_for(partner) for partner in partners]


@pytest.fixture
def interested_client(db_session, project):
    from planejar.models import project_clients
    from datetime import datetime

    user = make_user(db_session, "interessado@test.com", Role.CLIENT, client_type=ClientType.INTERESTED)
    db_session.execute(project_clients.insert().values(
        project_id=project.id, user_id=user.id, created_at=datetime.utcnow()
    ))
    db_session.commit()
    db_session.refresh(project)
    return user


@pytest.fixture
def interested_headers(interested_client):
    return headers_for(interested_client)
