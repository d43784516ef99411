# tests/conftest.py
import os
import uuid

# Antes de importar la app: BD en memoria, bcrypt rápido y clave fija
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from bookkeeper_service import accounts
from bookkeeper_service.db import Base, create_db_engine, get_db
from bookkeeper_service.main import app
from bookkeeper_service.utils import get_password_hash

TEST_PASSWORD = "password123"


@pytest.fixture
def session_factory(tmp_path):
    """
    Fábrica de sesiones sobre un SQLite en archivo, uno por test.
    En archivo (y no en memoria) para que dos sesiones usen conexiones distintas.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'bookkeeper_test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient con get_db apuntando a la BD del test."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Crea usuarios directamente en el Account Store."""
    def _make_user(name="user"):
        email = f"{name}_{uuid.uuid4().hex[:8]}@example.com"
        user = accounts.create_account(
            db_session,
            name=name,
            email=email,
            phone="5550001111",
            password_hash=get_password_hash(TEST_PASSWORD),
        )
        db_session.commit()
        return user
    return _make_user


def signup(client, name="tester"):
    """Registra un usuario por HTTP y devuelve (email, headers de autenticación)."""
    email = f"{name}_{uuid.uuid4().hex[:8]}@example.com"
    payload = {"name": name, "email": email, "phone": "5550001111", "password": TEST_PASSWORD}
    r = client.post("/signup", json=payload)
    assert r.status_code == 201, r.text
    return email, {"auth-token": r.json()["token"]}


@pytest.fixture
def lender(client):
    return signup(client, "lender")


@pytest.fixture
def borrower(client):
    return signup(client, "borrower")
