# tests/test_auth.py
from datetime import datetime, timedelta, timezone

from jose import jwt

from bookkeeper_service.models import User
from bookkeeper_service.utils import (
    ALGORITHM,
    SECRET_KEY,
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from conftest import TEST_PASSWORD, signup


def test_root_welcome(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Welcome to your own book-keeper"


def test_signup_returns_profile_and_token(client):
    payload = {"name": "Ana", "email": "ana@example.com", "phone": "999111222", "password": TEST_PASSWORD}
    r = client.post("/signup", json=payload)

    assert r.status_code == 201
    data = r.json()
    assert data["name"] == "Ana"
    assert data["email"] == "ana@example.com"
    assert data["phone"] == "999111222"
    assert "password" not in data
    assert decode_token(data["token"]) is not None


def test_signup_missing_fields(client):
    r = client.post("/signup", json={"name": "Ana", "email": "ana@example.com"})
    assert r.status_code == 400
    assert "message" in r.json()


def test_register_duplicate_email(client, db_session):
    """
    Verifica que no se puede registrar un usuario con un email existente
    y que no se crea una segunda cuenta.
    """
    email, _ = signup(client)
    payload = {"name": "Otro", "email": email, "phone": "111", "password": "newpassword"}
    r = client.post("/signup", json=payload)

    assert r.status_code == 400, f"Esperado 400 pero se obtuvo {r.status_code}"
    assert r.json()["message"]
    assert db_session.query(User).filter(User.email == email).count() == 1


def test_login_token_resolves_to_same_user(client):
    email, _ = signup(client)
    r = client.post("/login", json={"email": email, "password": TEST_PASSWORD})

    assert r.status_code == 200
    data = r.json()
    assert data["email"] == email
    assert decode_token(data["token"])["id"] == data["id"]

    me = client.get("/me", headers={"auth-token": data["token"]})
    assert me.status_code == 200
    assert me.json()["id"] == data["id"]


def test_login_invalid_credentials(client):
    """
    Contraseña incorrecta y email desconocido reciben la misma respuesta.
    """
    email, _ = signup(client)
    wrong_password = client.post("/login", json={"email": email, "password": "wrongpassword"})
    unknown_email = client.post("/login", json={"email": "nobody@example.com", "password": "wrongpassword"})

    assert wrong_password.status_code == 400
    assert unknown_email.status_code == wrong_password.status_code
    assert unknown_email.json() == wrong_password.json()
    assert "token" not in wrong_password.json()


def test_protected_route_requires_token(client):
    r = client.get("/myunpaidtransactions")
    assert r.status_code == 401
    assert r.json()["message"] == "please provide authentication token"


def test_protected_route_rejects_bad_tokens(client):
    expired = jwt.encode(
        {"id": 1, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}, SECRET_KEY, algorithm=ALGORITHM
    )
    forged = jwt.encode(
        {"id": 1, "exp": datetime.now(timezone.utc) + timedelta(days=1)}, "otra-clave", algorithm=ALGORITHM
    )
    for token in ("not-a-jwt", expired, forged):
        r = client.get("/mypaidtransactions", headers={"auth-token": token})
        assert r.status_code == 401, token


def test_token_for_missing_user(client):
    r = client.get("/me", headers={"auth-token": create_access_token(987654)})
    assert r.status_code == 404


def test_token_expires_in_thirty_days():
    token = create_access_token(7)
    payload = decode_token(token)
    expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    remaining = expires - datetime.now(timezone.utc)

    assert payload["id"] == 7
    assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)


def test_password_hash_is_salted():
    first = get_password_hash("secreto")
    second = get_password_hash("secreto")

    assert first != second
    assert verify_password("secreto", first)
    assert verify_password("secreto", second)
    assert not verify_password("otro", first)
