import time

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from jose.utils import base64url_encode
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.api.deps import get_db
from app.core.settings import settings
from app.db.base import Base
import app.models  # noqa: F401
from app.main import app


def _make_rsa_keypair_jwk(*, kid: str):
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")

    pub = private_key.public_key().public_numbers()
    n = base64url_encode(pub.n.to_bytes((pub.n.bit_length() + 7) // 8, "big")).decode("utf-8")
    e = base64url_encode(pub.e.to_bytes((pub.e.bit_length() + 7) // 8, "big")).decode("utf-8")

    jwk = {"kty": "RSA", "kid": kid, "use": "sig", "alg": "RS256", "n": n, "e": e}
    return private_pem, jwk


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def signed_token(monkeypatch):
    monkeypatch.setattr(settings, "AUTH0_DOMAIN", "example.test")
    monkeypatch.setattr(settings, "AUTH0_AUDIENCE", "https://golf-api")

    private_pem, jwk = _make_rsa_keypair_jwk(kid="test-kid")
    monkeypatch.setattr(deps, "_JWKS_CACHE", None)
    monkeypatch.setattr(deps, "_JWKS_CACHE_UNTIL", 0)
    monkeypatch.setattr(deps, "_get_jwks", lambda: {"keys": [jwk]})

    def make(sub="auth0|user123", exp_offset=60):
        claims = {
            "sub": sub,
            "aud": settings.AUTH0_AUDIENCE,
            "iss": f"https://{settings.AUTH0_DOMAIN}/",
            "exp": int(time.time()) + exp_offset,
        }
        return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": "test-kid"})

    return make


def test_rounds_with_mocked_jwks(client, signed_token):
    missing = client.get("/api/v1/rounds")
    assert missing.status_code == 401
    assert missing.json() == {"error": "Missing Authorization header"}

    # The dev header is ignored once Auth0 is configured.
    dev_header = client.get("/api/v1/rounds", headers={"X-User-Id": "u1"})
    assert dev_header.status_code == 401

    resp = client.get("/api/v1/rounds", headers={"Authorization": f"Bearer {signed_token()}"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_expired_or_malformed_tokens_are_rejected(client, signed_token):
    expired = client.get(
        "/api/v1/rounds", headers={"Authorization": f"Bearer {signed_token(exp_offset=-60)}"}
    )
    assert expired.status_code == 401
    assert expired.json() == {"error": "Invalid token"}

    not_bearer = client.get("/api/v1/rounds", headers={"Authorization": "Token abc"})
    assert not_bearer.status_code == 401
    assert not_bearer.json() == {"error": "Invalid Authorization header"}


def test_analyze_falls_back_to_body_user_when_token_unusable(client, signed_token):
    # No rounds for this user, so the request gets past identity resolution to a 404.
    resp = client.post(
        "/api/v1/insights/analyze",
        json={"userId": "body-user"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 404

    no_identity = client.post("/api/v1/insights/analyze", json={})
    assert no_identity.status_code == 400
