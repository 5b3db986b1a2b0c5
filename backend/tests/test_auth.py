from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from jose import jwt

from hidrazy.db import get_db
from hidrazy.main import app
from hidrazy.models import User as UserRow
from hidrazy.settings import settings


def _token(**claims):
    payload = {
        "sub": "user-42",
        "email": "amal@example.com",
        "aud": "authenticated",
        "exp": datetime.utcnow() + timedelta(minutes=5),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _client(db):
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app)


def test_me_accepts_supabase_token(db):
    db.add(UserRow(id="user-42", current_level="b1", learning_goal="travel"))
    db.commit()
    try:
        res = _client(db).get("/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == "user-42"
    assert body["email"] == "amal@example.com"
    assert body["current_level"] == "b1"


def test_me_without_profile_row(db):
    try:
        res = _client(db).get("/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    finally:
        app.dependency_overrides.clear()
    assert res.json()["assessment_completed"] is False


def test_wrong_audience_is_rejected(db):
    try:
        res = _client(db).get("/auth/me", headers={"Authorization": f"Bearer {_token(aud='anon')}"})
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 401
    assert res.json() == {"error": "Authentication failed", "success": False}


def test_garbage_token_is_rejected(db):
    try:
        res = _client(db).post(
            "/premium-gate-enforcer",
            json={"action": "validate_subscription", "data": {}},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 401


def test_missing_token_is_rejected(db):
    try:
        res = _client(db).post("/stealth-assessment", json={"action": "start_assessment"})
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 401
    assert res.json()["success"] is False
