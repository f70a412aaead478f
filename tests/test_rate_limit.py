from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from planejar.rate_limit import limiter, rate_limit_exceeded_handler


def test_rate_limit_exceeded_returns_429():
    app = FastAPI()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/limited")
    @limiter.limit("1/minute")
    def limited(request: Request):
        return {"ok": True}

    client = TestClient(app)
    assert client.get("/limited").status_code == 200
    response = client.get("/limited")
    assert response.status_code == 429
    body = response.json()
    assert body["error_code"] == "RATE_LIMIT_EXCEEDED"
    assert body["details"]["retry_after"] == "60 seconds"


def test_login_is_rate_limited(db_session):
    from planejar.db import get_db
    from planejar.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    try:
        with TestClient(app) as client:
            codes = [
                client.post("/auth/login", json={"email": "ninguem@test.com", "password": "x"}).status_code
                for _ in range(6)
            ]
    finally:
        limiter.reset()
        app.dependency_overrides.clear()
    assert codes[:5] == [401] * 5
    assert codes[5] == 429
