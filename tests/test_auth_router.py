from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, make_gate, make_settings


LOGIN_URL = "/api/v1/auth/login"


def _login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD, **kwargs):
    return client.post(LOGIN_URL, json={"email": email, "password": password}, **kwargs)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_login_success(client):
    response = _login(client)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 86400
    assert body["admin"] == {"email": ADMIN_EMAIL, "role": "admin"}
    assert body["token"]


def test_login_missing_fields(client):
    response = client.post(LOGIN_URL, json={"email": ADMIN_EMAIL})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Email and password are required"


def test_login_without_body_is_a_bad_request(client):
    response = client.post(LOGIN_URL)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Email and password are required"


def test_login_with_non_string_fields_is_a_bad_request(client):
    response = client.post(LOGIN_URL, json={"email": 5, "password": ["x"]})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Email and password are required"


def test_login_with_unparsable_body_is_a_bad_request(client):
    response = client.post(
        LOGIN_URL, content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


def test_login_without_body_counts_against_rate_limit(client):
    statuses = [client.post(LOGIN_URL).status_code for _ in range(6)]

    assert statuses == [400] * 5 + [429]


def test_login_invalid_credentials_share_one_response(client):
    wrong_email = _login(client, email="other@site.com")
    wrong_password = _login(client, password="nope")

    assert wrong_email.status_code == wrong_password.status_code == 401
    assert wrong_email.json() == wrong_password.json() == {
        "detail": {
            "error": "Invalid credentials",
            "message": "Please check your email and password",
        }
    }


def test_login_rate_limited(client):
    for _ in range(5):
        _login(client, password="nope")

    response = _login(client)

    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["error"] == "Too many attempts"
    assert detail["retry_after"] > 0
    assert response.headers["Retry-After"] == str(detail["retry_after"])


def test_login_rate_limit_ignores_spoofed_forwarded_for(client, gate):
    statuses = [
        _login(
            client, password="nope", headers={"X-Forwarded-For": f"10.9.9.{i}"}
        ).status_code
        for i in range(8)
    ]

    assert statuses == [401] * 5 + [429] * 3
    assert list(gate.rate_limiter.entries) == ["testclient"]


def test_login_configuration_error(clock):
    from fastapi.testclient import TestClient

    from main import app
    from security.helpers import get_authentication_gate

    gate = make_gate(make_settings(signing_key=None), clock)
    app.dependency_overrides[get_authentication_gate] = lambda: gate
    try:
        response = _login(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "System configuration error"


def test_login_unexpected_failure_is_generic(client, gate, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("signing backend exploded")

    monkeypatch.setattr(gate.token_service, "issue", explode)

    response = _login(client)

    assert response.status_code == 500
    assert response.json() == {
        "detail": {
            "error": "System error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    }


def test_validate_token(client, gate):
    token = _login(client).json()["token"]
    payload = gate.token_service.verify(token)

    response = client.get("/api/v1/auth/validate", headers=_auth(token))

    assert response.status_code == 200
    body = response.json()
    assert body["admin"] == {"email": ADMIN_EMAIL, "role": "admin"}
    assert body["expires_at"].startswith("2023-11-")
    assert payload.exp - payload.iat == 86400


def test_validate_without_token(client):
    response = client.get("/api/v1/auth/validate")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["detail"]["error"] == "Access denied"


def test_validate_rejects_lowercase_bearer_prefix(client):
    token = _login(client).json()["token"]

    response = client.get(
        "/api/v1/auth/validate", headers={"Authorization": f"bearer {token}"}
    )

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "Access denied"


def test_protected_routes_declare_bearer_security(client):
    schema = client.get("/openapi.json").json()

    assert schema["components"]["securitySchemes"]["bearerAuth"]["scheme"] == "bearer"
    for path in ("/api/v1/auth/validate", "/api/v1/auth/profile", "/api/v1/auth/session"):
        assert {"bearerAuth": []} in schema["paths"][path]["get"]["security"]
    assert "security" not in schema["paths"]["/api/v1/auth/login"]["post"]


def test_validate_with_malformed_and_expired_tokens(client, clock):
    token = _login(client).json()["token"]

    malformed = client.get("/api/v1/auth/validate", headers=_auth("garbage"))
    assert malformed.status_code == 401
    assert malformed.json()["detail"]["error"] == "Invalid token"

    clock.advance(86401)
    expired = client.get("/api/v1/auth/validate", headers=_auth(token))
    assert expired.status_code == 401
    assert expired.json()["detail"]["error"] == "Token expired"


def test_profile(client):
    token = _login(client).json()["token"]

    response = client.get("/api/v1/auth/profile", headers=_auth(token))

    assert response.status_code == 200
    admin = response.json()["admin"]
    assert admin["email"] == ADMIN_EMAIL
    assert admin["role"] == "admin"
    assert admin["issued_at"] < admin["expires_at"]


def test_profile_requires_admin_role(client, gate):
    token = gate.token_service.issue(ADMIN_EMAIL, "viewer", 60)

    response = client.get("/api/v1/auth/profile", headers=_auth(token))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Access forbidden"


def test_session_reports_anonymous_and_authenticated_callers(client, clock):
    token = _login(client).json()["token"]

    assert client.get("/api/v1/auth/session").json() == {"authenticated": False, "admin": None}

    authenticated = client.get("/api/v1/auth/session", headers=_auth(token)).json()
    assert authenticated["authenticated"] is True
    assert authenticated["admin"]["email"] == ADMIN_EMAIL

    clock.advance(86401)
    expired = client.get("/api/v1/auth/session", headers=_auth(token))
    assert expired.status_code == 200
    assert expired.json()["authenticated"] is False


def test_logout_is_stateless(client):
    token = _login(client).json()["token"]

    response = client.post("/api/v1/auth/logout")
    assert response.status_code == 200
    assert response.json()["success"] is True

    # The token stays valid until it expires
    assert client.get("/api/v1/auth/validate", headers=_auth(token)).status_code == 200
