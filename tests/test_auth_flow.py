import pytest
from fastapi.testclient import TestClient

import app.api as api_module
from app import auth_utils
from app.auth_utils import SESSION_COOKIE_NAME
from app.routes import auth
from app.security import limiter
from core import auth_service as auth_service_mod
from core.auth_service import RESET_REQUESTED_MESSAGE, VERIFICATION_RESENT_MESSAGE
from core.errors import InternalFailure
from core.rate_limit import EMAIL_LOCKED_REASON, IP_LOCKED_REASON
from core.totp import current_code

PASSWORD = "Passw0rd1"


class RecordingNotifier:
    def __init__(self):
        self.resets = []
        self.verifications = []

    def password_reset(self, email, token):
        self.resets.append((email, token))

    def email_verification(self, email, token):
        self.verifications.append((email, token))


@pytest.fixture
def notifier(monkeypatch):
    recorder = RecordingNotifier()
    monkeypatch.setattr(auth_utils.auth_service, "notifier", recorder)
    return recorder


@pytest.fixture
def client(notifier):
    with TestClient(api_module.app) as c:
        yield c


def _register(client, email="user@example.com", password=PASSWORD):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "confirmPassword": password},
    )


def _login(client, email="user@example.com", password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def _enable_two_factor(client):
    setup = client.post("/api/auth/2fa/setup")
    assert setup.status_code == 200
    body = setup.json()
    assert body["qrCode"].startswith("data:image/png;base64,")
    assert body["otpauthUrl"].startswith("otpauth://totp/")

    confirm = client.put("/api/auth/2fa/setup", json={"code": current_code(body["secret"])})
    assert confirm.status_code == 200
    return body["secret"]


# -------- registration / login / session --------

def test_register_login_me_logout(client):
    resp = _register(client)
    assert resp.status_code == 201
    user_id = resp.json()["userId"]
    assert SESSION_COOKIE_NAME not in resp.cookies

    resp = _login(client)
    assert resp.status_code == 200
    assert SESSION_COOKIE_NAME in resp.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json() == {
        "id": user_id,
        "email": "user@example.com",
        "emailVerified": False,
        "twoFactorEnabled": False,
    }

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_login_normalizes_email(client):
    _register(client, email="Mixed@Example.com")
    assert _login(client, email="  MIXED@example.COM ").status_code == 200


def test_duplicate_registration_conflicts(client):
    assert _register(client).status_code == 201
    resp = _register(client, email="USER@example.com")
    assert resp.status_code == 409
    assert resp.json() == {"error": "User already exists"}


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "bademail", "password": PASSWORD, "confirmPassword": PASSWORD},
        {"email": "user@example.com", "password": "short", "confirmPassword": "short"},
        {"email": "user@example.com", "password": PASSWORD, "confirmPassword": PASSWORD + "x"},
        {"email": "user@example.com", "password": PASSWORD},
    ],
)
def test_register_rejects_invalid_input(client, payload):
    resp = client.post("/api/auth/register", json=payload)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_wrong_password_and_unknown_email_look_the_same(client):
    _register(client)
    wrong = _login(client, password="Wr0ngpass")
    unknown = _login(client, email="nobody@example.com")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}


def test_login_rate_limited_after_five_failures(client):
    _register(client)
    for _ in range(5):
        assert _login(client, password="Wr0ngpass").status_code == 401

    resp = _login(client)
    assert resp.status_code == 429
    assert "resetTime" in resp.json()


def test_me_requires_session(client):
    assert client.get("/api/auth/me").status_code == 401
    forged = client.get("/api/auth/me", headers={"Cookie": f"{SESSION_COOKIE_NAME}=forged"})
    assert forged.status_code == 401


# -------- lockout --------

def test_email_lockout_blocks_correct_password(client):
    _register(client)
    for i in range(10):
        limiter.record_attempt("user@example.com", f"10.0.0.{i}", False)

    resp = _login(client)
    assert resp.status_code == 429
    assert resp.json()["error"] == EMAIL_LOCKED_REASON
    assert SESSION_COOKIE_NAME not in resp.cookies


def test_ip_lockout_blocks_every_account_from_that_ip(client):
    _register(client)
    # TestClient connects as "testclient".
    for i in range(20):
        limiter.record_attempt(f"victim{i}@example.com", "testclient", False)

    resp = _login(client)
    assert resp.status_code == 429
    assert resp.json()["error"] == IP_LOCKED_REASON


def test_lockout_below_threshold_still_logs_in(client):
    _register(client)
    for i in range(9):
        limiter.record_attempt("user@example.com", f"10.0.0.{i}", False)
    assert _login(client).status_code == 200


# -------- two-factor --------

def test_two_factor_login(client):
    user_id = _register(client).json()["userId"]
    _login(client)
    secret = _enable_two_factor(client)
    assert client.get("/api/auth/me").json()["twoFactorEnabled"] is True
    client.post("/api/auth/logout")

    resp = _login(client)
    assert resp.status_code == 200
    assert resp.json()["requiresTwoFactor"] is True
    assert resp.json()["userId"] == user_id
    assert SESSION_COOKIE_NAME not in resp.cookies
    assert client.get("/api/auth/me").status_code == 401

    resp = client.post("/api/auth/2fa/verify", json={"userId": user_id, "code": current_code(secret)})
    assert resp.status_code == 200
    assert SESSION_COOKIE_NAME in resp.cookies
    assert client.get("/api/auth/me").status_code == 200


def test_two_factor_wrong_codes_are_rate_limited(client):
    user_id = _register(client).json()["userId"]
    _login(client)
    secret = _enable_two_factor(client)
    client.post("/api/auth/logout")
    _login(client)

    good = current_code(secret)
    bad = "000000" if good != "000000" else "111111"
    statuses = [
        client.post("/api/auth/2fa/verify", json={"userId": user_id, "code": bad}).status_code
        for _ in range(5)
    ]
    assert statuses == [401, 401, 401, 429, 429]

    resp = client.post("/api/auth/2fa/verify", json={"userId": user_id, "code": good})
    assert resp.status_code == 429


def test_two_factor_setup_rejects_wrong_code(client):
    _register(client)
    _login(client)
    client.post("/api/auth/2fa/setup")
    resp = client.put("/api/auth/2fa/setup", json={"code": "abc"})
    assert resp.status_code == 400
    assert client.get("/api/auth/me").json()["twoFactorEnabled"] is False


def test_two_factor_verify_without_enrolment_fails(client):
    user_id = _register(client).json()["userId"]
    resp = client.post("/api/auth/2fa/verify", json={"userId": user_id, "code": "123456"})
    assert resp.status_code == 401


def test_two_factor_limit_ignores_forwarded_for(client):
    user_id = _register(client).json()["userId"]
    _login(client)
    secret = _enable_two_factor(client)
    client.post("/api/auth/logout")
    _login(client)

    bad = "000000" if current_code(secret) != "000000" else "111111"
    statuses = [
        client.post(
            "/api/auth/2fa/verify",
            json={"userId": user_id, "code": bad},
            headers={"X-Forwarded-For": f"203.0.113.{i}", "X-Real-IP": f"198.51.100.{i}"},
        ).status_code
        for i in range(6)
    ]
    assert statuses == [401, 401, 401, 429, 429, 429]


# -------- password reset --------

def test_password_reset_round_trip(client, notifier):
    _register(client)
    resp = client.post("/api/auth/password-reset", json={"email": "user@example.com"})
    assert resp.status_code == 200
    assert resp.json()["message"] == RESET_REQUESTED_MESSAGE
    assert len(notifier.resets) == 1
    token = notifier.resets[0][1]

    new_password = "N3wpassword"
    resp = client.post(
        "/api/auth/password-reset/confirm",
        json={"token": token, "password": new_password, "confirmPassword": new_password},
    )
    assert resp.status_code == 200

    assert _login(client).status_code == 401
    assert _login(client, password=new_password).status_code == 200

    # Tokens are single use.
    again = client.post(
        "/api/auth/password-reset/confirm",
        json={"token": token, "password": "An0therpass", "confirmPassword": "An0therpass"},
    )
    assert again.status_code == 400


def test_password_reset_does_not_reveal_accounts(client, notifier):
    _register(client)
    known = client.post("/api/auth/password-reset", json={"email": "user@example.com"})
    unknown = client.post("/api/auth/password-reset", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [email for email, _ in notifier.resets] == ["user@example.com"]


def test_password_reset_requests_are_rate_limited(client):
    statuses = [
        client.post("/api/auth/password-reset", json={"email": "ghost@example.com"}).status_code
        for _ in range(4)
    ]
    assert statuses == [200, 200, 200, 429]


def test_newer_reset_token_replaces_older(client, notifier):
    _register(client)
    client.post("/api/auth/password-reset", json={"email": "user@example.com"})
    client.post("/api/auth/password-reset", json={"email": "user@example.com"})
    old_token, new_token = notifier.resets[0][1], notifier.resets[1][1]

    body = {"password": "N3wpassword", "confirmPassword": "N3wpassword"}
    assert client.post("/api/auth/password-reset/confirm", json={"token": old_token, **body}).status_code == 400
    assert client.post("/api/auth/password-reset/confirm", json={"token": new_token, **body}).status_code == 200


def test_password_reset_confirm_with_bogus_token(client):
    resp = client.post(
        "/api/auth/password-reset/confirm",
        json={"token": "nope", "password": "N3wpassword", "confirmPassword": "N3wpassword"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid or expired reset token"}


def test_reset_request_answers_before_any_account_lookup(monkeypatch):
    def lookup(email):
        raise AssertionError("account lookup must wait until after the response")

    monkeypatch.setattr(auth_service_mod, "get_user_by_email", lookup)
    service = auth_utils.auth_service
    assert service.request_password_reset("user@example.com", "1.2.3.4") == RESET_REQUESTED_MESSAGE
    assert service.request_password_reset("ghost@example.com", "1.2.3.4") == RESET_REQUESTED_MESSAGE
    assert service.resend_verification("ghost@example.com", "1.2.3.4") == VERIFICATION_RESENT_MESSAGE


def test_reset_delivery_runs_in_the_background(client, notifier, monkeypatch):
    _register(client)
    seen = []
    original = auth.auth_service.send_password_reset

    def spy(email):
        seen.append(email)
        original(email)

    monkeypatch.setattr(auth.auth_service, "send_password_reset", spy)
    resp = client.post("/api/auth/password-reset", json={"email": "user@example.com"})
    assert resp.status_code == 200
    assert seen == ["user@example.com"]
    assert len(notifier.resets) == 1


# -------- email verification --------

def test_verify_email_link(client, notifier):
    _register(client)
    assert len(notifier.verifications) == 1
    token = notifier.verifications[0][1]

    assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 200
    assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 400

    _login(client)
    assert client.get("/api/auth/me").json()["emailVerified"] is True


def test_resend_verification_only_for_unverified(client, notifier):
    _register(client)
    client.get("/api/auth/verify-email", params={"token": notifier.verifications[0][1]})

    resp = client.post("/api/auth/verify-email/resend", json={"email": "user@example.com"})
    assert resp.status_code == 200
    assert len(notifier.verifications) == 1


def test_verify_email_without_token(client):
    assert client.get("/api/auth/verify-email").status_code == 400


# -------- route wiring with stubbed service --------

def test_login_route_sets_cookie_from_service(monkeypatch):
    from core.auth_service import LoginResult

    client = TestClient(api_module.app)
    monkeypatch.setattr(
        auth.auth_service, "login", lambda email, pw, ip: LoginResult(user_id=7, session_id="session-token")
    )

    resp = client.post("/api/auth/login", json={"email": "user@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.cookies.get(SESSION_COOKIE_NAME) == "session-token"


def test_unexpected_errors_become_500(monkeypatch):
    client = TestClient(api_module.app, raise_server_exceptions=False)

    def explode(*args, **kwargs):
        raise RuntimeError("db exploded")

    monkeypatch.setattr(auth.auth_service, "login", explode)
    resp = client.post("/api/auth/login", json={"email": "user@example.com", "password": PASSWORD})
    assert resp.status_code == InternalFailure.status_code == 500
    assert resp.json() == {"error": InternalFailure.default_message}
    assert "db exploded" not in resp.text
