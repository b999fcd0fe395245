"""Tests for the FastAPI integration."""

from typing import Optional

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from cf_turnstile import CaptchaVerifier, TransportError, TurnstileSettings, VerifyResult
from cf_turnstile.fastapi import TurnstileVerify, mount, script_redirect_router


class StubVerifier:
    """Records calls and answers with a canned result."""

    def __init__(self, result: Optional[VerifyResult] = None, error: Optional[Exception] = None):
        self.result = result if result is not None else VerifyResult(success=True)
        self.error = error
        self.calls = []

    async def verify(self, token, client_ip, secret, expected_action=None, expected_cdata=None):
        self.calls.append((token, client_ip, secret, expected_action, expected_cdata))
        if self.error:
            raise self.error
        return self.result


def _script_app(path: str = "/cf-turnstile.js") -> TestClient:
    app = FastAPI()
    app.include_router(script_redirect_router(path))
    return TestClient(app)


def _protected_app(dependency: TurnstileVerify) -> TestClient:
    app = FastAPI()

    @app.post("/login")
    async def login(captcha: Optional[VerifyResult] = Depends(dependency)):
        return {"verified": captcha is not None}

    return TestClient(app)


# ============ Script redirect Tests ============


def test_script_redirect_default():
    """Test redirect to the implicit script URL."""
    response = _script_app().get("/cf-turnstile.js", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == (
        "https://challenges.cloudflare.com/turnstile/v0/api.js?render=implicit"
    )


def test_script_redirect_explicit():
    """Test the method query parameter."""
    response = _script_app().get("/cf-turnstile.js?method=explicit", follow_redirects=False)

    assert response.headers["location"].endswith("?render=explicit")


def test_script_redirect_onload_forces_explicit():
    """Test that onLoadFunction forces explicit mode."""
    response = _script_app().get(
        "/cf-turnstile.js?method=implicit&onLoadFunction=ready", follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"].endswith("?render=explicit&onload=ready")


def test_script_redirect_custom_path():
    """Test serving the redirect at a configured path."""
    response = _script_app("/assets/captcha.js").get("/assets/captcha.js", follow_redirects=False)

    assert response.status_code == 303


@pytest.mark.parametrize(
    "query",
    ["method=lazy", "onLoadFunction=" + "f" * 256],
)
def test_script_redirect_rejects_invalid_query(query):
    """Test that invalid query parameters are rejected."""
    response = _script_app().get(f"/cf-turnstile.js?{query}", follow_redirects=False)

    assert response.status_code == 422


def test_mount_respects_server_mode():
    """Test that the route only exists in server mode."""
    enabled = FastAPI()
    mount(enabled, TurnstileSettings(server_mode=True, script_path="/ts.js"))
    disabled = FastAPI()
    mount(disabled, TurnstileSettings(server_mode=False, script_path="/ts.js"))

    assert TestClient(enabled).get("/ts.js", follow_redirects=False).status_code == 303
    assert TestClient(disabled).get("/ts.js", follow_redirects=False).status_code == 404


# ============ TurnstileVerify Tests ============


def test_verify_dependency_reads_form_field():
    """Test verification of the widget's form field."""
    verifier = StubVerifier()
    dependency = TurnstileVerify(
        secret="secret", verifier=verifier, expected_action="login", expected_cdata="c"
    )

    response = _protected_app(dependency).post(
        "/login", data={"cf-turnstile-response": "form-token"}
    )

    assert response.status_code == 200
    assert response.json() == {"verified": True}
    assert verifier.calls == [("form-token", "testclient", "secret", "login", "c")]


def test_verify_dependency_prefers_header_and_cf_ip():
    """Test token header and CF-Connecting-IP handling."""
    verifier = StubVerifier()
    dependency = TurnstileVerify(secret="secret", verifier=verifier)

    response = _protected_app(dependency).post(
        "/login",
        headers={"CF-Turnstile-Response": "header-token", "CF-Connecting-IP": "203.0.113.9"},
    )

    assert response.status_code == 200
    assert verifier.calls[0][:2] == ("header-token", "203.0.113.9")


def test_verify_dependency_custom_field_name():
    """Test a custom response field name."""
    verifier = StubVerifier()
    dependency = TurnstileVerify(secret="secret", verifier=verifier, response_field_name="captcha")

    response = _protected_app(dependency).post("/login", data={"captcha": "tok"})

    assert response.status_code == 200
    assert verifier.calls[0][0] == "tok"


def test_verify_dependency_missing_token():
    """Test that a request without token is rejected before verification."""
    verifier = StubVerifier()
    dependency = TurnstileVerify(secret="secret", verifier=verifier)

    response = _protected_app(dependency).post("/login", json={"user": "a"})

    assert response.status_code == 400
    assert verifier.calls == []


def test_verify_dependency_rejected_token():
    """Test that provider failures become 403 with error codes."""
    verifier = StubVerifier(VerifyResult(success=False, error_codes=["timeout-or-duplicate"]))
    dependency = TurnstileVerify(secret="secret", verifier=verifier)

    response = _protected_app(dependency).post("/login", data={"cf-turnstile-response": "t"})

    assert response.status_code == 403
    assert response.json()["detail"]["error-codes"] == ["timeout-or-duplicate"]
    assert len(verifier.calls) == 1


def test_verify_dependency_transport_error():
    """Test that an unreachable siteverify becomes 502."""
    verifier = StubVerifier(error=TransportError("boom"))
    dependency = TurnstileVerify(secret="secret", verifier=verifier)

    response = _protected_app(dependency).post("/login", data={"cf-turnstile-response": "t"})

    assert response.status_code == 502


def test_verify_dependency_without_auto_error():
    """Test that failures return None when auto_error is off."""
    verifier = StubVerifier(VerifyResult(success=False, error_codes=["action-invalid"]))
    dependency = TurnstileVerify(secret="secret", verifier=verifier, auto_error=False)
    client = _protected_app(dependency)

    assert client.post("/login", data={"cf-turnstile-response": "t"}).json() == {"verified": False}
    assert client.post("/login").json() == {"verified": False}


def test_verify_dependency_requires_secret():
    """Test that a secret is mandatory."""
    with pytest.raises(ValueError):
        TurnstileVerify(verifier=StubVerifier())


@pytest.mark.asyncio
async def test_verify_dependency_closes_owned_verifier():
    """Test that close() shuts the verifier the dependency created."""
    dependency = TurnstileVerify(secret="secret")

    await dependency.close()

    assert dependency.verifier._client.is_closed is True


@pytest.mark.asyncio
async def test_verify_dependency_leaves_injected_verifier_open():
    """Test that close() does not touch a verifier passed in by the caller."""
    verifier = CaptchaVerifier()
    dependency = TurnstileVerify(secret="secret", verifier=verifier)

    await dependency.close()

    assert verifier._client.is_closed is False
    await verifier.close()
