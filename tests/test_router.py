"""End-to-end tests of the login and callback routes."""

from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient

from fastapi_authflow.config import CookiePolicy
from fastapi_authflow.registry import OAuthHandler
from fastapi_authflow.router import create_oauth_router

from tests.mocks.oauth_mocks import (
    AUTHORIZE_URL,
    REVOKE_URL,
    TOKEN_URL,
    MockProvider,
    create_client_config,
    query_params,
    s256,
    set_cookie_headers,
)


def create_app(provider=None, pkce=False, on_success=None, cookie_policy=None):
    provider = provider or MockProvider()
    handler = OAuthHandler(
        {"test": create_client_config(pkce=pkce, revoke_token_url=REVOKE_URL)},
        http_client=provider.client(),
        cookie_policy=cookie_policy or CookiePolicy(secure=False),
    )
    app = FastAPI()
    app.include_router(create_oauth_router(handler, on_success=on_success, prefix="/oauth"))
    return app


def login(client: TestClient, client_name: str = "test"):
    response = client.get(f"/oauth/{client_name}/login", follow_redirects=False)
    return response, query_params(response.headers.get("location", ""))


class TestLoginRoute:
    """Test the redirect to the provider."""

    def test_redirects_to_provider(self):
        client = TestClient(create_app())

        response, params = login(client)

        assert response.status_code == 307
        assert response.headers["location"].startswith(AUTHORIZE_URL + "?")
        assert params["client_id"] == "test-client-id"
        assert client.cookies.get("oauth_state") == params["state"]

    def test_cookie_attributes(self):
        client = TestClient(create_app(pkce=True))

        response, _ = login(client)
        cookies = {header.split("=", 1)[0]: header for header in set_cookie_headers(response)}

        assert set(cookies) == {"oauth_state", "oauth_code_verifier"}
        for header in cookies.values():
            assert "HttpOnly" in header
            assert "Max-Age=600" in header
            assert "Path=/" in header
            assert "samesite=lax" in header.lower()
            assert "Secure" not in header

    def test_secure_cookies_in_production(self, monkeypatch):
        monkeypatch.setenv("FASTAPI_AUTHFLOW_ENV", "production")
        provider = MockProvider()
        handler = OAuthHandler({"test": create_client_config()}, http_client=provider.client())
        app = FastAPI()
        app.include_router(create_oauth_router(handler, prefix="/oauth"))

        response, _ = login(TestClient(app))

        assert "Secure" in set_cookie_headers(response)[0]

    def test_pkce_challenge_matches_cookie(self):
        client = TestClient(create_app(pkce=True))

        _, params = login(client)

        assert params["code_challenge"] == s256(client.cookies.get("oauth_code_verifier"))
        assert params["code_challenge_method"] == "S256"

    def test_unknown_client(self):
        client = TestClient(create_app())

        response, _ = login(client, "unknown")

        assert response.status_code == 404
        assert response.json()["error"] == "client_not_found"
        assert set_cookie_headers(response) == []


class TestCallbackRoute:
    """Test the callback and code exchange."""

    def test_full_flow(self):
        provider = MockProvider()
        client = TestClient(create_app(provider, pkce=True))
        _, params = login(client)
        verifier = client.cookies.get("oauth_code_verifier")

        response = client.get("/oauth/test/callback", params={"code": "auth-code", "state": params["state"]})

        assert response.status_code == 200
        assert response.json()["access_token"] == "mock_access_token"
        assert response.json()["refresh_token"] == "mock_refresh_token"
        assert str(provider.last_request.url) == TOKEN_URL
        assert provider.last_form["code"] == "auth-code"
        assert provider.last_form["code_verifier"] == verifier
        assert "oauth_state" not in client.cookies
        assert "oauth_code_verifier" not in client.cookies

    def test_state_mismatch_clears_cookies(self):
        provider = MockProvider()
        client = TestClient(create_app(provider, pkce=True))
        login(client)

        response = client.get("/oauth/test/callback", params={"code": "auth-code", "state": "forged"})

        assert response.status_code == 400
        assert response.json()["error"] == "csrf_mismatch"
        assert "oauth_state" not in client.cookies
        assert "oauth_code_verifier" not in client.cookies
        assert provider.requests == []

    def test_replayed_callback_rejected(self):
        client = TestClient(create_app())
        _, params = login(client)
        callback_params = {"code": "auth-code", "state": params["state"]}

        assert client.get("/oauth/test/callback", params=callback_params).status_code == 200

        response = client.get("/oauth/test/callback", params=callback_params)
        assert response.status_code == 400
        assert response.json()["error"] == "csrf_mismatch"

    def test_missing_code(self):
        client = TestClient(create_app())
        _, params = login(client)

        response = client.get("/oauth/test/callback", params={"state": params["state"]})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_callback"
        assert "oauth_state" not in client.cookies

    def test_provider_denied_access(self):
        client = TestClient(create_app())
        _, params = login(client)

        response = client.get(
            "/oauth/test/callback",
            params={"error": "access_denied", "state": params["state"]},
        )

        assert response.status_code == 400
        assert response.json()["details"]["error"] == "access_denied"

    def test_token_endpoint_failure(self):
        provider = MockProvider().respond(TOKEN_URL, status_code=400, json_body={"error": "invalid_grant"})
        client = TestClient(create_app(provider))
        _, params = login(client)

        response = client.get("/oauth/test/callback", params={"code": "auth-code", "state": params["state"]})

        assert response.status_code == 502
        assert response.json()["error"] == "token_exchange_failed"
        assert "invalid_grant" not in response.text
        assert "oauth_state" not in client.cookies

    def test_unknown_client(self):
        client = TestClient(create_app())

        response = client.get("/oauth/unknown/callback", params={"code": "c", "state": "s"})

        assert response.status_code == 404


class TestSuccessHandler:
    """Test the on_success hook."""

    def test_sync_handler_result_is_json_encoded(self):
        calls = []

        def on_success(client_name, token, request):
            calls.append((client_name, token.access_token, request.url.path))
            return {"user": "alice", "expires_at": token.expires_at}

        client = TestClient(create_app(on_success=on_success))
        _, params = login(client)

        response = client.get("/oauth/test/callback", params={"code": "auth-code", "state": params["state"]})

        assert response.status_code == 200
        assert response.json()["user"] == "alice"
        assert isinstance(response.json()["expires_at"], str)
        assert calls == [("test", "mock_access_token", "/oauth/test/callback")]

    def test_async_handler_response_is_returned(self):
        async def on_success(client_name, token, request):
            return RedirectResponse("/dashboard", status_code=303)

        client = TestClient(create_app(on_success=on_success))
        _, params = login(client)

        response = client.get(
            "/oauth/test/callback",
            params={"code": "auth-code", "state": params["state"]},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        assert "oauth_state" not in client.cookies

    def test_handler_not_called_on_failure(self):
        calls = []

        def on_success(client_name, token, request):
            calls.append(client_name)

        client = TestClient(create_app(on_success=on_success))
        login(client)

        client.get("/oauth/test/callback", params={"code": "auth-code", "state": "forged"})

        assert calls == []

    def test_failing_handler_still_clears_cookies(self):
        async def on_success(client_name, token, request):
            raise RuntimeError("user store unavailable")

        client = TestClient(create_app(pkce=True, on_success=on_success))
        _, params = login(client)

        response = client.get("/oauth/test/callback", params={"code": "auth-code", "state": params["state"]})

        assert response.status_code == 500
        assert response.json()["error"] == "oauth_error"
        assert "user store unavailable" not in response.text
        assert "oauth_state" not in client.cookies
        assert "oauth_code_verifier" not in client.cookies

    def test_failing_handler_callback_cannot_be_replayed(self):
        def on_success(client_name, token, request):
            raise RuntimeError("user store unavailable")

        provider = MockProvider()
        client = TestClient(create_app(provider, on_success=on_success))
        _, params = login(client)
        callback_params = {"code": "auth-code", "state": params["state"]}
        client.get("/oauth/test/callback", params=callback_params)

        response = client.get("/oauth/test/callback", params=callback_params)

        assert response.status_code == 400
        assert response.json()["error"] == "csrf_mismatch"
        assert len(provider.requests) == 1
