from urllib.parse import parse_qs, urlsplit

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from pydantic import BaseModel

from fastapi_authflow import (
    CookiePolicy,
    OAuthHandler,
    TokenResult,
    create_oauth_router,
    github_client,
    google_client,
    register_exception_handlers,
)


# Stand-in for the providers' token endpoints, so the example runs offline
def fake_provider(request: httpx.Request) -> httpx.Response:
    form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
    if request.url.path.endswith("/revoke"):
        return httpx.Response(200)
    if form.get("grant_type") == "refresh_token":
        return httpx.Response(200, json={"access_token": "refreshed-access-token", "expires_in": 3600})
    if form.get("code") != "valid-code":
        return httpx.Response(400, json={"error": "invalid_grant"})
    return httpx.Response(
        200,
        json={
            "access_token": f"{request.url.host}-access-token",
            "refresh_token": f"{request.url.host}-refresh-token",
            "token_type": "Bearer",
            "expires_in": 3600,
        },
    )


oauth = OAuthHandler(
    {
        "google": google_client(
            client_id="google-client-id",
            client_secret="google-client-secret",
            redirect_uri="http://testserver/auth/google/callback",
            offline=True,
        ),
        "github": github_client(
            client_id="github-client-id",
            client_secret="github-client-secret",
            redirect_uri="http://testserver/auth/github/callback",
        ),
    },
    http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_provider)),
    cookie_policy=CookiePolicy(secure=False),
)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    token: str


# Signed-in users, keyed by session id
sessions = {}


def on_success(client_name: str, token: TokenResult, request: Request):
    session_id = f"{client_name}:{token.access_token}"
    sessions[session_id] = token
    response = RedirectResponse("/me", status_code=303)
    response.set_cookie("session_id", session_id, httponly=True)
    return response


app = FastAPI()
register_exception_handlers(app)
app.include_router(create_oauth_router(oauth, on_success=on_success, prefix="/auth"))


@app.get("/me")
async def me(request: Request):
    token = sessions.get(request.cookies.get("session_id"))
    if token is None:
        return {"signed_in": False}
    return {"signed_in": True, "expired": token.is_expired()}


@app.post("/auth/{client_name}/refresh")
async def refresh(client_name: str, body: RefreshRequest):
    token = await oauth.get(client_name).refresh_token(body.refresh_token)
    return token.to_dict()


@app.post("/auth/{client_name}/logout")
async def logout(client_name: str, body: LogoutRequest):
    await oauth.get(client_name).revoke_token(body.token, token_type_hint="access_token")
    return {"revoked": True}


# Tests

client = TestClient(app)


def sign_in(client_name: str, code: str = "valid-code"):
    response = client.get(f"/auth/{client_name}/login", follow_redirects=False)
    state = parse_qs(urlsplit(response.headers["location"]).query)["state"][0]
    return client.get(
        f"/auth/{client_name}/callback",
        params={"code": code, "state": state},
        follow_redirects=False,
    )


def test_google_login_asks_for_offline_access():
    response = client.get("/auth/google/login", follow_redirects=False)
    assert response.status_code == 307
    query = parse_qs(urlsplit(response.headers["location"]).query)
    assert query["access_type"] == ["offline"]
    assert query["code_challenge_method"] == ["S256"]


def test_github_sign_in():
    response = sign_in("github")
    assert response.status_code == 303, response.text
    assert client.get("/me").json() == {"signed_in": True, "expired": False}


def test_invalid_code():
    response = sign_in("google", code="stolen-code")
    assert response.status_code == 502, response.json()
    assert response.json()["error"] == "token_exchange_failed"


def test_unknown_provider():
    response = client.get("/auth/gitlab/login", follow_redirects=False)
    assert response.status_code == 404, response.json()


def test_refresh():
    response = client.post("/auth/google/refresh", json={"refresh_token": "google-refresh-token"})
    assert response.status_code == 200, response.json()
    assert response.json()["access_token"] == "refreshed-access-token"
    assert response.json()["refresh_token"] == "google-refresh-token"


def test_logout():
    response = client.post("/auth/google/logout", json={"token": "google-access-token"})
    assert response.status_code == 200, response.json()


def test_logout_without_revoke_endpoint():
    response = client.post("/auth/github/logout", json={"token": "github-access-token"})
    assert response.status_code == 500, response.json()
    assert response.json()["error"] == "revoke_not_configured"


# python -m pytest examples/multi_provider_one.py
