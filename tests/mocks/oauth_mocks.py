"""Mock provider endpoints and request helpers for authorization code flow tests."""

import base64
import hashlib
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
from starlette.requests import Request

from fastapi_authflow.config import ClientConfig, CookiePolicy
from fastapi_authflow.instance import OAuthInstance
from fastapi_authflow.store import MemorySecretStore

PROVIDER = "https://auth.example.com"
AUTHORIZE_URL = f"{PROVIDER}/oauth/authorize"
TOKEN_URL = f"{PROVIDER}/oauth/token"
REFRESH_URL = f"{PROVIDER}/oauth/refresh"
REVOKE_URL = f"{PROVIDER}/oauth/revoke"
REDIRECT_URI = "http://testserver/oauth/test/callback"

DEFAULT_TOKEN_RESPONSE = {
    "access_token": "mock_access_token",
    "token_type": "Bearer",
    "expires_in": 3600,
    "refresh_token": "mock_refresh_token",
    "scope": "read write",
}


def create_client_config(**overrides: Any) -> ClientConfig:
    """Create a client configuration pointing at the mock provider."""
    config = {
        "client_id": "test-client-id",
        "client_secret": "test-client-secret",
        "authorize_url": AUTHORIZE_URL,
        "token_url": TOKEN_URL,
        "redirect_uri": REDIRECT_URI,
        "scopes": {"values": ["read", "write"]},
    }
    config.update(overrides)
    return ClientConfig(**config)


class MockProvider:
    """Mock identity provider usable as an ``httpx.MockTransport`` handler.

    Every request is recorded. Responses are configured per URL path; unknown
    paths answer 404.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, Tuple[int, Optional[Any], Optional[str]]] = {}
        self.network_error: Optional[str] = None
        self.respond(TOKEN_URL, json_body=DEFAULT_TOKEN_RESPONSE)

    def respond(
        self,
        url: str,
        status_code: int = 200,
        json_body: Optional[Any] = None,
        text: Optional[str] = None,
    ) -> "MockProvider":
        self.responses[urlsplit(url).path] = (status_code, json_body, text)
        return self

    def fail_with_network_error(self, message: str = "connection refused") -> "MockProvider":
        self.network_error = message
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.network_error is not None:
            raise httpx.ConnectError(self.network_error, request=request)

        status_code, json_body, text = self.responses.get(
            request.url.path, (404, {"error": "not_found"}, None)
        )
        if json_body is not None:
            return httpx.Response(status_code, json=json_body)
        return httpx.Response(status_code, text=text or "")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_form(self) -> Dict[str, str]:
        """Form body of the last request, one value per key."""
        parsed = parse_qs(self.last_request.content.decode("utf-8"), keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items()}


def create_instance(
    provider: Optional[MockProvider] = None,
    cookie_policy: Optional[CookiePolicy] = None,
    **overrides: Any,
) -> OAuthInstance:
    provider = provider or MockProvider()
    return OAuthInstance(
        create_client_config(**overrides),
        http_client=provider.client(),
        cookie_policy=cookie_policy or CookiePolicy(secure=False),
    )


def query_params(url: str) -> Dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def callback_url(**params: str) -> str:
    return f"{REDIRECT_URI}?{urlencode(params)}"


def start_flow(instance: OAuthInstance, store: Optional[MemorySecretStore] = None) -> Tuple[MemorySecretStore, Dict[str, str]]:
    """Build an authorize URL and return the store together with its query parameters."""
    store = store if store is not None else MemorySecretStore()
    url = instance.generate_authorize_url(store)
    return store, query_params(url)


def s256(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")


def create_request(
    path: str = "/oauth/test/callback",
    query: str = "",
    cookies: Optional[Dict[str, str]] = None,
) -> Request:
    """Create a bare Starlette request carrying ``cookies``."""
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": query.encode("latin-1"),
        "headers": headers,
    }
    return Request(scope)


def set_cookie_headers(response) -> List[str]:
    """``Set-Cookie`` values of a Starlette response or an httpx (``TestClient``) response."""
    if isinstance(response, httpx.Response):
        return response.headers.get_list("set-cookie")
    return response.headers.getlist("set-cookie")
