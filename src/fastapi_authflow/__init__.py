"""FastAPI Authflow - OAuth2 authorization code flow for your FastAPI backend.

FastAPI Authflow builds provider authorize URLs, verifies callbacks against
CSRF and replay, and exchanges, refreshes and revokes tokens for any number of
configured identity providers, with optional PKCE.

Key Components:
    - OAuthHandler: Registry mapping client names to their configuration
    - OAuthInstance: The authorization code flow for one client
    - ClientConfig: Immutable configuration of one provider client
    - CookieSecretStore: Keeps the pending `state` and PKCE verifier in cookies

Usage:
    ```python
    from fastapi_authflow import CookieSecretStore, OAuthHandler, github_client

    oauth = OAuthHandler({"github": github_client(client_id, client_secret, redirect_uri)})

    @app.get("/login")
    def login(request: Request):
        store = CookieSecretStore(request)
        url = oauth.get("github").generate_authorize_url(store)
        return store.apply(RedirectResponse(url))

    @app.get("/callback")
    async def callback(request: Request):
        store = CookieSecretStore(request)
        token = await oauth.get("github").exchange_code_for_token(request.url, store)
        return store.apply(JSONResponse(token.to_dict()))
    ```
"""

from fastapi_authflow.config import (
    ClientConfig,
    CookiePolicy,
    Scopes,
    is_production,
    load_client_configs,
)
from fastapi_authflow.crypto import (
    PKCEPair,
    encode_basic_credentials,
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce_pair,
    generate_state,
)
from fastapi_authflow.errors import (
    ClientNotFound,
    ConfigurationError,
    CsrfMismatch,
    GeneratorFailure,
    InvalidCallback,
    MissingRefreshToken,
    MissingToken,
    MissingVerifier,
    OAuthFlowError,
    ProviderError,
    RefreshFailed,
    RevokeFailed,
    RevokeNotConfigured,
    TokenExchangeFailed,
    register_exception_handlers,
)
from fastapi_authflow.instance import GrantType, OAuthInstance
from fastapi_authflow.providers import github_client, google_client, microsoft_client
from fastapi_authflow.registry import OAuthHandler
from fastapi_authflow.router import create_oauth_router
from fastapi_authflow.store import CookieSecretStore, MemorySecretStore, SecretStore
from fastapi_authflow.tokens import TokenResult, parse_token_response

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "CookiePolicy",
    "Scopes",
    "is_production",
    "load_client_configs",
    "PKCEPair",
    "encode_basic_credentials",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_pkce_pair",
    "generate_state",
    "ClientNotFound",
    "ConfigurationError",
    "CsrfMismatch",
    "GeneratorFailure",
    "InvalidCallback",
    "MissingRefreshToken",
    "MissingToken",
    "MissingVerifier",
    "OAuthFlowError",
    "ProviderError",
    "RefreshFailed",
    "RevokeFailed",
    "RevokeNotConfigured",
    "TokenExchangeFailed",
    "register_exception_handlers",
    "GrantType",
    "OAuthInstance",
    "github_client",
    "google_client",
    "microsoft_client",
    "OAuthHandler",
    "create_oauth_router",
    "CookieSecretStore",
    "MemorySecretStore",
    "SecretStore",
    "TokenResult",
    "parse_token_response",
]
