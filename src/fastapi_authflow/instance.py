"""Authorization code flow for a single configured client.

:class:`OAuthInstance` drives the three steps of the flow:

1. :meth:`OAuthInstance.generate_authorize_url` creates a fresh ``state``
   (and a PKCE verifier when enabled), stores them in the caller's
   :class:`~fastapi_authflow.store.SecretStore` and returns the provider URL
   to redirect the user to.
2. :meth:`OAuthInstance.verify_callback` consumes the stored ``state`` and
   checks it against the one the provider sent back (CSRF protection).
3. :meth:`OAuthInstance.exchange_code_for_token` verifies the callback and
   trades the authorization code for tokens at the token endpoint.

Refreshing and revoking tokens are independent calls on the same instance.
No call is ever retried: authorization codes are single-use at the provider.
"""

import logging
import secrets
from enum import Enum
from typing import Dict, Optional, Type, Union
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
from starlette.datastructures import URL

from fastapi_authflow.config import ClientConfig, CookiePolicy
from fastapi_authflow.consts import (
    CODE_CHALLENGE_METHOD_S256,
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    RESPONSE_TYPE_CODE,
)
from fastapi_authflow.crypto import (
    encode_basic_credentials,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from fastapi_authflow.errors import (
    CsrfMismatch,
    InvalidCallback,
    MissingRefreshToken,
    MissingToken,
    MissingVerifier,
    ProviderError,
    RefreshFailed,
    RevokeFailed,
    RevokeNotConfigured,
    TokenExchangeFailed,
)
from fastapi_authflow.store import SecretStore
from fastapi_authflow.tokens import TokenResult, parse_token_response

logger = logging.getLogger(__name__)


class GrantType(str, Enum):
    """OAuth2 grant types."""
    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


class OAuthInstance:
    """Authorization code flow bound to one :class:`ClientConfig`.

    Args:
        config: The client configuration
        http_client: ``httpx.AsyncClient`` used for token endpoint calls. When
            omitted, each call opens and closes its own client. An injected
            client is owned, and closed, by the caller.
        cookie_policy: Names and attributes of the pending authorization secrets
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        cookie_policy: Optional[CookiePolicy] = None,
    ):
        self._config = config
        self._http_client = http_client
        self._cookie_policy = cookie_policy or CookiePolicy()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cookie_policy(self) -> CookiePolicy:
        return self._cookie_policy

    def __repr__(self) -> str:
        return f"{type(self).__name__}(client_id={self._config.client_id!r}, pkce={self._config.pkce})"

    def generate_authorize_url(self, store: SecretStore) -> str:
        """Build the provider authorize URL and remember its secrets in ``store``."""
        config = self._config
        policy = self._cookie_policy

        state = generate_state()

        params: Dict[str, str] = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": RESPONSE_TYPE_CODE,
        }
        if config.scopes:
            params["scope"] = config.scopes.join()

        store.set(policy.state_cookie_name, state, **policy.cookie_options())
        params["state"] = state

        if config.pkce:
            code_verifier = generate_code_verifier()
            store.set(policy.code_verifier_cookie_name, code_verifier, **policy.cookie_options())
            params["code_challenge"] = generate_code_challenge(code_verifier)
            params["code_challenge_method"] = CODE_CHALLENGE_METHOD_S256

        # extra params win over generated ones, e.g. Google's access_type=offline
        for key, value in config.params:
            params[key] = value

        separator = "&" if urlsplit(config.authorize_url).query else "?"
        return f"{config.authorize_url}{separator}{urlencode(params)}"

    def verify_callback(self, callback_url: Union[str, URL], store: SecretStore) -> str:
        """Check the callback against the stored ``state`` and return the authorization code.

        The stored ``state`` is deleted before anything else, so it can never
        be replayed whatever the outcome.

        Raises:
            InvalidCallback: The callback lacks ``code`` or ``state``, or carries a provider error
            CsrfMismatch: The returned ``state`` differs from the stored one, or none was stored
        """
        policy = self._cookie_policy
        stored_state = store.pop(policy.state_cookie_name, path=policy.path)

        query = parse_qs(urlsplit(str(callback_url)).query, keep_blank_values=True)
        returned_state = query.get("state", [""])[0]
        code = query.get("code", [""])[0]

        if "error" in query:
            error = query["error"][0]
            error_description = query.get("error_description", [""])[0]
            logger.info(f"Provider returned an authorization error for client {self._config.client_id}: {error}")
            raise InvalidCallback(
                f"Authorization failed: {error}",
                error=error,
                error_description=error_description or None,
            )

        if not returned_state or not code:
            raise InvalidCallback()

        if not stored_state or not secrets.compare_digest(
            stored_state.encode("utf-8"), returned_state.encode("utf-8")
        ):
            logger.warning(f"State mismatch on callback for client {self._config.client_id}")
            raise CsrfMismatch()

        return code

    async def exchange_code_for_token(self, callback_url: Union[str, URL], store: SecretStore) -> TokenResult:
        """Verify the callback and exchange its authorization code for tokens.

        Raises:
            InvalidCallback: See :meth:`verify_callback`
            CsrfMismatch: See :meth:`verify_callback`
            MissingVerifier: PKCE is enabled and no code verifier is stored
            TokenExchangeFailed: The token endpoint failed or returned no access token
        """
        config = self._config
        policy = self._cookie_policy

        code_verifier = None
        try:
            code = self.verify_callback(callback_url, store)
        finally:
            if config.pkce:
                code_verifier = store.pop(policy.code_verifier_cookie_name, path=policy.path)

        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "code": code,
            "redirect_uri": config.redirect_uri,
            "grant_type": GrantType.AUTHORIZATION_CODE.value,
        }

        if config.pkce:
            if not code_verifier:
                raise MissingVerifier()
            data["code_verifier"] = code_verifier

        response = await self._post(config.token_url, data, TokenExchangeFailed)
        return self._token_result(response, TokenExchangeFailed)

    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Obtain new tokens with a refresh token.

        Uses the refresh endpoint when configured, the token endpoint otherwise.
        When the provider does not rotate the refresh token, the one sent is
        kept on the result.

        Raises:
            MissingRefreshToken: ``refresh_token`` is empty
            RefreshFailed: The endpoint failed or returned no access token
        """
        if not refresh_token:
            raise MissingRefreshToken()

        config = self._config
        if not config.refresh_token_url:
            logger.warning(
                f"No refresh endpoint configured for client {config.client_id}, using the token endpoint"
            )

        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "refresh_token": refresh_token,
            "grant_type": GrantType.REFRESH_TOKEN.value,
        }

        response = await self._post(config.refresh_endpoint, data, RefreshFailed)
        token = self._token_result(response, RefreshFailed)
        if token.refresh_token is None:
            token.refresh_token = refresh_token
        return token

    async def revoke_token(self, token: str, token_type_hint: Optional[str] = None) -> bool:
        """Revoke an access or refresh token at the provider.

        Raises:
            MissingToken: ``token`` is empty
            RevokeNotConfigured: The client has no revoke endpoint
            RevokeFailed: The endpoint answered with a non-2xx status
        """
        if not token:
            raise MissingToken()
        if not self._config.revoke_token_url:
            raise RevokeNotConfigured()

        data = {"token": token}
        if token_type_hint:
            data["token_type_hint"] = token_type_hint

        await self._post(self._config.revoke_token_url, data, RevokeFailed)
        return True

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
        }
        if self._config.use_basic_auth:
            credentials = encode_basic_credentials(self._config.client_id, self._config.client_secret)
            headers["Authorization"] = f"Basic {credentials}"
        return headers

    async def _post(self, url: str, data: Dict[str, str], failure: Type[ProviderError]) -> httpx.Response:
        headers = self._headers()
        logger.debug(f"POST {url} (grant_type={data.get('grant_type', '-')})")

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, data=data, headers=headers)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, data=data, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"{failure.default_message}: network error calling {url}: {e}")
            raise failure(f"Network error: {e}") from e

        if not response.is_success:
            logger.error(f"{failure.default_message}: HTTP {response.status_code} from {url}: {response.text}")
            raise failure(
                f"{failure.default_message}: HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        return response

    def _token_result(self, response: httpx.Response, failure: Type[ProviderError]) -> TokenResult:
        try:
            return parse_token_response(response.json())
        except ValueError as e:
            logger.error(f"{failure.default_message}: unusable token response: {e}")
            raise failure(
                f"{failure.default_message}: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e
