"""Exceptions raised by FastAPI Authflow.

Every failure of the authorization code flow surfaces as a subclass of
:class:`OAuthFlowError`. Each error carries a stable ``error_code``, the HTTP
status a web handler should answer with, and can render itself as a
``JSONResponse``. Nothing in the library retries or recovers from these; the
caller decides whether to re-authenticate the user, retry, or report.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class OAuthFlowError(Exception):
    """Base class for all authorization code flow errors."""

    error_code = "oauth_error"
    http_status_code = 500
    default_message = "OAuth flow failed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error into an OAuth2-style error document."""
        error = {
            "error": self.error_code,
            "error_description": self.message,
        }
        if self.details:
            error["details"] = self.details
        return error

    def to_http_response(self) -> JSONResponse:
        """Convert to HTTP response."""
        return JSONResponse(status_code=self.http_status_code, content=self.to_dict())


class ConfigurationError(OAuthFlowError):
    """Client configuration could not be loaded or validated."""

    error_code = "configuration_error"
    default_message = "Invalid OAuth client configuration"


class ClientNotFound(OAuthFlowError):
    """No client is registered under the requested name."""

    error_code = "client_not_found"
    http_status_code = 404

    def __init__(self, client_name: str):
        self.client_name = client_name
        super().__init__(f'Client "{client_name}" not found.', client_name=client_name)


class GeneratorFailure(OAuthFlowError):
    """The cryptographically secure random source is unavailable.

    This is fatal: an authorize URL must never be produced without a fresh
    ``state``.
    """

    error_code = "generator_failure"
    default_message = "Secure random source unavailable"


class InvalidCallback(OAuthFlowError):
    """The callback URL is missing ``code``/``state`` or carries a provider error."""

    error_code = "invalid_callback"
    http_status_code = 400
    default_message = "Invalid callback URL: missing code or state"


class CsrfMismatch(OAuthFlowError):
    """The returned ``state`` does not match the stored one, or none was stored."""

    error_code = "csrf_mismatch"
    http_status_code = 400
    default_message = "Invalid state parameter - possible CSRF attack"


class MissingVerifier(OAuthFlowError):
    """PKCE is enabled but no code verifier was found at exchange time."""

    error_code = "missing_verifier"
    http_status_code = 400
    default_message = "Code verifier not found"


class MissingRefreshToken(OAuthFlowError):
    error_code = "missing_refresh_token"
    http_status_code = 400
    default_message = "A refresh token is required"


class MissingToken(OAuthFlowError):
    error_code = "missing_token"
    http_status_code = 400
    default_message = "A token is required"


class RevokeNotConfigured(OAuthFlowError):
    """The client has no revocation endpoint."""

    error_code = "revoke_not_configured"
    default_message = "No revoke endpoint configured for this client"


class ProviderError(OAuthFlowError):
    """The identity provider answered with a non-2xx status or an unusable body.

    ``status_code`` is ``None`` when the request never got a response
    (connection refused, timeout, ...). ``body`` is the raw response text,
    kept for diagnostics.
    """

    error_code = "provider_error"
    http_status_code = 502

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        # body is never serialized into the HTTP error document
        super().__init__(message, status_code=status_code)


class TokenExchangeFailed(ProviderError):
    error_code = "token_exchange_failed"
    default_message = "Failed to exchange code for token"


class RefreshFailed(ProviderError):
    error_code = "refresh_failed"
    default_message = "Failed to refresh token"


class RevokeFailed(ProviderError):
    error_code = "revoke_failed"
    default_message = "Failed to revoke token"


def register_exception_handlers(app) -> None:
    """Answer every :class:`OAuthFlowError` raised by a route with its JSON form."""

    async def _handle_oauth_flow_error(request, exc: OAuthFlowError) -> JSONResponse:
        return exc.to_http_response()

    app.add_exception_handler(OAuthFlowError, _handle_oauth_flow_error)
