"""Ready-made client configurations for common identity providers."""

from typing import Any, List, Mapping, Optional

from fastapi_authflow.config import ClientConfig


def google_client(
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    scopes: Optional[List[str]] = None,
    offline: bool = False,
    **kwargs: Any,
) -> ClientConfig:
    """Create a client configuration for Google.

    Args:
        client_id: Google OAuth2 client ID
        client_secret: Google OAuth2 client secret
        redirect_uri: Authorized redirect URI
        scopes: OAuth2 scopes to request
        offline: Ask for a refresh token (``access_type=offline`` and ``prompt=consent``)

    Returns:
        ClientConfig for Google, with PKCE enabled
    """
    params: List[Any] = [("access_type", "offline"), ("prompt", "consent")] if offline else []
    extra_params = kwargs.pop("params", ())
    if isinstance(extra_params, Mapping):
        extra_params = extra_params.items()
    params.extend(extra_params)
    return ClientConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        revoke_token_url="https://oauth2.googleapis.com/revoke",
        redirect_uri=redirect_uri,
        pkce=kwargs.pop("pkce", True),
        scopes=scopes if scopes is not None else ["openid", "email", "profile"],
        params=params,
        **kwargs,
    )


def github_client(
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    scopes: Optional[List[str]] = None,
    **kwargs: Any,
) -> ClientConfig:
    """Create a client configuration for GitHub.

    GitHub revokes through its REST API rather than an OAuth endpoint, so no
    revoke URL is set.
    """
    return ClientConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        redirect_uri=redirect_uri,
        pkce=kwargs.pop("pkce", True),
        scopes=scopes if scopes is not None else ["user:email"],
        **kwargs,
    )


def microsoft_client(
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    tenant: str = "common",
    scopes: Optional[List[str]] = None,
    **kwargs: Any,
) -> ClientConfig:
    """Create a client configuration for the Microsoft identity platform.

    Args:
        tenant: Microsoft tenant ID or 'common' for multi-tenant
    """
    base_url = f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0"
    return ClientConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url=f"{base_url}/authorize",
        token_url=f"{base_url}/token",
        redirect_uri=redirect_uri,
        pkce=kwargs.pop("pkce", True),
        scopes=scopes if scopes is not None else ["openid", "profile", "email", "offline_access"],
        **kwargs,
    )
