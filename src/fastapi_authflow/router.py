"""FastAPI routes for the authorization code flow.

:func:`create_oauth_router` mounts a login and a callback endpoint per
registered client:

* ``GET {prefix}/{client_name}/login`` redirects to the provider with the
  pending authorization cookies set.
* ``GET {prefix}/{client_name}/callback`` verifies the callback, exchanges the
  code and hands the tokens to ``on_success`` (or returns them as JSON).

Cookie changes are written on error responses too, so a failed callback
(including a failing ``on_success``) still clears the pending authorization.
"""

import inspect
import logging
from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse, Response

from fastapi_authflow.errors import OAuthFlowError
from fastapi_authflow.registry import OAuthHandler
from fastapi_authflow.store import CookieSecretStore
from fastapi_authflow.typing import SuccessHandler

logger = logging.getLogger(__name__)


def create_oauth_router(
    handler: OAuthHandler,
    *,
    on_success: Optional[SuccessHandler] = None,
    prefix: str = "",
    tags: Optional[List[str]] = None,
) -> APIRouter:
    """Create an ``APIRouter`` serving login and callback endpoints.

    Args:
        handler: Registry of the clients to serve
        on_success: Called as ``on_success(client_name, token, request)`` after a
            successful exchange; may be async. A ``Response`` it returns is sent
            as is, anything else is JSON-encoded. If it raises, the client gets
            a 500 error document. Defaults to returning the token as JSON.
        prefix: Path prefix of the router
        tags: OpenAPI tags

    Returns:
        The configured router
    """
    router = APIRouter(prefix=prefix, tags=tags or ["oauth"])

    @router.get("/{client_name}/login", name="oauth_login")
    async def login(client_name: str, request: Request) -> Response:
        store = CookieSecretStore(request)
        try:
            authorize_url = handler.get(client_name).generate_authorize_url(store)
        except OAuthFlowError as e:
            return e.to_http_response()
        logger.info(f"Redirecting to {client_name} for authorization")
        return store.apply(RedirectResponse(authorize_url))

    @router.get("/{client_name}/callback", name="oauth_callback")
    async def callback(client_name: str, request: Request) -> Response:
        store = CookieSecretStore(request)
        try:
            token = await handler.get(client_name).exchange_code_for_token(request.url, store)
        except OAuthFlowError as e:
            logger.info(f"OAuth callback for {client_name} failed: {e.error_code}")
            return store.apply(e.to_http_response())

        if on_success is None:
            return store.apply(JSONResponse(token.to_dict()))

        try:
            result = on_success(client_name, token, request)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception(f"on_success handler failed for {client_name}")
            return store.apply(OAuthFlowError("Sign-in could not be completed").to_http_response())
        if not isinstance(result, Response):
            result = JSONResponse(jsonable_encoder(result))
        return store.apply(result)

    return router
