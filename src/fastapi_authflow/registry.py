"""Name to client lookup."""

import logging
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

import httpx

from fastapi_authflow.config import ClientConfig, CookiePolicy, load_client_configs
from fastapi_authflow.errors import ClientNotFound
from fastapi_authflow.instance import OAuthInstance
from fastapi_authflow.typing import ClientSource

logger = logging.getLogger(__name__)


class OAuthHandler:
    """Read-only registry of configured OAuth clients.

    Built once at startup from a mapping of client name to
    :class:`ClientConfig` (or raw configuration mappings), or from a
    configuration file path, then shared by all requests. :meth:`get` hands
    out an :class:`OAuthInstance` bound to the registered configuration.

    Usage:
        ```python
        oauth = OAuthHandler({
            "github": github_client(client_id=..., client_secret=..., redirect_uri=...),
        })

        @app.get("/login")
        def login(request: Request):
            store = CookieSecretStore(request)
            url = oauth.get("github").generate_authorize_url(store)
            return store.apply(RedirectResponse(url))
        ```
    """

    def __init__(
        self,
        clients: ClientSource,
        http_client: Optional[httpx.AsyncClient] = None,
        cookie_policy: Optional[CookiePolicy] = None,
    ):
        self._clients: Mapping[str, ClientConfig] = MappingProxyType(load_client_configs(clients))
        self._http_client = http_client
        self._cookie_policy = cookie_policy or CookiePolicy()
        logger.debug(f"Registered OAuth clients: {', '.join(self._clients) or '(none)'}")

    def get(self, client_name: str) -> OAuthInstance:
        """Return an instance bound to the client registered as ``client_name``.

        Raises:
            ClientNotFound: If no such client is registered
        """
        config = self._clients.get(client_name)
        if config is None:
            raise ClientNotFound(client_name)
        return OAuthInstance(config, http_client=self._http_client, cookie_policy=self._cookie_policy)

    @property
    def clients(self) -> Mapping[str, ClientConfig]:
        return self._clients

    def __contains__(self, client_name: object) -> bool:
        return client_name in self._clients

    def __iter__(self) -> Iterator[str]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)
