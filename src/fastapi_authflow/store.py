"""Transient storage for the pending authorization secrets.

Between the authorize redirect and the callback, the ``state`` and the PKCE
code verifier must survive on the user's side of the flow. A
:class:`SecretStore` is the per-request handle used for that: the cookie
store keeps them in short-lived http-only cookies, the memory store keeps
them server side.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """Abstract per-request store for short-lived secrets."""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the stored value, or ``None`` if absent or expired."""
        pass

    @abstractmethod
    def set(
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        path: str = "/",
        httponly: bool = True,
        secure: bool = False,
        samesite: str = "lax",
    ) -> None:
        pass

    @abstractmethod
    def delete(self, name: str, *, path: str = "/") -> None:
        pass

    def pop(self, name: str, *, path: str = "/") -> Optional[str]:
        """Read a secret and delete it, whether or not it was present."""
        value = self.get(name)
        self.delete(name, path=path)
        return value


class CookieSecretStore(SecretStore):
    """Secret store backed by the request's cookies.

    Reads come from the incoming request. Writes and deletions are queued
    (later reads in the same request observe them) and written onto an
    outgoing response with :meth:`apply`, so they can target whatever
    response the route finally returns.
    """

    _DELETED = object()

    def __init__(self, request: Request):
        self.request = request
        self._values: Dict[str, object] = {}
        self._operations: List[Tuple[str, str, dict]] = []

    def get(self, name: str) -> Optional[str]:
        if name in self._values:
            value = self._values[name]
            return None if value is self._DELETED else value
        return self.request.cookies.get(name)

    def set(
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        path: str = "/",
        httponly: bool = True,
        secure: bool = False,
        samesite: str = "lax",
    ) -> None:
        self._values[name] = value
        self._operations.append(
            (
                "set",
                name,
                {
                    "value": value,
                    "max_age": max_age,
                    "path": path,
                    "httponly": httponly,
                    "secure": secure,
                    "samesite": samesite,
                },
            )
        )
        logger.debug(f"{name} cookie set")

    def delete(self, name: str, *, path: str = "/") -> None:
        self._values[name] = self._DELETED
        self._operations.append(("delete", name, {"path": path}))
        logger.debug(f"{name} cookie deleted")

    @property
    def pending_operations(self) -> int:
        return len(self._operations)

    def apply(self, response: Response) -> Response:
        """Write the queued cookie changes onto ``response`` and return it."""
        for operation, name, options in self._operations:
            if operation == "set":
                response.set_cookie(name, **options)
            else:
                response.delete_cookie(name, **options)
        self._operations.clear()
        return response


class MemorySecretStore(SecretStore):
    """In-memory secret store honouring ``max_age`` (for server-side sessions and testing)."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[name]
            return None
        return value

    def set(
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        path: str = "/",
        httponly: bool = True,
        secure: bool = False,
        samesite: str = "lax",
    ) -> None:
        self._entries[name] = (value, self._clock() + max_age)

    def delete(self, name: str, *, path: str = "/") -> None:
        self._entries.pop(name, None)

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [name for name, (_, expires_at) in self._entries.items() if now >= expires_at]
        for name in expired:
            del self._entries[name]
        return len(expired)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __len__(self) -> int:
        self.cleanup_expired()
        return len(self._entries)
