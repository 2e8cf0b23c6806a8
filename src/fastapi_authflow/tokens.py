"""Normalized token endpoint responses."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi_authflow.typing import JSONDict


@dataclass
class TokenResult:
    """Tokens returned by the provider's token endpoint.

    ``expires_at`` is derived from ``expires_in`` when the provider sent a
    relative lifetime, or from an absolute ``expires_at`` otherwise; it is
    ``None`` when neither could be read. ``raw`` holds the full payload, since
    providers add fields of their own.
    """
    access_token: str
    token_type: Optional[str] = None
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[float] = None
    expires_at: Optional[datetime] = None
    raw: JSONDict = field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the token has expired. Tokens without an expiry never do.

        A naive ``now`` is taken as UTC.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert token to dictionary format."""
        token_dict: Dict[str, Any] = {"access_token": self.access_token}

        if self.token_type is not None:
            token_dict["token_type"] = self.token_type
        if self.refresh_token is not None:
            token_dict["refresh_token"] = self.refresh_token
        if self.id_token is not None:
            token_dict["id_token"] = self.id_token
        if self.scope is not None:
            token_dict["scope"] = self.scope
        if self.expires_in is not None:
            token_dict["expires_in"] = self.expires_in
        if self.expires_at is not None:
            token_dict["expires_at"] = self.expires_at.isoformat()

        return token_dict


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_expires_in(value: Any) -> Optional[float]:
    """Return ``value`` as seconds if it is a positive finite number."""
    number = _as_number(value)
    if number is None or number <= 0:
        return None
    return number


def parse_expires_at(value: Any) -> Optional[datetime]:
    """Best-effort parse of an absolute expiry.

    Accepts epoch seconds (number or numeric string) and ISO-8601 strings,
    including a trailing ``Z``. Naive datetimes are taken as UTC. Anything
    unparseable yields ``None``.
    """
    number = _as_number(value)
    if number is not None:
        try:
            return datetime.fromtimestamp(number, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_token_response(payload: JSONDict, now: Optional[datetime] = None) -> TokenResult:
    """Build a :class:`TokenResult` from a token endpoint JSON payload.

    Raises:
        ValueError: If the payload has no usable ``access_token``
    """
    if not isinstance(payload, dict):
        raise ValueError("token response is not a JSON object")

    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise ValueError("token response has no access_token")

    now = now or datetime.now(timezone.utc)
    expires_in = parse_expires_in(payload.get("expires_in"))
    expires_at = None
    if expires_in is not None:
        try:
            expires_at = now + timedelta(seconds=expires_in)
        except OverflowError:
            expires_in = None
    if expires_at is None:
        expires_at = parse_expires_at(payload.get("expires_at"))

    return TokenResult(
        access_token=access_token,
        token_type=payload.get("token_type"),
        refresh_token=payload.get("refresh_token"),
        id_token=payload.get("id_token"),
        scope=payload.get("scope"),
        expires_in=expires_in,
        expires_at=expires_at,
        raw=dict(payload),
    )
