"""Client configuration for FastAPI Authflow.

This module defines the immutable per-provider :class:`ClientConfig`, the
cookie attributes used for the pending authorization secrets
(:class:`CookiePolicy`), and loaders that build client configurations from
mappings or from JSON, YAML and TOML files.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

import toml
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from fastapi_authflow.consts import (
    CODE_VERIFIER_COOKIE_NAME,
    ENVIRONMENT_VARIABLE,
    FALLBACK_ENVIRONMENT_VARIABLE,
    PENDING_AUTHORIZATION_MAX_AGE,
    STATE_COOKIE_NAME,
)
from fastapi_authflow.errors import ConfigurationError
from fastapi_authflow.typing import ClientSource

logger = logging.getLogger(__name__)

ScopeDelimiter = Literal[" ", ",", ":"]

_DELIMITER_NAMES = {
    "space": " ",
    "comma": ",",
    "colon": ":",
}

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def is_production() -> bool:
    """Whether cookies should be flagged ``Secure``.

    Reads ``FASTAPI_AUTHFLOW_ENV``, falling back to ``ENVIRONMENT``.
    """
    environment = os.getenv(ENVIRONMENT_VARIABLE) or os.getenv(FALLBACK_ENVIRONMENT_VARIABLE, "")
    return environment.strip().lower() == "production"


class Scopes(BaseModel):
    """Scopes requested in the authorize URL and how they are joined."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    values: Tuple[str, ...] = ()
    delimiter: ScopeDelimiter = " "

    @field_validator("delimiter", mode="before")
    @classmethod
    def map_delimiter(cls, v):
        """Accept ``space``/``comma``/``colon`` as well as the characters themselves."""
        if v is None:
            return " "
        if isinstance(v, str) and v.lower() in _DELIMITER_NAMES:
            return _DELIMITER_NAMES[v.lower()]
        return v

    def join(self) -> str:
        return self.delimiter.join(self.values)

    def __bool__(self) -> bool:
        return bool(self.values)


class ClientConfig(BaseModel):
    """Immutable configuration of one identity provider client.

    Field names are snake_case; camelCase aliases (``clientId``,
    ``authorizeUrl``, ``redirectUri``...) are accepted as well.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    client_id: str = Field(min_length=1)
    client_secret: str = ""
    authorize_url: str
    token_url: str
    refresh_token_url: Optional[str] = None
    revoke_token_url: Optional[str] = None
    redirect_uri: str
    pkce: bool = False
    scopes: Scopes = Field(default_factory=Scopes)
    params: Tuple[Tuple[str, str], ...] = ()
    use_basic_auth: bool = False

    @field_validator("authorize_url", "token_url", "refresh_token_url", "revoke_token_url", "redirect_uri")
    @classmethod
    def validate_url(cls, v):
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"'{v}' is not an absolute http(s) URL")
        return v

    @field_validator("scopes", mode="before")
    @classmethod
    def coerce_scopes(cls, v):
        """Allow a bare list of scopes in place of a ``Scopes`` object."""
        if v is None:
            return Scopes()
        if isinstance(v, (list, tuple)):
            return {"values": v}
        return v

    @field_validator("params", mode="before")
    @classmethod
    def coerce_params(cls, v):
        """Normalize extra authorize parameters into ordered key/value pairs.

        Accepts a mapping, a list of single-entry mappings, or a list of
        ``(key, value)`` pairs.
        """
        if v is None:
            return ()
        if isinstance(v, Mapping):
            return tuple((str(key), str(value)) for key, value in v.items())
        if not isinstance(v, Sequence) or isinstance(v, (str, bytes)):
            raise ValueError("extra params must be a mapping or a list")
        pairs: List[Tuple[str, str]] = []
        for param in v:
            if isinstance(param, Mapping):
                if len(param) != 1:
                    raise ValueError("each extra param must hold exactly one key/value pair")
                [(key, value)] = param.items()
            elif isinstance(param, Sequence) and not isinstance(param, (str, bytes)) and len(param) == 2:
                key, value = param
            else:
                raise ValueError(f"extra param {param!r} is neither a single-entry mapping nor a (key, value) pair")
            pairs.append((str(key), str(value)))
        return tuple(pairs)

    @property
    def refresh_endpoint(self) -> str:
        return self.refresh_token_url or self.token_url


class CookiePolicy(BaseModel):
    """Attributes of the cookies holding the pending authorization secrets."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    state_cookie_name: str = STATE_COOKIE_NAME
    code_verifier_cookie_name: str = CODE_VERIFIER_COOKIE_NAME
    max_age: int = Field(default=PENDING_AUTHORIZATION_MAX_AGE, gt=0)
    path: str = "/"
    samesite: Literal["lax", "strict", "none"] = "lax"
    httponly: bool = True
    secure: bool = Field(default_factory=is_production)

    def cookie_options(self) -> Dict[str, Any]:
        return {
            "max_age": self.max_age,
            "path": self.path,
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
        }


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        def replace(match):
            name = match.group(1)
            if name not in os.environ:
                raise ConfigurationError(f"Environment variable '{name}' referenced in configuration is not set")
            return os.environ[name]
        return _ENV_REFERENCE.sub(replace, value)
    if isinstance(value, Mapping):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    return value


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    try:
        with open(path, "r", encoding="utf-8") as f:
            if suffix == ".json":
                data = json.load(f)
            elif suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".toml":
                data = toml.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration format: {suffix or path.name}")
    except (json.JSONDecodeError, yaml.YAMLError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{path} must contain a mapping of client names to configurations")
    logger.debug(f"Loaded OAuth client configuration from {path}")
    return dict(data)


def load_client_configs(source: ClientSource) -> Dict[str, ClientConfig]:
    """Build ``{client name: ClientConfig}`` from a mapping or a config file.

    The file format is chosen by suffix (``.json``, ``.yaml``/``.yml``,
    ``.toml``). Clients may sit at the top level or under a single top-level
    ``clients`` key.
    ``${VAR}`` references in string values are replaced with the value of the
    environment variable, so secrets can stay out of the file.

    Raises:
        ConfigurationError: If the source cannot be read or a client is invalid
    """
    if isinstance(source, (str, Path)):
        data = _read_config_file(Path(source))
    else:
        data = dict(source)

    clients = data
    if set(data) == {"clients"} and isinstance(data["clients"], Mapping):
        clients = data["clients"]

    configs: Dict[str, ClientConfig] = {}
    for name, raw in clients.items():
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Client names must be non-empty strings, got {name!r}")
        if isinstance(raw, ClientConfig):
            configs[name] = raw
            continue
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Configuration for client '{name}' must be a mapping")
        try:
            configs[name] = ClientConfig.model_validate(_expand_env(raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for client '{name}': {e}") from e
    return configs
