"""Tests for the client registry."""

import pytest

from fastapi_authflow.config import CookiePolicy
from fastapi_authflow.errors import ClientNotFound, ConfigurationError
from fastapi_authflow.instance import OAuthInstance
from fastapi_authflow.registry import OAuthHandler

from tests.mocks.oauth_mocks import AUTHORIZE_URL, REDIRECT_URI, TOKEN_URL, MockProvider, create_client_config


class TestOAuthHandler:
    """Test lookup of configured clients."""

    def test_get_returns_bound_instance(self):
        config = create_client_config()
        handler = OAuthHandler({"test": config})

        instance = handler.get("test")

        assert isinstance(instance, OAuthInstance)
        assert instance.config is config

    def test_unknown_client(self):
        handler = OAuthHandler({"test": create_client_config()})

        with pytest.raises(ClientNotFound) as exc_info:
            handler.get("unknown")

        assert exc_info.value.message == 'Client "unknown" not found.'
        assert exc_info.value.http_status_code == 404

    def test_raw_mappings_are_validated(self):
        handler = OAuthHandler(
            {
                "example": {
                    "clientId": "raw-client",
                    "authorizeUrl": AUTHORIZE_URL,
                    "tokenUrl": TOKEN_URL,
                    "redirectUri": REDIRECT_URI,
                }
            }
        )

        assert handler.get("example").config.client_id == "raw-client"

    def test_invalid_mapping_fails_at_construction(self):
        with pytest.raises(ConfigurationError):
            OAuthHandler({"example": {"client_id": "raw-client"}})

    def test_registry_is_read_only(self):
        handler = OAuthHandler({"test": create_client_config()})

        with pytest.raises(TypeError):
            handler.clients["other"] = create_client_config()

    def test_source_mapping_changes_do_not_leak(self):
        clients = {"test": create_client_config()}
        handler = OAuthHandler(clients)

        clients["other"] = create_client_config()

        assert "other" not in handler
        assert len(handler) == 1

    def test_container_protocol(self):
        handler = OAuthHandler({"a": create_client_config(), "b": create_client_config(client_id="b")})

        assert "a" in handler
        assert "c" not in handler
        assert list(handler) == ["a", "b"]
        assert len(handler) == 2

    def test_shared_client_and_policy(self):
        provider = MockProvider()
        http_client = provider.client()
        policy = CookiePolicy(max_age=120, secure=False)
        handler = OAuthHandler({"test": create_client_config()}, http_client=http_client, cookie_policy=policy)

        instance = handler.get("test")

        assert instance.cookie_policy is policy
        assert instance._http_client is http_client

    def test_empty_registry(self):
        handler = OAuthHandler({})

        assert len(handler) == 0
        with pytest.raises(ClientNotFound):
            handler.get("anything")

    def test_from_config_file(self, tmp_path):
        path = tmp_path / "clients.yaml"
        path.write_text(
            "clients:\n"
            "  example:\n"
            "    client_id: file-client\n"
            f"    authorize_url: {AUTHORIZE_URL}\n"
            f"    token_url: {TOKEN_URL}\n"
            f"    redirect_uri: {REDIRECT_URI}\n"
        )

        handler = OAuthHandler(str(path))

        assert handler.get("example").config.client_id == "file-client"
