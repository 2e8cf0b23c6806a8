"""Secret generation for the authorization code flow.

Produces the anti-CSRF ``state`` and the PKCE (RFC 7636) code verifier and
challenge, and encodes client credentials for HTTP Basic authentication.
All randomness comes from :mod:`secrets`.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from fastapi_authflow.consts import CODE_CHALLENGE_METHOD_S256
from fastapi_authflow.errors import GeneratorFailure

STATE_BYTES = 32
CODE_VERIFIER_BYTES = 32


@dataclass(frozen=True)
class PKCEPair:
    """PKCE code verifier and challenge pair."""
    verifier: str
    challenge: str
    method: str = CODE_CHALLENGE_METHOD_S256


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _random_bytes(length: int) -> bytes:
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise GeneratorFailure(f"Secure random source unavailable: {e}") from e


def generate_state() -> str:
    """Generate a cryptographically random state parameter.

    Returns:
        256 bits of randomness as a lowercase hex string
    """
    return _random_bytes(STATE_BYTES).hex()


def generate_code_verifier() -> str:
    """Generate a cryptographically random PKCE code verifier.

    Returns:
        256 bits of randomness, base64url-encoded without padding (43 characters)
    """
    return _base64url(_random_bytes(CODE_VERIFIER_BYTES))


def generate_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge from a code verifier.

    Args:
        code_verifier: The code verifier string

    Returns:
        base64url(sha256(code_verifier)) without padding
    """
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    return _base64url(digest)


def generate_pkce_pair() -> PKCEPair:
    """Generate a complete PKCE code verifier/challenge pair."""
    verifier = generate_code_verifier()
    return PKCEPair(verifier=verifier, challenge=generate_code_challenge(verifier))


def encode_basic_credentials(client_id: str, client_secret: str) -> str:
    """Encode ``client_id:client_secret`` for an ``Authorization: Basic`` header."""
    credentials = f"{client_id}:{client_secret}".encode("utf-8")
    return base64.b64encode(credentials).decode("ascii")
