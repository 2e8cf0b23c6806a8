STATE_COOKIE_NAME = "oauth_state"
"""Cookie holding the anti-CSRF `state` between the authorize redirect and the callback"""

CODE_VERIFIER_COOKIE_NAME = "oauth_code_verifier"
"""Cookie holding the PKCE `code_verifier` between the authorize redirect and the callback"""

PENDING_AUTHORIZATION_MAX_AGE = 10 * 60
"""Lifetime in seconds of the pending-authorization cookies"""

CODE_CHALLENGE_METHOD_S256 = "S256"

RESPONSE_TYPE_CODE = "code"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

JSON_CONTENT_TYPE = "application/json"

ENVIRONMENT_VARIABLE = "FASTAPI_AUTHFLOW_ENV"
"""Environment variable consulted to decide whether cookies must be `Secure`"""

FALLBACK_ENVIRONMENT_VARIABLE = "ENVIRONMENT"
