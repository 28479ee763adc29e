"""Bearer-token check guarding the hook management API."""

import hmac
from typing import Optional

from ..logging_config import logger


def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def verify_api_token(authorization_header: Optional[str], expected_token: str) -> bool:
    """Constant-time comparison of the presented bearer token against the configured one."""
    token = extract_bearer_token(authorization_header)
    if token is None:
        logger.warning("Missing or malformed Authorization header")
        return False

    is_valid = hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8"))
    if not is_valid:
        logger.warning("API token verification failed")
    return is_valid
