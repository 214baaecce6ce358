"""
Clerk authentication for the tagging API.

Every tag and item route is scoped to the user id taken from a verified
Clerk JWT, so one user's vocabulary is never visible to another.
"""

import logging
from functools import wraps
from typing import Any

import requests
from flask import current_app, g, jsonify, request
from jose import jwt
from jose.exceptions import JWTError

from .config import config

logger = logging.getLogger(__name__)

# Cache for JWKS
_jwks_cache: dict[str, Any] | None = None


def get_jwks() -> dict[str, Any]:
    """
    Fetch Clerk's JSON Web Key Set (JWKS) for JWT verification.

    Returns:
        JWKS dictionary
    """
    global _jwks_cache

    if _jwks_cache is not None:
        return _jwks_cache

    jwks_url = f"https://{config.CLERK_DOMAIN}/.well-known/jwks.json"
    try:
        response = requests.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        return _jwks_cache
    except requests.RequestException as e:
        logger.error("Error fetching JWKS from %s: %s", jwks_url, e)
        raise


def verify_clerk_token(token: str) -> dict[str, Any] | None:
    """
    Verify a Clerk JWT token.

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        jwks = get_jwks()

        kid = jwt.get_unverified_header(token).get("kid")
        if not kid:
            return None

        key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
        if not key:
            logger.warning("Key %s not found in JWKS", kid)
            return None

        return jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            options={
                "verify_aud": False,  # Clerk doesn't use aud claim by default
                "verify_iss": True,
            },
            issuer=f"https://{config.CLERK_DOMAIN}",
        )

    except JWTError as e:
        logger.info("JWT verification failed: %s", e)
        return None
    except requests.RequestException:
        return None


def get_auth_token() -> str | None:
    """
    Extract bearer token from Authorization header.

    Returns:
        Token string if present, None otherwise
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    return auth_header[7:] or None


def require_auth(f):
    """
    Decorator to require authentication for a Flask route.

    Sets g.user (token payload) and g.user_id (Clerk "sub").
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # TESTING seam: allow deterministic auth without external JWKS/network.
        if current_app.config.get("TESTING") is True:
            test_user_id = request.headers.get("X-Test-User-Id")
            if test_user_id:
                g.user = {"sub": test_user_id}
                g.user_id = test_user_id
                return f(*args, **kwargs)

        token = get_auth_token()
        if not token:
            return jsonify({"error": "Missing authentication token"}), 401

        payload = verify_clerk_token(token)
        if not payload or not payload.get("sub"):
            return jsonify({"error": "Invalid authentication token"}), 401

        g.user = payload
        g.user_id = payload["sub"]

        return f(*args, **kwargs)

    return decorated_function
