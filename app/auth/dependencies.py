# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# Supabase access tokens are verified with python-jose:
# - HS256 tokens with the legacy SUPABASE_JWT_SECRET
# - Asymmetric tokens (ES256/RS256) with keys from the project's JWKS,
#   cached for an hour
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser

logger = logging.getLogger(__name__)

# Missing headers are reported as 401 by get_current_user, not by HTTPBearer
security = HTTPBearer(auto_error=False)

JWT_AUDIENCE = "authenticated"
JWKS_CACHE_TTL = 3600  # 1 hour
ASYMMETRIC_ALGORITHMS = ("ES256", "RS256")

_jwks_cache: dict[str, Any] = {}
_jwks_cache_time: float = 0


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _jwks_url() -> str:
    return f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict[str, Any]:
    """Fetch the project's JWKS, serving a stale copy if the fetch fails."""
    global _jwks_cache, _jwks_cache_time

    now = time.time()
    if _jwks_cache and (now - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        response = httpx.get(_jwks_url(), timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = now
        logger.debug("Refreshed JWKS")
        return _jwks_cache
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        return _jwks_cache or {"keys": []}


def _shared_secret() -> tuple[str, str]:
    if not settings.SUPABASE_JWT_SECRET:
        logger.warning("Rejecting HS256 token: SUPABASE_JWT_SECRET is not configured")
        raise _unauthorized("Invalid token: HS256 tokens are not accepted")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def _get_signing_key(token: str) -> tuple[Any, str]:
    """
    Pick the verification key for a token from its header.

    Returns:
        (key, algorithm) for jwt.decode

    Raises:
        HTTPException: 401 when the token needs the shared secret and
            SUPABASE_JWT_SECRET is empty
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return _shared_secret()

    alg = header.get("alg", "HS256")
    kid = header.get("kid")

    if alg == "HS256":
        return _shared_secret()

    if kid and alg in ASYMMETRIC_ALGORITHMS:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"No JWKS key for alg={alg}, kid={kid}, falling back to HS256")
    return _shared_secret()


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and build the AuthUser.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or has no
            usable subject
    """
    try:
        signing_key, algorithm = _get_signing_key(token)
        payload = jwt.decode(token, signing_key, algorithms=[algorithm], audience=JWT_AUDIENCE)
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(f"Invalid token: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {user_id}")
        raise _unauthorized("Invalid token: malformed user ID")

    return AuthUser(id=user_uuid, email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """
    Extract and validate user from the Supabase JWT bearer token.

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing or invalid authorization header")

    user = decode_access_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[AuthUser]:
    """
    Optionally get the current user from JWT token.

    Returns None when no token is sent or the token is invalid.
    """
    if credentials is None:
        return None

    try:
        return decode_access_token(credentials.credentials)
    except HTTPException:
        return None
