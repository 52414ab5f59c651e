"""
Supabase access
Service-role client plus FastAPI dependencies for the calling user
"""
import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request
from supabase import Client, create_client

from ..config import settings
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Create the shared service-role client on first use"""
    if not settings.supabase_configured:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    logger.info("Creating Supabase client")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_db() -> Client:
    """FastAPI dependency for the Supabase client"""
    try:
        return get_supabase_client()
    except ConfigurationError as e:
        logger.error(f"Database unavailable: {e}")
        raise HTTPException(status_code=500, detail="Database is not configured")


def get_optional_db() -> Optional[Client]:
    """Supabase client, or None when it is not configured"""
    try:
        return get_supabase_client()
    except ConfigurationError:
        return None


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _resolve_user(db: Client, token: str) -> Optional[Any]:
    try:
        response = db.auth.get_user(token)
    except Exception as e:
        logger.info(f"Rejected access token: {type(e).__name__}")
        return None
    return getattr(response, "user", None) if response else None


def get_current_user(request: Request, db: Client = Depends(get_db)) -> Any:
    """
    Resolve the Supabase user for the request's bearer token
    Raises:
        HTTPException 401 when the token is missing or invalid
    """
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = _resolve_user(db, token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_optional_user(request: Request, db: Optional[Client] = Depends(get_optional_db)) -> Optional[Any]:
    """Same as get_current_user but anonymous callers get None"""
    token = _bearer_token(request)
    if not token or db is None:
        return None
    return _resolve_user(db, token)
