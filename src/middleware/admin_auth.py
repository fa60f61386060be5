"""Bearer-token authentication for directory users and admins."""

import os
import logging
from typing import List, Optional

import jwt
from fastapi import HTTPException, Request

from src.domain.models.audit_models import RequestContext

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def get_jwt_secret_key() -> str:
    """Get JWT secret key from environment variables."""
    secret_key = os.getenv("JWT_SECRET_KEY")

    if not secret_key:
        logger.warning("⚠️ JWT_SECRET_KEY not set, using fallback (NOT SECURE FOR PRODUCTION)")
        secret_key = "dev-secret-key-CHANGE-IN-PRODUCTION"

    return secret_key


def get_admin_emails() -> List[str]:
    """Lower-cased admin allowlist from ADMIN_EMAILS (comma-separated)."""
    raw = os.getenv("ADMIN_EMAILS", "")
    return [email.strip().lower() for email in raw.split(",") if email.strip()]


def decode_access_token(token: str) -> dict:
    """
    Decode and validate an HS256 access token.

    Args:
        token: JWT token string

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            get_jwt_secret_key(),
            algorithms=[JWT_ALGORITHM],
            options={"verify_signature": True, "verify_exp": True, "require": ["exp"]}
        )
    except jwt.ExpiredSignatureError:
        logger.error("❌ JWT expired")
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.error(f"❌ Invalid JWT: {str(e)}")
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    if not payload.get("email"):
        raise HTTPException(status_code=401, detail="Token has no email claim")

    return payload


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract client IP from request headers.

    Checks X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Please provide a valid JWT token in Authorization header."
        )
    return auth_header[len("Bearer "):]


async def require_user(request: Request) -> RequestContext:
    """FastAPI dependency: any holder of a valid token."""
    payload = decode_access_token(_bearer_token(request))
    return RequestContext(
        admin_email=payload["email"].lower(),
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent")
    )


async def require_admin(request: Request) -> RequestContext:
    """FastAPI dependency: a valid token whose email is on the admin allowlist."""
    ctx = await require_user(request)

    if ctx.admin_email not in get_admin_emails():
        logger.warning(f"⚠️ Admin access denied for {ctx.admin_email}")
        raise HTTPException(status_code=403, detail="Admin access required")

    return ctx
