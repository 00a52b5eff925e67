"""
Bearer-token validation for admin routes.

The back office sends one of two credentials in the Authorization header:

    Authorization: Bearer <token>

- the shared admin key (ADMIN_API_KEY, prefixed "adm_") used by scripts and cron jobs
- an HS256-signed NextAuth session JWT whose "email" claim matches ADMIN_EMAIL
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from shared.config import ADMIN_API_KEY, ADMIN_EMAIL, NEXTAUTH_SECRET

API_KEY_PREFIX = "adm_"
API_KEY_IDENTITY = "admin-key"

_security = HTTPBearer()


def _rejected(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _misconfigured(setting: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{setting} not configured",
    )


def _api_key_identity(token: str) -> str:
    if not ADMIN_API_KEY:
        raise _misconfigured("ADMIN_API_KEY")
    if token != ADMIN_API_KEY:
        raise _rejected("Invalid API key")
    return API_KEY_IDENTITY


def _session_email(token: str) -> str:
    if not NEXTAUTH_SECRET:
        raise _misconfigured("NEXTAUTH_SECRET")
    try:
        claims = jwt.decode(token, NEXTAUTH_SECRET, algorithms=["HS256"])
    except ExpiredSignatureError:
        raise _rejected("Token expired")
    except JWTError:
        raise _rejected("Invalid token")

    email = claims.get("email") or ""
    if email.lower() != ADMIN_EMAIL.lower():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an admin account")
    return email


def verify_admin_token(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> str:
    """Dependency on every admin route. Returns the admin email, or "admin-key" for scripts."""
    token = credentials.credentials
    if token.startswith(API_KEY_PREFIX):
        return _api_key_identity(token)
    return _session_email(token)
