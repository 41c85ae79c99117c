"""
JWT Verification & Scope Enforcement

The operator API (indexing and question endpoints) is protected by short
lived HS256 JWTs signed with `JWT_SECRET`. This module:

1. Verifies incoming bearer tokens.
2. Enforces scope-based authorization rules.
3. Produces a validated `ApiCaller` for downstream routes.

Slack's own callbacks are not authenticated here; they are verified with
the Slack signing secret in the events route.
"""

from __future__ import annotations

import jwt
from typing import Annotated, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..config import Settings, get_settings
from .models import ApiCaller


# ---------------------------------------------------------------------
# Security Scheme
# ---------------------------------------------------------------------

security = HTTPBearer(auto_error=True)


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class JWTVerificationError(RuntimeError):
    """Raised internally when token verification cannot be attempted."""


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------

def _decode_token(token: str, settings: Settings) -> dict:
    """
    Decode and validate an operator JWT.

    Raises
    ------
    JWTVerificationError if no secret is configured, otherwise the
    PyJWT exceptions, which the public wrapper handles.
    """
    if not settings.jwt_secret:
        raise JWTVerificationError("Missing JWT_SECRET in configuration.")

    return jwt.decode(
        token,
        settings.jwt_secret.get_secret_value(),
        algorithms=[settings.jwt_algo],
        audience=settings.jwt_audience,
        options={
            "require": ["sub", "aud", "exp", "scope"],
        },
    )


# ---------------------------------------------------------------------
# Public Authentication Dependency
# ---------------------------------------------------------------------

def verify_api_jwt(
    creds: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiCaller:
    """
    Verify a bearer JWT and construct an ApiCaller.

    Expected claims:
      - sub: caller identity
      - aud: configured JWT audience
      - exp: expiry
      - scope: list of granted operations

    Raises
    ------
    HTTPException(401) for invalid or expired tokens.
    """
    try:
        payload = _decode_token(creds.credentials, settings)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired.",
        )
    except jwt.InvalidAudienceError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience.",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or malformed token.",
        )
    except JWTVerificationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT verification configuration error.",
        )

    scopes = payload.get("scope")
    if not isinstance(scopes, list):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="'scope' claim must be a list.",
        )

    return ApiCaller(subject=payload["sub"], scopes=scopes)


# ---------------------------------------------------------------------
# Scope enforcement helper
# ---------------------------------------------------------------------

def require_scopes(*required_scopes: str) -> Callable:
    """
    Create a FastAPI dependency that enforces scope-based access control.

    Example:
        @router.post("/ask")
        async def ask(caller = Depends(require_scopes("ask"))):
            ...
    """

    def check_scopes(
        caller: Annotated[ApiCaller, Depends(verify_api_jwt)],
    ) -> ApiCaller:

        missing = [s for s in required_scopes if s not in caller.scopes]

        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scope(s): {', '.join(missing)}",
            )

        return caller

    return check_scopes
