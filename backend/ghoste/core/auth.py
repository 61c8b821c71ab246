"""Supabase JWT authentication for FastAPI."""

from dataclasses import dataclass

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ghoste.core.config import get_settings

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthUser:
    """Authenticated user extracted from a Supabase access token."""

    user_id: str
    claims: dict

    @property
    def email(self) -> str | None:
        return self.claims.get("email")


def decode_supabase_jwt(token: str) -> AuthUser:
    """Verify and decode a Supabase access token (HS256, project JWT secret).

    Raises ``HTTPException(401)`` on any validation failure and
    ``HTTPException(500)`` when the secret is not configured.
    """
    settings = get_settings()
    if not settings.supabase_jwt_secret:
        raise HTTPException(status_code=500, detail="Authentication is misconfigured")

    try:
        payload = pyjwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience or None,
            options={
                "verify_exp": True,
                "verify_aud": bool(settings.supabase_jwt_audience),
                "require": ["sub", "exp"],
            },
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidAudienceError:
        raise HTTPException(status_code=401, detail="Unauthorized audience (aud mismatch)")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    return AuthUser(user_id=sub, claims=payload)


async def optional_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthUser | None:
    """Resolve the caller if a bearer token is present, else ``None``.

    An invalid token still fails with 401; only a missing header yields ``None``.
    """
    if credentials is None:
        return None

    user = decode_supabase_jwt(credentials.credentials)
    request.state.user_id = user.user_id
    return user


async def require_auth(user: AuthUser | None = Depends(optional_auth)) -> AuthUser:
    """FastAPI dependency that requires a valid Supabase session.

    Usage::

        @router.get("/protected")
        async def protected(user: AuthUser = Depends(require_auth)):
            ...
    """
    if user is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    return user
