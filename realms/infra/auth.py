"""Bearer-token identity issued by the external auth provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException

from realms.infra.config import settings
from realms.infra.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: str | None = None
    name: str | None = None


def decode_token(token: str) -> AuthUser:
    options = {"require": ["sub"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False
    claims = jwt.decode(
        token,
        settings.jwt_secret.get_secret_value(),
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options=options,
    )
    metadata = claims.get("user_metadata") or {}
    return AuthUser(
        uid=str(claims["sub"]),
        email=claims.get("email"),
        name=metadata.get("full_name") or metadata.get("name"),
    )


def issue_token(uid: str, **claims) -> str:
    """Mint a token the way the auth provider does (local tooling and tests)."""
    payload = {"sub": uid, **claims}
    if settings.jwt_audience is not None:
        payload.setdefault("aud", settings.jwt_audience)
    return jwt.encode(payload, settings.jwt_secret.get_secret_value(),
                      algorithm=settings.jwt_algorithm)


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> AuthUser | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        return decode_token(token)
    except jwt.PyJWTError as exc:
        logger.info("token_rejected", error=str(exc))
        return None


async def get_current_user(
    user: Annotated[AuthUser | None, Depends(get_optional_user)],
) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthUser | None, Depends(get_optional_user)]
