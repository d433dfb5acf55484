"""Account API: the caller's profile and username."""

from __future__ import annotations

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import accounts
from realms.infra.auth import CurrentUser, OptionalUser
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.infra.rate_limit import rate_limited, strict_limiter
from realms.models.db_models import UserProfile
from realms.models.schemas import ProfileCreate, ProfileUpdate, UsernameChange

logger = get_logger(__name__)

router = APIRouter(prefix="/api/account", tags=["account"])


def _profile_out(profile: UserProfile) -> dict:
    role = accounts.get_effective_role(profile.role, profile.id)
    return {
        "id": profile.id,
        "email": profile.email,
        "username": profile.username,
        "displayName": profile.display_name,
        "photoUrl": profile.photo_url,
        "role": role,
        "limits": asdict(accounts.get_limits_for_role(role)),
        "lastUsernameChange": (
            profile.last_username_change.isoformat() if profile.last_username_change else None
        ),
        "createdAt": profile.created_at.isoformat() if profile.created_at else None,
    }


@router.get("")
async def get_account(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    profile = await accounts.ensure_profile(db, user.uid, user.email, user.name)
    return _profile_out(profile)


@router.post("")
async def create_account(
    body: ProfileCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Create the profile, optionally claiming a username up front.

    For an existing profile a new username is a rename and obeys the
    same weekly limit as ``POST /username``.
    """
    existing = await accounts.get_profile(db, user.uid)
    if existing is not None and body.username:
        if body.username.strip().lower() != (existing.username or ""):
            admin = await accounts.is_admin(db, user.uid)
            try:
                await accounts.change_username(db, user.uid, body.username, admin=admin)
            except ValueError as e:
                logger.info("username_change_rejected", uid=user.uid, error=str(e))
                raise HTTPException(status_code=400, detail=str(e))

    username = None
    if existing is None and body.username:
        try:
            username = accounts.validate_username(body.username)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not await accounts.check_username_available(db, username, uid=user.uid):
            raise HTTPException(status_code=400, detail="This username is already taken")
    profile = await accounts.create_user_profile(
        db, user.uid, user.email, username=username,
        display_name=body.display_name or user.name,
    )
    return _profile_out(profile)


@router.patch("")
async def update_account(
    body: ProfileUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    profile = await accounts.update_profile(db, user.uid, body.display_name)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _profile_out(profile)


@router.delete("")
async def delete_account(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await accounts.delete_account(db, user.uid):
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"ok": True}


@router.get("/username/available")
async def username_available(
    username: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: OptionalUser,
) -> dict:
    uid = user.uid if user else None
    return {"available": await accounts.check_username_available(db, username, uid=uid)}


@router.post(
    "/username",
    dependencies=[Depends(rate_limited(strict_limiter, "username"))],
)
async def change_username(
    body: UsernameChange,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    admin = await accounts.is_admin(db, user.uid)
    try:
        profile = await accounts.change_username(db, user.uid, body.username, admin=admin)
    except ValueError as e:
        logger.info("username_change_rejected", uid=user.uid, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "username": profile.username}
