"""User profiles, usernames and role limits."""

from __future__ import annotations

import math
import random
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain.errors import LimitExceededError
from realms.infra.config import settings
from realms.infra.logging import get_logger
from realms.models.db_models import (
    Campaign,
    Character,
    Encounter,
    UserCreature,
    UserItem,
    UserPower,
    UserProfile,
    UsernameLookup,
    UserTechnique,
)

logger = get_logger(__name__)

USERNAME_BLOCKLIST = (
    "admin", "moderator", "support", "realmsrpg", "realms", "official",
    "null", "undefined", "delete", "remove", "system", "root",
)
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 24
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
USERNAME_CHANGE_DAYS = 7

ROLES = ("new_player", "playtester", "developer", "admin")
# Admin comes from REALMS_ADMIN_UIDS only.
ASSIGNABLE_ROLES = ("new_player", "playtester", "developer")


@dataclass(frozen=True)
class RoleLimits:
    max_characters: int
    max_powers: int
    max_techniques: int
    max_armaments: int
    max_creatures: int
    max_campaigns: int
    max_players_per_campaign: int
    can_upload_profile_picture: bool


ROLE_LIMITS: dict[str, RoleLimits] = {
    "new_player": RoleLimits(3, 20, 20, 15, 10, 1, 5, False),
    "playtester": RoleLimits(6, 35, 35, 25, 25, 3, 7, True),
    "developer": RoleLimits(15, 100, 100, 80, 100, 8, 12, True),
    "admin": RoleLimits(9999, 9999, 9999, 9999, 9999, 9999, 9999, True),
}


def get_limits_for_role(role: str | None) -> RoleLimits:
    return ROLE_LIMITS.get(role or "new_player", ROLE_LIMITS["new_player"])


def get_effective_role(role: str | None, uid: str | None) -> str:
    if uid and uid in settings.admin_uids:
        return "admin"
    return role or "new_player"


async def get_profile(db: AsyncSession, uid: str) -> UserProfile | None:
    return await db.get(UserProfile, uid)


async def get_role(db: AsyncSession, uid: str) -> str:
    profile = await get_profile(db, uid)
    return get_effective_role(profile.role if profile else None, uid)


async def is_admin(db: AsyncSession, uid: str) -> bool:
    return await get_role(db, uid) == "admin"


async def get_limits(db: AsyncSession, uid: str) -> RoleLimits:
    return get_limits_for_role(await get_role(db, uid))


async def check_limit(db: AsyncSession, uid: str, model, limit: int, label: str) -> None:
    """Raise LimitExceededError when ``uid`` already owns ``limit`` rows of ``model``."""
    owner_col = model.owner_id if model is Campaign else model.user_id
    count = await db.scalar(select(func.count()).select_from(model).where(owner_col == uid))
    if (count or 0) >= limit:
        raise LimitExceededError(
            f"You have reached the maximum of {limit} {label} for your role"
        )


# --- Profiles ---


async def generate_default_username(db: AsyncSession) -> str:
    for _ in range(20):
        candidate = f"player{random.randint(100000, 999999)}"
        if await db.get(UsernameLookup, candidate) is None:
            return candidate
    return f"player{int(datetime.now(timezone.utc).timestamp() * 1000):x}"


async def create_user_profile(
    db: AsyncSession,
    uid: str,
    email: str | None,
    username: str | None = None,
    display_name: str | None = None,
) -> UserProfile:
    """Create the profile of ``uid`` together with its username lookup row.

    An existing profile only has its email and display name refreshed;
    renames go through ``change_username``.
    """
    profile = await get_profile(db, uid)
    if profile is not None:
        if email:
            profile.email = email
        if display_name is not None:
            profile.display_name = display_name
        await db.flush()
        return profile

    username = (username or "").strip() or await generate_default_username(db)
    normalized = username.lower()
    profile = UserProfile(id=uid, email=email, display_name=display_name, username=normalized)
    db.add(profile)
    await db.flush()

    lookup = await db.get(UsernameLookup, normalized)
    if lookup is None:
        db.add(UsernameLookup(username=normalized, user_id=uid))
    else:
        lookup.user_id = uid
    await db.flush()
    logger.info("profile_created", uid=uid, username=normalized)
    return profile


async def ensure_profile(db: AsyncSession, uid: str, email: str | None = None,
                         display_name: str | None = None) -> UserProfile:
    profile = await get_profile(db, uid)
    if profile is not None:
        return profile
    return await create_user_profile(db, uid, email, display_name=display_name)


async def update_profile(db: AsyncSession, uid: str, display_name: str | None) -> UserProfile | None:
    profile = await get_profile(db, uid)
    if profile is None:
        return None
    if display_name is not None:
        profile.display_name = display_name
    await db.flush()
    return profile


# --- Usernames ---


async def check_username_available(db: AsyncSession, username: str, uid: str | None = None) -> bool:
    """False when another user holds ``username``; the profile of ``uid`` is ignored."""
    normalized = username.strip().lower()
    if not normalized:
        return False
    query = select(UserProfile.id).where(UserProfile.username == normalized)
    if uid is not None:
        query = query.where(UserProfile.id != uid)
    return await db.scalar(query) is None


def validate_username(username: str, admin: bool = False) -> str:
    """Return the normalized username or raise ValueError with a user-facing message."""
    trimmed = username.strip()
    if admin:
        if not trimmed:
            raise ValueError("Username cannot be empty")
        return trimmed.lower()

    if len(trimmed) < USERNAME_MIN_LEN:
        raise ValueError(f"Username must be at least {USERNAME_MIN_LEN} characters")
    if len(trimmed) > USERNAME_MAX_LEN:
        raise ValueError(f"Username must be at most {USERNAME_MAX_LEN} characters")
    if not USERNAME_PATTERN.match(trimmed):
        raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")
    normalized = trimmed.lower()
    if any(word in normalized for word in USERNAME_BLOCKLIST):
        raise ValueError("This username is not allowed")
    return normalized


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


async def change_username(
    db: AsyncSession,
    uid: str,
    new_username: str,
    admin: bool = False,
    now: datetime | None = None,
) -> UserProfile:
    """Rename ``uid``, swapping the lookup row in the same transaction.

    Non-admins may rename once every 7 days.
    """
    now = now or datetime.now(timezone.utc)
    normalized = validate_username(new_username, admin)

    profile = await get_profile(db, uid)
    if profile is None:
        profile = await create_user_profile(db, uid, None)
    current = (profile.username or "").lower()
    if normalized == current:
        raise ValueError("New username is the same as your current username")

    if not admin and profile.last_username_change is not None:
        elapsed = now - _aware(profile.last_username_change)
        limit = timedelta(days=USERNAME_CHANGE_DAYS)
        if elapsed < limit:
            remaining = math.ceil((limit - elapsed) / timedelta(days=1))
            raise ValueError(f"You can change your username again in {remaining} day(s)")

    taken = await db.scalar(
        select(UserProfile.id).where(UserProfile.username == normalized, UserProfile.id != uid)
    )
    if taken is not None:
        raise ValueError("This username is already taken")

    if current:
        await db.execute(delete(UsernameLookup).where(UsernameLookup.username == current))
    lookup = await db.get(UsernameLookup, normalized)
    if lookup is None:
        db.add(UsernameLookup(username=normalized, user_id=uid))
    else:
        lookup.user_id = uid
    profile.username = normalized
    profile.last_username_change = now
    await db.flush()

    logger.info("username_changed", uid=uid, old=current, new=normalized, admin=admin)
    return profile


# --- Account removal ---


async def delete_account(db: AsyncSession, uid: str) -> bool:
    """Delete ``uid`` and everything it owns; leave other campaigns it had joined."""
    profile = await get_profile(db, uid)
    if profile is None:
        return False

    campaigns = (await db.execute(select(Campaign).where(Campaign.owner_id != uid))).scalars().all()
    for campaign in campaigns:
        if uid not in (campaign.member_ids or []):
            continue
        campaign.member_ids = [m for m in campaign.member_ids if m != uid]
        campaign.characters = [c for c in (campaign.characters or []) if c.get("userId") != uid]

    for model in (Character, UserPower, UserTechnique, UserItem, UserCreature, UsernameLookup, Encounter):
        await db.execute(delete(model).where(model.user_id == uid))
    await db.execute(delete(Campaign).where(Campaign.owner_id == uid))
    await db.delete(profile)
    await db.flush()

    logger.info("account_deleted", uid=uid)
    return True


# --- Admin ---


async def list_users(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(UserProfile).order_by(UserProfile.username))
    return [
        {
            "id": p.id,
            "username": p.username or "",
            "role": get_effective_role(p.role, p.id),
        }
        for p in result.scalars().all()
    ]


async def set_user_role(db: AsyncSession, username: str, role: str) -> UserProfile | None:
    username = username.strip()
    if not username:
        raise ValueError("Username is required")
    if role not in ASSIGNABLE_ROLES:
        raise ValueError(
            "Role must be one of: new_player, playtester, developer. "
            "Admin can only be set via environment."
        )
    profile = await db.scalar(
        select(UserProfile).where(func.lower(UserProfile.username) == username.lower())
    )
    if profile is None:
        return None
    profile.role = role
    await db.flush()
    logger.info("role_updated", uid=profile.id, username=profile.username, role=role)
    return profile
