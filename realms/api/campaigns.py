"""Campaign API: membership, characters and the shared roll log."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from realms.domain import campaigns as camp_mod
from realms.domain.errors import ForbiddenError
from realms.infra.auth import CurrentUser
from realms.infra.db import get_db
from realms.infra.logging import get_logger
from realms.infra.rate_limit import invite_code_limiter, rate_limited
from realms.models.schemas import (
    CampaignCharacterRef,
    CampaignCreate,
    CampaignJoin,
    CampaignRollCreate,
    CampaignUpdate,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])


def _rejected(action: str, uid: str, exc: Exception) -> HTTPException:
    logger.warning("campaign_request_rejected", action=action, uid=uid, error=str(exc))
    status = 403 if isinstance(exc, ForbiddenError) else 400
    return HTTPException(status_code=status, detail=str(exc))


@router.get("")
async def list_campaigns(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    full: bool = False,
) -> list[dict]:
    campaigns = await camp_mod.list_campaigns(db, user.uid)
    if full:
        return [camp_mod.to_dict(c) for c in campaigns]
    return [camp_mod.to_summary(c, user.uid) for c in campaigns]


@router.post("")
async def create_campaign(
    body: CampaignCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.create_campaign(
            db, user.uid, body.name, body.description, display_name=user.name,
        )
    except ValueError as e:
        raise _rejected("create", user.uid, e)
    return {"id": campaign.id, "inviteCode": campaign.invite_code}


@router.get(
    "/invite/{code}",
    dependencies=[Depends(rate_limited(invite_code_limiter, "invite"))],
)
async def lookup_invite(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.find_by_invite_code(db, code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"id": campaign.id, "name": campaign.name or "Campaign"}


@router.post("/join")
async def join_campaign(
    body: CampaignJoin,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.join_campaign(db, user.uid, body.invite_code, body.character_id)
    except ValueError as e:
        raise _rejected("join", user.uid, e)
    return {"success": True, "campaignId": campaign.id}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    campaign = await camp_mod.get_campaign_for_member(db, user.uid, campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return camp_mod.to_dict(campaign)


@router.patch("/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    body: CampaignUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.update_campaign(
            db, user.uid, campaign_id, name=body.name, description=body.description,
        )
    except (ValueError, ForbiddenError) as e:
        raise _rejected("update", user.uid, e)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"ok": True}


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        deleted = await camp_mod.delete_campaign(db, user.uid, campaign_id)
    except ForbiddenError as e:
        raise _rejected("delete", user.uid, e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"ok": True}


# --- Characters ---


@router.post("/{campaign_id}/characters")
async def add_character(
    campaign_id: str,
    body: CampaignCharacterRef,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.add_character(db, user.uid, campaign_id, body.character_id)
    except (ValueError, ForbiddenError) as e:
        raise _rejected("add_character", user.uid, e)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"success": True}


@router.get("/{campaign_id}/characters/{owner_id}/{character_id}")
async def get_campaign_character(
    campaign_id: str,
    owner_id: str,
    character_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    scope: str | None = None,
) -> dict:
    """Full sheet for the Realm Master; ``scope=encounter`` gives members the combat view."""
    try:
        payload = await camp_mod.get_campaign_character(
            db, user.uid, campaign_id, owner_id, character_id, scope=scope,
        )
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if payload is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return payload


@router.delete("/{campaign_id}/characters/{owner_id}/{character_id}")
async def remove_character(
    campaign_id: str,
    owner_id: str,
    character_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        campaign = await camp_mod.remove_character(db, user.uid, campaign_id, owner_id, character_id)
    except ForbiddenError as e:
        raise _rejected("remove_character", user.uid, e)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"success": True}


# --- Rolls ---


@router.get("/{campaign_id}/rolls")
async def list_rolls(
    campaign_id: str,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    try:
        rolls = await camp_mod.list_rolls(db, user.uid, campaign_id)
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if rolls is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return rolls


@router.post("/{campaign_id}/rolls")
async def add_roll(
    campaign_id: str,
    body: CampaignRollCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    try:
        entry = await camp_mod.add_roll(
            db, user.uid, campaign_id, body.character_id, body.character_name,
            body.roll.model_dump(by_alias=True),
        )
    except ForbiddenError as e:
        raise _rejected("roll", user.uid, e)
    if entry is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return {"id": entry.id}
