import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from ..clock import Clock
from ..database import get_session
from ..dependencies import get_clock, require_user
from ..exceptions import LeagueNotFoundError
from ..models.user import User
from ..schemas import (
    CreateLeagueRequest,
    LeagueDetailsResponse,
    LeagueInvitePreviewResponse,
    LeagueInviteResponse,
    LeagueResponse,
)
from ..services import invites, leagues

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leagues", tags=["leagues"])


@router.post("", response_model=LeagueResponse, status_code=status.HTTP_201_CREATED)
async def create_league(
    payload: CreateLeagueRequest,
    response: Response,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    """Create a league owned by the current user."""
    logger.info("Creating league %r", payload.name)
    league = leagues.create_league(db, payload, current_user.id, clock)
    response.headers["Location"] = f"/leagues/{league.id}"
    return league


@router.get("", response_model=List[LeagueResponse])
async def list_leagues(
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return leagues.get_leagues(db)


@router.get("/available", response_model=List[LeagueResponse])
async def available_leagues(
    searchTerm: Optional[str] = None,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    """Public leagues the current user's team can still join."""
    return leagues.get_available_leagues(db, current_user.id, searchTerm)


@router.get("/mine", response_model=List[LeagueResponse])
async def my_leagues(
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return leagues.get_leagues_by_owner(db, current_user.id)


@router.get("/join/{token}/preview", response_model=LeagueInvitePreviewResponse)
async def preview_invite(
    token: str,
    db: Session = Depends(get_session)
):
    """Validate an invite token and show what the league looks like. No login needed."""
    return invites.validate_and_preview(db, token)


@router.post("/join/{token}", response_model=LeagueResponse)
async def join_league_via_invite(
    token: str,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    logger.info("User %s attempting to join a league via invite", current_user.id)
    league = invites.redeem_invite(db, token, current_user.id, clock)
    logger.info("User %s joined league %s via invite", current_user.id, league.id)
    return league


@router.get("/{league_id}", response_model=LeagueDetailsResponse)
async def get_league(
    league_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    league = leagues.get_league_by_id(db, league_id)
    if league is None:
        raise LeagueNotFoundError(league_id)
    return league


@router.post("/{league_id}/join", response_model=LeagueResponse)
async def join_league(
    league_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    logger.info("User %s attempting to join league %s", current_user.id, league_id)
    return leagues.join_league(db, league_id, current_user.id, clock=clock)


@router.api_route("/{league_id}/invite", methods=["GET", "POST"], response_model=LeagueInviteResponse)
async def get_or_create_invite(
    league_id: int,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    """Owner only: the league's shareable invite, created on first request."""
    logger.info("User %s requesting invite for league %s", current_user.id, league_id)
    return invites.get_or_create_invite(db, league_id, current_user.id, clock)
