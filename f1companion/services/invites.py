import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..clock import Clock, SystemClock
from ..config import APP_BASE_URL, INVITE_TOKEN_LENGTH, INVITE_TOKEN_MAX_ATTEMPTS
from ..exceptions import (
    InvalidLeagueInviteTokenError,
    InvalidOperationError,
    LeagueNotFoundError,
    NotLeagueOwnerError,
    TokenGenerationFailedError,
)
from ..models import League, LeagueInvite
from ..schemas import LeagueInvitePreviewResponse, LeagueInviteResponse, LeagueResponse
from ..tokens import generate_invite_token
from .leagues import count_league_teams, join_league

logger = logging.getLogger(__name__)


def invite_url(token: str, base_url: str = APP_BASE_URL) -> str:
    """Shareable link the web app resolves to the join-by-invite page."""
    return f"{base_url}/join/{token}"


def to_invite_response(invite: LeagueInvite) -> LeagueInviteResponse:
    return LeagueInviteResponse(
        id=invite.id,
        league_id=invite.league_id,
        token=invite.token,
        url=invite_url(invite.token),
        created_at=invite.created_at,
        created_by_name=invite.created_by_user.full_name() if invite.created_by_user else "",
    )


def get_invite_for_league(db: Session, league_id: int) -> Optional[LeagueInvite]:
    return db.exec(select(LeagueInvite).where(LeagueInvite.league_id == league_id)).first()


def _token_in_use(db: Session, token: str) -> bool:
    return db.exec(select(LeagueInvite.id).where(LeagueInvite.token == token)).first() is not None


def _generate_unique_token(
    db: Session,
    league_id: int,
    generate: Callable[[int], str],
    max_attempts: int = INVITE_TOKEN_MAX_ATTEMPTS
) -> str:
    for attempt in range(1, max_attempts + 1):
        candidate = generate(INVITE_TOKEN_LENGTH)
        if not _token_in_use(db, candidate):
            return candidate
        logger.warning(
            "Invite token collision for league %s (attempt %d/%d)",
            league_id, attempt, max_attempts
        )
    logger.critical(
        "Exhausted %d invite token attempts for league %s; check the random source",
        max_attempts, league_id
    )
    raise TokenGenerationFailedError(league_id, max_attempts)


def get_or_create_invite(
    db: Session,
    league_id: int,
    requester_id: int,
    clock: Optional[Clock] = None,
    generate: Callable[[int], str] = generate_invite_token
) -> LeagueInviteResponse:
    """
    Return the league's invite, creating it on first request.

    Only the owner of a private league may ask for one. Repeated calls return
    the same token. Concurrent first calls race on the unique league_id
    constraint; the loser rolls back and returns the winner's invite.
    """
    clock = clock or SystemClock()

    league = db.get(League, league_id)
    if league is None:
        raise LeagueNotFoundError(league_id)

    if league.owner_id != requester_id:
        logger.warning("User %s is not the owner of league %s", requester_id, league_id)
        raise NotLeagueOwnerError(league_id, requester_id)

    if not league.is_private:
        raise InvalidOperationError(
            "get_or_create_invite",
            "Public leagues cannot be joined by league invite"
        )

    existing = get_invite_for_league(db, league_id)
    if existing is not None:
        return to_invite_response(existing)

    token = _generate_unique_token(db, league_id, generate)
    invite = LeagueInvite(
        league_id=league_id,
        token=token,
        created_by=requester_id,
        created_at=clock.now(),
    )
    db.add(invite)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = get_invite_for_league(db, league_id)
        if winner is None:
            raise
        logger.info("Invite for league %s was created concurrently; reusing it", league_id)
        return to_invite_response(winner)

    db.refresh(invite)
    logger.info("Created invite %s for league %s", invite.id, league_id)
    return to_invite_response(invite)


def resolve_invite(db: Session, token: str) -> League:
    """Look up the league an invite token points at, or fail generically."""
    invite = None
    if token:
        invite = db.exec(select(LeagueInvite).where(LeagueInvite.token == token)).first()
    if invite is None or invite.league is None:
        logger.warning("Invalid invite token presented")
        raise InvalidLeagueInviteTokenError(token)
    return invite.league


def validate_and_preview(db: Session, token: str) -> LeagueInvitePreviewResponse:
    league = resolve_invite(db, token)
    team_count = count_league_teams(db, league.id)
    return LeagueInvitePreviewResponse(
        league_name=league.name,
        league_description=league.description,
        owner_name=league.owner.full_name() if league.owner else "",
        current_team_count=team_count,
        max_teams=league.max_teams,
        is_league_full=team_count >= league.max_teams,
    )


def redeem_invite(
    db: Session,
    token: str,
    user_id: int,
    clock: Optional[Clock] = None
) -> LeagueResponse:
    """Join the invite's league. Skips the privacy gate, nothing else."""
    league = resolve_invite(db, token)
    logger.debug("User %s redeeming invite for league %s", user_id, league.id)
    return join_league(db, league.id, user_id, bypass_privacy_gate=True, clock=clock)
