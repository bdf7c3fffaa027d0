import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, func

from ..clock import Clock, SystemClock
from ..config import DEFAULT_MAX_TEAMS
from ..exceptions import (
    AlreadyInLeagueError,
    InvalidArgumentError,
    LeagueFullError,
    LeagueIsPrivateError,
    LeagueNotFoundError,
    TeamNotFoundError,
    UserProfileNotFoundError,
)
from ..models import League, LeagueTeam, Team, User
from ..schemas import CreateLeagueRequest, LeagueDetailsResponse, LeagueResponse
from .teams import get_team_for_user, to_team_response

logger = logging.getLogger(__name__)


def count_league_teams(db: Session, league_id: int) -> int:
    """Number of teams currently enrolled in a league."""
    return db.exec(
        select(func.count(LeagueTeam.id)).where(LeagueTeam.league_id == league_id)
    ).one()


def to_league_response(db: Session, league: League) -> LeagueResponse:
    return LeagueResponse(
        id=league.id,
        name=league.name,
        description=league.description,
        owner_id=league.owner_id,
        owner_name=league.owner.full_name() if league.owner else "",
        team_count=count_league_teams(db, league.id),
        max_teams=league.max_teams,
        is_private=league.is_private,
    )


def to_league_details_response(db: Session, league: League) -> LeagueDetailsResponse:
    teams = db.exec(
        select(Team)
        .join(LeagueTeam, LeagueTeam.team_id == Team.id)
        .where(LeagueTeam.league_id == league.id)
        .order_by(LeagueTeam.joined_at, LeagueTeam.id)
    ).all()
    summary = to_league_response(db, league)
    return LeagueDetailsResponse(
        **summary.model_dump(),
        teams=[to_team_response(team) for team in teams],
    )


def _require_positive_id(value: int, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(field, "must be greater than 0")


def _find_membership(db: Session, league_id: int, team_id: int) -> Optional[LeagueTeam]:
    return db.exec(
        select(LeagueTeam).where(
            LeagueTeam.league_id == league_id,
            LeagueTeam.team_id == team_id
        )
    ).first()


def create_league(
    db: Session,
    request: CreateLeagueRequest,
    owner_id: int,
    clock: Optional[Clock] = None
) -> LeagueResponse:
    """Create a league and enrol the owner's team as its first member."""
    clock = clock or SystemClock()
    logger.debug("Creating league %r for owner %s", request.name, owner_id)

    owner = db.get(User, owner_id)
    if owner is None:
        logger.error("Owner %s not found when creating league", owner_id)
        raise UserProfileNotFoundError(owner_id)

    team = get_team_for_user(db, owner_id)
    if team is None:
        logger.warning("No team found for owner %s when creating league", owner_id)
        raise TeamNotFoundError(owner_id)

    now = clock.now()
    league = League(
        name=request.name.strip(),
        description=request.description,
        is_private=request.is_private,
        max_teams=request.max_teams or DEFAULT_MAX_TEAMS,
        owner_id=owner_id,
        created_by=owner_id,
        created_at=now,
    )
    db.add(league)
    db.flush()

    db.add(LeagueTeam(
        league_id=league.id,
        team_id=team.id,
        joined_at=now,
        created_by=owner_id,
        created_at=now,
    ))
    db.commit()
    db.refresh(league)

    logger.info("Created league %s (%r) for owner %s", league.id, league.name, owner_id)
    return to_league_response(db, league)


def get_leagues(db: Session) -> List[LeagueResponse]:
    leagues = db.exec(select(League).order_by(League.created_at.desc(), League.id.desc())).all()
    logger.debug("Retrieved %d leagues", len(leagues))
    return [to_league_response(db, league) for league in leagues]


def get_leagues_by_owner(db: Session, owner_id: int) -> List[LeagueResponse]:
    leagues = db.exec(
        select(League).where(League.owner_id == owner_id).order_by(League.created_at.desc(), League.id.desc())
    ).all()
    return [to_league_response(db, league) for league in leagues]


def get_available_leagues(
    db: Session,
    user_id: int,
    search_term: Optional[str] = None
) -> List[LeagueResponse]:
    """Public leagues with an open slot that the user's team has not joined yet."""
    team_counts = (
        select(LeagueTeam.league_id, func.count(LeagueTeam.id).label("team_count"))
        .group_by(LeagueTeam.league_id)
        .subquery()
    )
    query = (
        select(League)
        .outerjoin(team_counts, team_counts.c.league_id == League.id)
        .where(League.is_private.is_(False))
        .where(func.coalesce(team_counts.c.team_count, 0) < League.max_teams)
    )

    team = get_team_for_user(db, user_id)
    if team is not None:
        joined = select(LeagueTeam.league_id).where(LeagueTeam.team_id == team.id)
        query = query.where(League.id.not_in(joined))

    if search_term and search_term.strip():
        query = query.where(func.lower(League.name).contains(search_term.strip().lower()))

    leagues = db.exec(query.order_by(League.created_at.desc(), League.id.desc())).all()
    logger.debug("Found %d available leagues for user %s", len(leagues), user_id)
    return [to_league_response(db, league) for league in leagues]


def get_league_by_id(db: Session, league_id: int) -> Optional[LeagueDetailsResponse]:
    league = db.get(League, league_id)
    if league is None:
        logger.warning("League %s not found", league_id)
        return None
    return to_league_details_response(db, league)


def join_league(
    db: Session,
    league_id: int,
    user_id: int,
    bypass_privacy_gate: bool = False,
    clock: Optional[Clock] = None
) -> LeagueResponse:
    """
    Add the user's team to a league.

    Shared by the direct join path and invite redemption; the invite path sets
    `bypass_privacy_gate`. Checks run cheapest first and stop at the first
    failure:

    1. ids are positive (InvalidArgumentError)
    2. league exists (LeagueNotFoundError)
    3. league is public, unless the gate is bypassed (LeagueIsPrivateError)
    4. league has an open slot (LeagueFullError)
    5. the user owns a team (TeamNotFoundError)
    6. the team is not already enrolled (AlreadyInLeagueError)

    The league row is locked for the rest of the transaction where the engine
    supports it, and the member count is re-read after the insert, so two
    racing joins for the last slot cannot both commit.
    """
    _require_positive_id(league_id, "league_id")
    _require_positive_id(user_id, "user_id")
    clock = clock or SystemClock()

    logger.debug("User %s attempting to join league %s", user_id, league_id)

    league = db.exec(
        select(League).where(League.id == league_id).with_for_update()
    ).first()
    if league is None:
        raise LeagueNotFoundError(league_id)

    if not bypass_privacy_gate and league.is_private:
        logger.warning("User %s tried to join private league %s directly", user_id, league_id)
        raise LeagueIsPrivateError(league_id)

    max_teams = league.max_teams
    if count_league_teams(db, league_id) >= max_teams:
        raise LeagueFullError(league_id, max_teams)

    team = get_team_for_user(db, user_id)
    if team is None:
        logger.warning("No team found for user %s when joining league %s", user_id, league_id)
        raise TeamNotFoundError(user_id)
    team_id = team.id

    if _find_membership(db, league_id, team_id) is not None:
        logger.warning("Team %s is already in league %s", team_id, league_id)
        raise AlreadyInLeagueError(league_id, team_id)

    now = clock.now()
    db.add(LeagueTeam(
        league_id=league_id,
        team_id=team_id,
        joined_at=now,
        created_by=user_id,
        created_at=now,
    ))

    try:
        db.flush()
        if count_league_teams(db, league_id) > max_teams:
            db.rollback()
            logger.warning("League %s filled up while team %s was joining", league_id, team_id)
            raise LeagueFullError(league_id, max_teams)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _find_membership(db, league_id, team_id) is not None:
            logger.warning("Team %s joined league %s concurrently", team_id, league_id)
            raise AlreadyInLeagueError(league_id, team_id) from exc
        raise

    db.refresh(league)
    logger.info("User %s joined league %s with team %s", user_id, league_id, team_id)
    return to_league_response(db, league)
