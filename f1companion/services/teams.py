import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..clock import Clock, SystemClock
from ..exceptions import DuplicateTeamError, UserProfileNotFoundError
from ..models import Team, User
from ..schemas import CreateTeamRequest, TeamResponse

logger = logging.getLogger(__name__)


def get_team_for_user(db: Session, user_id: int) -> Optional[Team]:
    """Get the team owned by a user, if any."""
    return db.exec(select(Team).where(Team.user_id == user_id)).first()


def to_team_response(team: Team) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        name=team.name,
        owner_name=team.owner.full_name() if team.owner else "",
    )


def create_team(
    db: Session,
    request: CreateTeamRequest,
    user_id: int,
    clock: Optional[Clock] = None
) -> TeamResponse:
    """Create the user's team. A user can own only one."""
    clock = clock or SystemClock()
    logger.info("Creating team for user %s", user_id)

    existing = get_team_for_user(db, user_id)
    if existing is not None:
        logger.warning("User %s already has team %s", user_id, existing.id)
        raise DuplicateTeamError(user_id, existing.id)

    if db.get(User, user_id) is None:
        logger.error("User %s not found", user_id)
        raise UserProfileNotFoundError(user_id)

    team = Team(name=request.name.strip(), user_id=user_id, created_at=clock.now())
    db.add(team)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        existing = get_team_for_user(db, user_id)
        if existing is not None:
            raise DuplicateTeamError(user_id, existing.id) from exc
        raise
    db.refresh(team)

    logger.info("Team %s created for user %s", team.id, user_id)
    return to_team_response(team)


def get_user_team(db: Session, user_id: int) -> Optional[TeamResponse]:
    team = get_team_for_user(db, user_id)
    if team is None:
        return None
    return to_team_response(team)


def get_teams(db: Session) -> List[TeamResponse]:
    teams = db.exec(select(Team).order_by(Team.id)).all()
    logger.debug("Retrieved %d teams", len(teams))
    return [to_team_response(team) for team in teams]


def get_team_by_id(db: Session, team_id: int) -> Optional[TeamResponse]:
    team = db.get(Team, team_id)
    if team is None:
        logger.warning("Team %s not found", team_id)
        return None
    return to_team_response(team)
