from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ..clock import Clock
from ..database import get_session
from ..dependencies import get_clock, require_user
from ..models.user import User
from ..schemas import CreateTeamRequest, TeamResponse
from ..services import teams

router = APIRouter(prefix="/teams", tags=["teams"])


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: CreateTeamRequest,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session),
    clock: Clock = Depends(get_clock)
):
    return teams.create_team(db, payload, current_user.id, clock)


@router.get("/me", response_model=TeamResponse)
async def my_team(
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    team = teams.get_user_team(db, current_user.id)
    if team is None:
        raise HTTPException(status_code=404, detail="You have not created a team yet")
    return team


@router.get("", response_model=List[TeamResponse])
async def list_teams(db: Session = Depends(get_session)):
    return teams.get_teams(db)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    db: Session = Depends(get_session)
):
    team = teams.get_team_by_id(db, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return team
