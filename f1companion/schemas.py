from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class CreateLeagueRequest(BaseModel):
    """Schema for creating a league."""
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_private: bool = False
    max_teams: Optional[int] = Field(default=None, gt=0)


class CreateTeamRequest(BaseModel):
    """Schema for creating a team."""
    name: str = Field(min_length=1, max_length=100)


class RegisterRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=6, max_length=72)
    display_name: Optional[str] = Field(default=None, max_length=100)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    """Fields left out of the request are not changed."""
    display_name: Optional[str] = Field(default=None, max_length=100)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    updated_at: Optional[datetime] = None


class TeamResponse(BaseModel):
    """Schema for team response."""
    id: int
    name: str
    owner_name: str


class LeagueResponse(BaseModel):
    """Schema for league response."""
    id: int
    name: str
    description: Optional[str] = None
    owner_id: int
    owner_name: str
    team_count: int
    max_teams: int
    is_private: bool


class LeagueDetailsResponse(LeagueResponse):
    teams: List[TeamResponse] = []


class LeagueInviteResponse(BaseModel):
    """Invite descriptor returned to the league owner."""
    id: int
    league_id: int
    token: str
    url: str
    created_at: datetime
    created_by_name: str


class LeagueInvitePreviewResponse(BaseModel):
    """What a prospective member sees before redeeming an invite."""
    league_name: str
    league_description: Optional[str] = None
    owner_name: str
    current_team_count: int
    max_teams: int
    is_league_full: bool
