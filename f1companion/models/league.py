from datetime import datetime
from typing import List, Optional
from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field, Relationship, UniqueConstraint

from ..clock import utc_now
from .user import User
from .team import Team


class League(SQLModel, table=True):
    """A fantasy league with a capacity and a public/private flag."""
    __tablename__ = "leagues"
    __table_args__ = (CheckConstraint("max_teams > 0", name="ck_leagues_max_teams_positive"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    max_teams: int = Field(default=15)
    is_private: bool = Field(default=False)
    owner_id: int = Field(foreign_key="users.id", index=True)
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    owner: Optional[User] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "[League.owner_id]"}
    )
    league_teams: List["LeagueTeam"] = Relationship(
        back_populates="league",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    invite: Optional["LeagueInvite"] = Relationship(
        back_populates="league",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"}
    )


class LeagueTeam(SQLModel, table=True):
    """Membership of a team in a league. Rows are only ever inserted."""
    __tablename__ = "league_teams"
    __table_args__ = (UniqueConstraint("league_id", "team_id", name="uq_league_teams_league_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", index=True, ondelete="CASCADE")
    team_id: int = Field(foreign_key="teams.id", index=True, ondelete="CASCADE")
    joined_at: datetime
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime

    # Relationships
    league: Optional[League] = Relationship(back_populates="league_teams")
    team: Optional[Team] = Relationship(back_populates="league_teams")
