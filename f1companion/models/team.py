from datetime import datetime
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship

from ..clock import utc_now
from .user import User


class Team(SQLModel, table=True):
    """A user's fantasy team. Each user owns at most one."""
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    owner: Optional[User] = Relationship()
    league_teams: List["LeagueTeam"] = Relationship(
        back_populates="team",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
