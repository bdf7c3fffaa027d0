from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship

from .user import User
from .league import League


class LeagueInvite(SQLModel, table=True):
    """Shareable invite for a private league. At most one per league."""
    __tablename__ = "league_invites"

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="leagues.id", unique=True, index=True, ondelete="CASCADE")
    token: str = Field(unique=True, index=True, max_length=64)
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime

    # Relationships
    league: Optional[League] = Relationship(back_populates="invite")
    created_by_user: Optional[User] = Relationship()
