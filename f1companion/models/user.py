from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from ..clock import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=100)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = Field(default=None)

    def full_name(self) -> str:
        """First and last name when available, otherwise the display name."""
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        if parts:
            return " ".join(parts)
        return self.display_name or ""
