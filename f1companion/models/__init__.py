from .user import User
from .session import Session
from .team import Team
from .league import League, LeagueTeam
from .league_invite import LeagueInvite

__all__ = [
    "User",
    "Session",
    "Team",
    "League",
    "LeagueTeam",
    "LeagueInvite",
]
