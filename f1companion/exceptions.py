"""
Domain exceptions for league admission.

Services raise these for expected business rule violations. Each carries a
human-readable ``message`` and a ``details`` dict with the structured context
(ids, limits) clients need for precise messaging. They are never retried: they
describe facts about the data, not transient conditions.

The HTTP layer turns every one of them into a problem document through
``f1companion.error_handling.classify``.
"""

from typing import Any, Dict, Optional


class LeagueAppError(Exception):
    """Base class for all domain errors raised by the league services."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details: Dict[str, Any] = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class LeagueNotFoundError(LeagueAppError):
    def __init__(self, league_id: int) -> None:
        self.league_id = league_id
        super().__init__(f"League {league_id} not found", {"league_id": league_id})


class TeamNotFoundError(LeagueAppError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Team not found for user {user_id}", {"user_id": user_id})


class InvalidLeagueInviteTokenError(LeagueAppError):
    """
    Raised for any invite token that does not resolve to a league.

    Never-issued, malformed and orphaned tokens all produce this same error so
    the response does not reveal whether a token ever existed. The token itself
    is kept on the instance for logging but is not part of ``details``.
    """

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__("The invite link is invalid")


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


class AuthenticationRequiredError(LeagueAppError):
    def __init__(self) -> None:
        super().__init__("Valid authentication is required")


class UserProfileNotFoundError(LeagueAppError):
    def __init__(self, user_id: Any) -> None:
        self.user_id = user_id
        super().__init__(f"User profile not found for user {user_id}", {"user_id": user_id})


class NotLeagueOwnerError(LeagueAppError):
    def __init__(self, league_id: int, user_id: int) -> None:
        self.league_id = league_id
        self.user_id = user_id
        super().__init__(
            "Only the league owner can manage invites",
            {"league_id": league_id, "user_id": user_id},
        )


class LeagueIsPrivateError(LeagueAppError):
    def __init__(self, league_id: int) -> None:
        self.league_id = league_id
        super().__init__(
            f"League {league_id} is private and requires an invitation",
            {"league_id": league_id},
        )


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class LeagueFullError(LeagueAppError):
    """The league has reached its team capacity."""

    def __init__(self, league_id: int, max_teams: int) -> None:
        self.league_id = league_id
        self.max_teams = max_teams
        super().__init__(
            f"League {league_id} is full (max {max_teams} teams)",
            {"league_id": league_id, "max_teams": max_teams},
        )


class AlreadyInLeagueError(LeagueAppError):
    """The team is already a member of the league."""

    def __init__(self, league_id: int, team_id: int) -> None:
        self.league_id = league_id
        self.team_id = team_id
        super().__init__(
            f"Team {team_id} is already a member of league {league_id}",
            {"league_id": league_id, "team_id": team_id},
        )


class DuplicateTeamError(LeagueAppError):
    def __init__(self, user_id: int, existing_team_id: int) -> None:
        self.user_id = user_id
        self.existing_team_id = existing_team_id
        super().__init__(
            f"User {user_id} already has a team (ID: {existing_team_id}). Each user can only create one team.",
            {"user_id": user_id, "existing_team_id": existing_team_id},
        )


# ---------------------------------------------------------------------------
# Invalid requests
# ---------------------------------------------------------------------------


class InvalidOperationError(LeagueAppError):
    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(reason, {"operation": operation})


class InvalidArgumentError(LeagueAppError):
    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}", {"field": field})


# ---------------------------------------------------------------------------
# Fatal
# ---------------------------------------------------------------------------


class TokenGenerationFailedError(LeagueAppError):
    """
    Every candidate invite token collided with an existing one.

    With a 56 character alphabet and 10 character tokens this only happens when
    the random source is degraded, so it is treated as a server fault.
    """

    def __init__(self, league_id: int, attempts: int) -> None:
        self.league_id = league_id
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique invite token for league {league_id} after {attempts} attempts",
            {"league_id": league_id, "attempts": attempts},
        )
