from datetime import timedelta

import pytest
from sqlmodel import select

from f1companion.exceptions import (
    AlreadyInLeagueError,
    InvalidArgumentError,
    LeagueFullError,
    LeagueIsPrivateError,
    LeagueNotFoundError,
    TeamNotFoundError,
    UserProfileNotFoundError,
)
from f1companion.models import LeagueTeam
from f1companion.schemas import CreateLeagueRequest
from f1companion.services import leagues as league_service
from f1companion.services.leagues import (
    count_league_teams,
    create_league,
    get_available_leagues,
    get_league_by_id,
    get_leagues_by_owner,
    join_league,
)


class TickingClock:
    """Moves forward one second on every read."""

    def __init__(self, start):
        self.current = start

    def now(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


def _player(make_user, make_team, first_name):
    user = make_user(first_name, "Driver")
    make_team(user)
    return user


def test_create_league_enrols_owner_team(session, make_user, make_team, clock):
    owner = _player(make_user, make_team, "Max")

    league = create_league(session, CreateLeagueRequest(name=" Orange Army ", max_teams=4), owner.id, clock)

    assert league.name == "Orange Army"
    assert league.team_count == 1
    assert league.owner_name == "Max Driver"
    assert league.is_private is False


def test_create_league_uses_default_capacity(session, make_user, make_team):
    owner = _player(make_user, make_team, "Max")

    league = create_league(session, CreateLeagueRequest(name="Default"), owner.id)

    assert league.max_teams == 15


def test_create_league_requires_team(session, make_user):
    owner = make_user()

    with pytest.raises(TeamNotFoundError):
        create_league(session, CreateLeagueRequest(name="No Team"), owner.id)


def test_create_league_requires_user(session):
    with pytest.raises(UserProfileNotFoundError):
        create_league(session, CreateLeagueRequest(name="Ghost"), 404)


def test_join_public_league(session, make_user, make_team, make_league, clock):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner)

    result = join_league(session, league.id, joiner.id, clock=clock)

    assert result.team_count == 2
    membership = session.exec(select(LeagueTeam).where(LeagueTeam.created_by == joiner.id)).one()
    assert membership.joined_at.replace(tzinfo=None) == clock.now().replace(tzinfo=None)


def test_join_timestamps_come_from_one_clock_read(session, make_user, make_team, make_league, clock):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner)

    join_league(session, league.id, joiner.id, clock=TickingClock(clock.now()))

    membership = session.exec(select(LeagueTeam).where(LeagueTeam.created_by == joiner.id)).one()
    assert membership.joined_at == membership.created_at


def test_league_of_two_fills_up(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    second = _player(make_user, make_team, "Second")
    third = _player(make_user, make_team, "Third")
    league = make_league(owner, max_teams=2)

    assert join_league(session, league.id, second.id).team_count == 2

    with pytest.raises(LeagueFullError) as exc_info:
        join_league(session, league.id, third.id)

    assert exc_info.value.league_id == league.id
    assert exc_info.value.max_teams == 2
    assert count_league_teams(session, league.id) == 2


@pytest.mark.parametrize("capacity", [1, 2, 3, 5])
def test_capacity_is_never_exceeded(session, make_user, make_team, make_league, capacity):
    owner = _player(make_user, make_team, "Owner")
    league = make_league(owner, max_teams=capacity)
    players = [_player(make_user, make_team, f"P{i}") for i in range(capacity + 2)]

    joined = 1
    for player in players:
        try:
            join_league(session, league.id, player.id)
            joined += 1
        except LeagueFullError:
            pass

    assert joined == capacity
    assert count_league_teams(session, league.id) == capacity


def test_repeat_join_rejected(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner)
    join_league(session, league.id, joiner.id)

    with pytest.raises(AlreadyInLeagueError):
        join_league(session, league.id, joiner.id)
    assert count_league_teams(session, league.id) == 2


def test_repeat_join_into_full_league_reports_full(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner, max_teams=2)
    join_league(session, league.id, joiner.id)

    # Capacity is checked before membership
    with pytest.raises(LeagueFullError):
        join_league(session, league.id, joiner.id)


def test_owner_cannot_join_twice(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    league = make_league(owner)

    with pytest.raises(AlreadyInLeagueError):
        join_league(session, league.id, owner.id)


def test_private_league_rejects_direct_join(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner, is_private=True)

    with pytest.raises(LeagueIsPrivateError):
        join_league(session, league.id, joiner.id)
    assert count_league_teams(session, league.id) == 1


def test_bypassing_privacy_gate_keeps_other_checks(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    last = _player(make_user, make_team, "Last")
    late = _player(make_user, make_team, "Late")
    league = make_league(owner, max_teams=3, is_private=True)

    assert join_league(session, league.id, joiner.id, bypass_privacy_gate=True).team_count == 2

    with pytest.raises(AlreadyInLeagueError):
        join_league(session, league.id, joiner.id, bypass_privacy_gate=True)

    assert join_league(session, league.id, last.id, bypass_privacy_gate=True).team_count == 3
    with pytest.raises(LeagueFullError):
        join_league(session, league.id, late.id, bypass_privacy_gate=True)


def test_privacy_checked_before_capacity(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner, max_teams=1, is_private=True)

    with pytest.raises(LeagueIsPrivateError):
        join_league(session, league.id, joiner.id)


def test_capacity_checked_before_team(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    no_team = make_user()
    league = make_league(owner, max_teams=1)

    with pytest.raises(LeagueFullError):
        join_league(session, league.id, no_team.id)


def test_join_requires_team(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    no_team = make_user()
    league = make_league(owner)

    with pytest.raises(TeamNotFoundError):
        join_league(session, league.id, no_team.id)


def test_join_unknown_league(session, make_user, make_team):
    joiner = _player(make_user, make_team, "Joiner")

    with pytest.raises(LeagueNotFoundError):
        join_league(session, 12345, joiner.id)


@pytest.mark.parametrize("league_id,user_id,field", [
    (0, 1, "league_id"),
    (-1, 1, "league_id"),
    (1, 0, "user_id"),
])
def test_join_rejects_non_positive_ids(session, league_id, user_id, field):
    with pytest.raises(InvalidArgumentError) as exc_info:
        join_league(session, league_id, user_id)
    assert exc_info.value.field == field


def test_concurrent_duplicate_insert_reported_as_already_in_league(
    session, make_user, make_team, make_league, monkeypatch
):
    owner = _player(make_user, make_team, "Owner")
    joiner = _player(make_user, make_team, "Joiner")
    league = make_league(owner)
    join_league(session, league.id, joiner.id)

    # The membership check misses the row once, as if another request inserted it
    # between the check and the insert.
    real_find = league_service._find_membership
    calls = {"n": 0}

    def stale_find(db, league_id, team_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(db, league_id, team_id)

    monkeypatch.setattr(league_service, "_find_membership", stale_find)

    with pytest.raises(AlreadyInLeagueError):
        join_league(session, league.id, joiner.id)
    assert count_league_teams(session, league.id) == 2


def test_last_slot_race_rolls_back_the_loser(session, make_user, make_team, make_league, monkeypatch):
    owner = _player(make_user, make_team, "Owner")
    second = _player(make_user, make_team, "Second")
    third = _player(make_user, make_team, "Third")
    league = make_league(owner, max_teams=2)
    join_league(session, league.id, second.id)

    # The first count is stale: another request took the last slot after it was read.
    real_count = league_service.count_league_teams
    calls = {"n": 0}

    def stale_count(db, league_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return 1
        return real_count(db, league_id)

    monkeypatch.setattr(league_service, "count_league_teams", stale_count)

    with pytest.raises(LeagueFullError):
        join_league(session, league.id, third.id)

    monkeypatch.undo()
    assert count_league_teams(session, league.id) == 2


def test_available_leagues(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    viewer = _player(make_user, make_team, "Viewer")
    open_league = make_league(owner, name="Open Paddock")
    make_league(owner, name="Secret Paddock", is_private=True)
    make_league(owner, name="Tiny Paddock", max_teams=1)
    joined = make_league(owner, name="Joined Paddock")
    join_league(session, joined.id, viewer.id)

    available = get_available_leagues(session, viewer.id)

    assert [league.id for league in available] == [open_league.id]


def test_available_leagues_search(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    viewer = _player(make_user, make_team, "Viewer")
    make_league(owner, name="Monza Tifosi")
    make_league(owner, name="Silverstone Crew")

    names = [league.name for league in get_available_leagues(session, viewer.id, "  monza ")]

    assert names == ["Monza Tifosi"]


def test_league_details_list_teams_in_join_order(session, make_user, make_team, make_league, clock):
    owner = _player(make_user, make_team, "Owner")
    first = _player(make_user, make_team, "First")
    second = _player(make_user, make_team, "Second")
    league = make_league(owner)
    clock.advance(timedelta(minutes=5))
    join_league(session, league.id, first.id, clock=clock)
    clock.advance(timedelta(minutes=5))
    join_league(session, league.id, second.id, clock=clock)

    details = get_league_by_id(session, league.id)

    assert [team.name for team in details.teams] == ["Owner Racing", "First Racing", "Second Racing"]
    assert details.team_count == 3
    assert get_league_by_id(session, 999) is None


def test_leagues_by_owner(session, make_user, make_team, make_league):
    owner = _player(make_user, make_team, "Owner")
    other = _player(make_user, make_team, "Other")
    mine = make_league(owner, name="Mine")
    make_league(other, name="Theirs")

    assert [league.id for league in get_leagues_by_owner(session, owner.id)] == [mine.id]
