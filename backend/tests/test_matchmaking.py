import pytest

from groupladder.domain import Duo, MatchRecord, Solo
from groupladder.services.matchmaking import (
    Lineup,
    PositionPreference,
    find_balanced_matchup,
    find_rare_matchup,
    pair_counts,
    position_preference,
    team_splits,
)
from groupladder.services.stats import PositionStats
from groupladder.services.validation import ValidationError

pytestmark = pytest.mark.preserve_schema

_seq = iter(range(1, 10_000))

RATINGS = {"a": 1400.0, "b": 1300.0, "c": 1100.0, "d": 1000.0}


def doubles(team1, team2, score1=10, score2=5):
    seq = next(_seq)
    return MatchRecord(
        id=f"m{seq}",
        match_type="2v2",
        team1=Duo(*team1),
        team2=Duo(*team2),
        score1=score1,
        score2=score2,
        group_id="g1",
        season_id="s1",
        seq=seq,
    )


def test_team_splits_are_unique():
    four = team_splits(["d", "c", "b", "a"])
    five = team_splits(["a", "b", "c", "d", "e"])

    assert four == [
        (("a", "b"), ("c", "d")),
        (("a", "c"), ("b", "d")),
        (("a", "d"), ("b", "c")),
    ]
    assert len(five) == 15
    canonical = {frozenset([frozenset(t1), frozenset(t2)]) for t1, t2 in five}
    assert len(canonical) == 15


@pytest.mark.parametrize(
    "pool, detail",
    [
        (["a", "b", "c"], "between 4 and 7"),
        (["a", "b", "c", "d", "e", "f", "g", "h"], "between 4 and 7"),
        (["a", "b", "c", "c"], "twice"),
    ],
    ids=["too-few", "too-many", "duplicate"],
)
def test_pool_is_checked(pool, detail):
    with pytest.raises(ValidationError) as exc:
        find_balanced_matchup(pool, RATINGS)

    assert detail in exc.value.detail


def test_position_preference():
    neutral = position_preference("a")
    assert neutral == PositionPreference(player_id="a")
    assert neutral.confidence == pytest.approx(0.3)

    stats = PositionStats(
        games_as_attacker=3,
        games_as_defender=2,
        wins_as_attacker=3,
        wins_as_defender=1,
        losses_as_defender=1,
    )
    pref = position_preference("a", stats)
    assert pref.preferred_position == "attacker"
    assert pref.attacker_win_rate == 1.0
    assert pref.defender_win_rate == 0.5
    assert pref.confidence == pytest.approx(0.5)

    close = PositionStats(
        games_as_attacker=20,
        games_as_defender=21,
        wins_as_attacker=10,
        wins_as_defender=11,
        losses_as_attacker=10,
        losses_as_defender=10,
    )
    assert position_preference("a", close).preferred_position is None
    assert position_preference("a", close).confidence == 1.0


def test_balanced_matchup_evens_out_team_ratings():
    suggestion = find_balanced_matchup(["a", "b", "c", "d"], RATINGS)

    assert suggestion.mode == "balanced"
    assert suggestion.team1 == Lineup("a", "d")
    assert suggestion.team2 == Lineup("b", "c")
    assert suggestion.rating_difference == 0
    # Neutral preferences give every lineup a happiness of 0.5.
    assert suggestion.confidence == pytest.approx(0.9)


def test_balanced_matchup_puts_players_in_their_position():
    prefs = {
        "d": PositionPreference(
            player_id="d",
            attacker_win_rate=1.0,
            defender_win_rate=0.0,
            preferred_position="attacker",
            confidence=1.0,
        )
    }

    suggestion = find_balanced_matchup(["a", "b", "c", "d"], RATINGS, prefs)

    assert suggestion.team1 == Lineup("d", "a")
    assert set(suggestion.team2.members) == {"b", "c"}


def test_unrated_players_count_at_baseline():
    suggestion = find_balanced_matchup(["a", "x", "y", "z"], {"a": 1600.0})

    assert suggestion.rating_difference == pytest.approx(400.0)


def test_pair_counts_cover_teammates_and_opponents():
    counts = pair_counts([doubles(("a", "b"), ("c", "d"))])

    assert counts[("a", "b")] == 1
    assert counts[("a", "c")] == 1
    assert counts[("c", "d")] == 1
    assert counts[("a", "e")] == 0


def test_rare_matchup_prefers_fresh_pairings():
    history = [
        doubles(("a", "b"), ("c", "d")),
        doubles(("a", "c"), ("b", "d")),
    ]

    suggestion = find_rare_matchup(["a", "b", "c", "d", "e"], history, RATINGS)

    assert suggestion.mode == "rare"
    members = [set(suggestion.team1.members), set(suggestion.team2.members)]
    assert {"a", "b"} in members
    assert {"c", "e"} in members
    assert suggestion.shared_games == 6
    assert suggestion.confidence == pytest.approx(0.7)


def test_rare_matchup_counts_singles_history():
    history = [
        MatchRecord(
            id="s1",
            match_type="1v1",
            team1=Solo("a"),
            team2=Solo("b"),
            score1=10,
            score2=3,
            group_id="g1",
            season_id="s1",
            seq=1,
        )
    ]

    suggestion = find_rare_matchup(["a", "b", "c", "d"], history, RATINGS)

    assert suggestion.shared_games == 1


PREFIX = "/api/v0"


def test_matchmaking_route_balances_current_ratings(api_client):
    resp = api_client.post(
        f"{PREFIX}/matches",
        json={
            "groupId": "g1",
            "matchType": "1v1",
            "team1": ["alice"],
            "team2": ["bob"],
            "score1": 10,
            "score2": 5,
        },
    )
    assert resp.status_code == 200, resp.text

    resp = api_client.post(
        f"{PREFIX}/matchmaking",
        json={"groupId": "g1", "playerIds": ["dave", "carol", "bob", "alice"]},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()

    assert data["mode"] == "balanced"
    assert data["seasonId"] == "s1"
    teams = [
        {data["team1"]["attacker"], data["team1"]["defender"]},
        {data["team2"]["attacker"], data["team2"]["defender"]},
    ]
    assert {"alice", "bob"} in teams
    assert {"carol", "dave"} in teams
    assert data["ratingDifference"] == pytest.approx(0.0)


def test_matchmaking_route_rare_mode(api_client):
    resp = api_client.post(
        f"{PREFIX}/matchmaking",
        json={
            "groupId": "g1",
            "playerIds": ["alice", "bob", "carol", "dave"],
            "mode": "rare",
        },
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["mode"] == "rare"
    assert resp.json()["sharedGames"] == 0
    assert resp.json()["confidence"] == 1.0


@pytest.mark.parametrize(
    "player_ids, detail",
    [
        (["alice", "bob", "carol"], "between 4 and 7"),
        (["alice", "bob", "carol", "karpov"], "not a member"),
        (["alice", "bob", "carol", "ghost"], "Unknown player"),
    ],
    ids=["small-pool", "foreign-player", "unknown-player"],
)
def test_matchmaking_route_rejects_bad_pool(api_client, player_ids, detail):
    resp = api_client.post(
        f"{PREFIX}/matchmaking", json={"groupId": "g1", "playerIds": player_ids}
    )

    assert resp.status_code == 422
    assert resp.json()["code"] == "matchmaking_validation_error"
    assert detail in resp.json()["detail"]


def test_matchmaking_route_unknown_group(api_client):
    resp = api_client.post(
        f"{PREFIX}/matchmaking",
        json={"groupId": "nope", "playerIds": ["a", "b", "c", "d"]},
    )

    assert resp.status_code == 404
    assert resp.json()["code"] == "group_not_found"
