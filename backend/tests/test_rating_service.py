import logging

import pytest

from groupladder.domain import Duo, MatchRecord, Solo
from groupladder.services.rating import (
    apply_match,
    compute_rating,
    compute_ratings,
    expected_score,
    rating_history,
)

pytestmark = pytest.mark.preserve_schema


def duel(mid, winner, loser, *, seq, score=(10, 5)):
    return MatchRecord(
        id=mid,
        match_type="1v1",
        team1=Solo(winner),
        team2=Solo(loser),
        score1=score[0],
        score2=score[1],
        group_id="g1",
        season_id="s1",
        seq=seq,
    )


def doubles(mid, team1, team2, score1, score2, *, seq):
    return MatchRecord(
        id=mid,
        match_type="2v2",
        team1=Duo(*team1),
        team2=Duo(*team2),
        score1=score1,
        score2=score2,
        group_id="g1",
        season_id="s1",
        seq=seq,
    )


def test_player_without_matches_has_baseline():
    assert compute_rating("ghost", []) == 1200
    assert compute_rating("ghost", [duel("m1", "a", "b", seq=1)]) == 1200


def test_even_duel_is_zero_sum():
    ratings = compute_ratings([duel("m1", "a", "b", seq=1)])

    assert ratings["a"] > 1200
    assert ratings["b"] < 1200
    assert ratings["a"] - 1200 == pytest.approx(16.0)
    assert ratings["a"] - 1200 == -(ratings["b"] - 1200)


def test_expected_score_is_symmetric():
    assert expected_score(1200, 1200) == pytest.approx(0.5)
    assert expected_score(1400, 1200) + expected_score(1200, 1400) == pytest.approx(1.0)
    assert expected_score(1400, 1200) > 0.5


def test_upset_moves_more_points():
    matches = [duel("m1", "a", "b", seq=1), duel("m2", "a", "b", seq=2)]
    favourite_wins = compute_ratings(matches + [duel("m3", "a", "b", seq=3)])
    upset = compute_ratings(matches + [duel("m3", "b", "a", seq=3)])
    before = compute_ratings(matches)

    gain_expected = favourite_wins["a"] - before["a"]
    gain_upset = upset["b"] - before["b"]
    assert gain_upset > gain_expected > 0


def test_fold_is_deterministic_and_matches_stepwise_replay():
    matches = [
        duel("m1", "a", "b", seq=1),
        duel("m2", "c", "a", seq=2),
        doubles("m3", ("a", "b"), ("c", "d"), 10, 8, seq=3),
        duel("m4", "b", "d", seq=4),
        doubles("m5", ("c", "b"), ("a", "d"), 2, 10, seq=5),
    ]

    first = compute_ratings(matches)
    assert compute_ratings(matches) == first

    stepwise: dict[str, float] = {}
    for match in matches:
        apply_match(stepwise, match)
    assert stepwise == first


def test_doubles_apply_same_delta_to_both_teammates():
    warmup = duel("m1", "a", "x", seq=1)
    ratings = compute_ratings([warmup])
    before_a, before_b = ratings["a"], ratings.get("b", 1200)

    changes = apply_match(ratings, doubles("m2", ("a", "b"), ("c", "d"), 10, 3, seq=2))

    delta_a = changes["a"][1] - changes["a"][0]
    delta_b = changes["b"][1] - changes["b"][0]
    assert changes["a"][0] == before_a
    assert changes["b"][0] == before_b
    assert delta_a == pytest.approx(delta_b)
    assert changes["c"][1] - changes["c"][0] == pytest.approx(-delta_a)

    team_mean = (before_a + before_b) / 2
    expected_delta = 32 * (1 - expected_score(team_mean, 1200))
    assert delta_a == pytest.approx(expected_delta)


def test_ratings_are_clamped():
    matches = [duel(f"m{i}", "a", "b", seq=i) for i in range(1, 4)]
    ratings = compute_ratings(matches, floor=1190, ceiling=1210)

    assert ratings["a"] == 1210
    assert ratings["b"] == 1190

    unbounded = compute_ratings(matches, floor=None, ceiling=None)
    assert unbounded["a"] > 1210


def test_k_factor_and_baseline_are_parameters():
    ratings = compute_ratings([duel("m1", "a", "b", seq=1)], k_factor=10, baseline=1000)

    assert ratings["a"] == pytest.approx(1005)
    assert ratings["b"] == pytest.approx(995)


def test_tied_legacy_score_goes_to_team_two_with_warning(caplog):
    tie = duel("m1", "a", "b", seq=1, score=(3, 3))

    with caplog.at_level(logging.WARNING):
        ratings = compute_ratings([tie])

    assert ratings["b"] > ratings["a"]
    assert "tied score" in caplog.text


def test_rating_history_tracks_extremes():
    matches = [
        duel("m1", "a", "b", seq=1),
        duel("m2", "b", "a", seq=2),
        duel("m3", "c", "d", seq=3),
        duel("m4", "b", "a", seq=4),
    ]

    history = rating_history("a", matches)

    assert [p.match_id for p in history.points] == ["m1", "m2", "m4"]
    assert [p.match_number for p in history.points] == [1, 2, 3]
    assert [p.result for p in history.points] == ["win", "loss", "loss"]
    assert history.points[0].score == "10-5"
    assert history.initial == 1200
    assert history.current == pytest.approx(compute_rating("a", matches))
    assert history.highest == pytest.approx(history.points[0].rating)
    assert history.lowest == pytest.approx(history.current)
    assert history.points[0].change == pytest.approx(16.0)


def test_rating_history_without_matches():
    history = rating_history("a", [])

    assert history.points == []
    assert history.current == history.highest == history.lowest == 1200
