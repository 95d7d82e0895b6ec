import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from groupladder.cache import TTLCache, stats_cache
from groupladder.models import Match, Season
from groupladder.services import ledger, standings

T0 = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


async def _archived_win(session, winner, loser):
    """Store a finished match in the archived season ``s0``."""

    session.add(
        Match(
            id=f"s0-{winner}-{loser}",
            seq=await ledger.ledger_version(session, "g1") + 1,
            group_id="g1",
            season_id="s0",
            match_type="1v1",
            team1_player1_id=winner,
            team2_player1_id=loser,
            team1_score=10,
            team2_score=4,
            created_at=T0 - timedelta(days=10),
            player_stats=[
                {"playerId": winner, "preGameRating": 1200.0, "postGameRating": 1216.0},
                {"playerId": loser, "preGameRating": 1200.0, "postGameRating": 1184.0},
            ],
        )
    )
    await session.commit()


def test_current_rating_matches_latest_snapshot_across_seasons(ladder):
    async def run_test():
        async with ladder() as session:
            await _archived_win(session, "alice", "bob")
            record = await ledger.append_match(
                session,
                group_id="g1",
                match_type="1v1",
                team1=["alice"],
                team2=["carol"],
                score1=10,
                score2=6,
                now=T0,
            )
            rating = await standings.get_rating(session, "alice")
            board = await standings.get_leaderboard(session, "s1")
            archived = await standings.get_rating(session, "alice", season_id="s0")
            history = await standings.get_rating_history(session, "alice")
            return record, rating, board, archived, history

    record, rating, board, archived, history = asyncio.run(run_test())

    snapshot = {s.player_id: s for s in record.player_stats}["alice"]
    assert snapshot.post_game_rating == pytest.approx(1216.0)
    assert rating == pytest.approx(snapshot.post_game_rating)
    assert {row.player_id: row.rating for row in board}["alice"] == pytest.approx(rating)
    assert history.current == pytest.approx(rating)
    assert archived == pytest.approx(1216.0)


def test_rating_falls_back_to_latest_season_without_active_one(ladder):
    async def run_test():
        async with ladder() as session:
            record = await ledger.append_match(
                session,
                group_id="g1",
                match_type="1v1",
                team1=["bob"],
                team2=["alice"],
                score1=10,
                score2=6,
                now=T0,
            )
            season = await session.get(Season, "s1")
            season.is_active = False
            await session.commit()
            return (
                record,
                await ledger.rating_season_id(session, "g1"),
                await standings.get_rating(session, "bob"),
            )

    record, season_id, rating = asyncio.run(run_test())

    assert season_id == "s1"
    snapshot = {s.player_id: s for s in record.player_stats}["bob"]
    assert rating == pytest.approx(snapshot.post_game_rating)


def test_point_in_time_ratings_do_not_fill_the_cache(ladder):
    async def run_test():
        async with ladder() as session:
            await ledger.append_match(
                session,
                group_id="g1",
                match_type="1v1",
                team1=["alice"],
                team2=["bob"],
                score1=10,
                score2=5,
                now=T0,
            )
            values = []
            for day in range(1, 29):
                as_of = datetime(2024, 2, day, tzinfo=timezone.utc)
                values.append(await standings.get_rating(session, "alice", as_of=as_of))
            values.append(await standings.get_rating(session, "alice"))
            return values

    values = asyncio.run(run_test())

    assert values[:-1] == [1200.0] * 28
    assert values[-1] == pytest.approx(1216.0)
    assert len(stats_cache) <= 1


def test_cache_keeps_at_most_max_entries():
    cache = TTLCache(ttl_seconds=60, max_entries=3)

    async def run_test():
        for day in range(10):
            await cache.set(("g1", "ratings", day), day)
        return [await cache.get(("g1", "ratings", day)) for day in range(10)]

    values = asyncio.run(run_test())

    assert len(cache) == 3
    assert values == [None] * 7 + [7, 8, 9]


def test_rank_changes_are_memoised_by_ledger_version(ladder):
    async def run_test():
        async with ladder() as session:
            await ledger.append_match(
                session,
                group_id="g1",
                match_type="1v1",
                team1=["alice"],
                team2=["bob"],
                score1=10,
                score2=5,
                now=T0,
            )
            changes = await standings.get_rank_changes(session, "s1", window=5)
            cached = await stats_cache.get(("g1", "rank_changes", "s1", None, 5, 1))
            return changes, cached

    changes, cached = asyncio.run(run_test())

    assert changes == {"alice": 0, "bob": 0}
    assert cached == changes
