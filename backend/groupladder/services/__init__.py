"""Derived-statistics services.

``validation``, ``rating``, ``stats``, ``leaderboard``, ``relationships`` and
``matchmaking`` are pure helpers with no I/O; ``ledger`` and ``standings`` sit at the
storage boundary.
"""

from .validation import ValidationError, validate_score_pair, validate_team_slots
from .rating import compute_rating, compute_ratings, rating_history
from .stats import compute_position_stats, compute_streaks
from .leaderboard import player_season_stats, rank_changes, season_leaderboard
from .relationships import compute_relationships
from .matchmaking import find_balanced_matchup, find_rare_matchup, position_preference

__all__ = [
    "ValidationError",
    "validate_score_pair",
    "validate_team_slots",
    "compute_rating",
    "compute_ratings",
    "rating_history",
    "compute_streaks",
    "compute_position_stats",
    "season_leaderboard",
    "player_season_stats",
    "rank_changes",
    "compute_relationships",
    "find_balanced_matchup",
    "find_rare_matchup",
    "position_preference",
]
