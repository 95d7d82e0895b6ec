from typing import Any, Dict, Optional, Sequence

from ..domain import Team, team_from_slots


class ValidationError(Exception):
    """Raised when a submitted match is malformed."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


MATCH_TYPE_RULES: dict[str, dict[str, int]] = {
    "1v1": {"team_size": 1},
    "2v2": {"team_size": 2},
}


def _normalize_slots(label: str, slots: Any) -> list[Optional[str]]:
    if not isinstance(slots, Sequence) or isinstance(slots, (str, bytes)):
        raise ValidationError(f"{label} must be a list of player ids.")
    if len(slots) == 0 or len(slots) > 2:
        raise ValidationError(f"{label} must have one or two player slots.")

    normalized: list[Optional[str]] = []
    for slot in slots:
        if slot is None:
            normalized.append(None)
            continue
        if not isinstance(slot, str):
            raise ValidationError(f"{label} player ids must be strings.")
        trimmed = slot.strip()
        normalized.append(trimmed or None)
    while len(normalized) < 2:
        normalized.append(None)
    return normalized


def validate_team_slots(
    match_type: str, team1: Sequence[Any], team2: Sequence[Any]
) -> tuple[Team, Team]:
    """Validate the player slots of both teams for ``match_type``.

    Rules:
    - ``1v1`` fills only the first slot of each team
    - ``2v2`` fills all four slots
    - A player appears at most once in the whole match
    """

    rules = MATCH_TYPE_RULES.get(match_type)
    if rules is None:
        allowed = ", ".join(sorted(MATCH_TYPE_RULES))
        raise ValidationError(f"Unknown match type '{match_type}'. Use one of: {allowed}.")

    sides = {
        "Team 1": _normalize_slots("Team 1", team1),
        "Team 2": _normalize_slots("Team 2", team2),
    }
    team_size = rules["team_size"]
    for label, (first, second) in sides.items():
        if first is None:
            raise ValidationError(f"{label} is missing its first player.")
        if team_size == 1 and second is not None:
            raise ValidationError(f"{match_type} matches allow exactly one player per team.")
        if team_size == 2 and second is None:
            raise ValidationError(f"{match_type} matches require two players per team.")

    seen: set[str] = set()
    for slots in sides.values():
        for pid in slots:
            if pid is None:
                continue
            if pid in seen:
                raise ValidationError("A player cannot appear twice in the same match.")
            seen.add(pid)

    (t1_first, t1_second), (t2_first, t2_second) = sides.values()
    return team_from_slots(t1_first, t1_second), team_from_slots(t2_first, t2_second)


def validate_score_pair(
    score1: Any,
    score2: Any,
    *,
    max_value: Optional[int] = 1000,
    allow_ties: bool = False,
) -> tuple[int, int]:
    """Validate and normalize the two team scores of a match."""

    normalized: Dict[int, int] = {}
    for index, raw in ((1, score1), (2, score2)):
        # Reject booleans explicitly (bool is a subclass of int in Python)
        if isinstance(raw, bool):
            raise ValidationError(f"Score #{index} must be an integer (not a boolean).")
        if isinstance(raw, float) and not raw.is_integer():
            raise ValidationError(f"Score #{index} must be an integer.")
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Score #{index} must be an integer.")

        if value < 0:
            raise ValidationError(f"Score #{index} must be >= 0.")
        if max_value is not None and value > max_value:
            raise ValidationError(f"Score #{index} must be <= {max_value}.")
        normalized[index] = value

    if not allow_ties and normalized[1] == normalized[2]:
        raise ValidationError("A match cannot end in a tie.")

    return normalized[1], normalized[2]
