"""
Match outcome resolution from raw set scores.

Everything here is a pure function: the same scores always give the same
outcome, so results can be recomputed safely after a score correction.
"""
from typing import Dict, List, Optional

from .errors import IncompleteMatchState, InvalidScore
from .models import SIDE_A, SIDE_B, IN_PROGRESS, COMPLETED


def _score_value(value, set_number: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise IncompleteMatchState(f"Set {set_number} has a missing or non-numeric score: {value!r}")
    if value < 0:
        raise InvalidScore(f"Set {set_number} has a negative score: {value}")
    return value


def normalize_sets(sets) -> List[List[int]]:
    """
    Turn submitted sets into a list of [score_a, score_b] pairs.

    Accepts two-item lists/tuples or mappings with 'score_a'/'score_b' keys.
    """
    if not sets:
        raise IncompleteMatchState("No set scores were submitted")

    normalized = []
    for number, set_score in enumerate(sets, start=1):
        if isinstance(set_score, dict):
            pair = (set_score.get('score_a'), set_score.get('score_b'))
        elif isinstance(set_score, (list, tuple)) and len(set_score) == 2:
            pair = tuple(set_score)
        else:
            raise IncompleteMatchState(f"Set {number} must hold exactly two scores")
        normalized.append([_score_value(pair[0], number), _score_value(pair[1], number)])
    return normalized


def resolve_set(score_a: int, score_b: int, points_per_set: int) -> Optional[str]:
    """Return 'a' or 'b' once a side reached the target with a two-point lead, else None."""
    if score_a >= points_per_set and score_a - score_b >= 2:
        return SIDE_A
    if score_b >= points_per_set and score_b - score_a >= 2:
        return SIDE_B
    return None


def set_target(set_index: int, sets_to_win: int, points_per_set: int,
               tie_break_enabled: bool = False, tie_break_points: Optional[int] = None) -> int:
    """Points needed to take the set at set_index (0-based)."""
    deciding_index = 2 * sets_to_win - 2
    if tie_break_enabled and tie_break_points and sets_to_win > 1 and set_index == deciding_index:
        return tie_break_points
    return points_per_set


def tally_sets(sets, sets_to_win: int, points_per_set: int,
               tie_break_enabled: bool = False, tie_break_points: Optional[int] = None):
    """Count sets won by each side. Returns (sets_won_a, sets_won_b)."""
    won_a = 0
    won_b = 0
    for index, (score_a, score_b) in enumerate(sets):
        target = set_target(index, sets_to_win, points_per_set, tie_break_enabled, tie_break_points)
        outcome = resolve_set(score_a, score_b, target)
        if outcome == SIDE_A:
            won_a += 1
        elif outcome == SIDE_B:
            won_b += 1
    return won_a, won_b


def resolve_match(sets, sets_to_win: int, points_per_set: int,
                  tie_break_enabled: bool = False, tie_break_points: Optional[int] = None) -> Dict:
    """
    Resolve a match from its set scores.

    Returns a dict with:
    - sets_won_a / sets_won_b
    - status: 'in_progress' or 'completed'
    - winner / loser: 'a', 'b' or None

    The match completes as soon as a side reaches sets_to_win, or when every
    possible set has been entered and the tally is not tied. A set entered
    after a side already reached sets_to_win raises InvalidScore.
    """
    normalized = normalize_sets(sets)
    max_sets = 2 * sets_to_win - 1
    if len(normalized) > max_sets:
        raise InvalidScore(f"{len(normalized)} sets submitted but at most {max_sets} can be played")

    for decided in range(1, len(normalized)):
        won_a, won_b = tally_sets(normalized[:decided], sets_to_win, points_per_set,
                                  tie_break_enabled, tie_break_points)
        if max(won_a, won_b) >= sets_to_win:
            raise InvalidScore(f"Set {decided + 1} was entered after the match was decided in set {decided}")

    won_a, won_b = tally_sets(normalized, sets_to_win, points_per_set, tie_break_enabled, tie_break_points)

    winner = None
    if won_a >= sets_to_win:
        winner = SIDE_A
    elif won_b >= sets_to_win:
        winner = SIDE_B
    elif len(normalized) == max_sets and won_a != won_b:
        winner = SIDE_A if won_a > won_b else SIDE_B

    loser = None
    if winner is not None:
        loser = SIDE_B if winner == SIDE_A else SIDE_A

    return {
        'sets_won_a': won_a,
        'sets_won_b': won_b,
        'status': COMPLETED if winner else IN_PROGRESS,
        'winner': winner,
        'loser': loser,
    }


def resolve_match_for(match, sets) -> Dict:
    """resolve_match using the format stored on a Match."""
    return resolve_match(sets, match.sets_to_win, match.points_per_set,
                         match.tie_break_enabled, match.tie_break_points)


def match_points(sets):
    """Total points scored by each side. Returns (points_a, points_b)."""
    points_a = sum(s[0] for s in sets)
    points_b = sum(s[1] for s in sets)
    return points_a, points_b
