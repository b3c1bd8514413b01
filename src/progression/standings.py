"""
Standings derived from completed matches.

Standings are always recomputed from scratch; they are a view over the
matches and are never patched incrementally.
"""
import logging
from typing import Dict, List

from .models import COMPLETED, SIDE_A, SIDE_B
from .scoring import normalize_sets, resolve_match_for, tally_sets, match_points
from .errors import TournamentError
from .elimination import THIRD_PLACE_ROUND_NAME

logger = logging.getLogger(__name__)

# Ranking points awarded by final place
PLACE_POINTS = [
    (1, 1, 100),
    (2, 2, 80),
    (3, 3, 65),
    (4, 4, 55),
    (5, 8, 40),
    (9, 16, 25),
    (17, 32, 15),
]
PARTICIPATION_POINTS = 10


def _empty_row(key: str, value) -> Dict:
    return {
        key: value,
        'rank': 0,
        'matches_played': 0,
        'wins': 0,
        'losses': 0,
        'sets_won': 0,
        'sets_lost': 0,
        'set_diff': 0,
        'points_won': 0,
        'points_lost': 0,
        'point_diff': 0,
    }


def _match_totals(match):
    """
    Re-derive a completed match from its sets.

    Returns (outcome, sets_won_a, sets_won_b, points_a, points_b) or None when
    the stored scores do not describe a completed match.
    """
    try:
        sets = normalize_sets(match.sets)
        outcome = resolve_match_for(match, sets)
    except TournamentError as e:
        logger.warning(f"Ignoring match {match.id} with unusable scores: {e}")
        return None
    if outcome['status'] != COMPLETED:
        logger.warning(f"Ignoring match {match.id}: marked completed but scores are undecided")
        return None
    won_a, won_b = tally_sets(sets, match.sets_to_win, match.points_per_set,
                              match.tie_break_enabled, match.tie_break_points)
    points_a, points_b = match_points(sets)
    return outcome, won_a, won_b, points_a, points_b


def _credit(row: Dict, won: bool, sets_for: int, sets_against: int, points_for: int, points_against: int):
    row['matches_played'] += 1
    row['sets_won'] += sets_for
    row['sets_lost'] += sets_against
    row['points_won'] += points_for
    row['points_lost'] += points_against
    if won:
        row['wins'] += 1
    else:
        row['losses'] += 1


def _sort_rows(rows: List[Dict]) -> List[Dict]:
    for row in rows:
        row['set_diff'] = row['sets_won'] - row['sets_lost']
        row['point_diff'] = row['points_won'] - row['points_lost']

    # sorted() is stable: remaining ties keep the input order
    ranked = sorted(
        rows,
        key=lambda r: (-r['wins'], -r['set_diff'], -r['point_diff'], -r['points_won'])
    )
    for index, row in enumerate(ranked, start=1):
        row['rank'] = index
    return ranked


def calculate_pool_ranking(entrants, matches) -> List[Dict]:
    """
    Calculate the standing of a pool.

    Returns: [{'entrant': Entrant, 'rank': n, 'matches_played': n, 'wins': n,
               'losses': n, 'sets_won': n, 'sets_lost': n, 'set_diff': n,
               'points_won': n, 'points_lost': n, 'point_diff': n}, ...]

    Ranking: wins -> set differential -> point differential -> points won.
    Teams still tied keep the order they were given in.
    """
    stats = {}
    for entrant in entrants:
        stats[entrant.id] = _empty_row('entrant', entrant)

    for match in matches:
        if match.status != COMPLETED or not match.is_ready:
            continue
        id_a = match.entrant(SIDE_A).id
        id_b = match.entrant(SIDE_B).id
        if id_a not in stats or id_b not in stats:
            logger.warning(f"Match {match.id} involves an entrant outside the pool; skipped")
            continue

        totals = _match_totals(match)
        if totals is None:
            continue
        outcome, won_a, won_b, points_a, points_b = totals

        _credit(stats[id_a], outcome['winner'] == SIDE_A, won_a, won_b, points_a, points_b)
        _credit(stats[id_b], outcome['winner'] == SIDE_B, won_b, won_a, points_b, points_a)

    return _sort_rows(list(stats.values()))


def calculate_player_ranking(players, matches) -> List[Dict]:
    """
    Individual standing for King phases.

    Every side of a match is a team entrant whose members are players; each
    member is credited with the team result. Players listed in `players` keep
    their input order on full ties. Members not listed are ignored.
    """
    stats = {}
    for player in players:
        stats[player] = _empty_row('player', player)

    for match in matches:
        if match.status != COMPLETED or not match.is_ready:
            continue
        totals = _match_totals(match)
        if totals is None:
            continue
        outcome, won_a, won_b, points_a, points_b = totals

        for member in match.entrant(SIDE_A).members:
            if member in stats:
                _credit(stats[member], outcome['winner'] == SIDE_A, won_a, won_b, points_a, points_b)
        for member in match.entrant(SIDE_B).members:
            if member in stats:
                _credit(stats[member], outcome['winner'] == SIDE_B, won_b, won_a, points_b, points_a)

    return _sort_rows(list(stats.values()))


def points_for_place(place: int) -> int:
    for first, last, points in PLACE_POINTS:
        if first <= place <= last:
            return points
    return PARTICIPATION_POINTS


def calculate_final_placements(matches) -> List[Dict]:
    """
    Final places of a single-elimination bracket.

    Final winner is 1st and loser 2nd; the third-place match decides 3rd and
    4th. Other entrants share the place following the number of entrants
    that went further than the round they lost in (quarterfinal losers are
    5th, preliminary losers of a 12-entrant bracket are 9th).

    Returns [{'entrant': Entrant, 'place': n, 'points': n}, ...] ordered by
    place, for every entrant whose place is already decided.
    """
    bracket = [m for m in matches if m.round_name != THIRD_PLACE_ROUND_NAME]
    third_place = next((m for m in matches if m.round_name == THIRD_PLACE_ROUND_NAME), None)

    matches_per_round = {}
    for match in bracket:
        matches_per_round[match.round] = matches_per_round.get(match.round, 0) + 1

    places = {}
    entrants = {}
    for match in bracket:
        if match.status != COMPLETED or match.loser is None:
            continue
        if match.winner_to is None:
            places[match.winner.id] = 1
            entrants[match.winner.id] = match.winner
        if match.loser_to is not None:
            # Loser still plays for third place
            continue
        next_round_matches = matches_per_round.get(match.round + 1)
        survivors = next_round_matches * 2 if next_round_matches else 1
        places[match.loser.id] = survivors + 1
        entrants[match.loser.id] = match.loser

    if third_place is not None and third_place.status == COMPLETED and third_place.winner:
        places[third_place.winner.id] = 3
        places[third_place.loser.id] = 4
        entrants[third_place.winner.id] = third_place.winner
        entrants[third_place.loser.id] = third_place.loser

    def seed_key(entrant_id):
        seed = entrants[entrant_id].seed
        return seed if seed is not None else float('inf')

    ordered = sorted(places, key=lambda eid: (places[eid], seed_key(eid)))
    return [
        {'entrant': entrants[eid], 'place': places[eid], 'points': points_for_place(places[eid])}
        for eid in ordered
    ]
