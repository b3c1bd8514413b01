"""
Turning planned phases into pools and matches, and reading qualifiers back.
"""
import logging
import random
import string
from itertools import combinations
from math import gcd
from typing import List, Dict, Optional

from .models import Entrant, Match, MatchFormat, ResolvedSlot
from .planner import ROUND_ROBIN, KOB
from .standings import calculate_player_ranking

logger = logging.getLogger(__name__)

# Hand-made 3v3 rotation for a pool of 6 players: player indexes of both teams per round
KOB_3V3_GRID = [
    [[0, 1, 2], [3, 4, 5]],
    [[0, 3, 4], [1, 2, 5]],
    [[0, 1, 5], [2, 3, 4]],
    [[0, 2, 3], [1, 4, 5]],
    [[0, 4, 5], [1, 2, 3]],
]


def pool_name(index: int) -> str:
    """Pool A, Pool B, ... Pool Z, Pool 27 ..."""
    if index < len(string.ascii_uppercase):
        return f"Pool {string.ascii_uppercase[index]}"
    return f"Pool {index + 1}"


def generate_round_robin_matches(entrants, match_format: Optional[MatchFormat] = None,
                                 pool: Optional[str] = None, first_id: int = 1,
                                 round_number: int = 1) -> List[Match]:
    """Every pair of entrants plays once, in input order."""
    matches = []
    for entrant_a, entrant_b in combinations(entrants, 2):
        match = Match(first_id + len(matches), round_number, f"Round {round_number}",
                      ResolvedSlot(entrant_a), ResolvedSlot(entrant_b), match_format, pool)
        matches.append(match)
    return matches


def _team(pool: Optional[str], round_number: int, index: int, members) -> Entrant:
    prefix = f"{pool} " if pool else ""
    return Entrant(
        id=f"{prefix}R{round_number} T{index + 1}",
        name=" / ".join(str(m) for m in members),
        members=members,
    )


def form_teams(players, team_size: int, number_of_teams: int, rng: Optional[random.Random] = None) -> List[List]:
    """Shuffle players and cut them into teams. Players beyond the teams sit out."""
    if team_size < 1:
        raise ValueError("team_size must be at least 1")
    if team_size * number_of_teams > len(players):
        raise ValueError(
            f"{number_of_teams} teams of {team_size} need {team_size * number_of_teams} players, "
            f"got {len(players)}"
        )
    rng = rng or random.Random()
    shuffled = list(players)
    rng.shuffle(shuffled)
    return [shuffled[i * team_size:(i + 1) * team_size] for i in range(number_of_teams)]


def generate_rotation_rounds(players, team_size: int, rounds: int) -> List[List]:
    """
    King of the Beach rotation.

    Returns one entry per round: a list of (team, team) pairs, each team a
    list of players. The first player stays put while the others rotate, so
    partners change every round; adjacent teams play each other and an odd
    team out sits the round. For teams of two this is the circle method:
    with n players, n-1 rounds give every player each partner once (7 rounds
    for a pool of 8). Larger teams walk the rotating players with a
    different stride each round so neighbours split up. Six players in teams
    of three use the known 3v3 grid.
    """
    players = list(players)
    teams_per_round = len(players) // team_size
    if teams_per_round < 2:
        raise ValueError(f"{len(players)} players cannot form two teams of {team_size}")

    if len(players) == 6 and team_size == 3:
        grid = [[[players[i] for i in side] for side in round_] for round_ in KOB_3V3_GRID]
        return [[(grid[r % len(grid)][0], grid[r % len(grid)][1])] for r in range(rounds)]

    fixed, others = players[0], players[1:]
    used = teams_per_round * team_size
    circle = team_size == 2 and len(players) == used
    # Strides coprime with the rotating players keep every order a permutation
    strides = [s for s in range(1, len(others)) if gcd(s, len(others)) == 1] or [1]
    schedule = []
    for r in range(rounds):
        if circle:
            shift = r % len(others)
            order = [fixed] + others[shift:] + others[:shift]
            teams = [[order[i], order[used - 1 - i]] for i in range(teams_per_round)]
        else:
            stride = strides[r % len(strides)]
            order = [fixed] + [others[(r + i * stride) % len(others)] for i in range(len(others))]
            teams = [order[i * team_size:(i + 1) * team_size] for i in range(teams_per_round)]
        schedule.append([(teams[k], teams[k + 1]) for k in range(0, teams_per_round - 1, 2)])
    return schedule


def _pool_players(players: List, phase: Dict) -> List[List]:
    ppt = phase['players_per_team']
    needed = phase['total_teams'] * ppt
    if len(players) < needed:
        raise ValueError(f"Phase {phase['phase_number']} needs {needed} players, got {len(players)}")
    pools = []
    start = 0
    for teams in phase['pool_distribution']:
        size = teams * ppt
        pools.append(players[start:start + size])
        start += size
    return pools


def instantiate_phase(phase: Dict, players, rng: Optional[random.Random] = None) -> Dict:
    """
    Create the pools and matches of a planned phase.

    Players fill the pools in the order given. Round-robin phases form new
    random teams every round and play every pairing; KOB phases follow the
    rotation. Match ids run across the whole phase.

    Returns {'pools': [{'name', 'players', 'qualify'}], 'matches': [Match]}.
    """
    rng = rng or random.Random()
    players = list(players)
    match_format = MatchFormat.from_dict(phase.get('match_format'))
    ppt = phase['players_per_team']

    pools = []
    matches = []
    for index, pool_players in enumerate(_pool_players(players, phase)):
        name = pool_name(index)
        teams_in_pool = phase['pool_distribution'][index]
        rounds = phase['rounds_per_pool'][index] if phase.get('rounds_per_pool') else phase['rounds']

        if phase['phase_format'] == ROUND_ROBIN:
            for round_number in range(1, rounds + 1):
                teams = form_teams(pool_players, ppt, teams_in_pool, rng)
                entrants = [_team(name, round_number, k, members) for k, members in enumerate(teams)]
                matches.extend(generate_round_robin_matches(
                    entrants, match_format, name, len(matches) + 1, round_number))
        elif phase['phase_format'] == KOB:
            for round_number, pairs in enumerate(generate_rotation_rounds(pool_players, ppt, rounds), start=1):
                for k, (team_a, team_b) in enumerate(pairs):
                    entrant_a = _team(name, round_number, 2 * k, team_a)
                    entrant_b = _team(name, round_number, 2 * k + 1, team_b)
                    matches.append(Match(len(matches) + 1, round_number, f"Round {round_number}",
                                         ResolvedSlot(entrant_a), ResolvedSlot(entrant_b),
                                         match_format, name))
        else:
            raise ValueError(f"Unknown phase format: {phase['phase_format']}")

        pools.append({
            'name': name,
            'players': pool_players,
            'qualify': phase['qualified_distribution'][index],
        })

    logger.info(f"Phase {phase['phase_number']}: {len(pools)} pool(s), {len(matches)} matches")
    return {'pools': pools, 'matches': matches}


def select_qualifiers(pools: List[Dict], matches, qualified_distribution: Optional[List[int]] = None) -> Dict:
    """
    Take the best players of every pool.

    Returns {'qualified': [players in pool order], 'by_pool': {name: [...]},
    'rankings': {name: ranking}}.
    """
    qualified = []
    by_pool = {}
    rankings = {}
    for index, pool in enumerate(pools):
        count = qualified_distribution[index] if qualified_distribution is not None else pool['qualify']
        pool_matches = [m for m in matches if m.pool == pool['name']]
        ranking = calculate_player_ranking(pool['players'], pool_matches)
        chosen = [row['player'] for row in ranking[:count]]
        rankings[pool['name']] = ranking
        by_pool[pool['name']] = chosen
        qualified.extend(chosen)
        logger.debug(f"{pool['name']}: top {count} qualified")
    return {'qualified': qualified, 'by_pool': by_pool, 'rankings': rankings}


def repechage_candidates(pools: List[Dict], matches, qualified) -> List[Dict]:
    """Players who did not qualify, ranked across all pools, for filling withdrawals."""
    qualified = set(qualified)
    candidates = [p for pool in pools for p in pool['players'] if p not in qualified]
    return calculate_player_ranking(candidates, matches)
