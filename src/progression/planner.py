"""
Multi-phase progression planning for King tournaments.

A King tournament is a chain of phases. Players are grouped into teams of
`players_per_team`, teams into pools, and the best players of every pool
qualify for the next phase with a smaller team size. The last phase must
leave exactly two players.
"""
import logging
import math
from typing import List, Dict, Optional

from .config import get_default_settings, merge_settings
from .errors import InvalidPoolCount
from .models import MatchFormat

logger = logging.getLogger(__name__)

MIN_TEAMS_PER_POOL = 2
MAX_TEAMS_PER_POOL = 8

ROUND_ROBIN = 'round_robin'
KOB = 'kob'
PHASE_FORMATS = (ROUND_ROBIN, KOB)

ROUND_ROBIN_ROUNDS = 3
FINAL_QUALIFIED = 2
MIN_PLAYERS = 6

# Teams per pool the generator aims for
PREFERRED_TEAMS_PER_POOL = {
    ROUND_ROBIN: 3,
    KOB: 4,
}

# Candidate plans. `keep` is the share of players qualifying from each
# phase but the last, as (numerator, denominator).
PLAN_TEMPLATES = [
    {
        'name': 'classic',
        'description': '4v4 pools, then 3v3 King of the Beach, final in 2v2',
        'team_sizes': [4, 3, 2],
        'keep': [(1, 3), (2, 3)],
        'min_players': 24,
        'max_players': None,
    },
    {
        'name': 'big',
        'description': '6v6 pools for large fields, then 4v4, final in 2v2',
        'team_sizes': [6, 4, 2],
        'keep': [(1, 3), (1, 2)],
        'min_players': 48,
        'max_players': None,
    },
    {
        'name': 'fast',
        'description': '4v4 pools straight into a 2v2 final',
        'team_sizes': [4, 2],
        'keep': [(1, 2)],
        'min_players': 16,
        'max_players': 47,
    },
    {
        'name': 'compact',
        'description': '3v3 pools straight into a 2v2 final',
        'team_sizes': [3, 2],
        'keep': [(1, 2)],
        'min_players': 12,
        'max_players': 31,
    },
]


def distribute_teams(total_teams: int, number_of_pools: int) -> List[int]:
    """
    Split teams over pools as evenly as possible; the first pools take the
    extra team. Raises InvalidPoolCount when a pool would fall outside
    [MIN_TEAMS_PER_POOL, MAX_TEAMS_PER_POOL].
    """
    if number_of_pools < 1 or number_of_pools > total_teams:
        raise InvalidPoolCount(
            f"Cannot split {total_teams} teams into {number_of_pools} pools"
        )

    base, remainder = divmod(total_teams, number_of_pools)
    distribution = [base + 1 if i < remainder else base for i in range(number_of_pools)]

    if min(distribution) < MIN_TEAMS_PER_POOL or max(distribution) > MAX_TEAMS_PER_POOL:
        raise InvalidPoolCount(
            f"{total_teams} teams in {number_of_pools} pools gives pools of {min(distribution)} "
            f"to {max(distribution)} teams; pools must hold {MIN_TEAMS_PER_POOL} to {MAX_TEAMS_PER_POOL}"
        )
    return distribution


def kob_rounds(teams_in_pool: int) -> int:
    """
    Rounds played by a King of the Beach pool.

    2:1, 3:3, 4:5, 5:7, 6:9, 7:11, 8:13 and 2n-3 beyond.
    """
    if teams_in_pool < 2:
        raise ValueError(f"A pool needs at least 2 teams, got {teams_in_pool}")
    return 2 * teams_in_pool - 3


def rounds_for(teams_in_pool: int, phase_format: str) -> int:
    if phase_format == ROUND_ROBIN:
        return ROUND_ROBIN_ROUNDS
    if phase_format == KOB:
        return kob_rounds(teams_in_pool)
    raise ValueError(f"Unknown phase format: {phase_format}")


def matches_per_round(teams_in_pool: int, phase_format: str) -> int:
    if phase_format == ROUND_ROBIN:
        return teams_in_pool * (teams_in_pool - 1) // 2
    if phase_format == KOB:
        return teams_in_pool // 2
    raise ValueError(f"Unknown phase format: {phase_format}")


def count_matches(phase_format: str, pool_distribution: List[int], rounds: Optional[int] = None) -> int:
    """
    Total matches of a phase, summed over the real pool sizes.

    With rounds=None each pool plays the rounds of its own size.
    """
    total = 0
    for teams in pool_distribution:
        pool_rounds = rounds if rounds is not None else rounds_for(teams, phase_format)
        total += matches_per_round(teams, phase_format) * pool_rounds
    return total


def distribute_qualifiers(total_qualified: int, pool_distribution: List[int], players_per_team: int) -> List[int]:
    """
    Share the qualifying places among pools in proportion to their players.

    Every pool keeps at least one team's worth of players eliminated, so a
    pool qualifies at most players_in_pool - players_per_team. Places lost
    to rounding are handed out one at a time to the first pools that still
    have room. If the caps do not allow it, fewer than total_qualified
    places are given out; validate_phase_chain reports it.
    """
    players = [teams * players_per_team for teams in pool_distribution]
    total_players = sum(players)
    if total_players == 0:
        return [0 for _ in pool_distribution]

    caps = [max(0, p - players_per_team) for p in players]
    shares = [min(cap, total_qualified * p // total_players) for cap, p in zip(caps, players)]

    leftover = total_qualified - sum(shares)
    while leftover > 0:
        granted = False
        for i in range(len(shares)):
            if leftover and shares[i] < caps[i]:
                shares[i] += 1
                leftover -= 1
                granted = True
        if not granted:
            break
    return shares


def estimate_match_minutes(sets: int, minutes_per_set: int, inter_set_break: int, inter_match_break: int) -> int:
    return sets * minutes_per_set + (sets - 1) * inter_set_break + inter_match_break


def estimate_phase_minutes(total_matches: int, fields: int, match_minutes: int, setup_overhead: int) -> int:
    if fields < 1:
        raise ValueError("At least one field is required")
    return math.ceil(total_matches / fields) * match_minutes + setup_overhead


def build_phase(phase_number: int, players_per_team: int, phase_format: str, total_teams: int,
                number_of_pools: int, total_qualified: int, match_format: Optional[MatchFormat] = None,
                fields: int = 1, timing: Optional[Dict] = None, rounds: Optional[int] = None) -> Dict:
    """
    Derive a complete phase from its shape.

    Returns dict with phase_number, players_per_team, phase_format,
    total_teams, number_of_pools, pool_distribution, qualified_distribution,
    total_qualified, rounds, rounds_per_pool, total_matches, match_format and
    estimated_minutes.
    """
    if phase_format not in PHASE_FORMATS:
        raise ValueError(f"Unknown phase format: {phase_format}")
    match_format = match_format or MatchFormat()
    timing = timing or get_default_settings()['timing']

    pool_distribution = distribute_teams(total_teams, number_of_pools)
    qualified_distribution = distribute_qualifiers(total_qualified, pool_distribution, players_per_team)

    if rounds is not None:
        rounds_per_pool = [rounds for _ in pool_distribution]
    else:
        rounds_per_pool = [rounds_for(teams, phase_format) for teams in pool_distribution]
    total_matches = count_matches(phase_format, pool_distribution, rounds)

    match_minutes = estimate_match_minutes(
        match_format.max_sets,
        timing['minutes_per_set'],
        timing['inter_set_break_minutes'],
        timing['inter_match_break_minutes'],
    )
    estimated = estimate_phase_minutes(total_matches, fields, match_minutes, timing['setup_overhead_minutes'])

    return {
        'phase_number': phase_number,
        'players_per_team': players_per_team,
        'phase_format': phase_format,
        'total_teams': total_teams,
        'number_of_pools': number_of_pools,
        'pool_distribution': pool_distribution,
        'qualified_distribution': qualified_distribution,
        'total_qualified': total_qualified,
        'rounds': max(rounds_per_pool),
        'rounds_per_pool': rounds_per_pool,
        'total_matches': total_matches,
        'match_format': match_format.to_dict(),
        'estimated_minutes': estimated,
    }


def validate_phase_chain(phases: List[Dict], total_players: Optional[int] = None) -> Dict:
    """
    Check a chain of phases and collect every problem found.

    Returns {'valid': bool, 'errors': [str, ...]}. Never raises on bad
    configurations.
    """
    errors = []
    if not phases:
        return {'valid': False, 'errors': ['No phases configured']}

    first = phases[0]
    first_players = first['total_teams'] * first['players_per_team']
    if total_players is not None and first_players > total_players:
        errors.append(
            f"Phase {first['phase_number']} needs {first_players} players "
            f"but only {total_players} are registered"
        )

    for phase in phases:
        number = phase['phase_number']
        ppt = phase['players_per_team']
        phase_players = phase['total_teams'] * ppt
        if phase['total_qualified'] > phase_players:
            errors.append(
                f"Phase {number} qualifies {phase['total_qualified']} players "
                f"but only {phase_players} play in it"
            )

        distribution = phase.get('qualified_distribution')
        pools = phase.get('pool_distribution')
        if distribution is None or pools is None:
            continue
        if sum(distribution) != phase['total_qualified']:
            errors.append(
                f"Phase {number} pools qualify {sum(distribution)} players "
                f"but the phase total is {phase['total_qualified']}"
            )
        for index, (qualified, teams) in enumerate(zip(distribution, pools), start=1):
            pool_players = teams * ppt
            if qualified > pool_players - ppt:
                errors.append(
                    f"Phase {number} pool {index} qualifies {qualified} of {pool_players} players; "
                    f"at least one team must be eliminated"
                )

    for current, following in zip(phases, phases[1:]):
        expected = following['total_teams'] * following['players_per_team']
        if current['total_qualified'] != expected:
            errors.append(
                f"Phase {current['phase_number']} qualifies {current['total_qualified']} players, "
                f"but Phase {following['phase_number']} expects {expected} players"
            )

    last = phases[-1]
    if last['total_qualified'] != FINAL_QUALIFIED:
        errors.append(
            f"Final phase {last['phase_number']} must end with {FINAL_QUALIFIED} qualified players, "
            f"got {last['total_qualified']}"
        )

    return {'valid': not errors, 'errors': errors}


def _pool_count(total_teams: int, phase_format: str, fields: int) -> int:
    preferred = PREFERRED_TEAMS_PER_POOL[phase_format]
    count = min(fields, max(1, round(total_teams / preferred)))
    count = min(count, total_teams // MIN_TEAMS_PER_POOL)
    while math.ceil(total_teams / count) > MAX_TEAMS_PER_POOL:
        count += 1
    while count > 1 and total_teams // count < MIN_TEAMS_PER_POOL:
        count -= 1
    return count


def _phase_format_for(index: int, phase_count: int, settings: Dict) -> tuple:
    formats = settings['king_formats']
    if index == 0:
        return ROUND_ROBIN, MatchFormat.from_dict(formats['round_robin'])
    if index == phase_count - 1:
        return KOB, MatchFormat.from_dict(formats['final'])
    return KOB, MatchFormat.from_dict(formats['kob'])


def _build_configuration(template: Dict, total_players: int, available_fields: int, settings: Dict) -> Optional[Dict]:
    team_sizes = template['team_sizes']
    warnings = []
    phases = []

    first_size = team_sizes[0]
    players = (total_players // first_size) * first_size
    if players < total_players:
        warnings.append(
            f"{total_players - players} player(s) cannot fit in {first_size}v{first_size} teams and sit out"
        )

    for index, players_per_team in enumerate(team_sizes):
        phase_format, match_format = _phase_format_for(index, len(team_sizes), settings)
        total_teams = players // players_per_team
        if total_teams < MIN_TEAMS_PER_POOL:
            return None
        is_final = index == len(team_sizes) - 1

        if is_final:
            if total_teams > MAX_TEAMS_PER_POOL:
                return None
            number_of_pools = 1
            qualified = FINAL_QUALIFIED
        else:
            number_of_pools = _pool_count(total_teams, phase_format, available_fields)
            try:
                pool_distribution = distribute_teams(total_teams, number_of_pools)
            except InvalidPoolCount:
                return None
            next_size = team_sizes[index + 1]
            numerator, denominator = template['keep'][index]
            qualified = players * numerator // denominator
            if index + 1 == len(team_sizes) - 1:
                # Final phase plays in a single pool
                qualified = min(qualified, MAX_TEAMS_PER_POOL * next_size)
            capacity = sum(teams * players_per_team - players_per_team for teams in pool_distribution)
            qualified = min(qualified, capacity)
            qualified -= qualified % next_size
            if qualified < MIN_TEAMS_PER_POOL * next_size:
                return None

        if number_of_pools > available_fields:
            warnings.append(
                f"Phase {index + 1} has {number_of_pools} pools for {available_fields} field(s)"
            )

        phases.append(build_phase(
            index + 1, players_per_team, phase_format, total_teams, number_of_pools, qualified,
            match_format=match_format, fields=available_fields, timing=settings['timing'],
        ))
        players = qualified

    validation = validate_phase_chain(phases, total_players)
    return {
        'name': template['name'],
        'description': template['description'],
        'total_players': total_players,
        'available_fields': available_fields,
        'phases': phases,
        'estimated_minutes': sum(p['estimated_minutes'] for p in phases),
        'warnings': warnings,
        'errors': validation['errors'],
    }


def plan_progression(total_players: int, available_fields: int, settings: Optional[Dict] = None) -> List[Dict]:
    """
    Suggest King configurations for a number of players and fields.

    Candidates depend on player count:
    - classic 4v4 -> 3v3 -> 2v2 from 24 players
    - big 6v6 -> 4v4 -> 2v2 from 48 players
    - fast 4v4 -> 2v2 for 16 to 47 players
    - compact 3v3 -> 2v2 for 12 to 31 players

    Returns an empty list below 6 players or without a field.
    """
    if total_players < MIN_PLAYERS or available_fields < 1:
        return []
    settings = merge_settings(settings)

    configurations = []
    for template in PLAN_TEMPLATES:
        if total_players < template['min_players']:
            continue
        if template['max_players'] is not None and total_players > template['max_players']:
            continue
        configuration = _build_configuration(template, total_players, available_fields, settings)
        if configuration is None:
            logger.debug(f"Skipping '{template['name']}' plan for {total_players} players")
            continue
        if configuration['errors']:
            logger.warning(f"Plan '{template['name']}' has errors: {configuration['errors']}")
        configurations.append(configuration)

    logger.info(f"{len(configurations)} plan(s) for {total_players} players on {available_fields} field(s)")
    return configurations
