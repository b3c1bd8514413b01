"""
Single elimination bracket generation.
"""
import logging
from typing import List, Dict, Optional

from .errors import InvalidEntrantCount, TournamentError
from .models import (
    Entrant, Match, MatchFormat, ResolvedSlot, PlaceholderSlot,
    ROLE_WINNER, ROLE_LOSER, SIDE_A, SIDE_B, COMPLETED,
)

logger = logging.getLogger(__name__)

PRELIMINARY_ROUND_NAME = "Preliminary Round"
THIRD_PLACE_ROUND_NAME = "Third Place"

# Round name by number of teams still in the bracket
ROUND_NAMES = {
    2: "Final",
    4: "Semifinal",
    8: "Quarterfinal",
}


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    return ROUND_NAMES.get(teams_in_round, f"Round of {teams_in_round}")


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    size = 1
    while size < num_teams:
        size *= 2
    return size


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def calculate_bracket_structure(num_entrants: int) -> Dict:
    """
    Work out the shape of a bracket for a number of entrants.

    Returns dict with:
    - total_slots: next power of two
    - byes: entrants skipping the preliminary round (the best seeds)
    - preliminary_matches: matches needed to fill the main bracket
    - main_bracket_size: slots in the first main round
    - first_main_round_name
    - entrants_playing_preliminary
    """
    if num_entrants < 2:
        raise InvalidEntrantCount(
            f"At least 2 entrants are required for an elimination bracket, got {num_entrants}"
        )

    total_slots = calculate_bracket_size(num_entrants)
    byes = total_slots - num_entrants
    playing = num_entrants - byes
    main_bracket_size = total_slots // 2

    return {
        'total_slots': total_slots,
        'byes': byes,
        'preliminary_matches': playing // 2,
        'main_bracket_size': main_bracket_size,
        'first_main_round_name': get_round_name(main_bracket_size) if main_bracket_size >= 2 else None,
        'entrants_playing_preliminary': playing,
    }


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 positions: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = _generate_bracket_order(half_size)

    # Lower half as complement
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    # Interleave: pair each upper seed with its complement
    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])

    return result


def seed_from_rankings(rankings: Dict[str, List[Dict]], advance) -> List[Entrant]:
    """
    Create the seeded list of entrants advancing from pools.

    `rankings` maps pool name to a pool ranking (see standings).
    `advance` is the number of entrants advancing per pool, or a dict of
    pool name -> count.

    Seeding is done by pool finish position:
    - All 1st place finishers get top seeds (pools in name order)
    - All 2nd place finishers get next seeds
    - etc.
    """
    pool_names = sorted(rankings.keys())
    if not pool_names:
        return []

    def advance_count(pool_name):
        if isinstance(advance, dict):
            return advance.get(pool_name, 0)
        return advance

    max_advance = max(advance_count(name) for name in pool_names)
    seeded = []
    seed = 1
    for position in range(1, max_advance + 1):
        for pool_name in pool_names:
            ranking = rankings[pool_name]
            if position <= advance_count(pool_name) and position <= len(ranking):
                entrant = ranking[position - 1]['entrant']
                seeded.append(Entrant(entrant.id, entrant.name, seed, entrant.members))
                seed += 1
    return seeded


def build_bracket(entrants, match_format: Optional[MatchFormat] = None) -> List[Match]:
    """
    Build the full single elimination match graph.

    `entrants` must be ordered best to worst. Matches are numbered in the
    order they are created (preliminary round, main rounds, third place).
    Every match except the final points to its destination through
    winner_to; the two semifinals also feed the third-place match through
    loser_to.
    """
    entrants = list(entrants)
    structure = calculate_bracket_structure(len(entrants))
    match_format = match_format or MatchFormat()

    seen = set()
    for entrant in entrants:
        if entrant.id in seen:
            raise TournamentError(f"Duplicate entrant in bracket: {entrant.id}")
        seen.add(entrant.id)

    num_entrants = len(entrants)
    byes = structure['byes']
    matches = []

    # 1. Preliminary round: lowest seeds play, best seeds get byes
    # With no byes every entrant plays, so the round is named by its size
    preliminary_name = PRELIMINARY_ROUND_NAME if byes else get_round_name(structure['total_slots'])
    preliminary = []
    for i in range(structure['preliminary_matches']):
        entrant_a = entrants[byes + i]
        entrant_b = entrants[num_entrants - 1 - i]
        match = Match(len(matches) + 1, 1, preliminary_name,
                      ResolvedSlot(entrant_a), ResolvedSlot(entrant_b), match_format)
        matches.append(match)
        preliminary.append(match)

    # 2. Main bracket slots: bye seeds first, then preliminary winners
    slots = [ResolvedSlot(e) for e in entrants[:byes]]
    slots += [PlaceholderSlot(m.id, ROLE_WINNER) for m in preliminary]
    main_size = len(slots)

    previous_round = []
    if main_size >= 2:
        # Position i meets position main_size-1-i; matches laid out in bracket order
        first_round_name = get_round_name(main_size)
        order = _generate_bracket_order(main_size)
        for k in range(0, len(order), 2):
            top = order[k] - 1
            bottom = main_size - 1 - top
            match = Match(len(matches) + 1, 2, first_round_name, slots[top], slots[bottom], match_format)
            for side, slot in ((SIDE_A, slots[top]), (SIDE_B, slots[bottom])):
                if not slot.is_resolved:
                    matches[slot.source_match_id - 1].winner_to = (match.id, side)
            matches.append(match)
            previous_round.append(match)

    # 3. Later rounds join winners of adjacent matches
    round_number = 3
    while len(previous_round) > 1:
        round_name = get_round_name(len(previous_round))
        current_round = []
        for k in range(0, len(previous_round), 2):
            source_a = previous_round[k]
            source_b = previous_round[k + 1]
            match = Match(len(matches) + 1, round_number, round_name,
                          PlaceholderSlot(source_a.id, ROLE_WINNER),
                          PlaceholderSlot(source_b.id, ROLE_WINNER), match_format)
            source_a.winner_to = (match.id, SIDE_A)
            source_b.winner_to = (match.id, SIDE_B)
            matches.append(match)
            current_round.append(match)
        previous_round = current_round
        round_number += 1

    # 4. Third place match between semifinal losers
    semifinals = [m for m in matches if m.round_name == ROUND_NAMES[4]]
    if len(semifinals) == 2:
        final_round = max(m.round for m in matches)
        third_place = Match(len(matches) + 1, final_round, THIRD_PLACE_ROUND_NAME,
                            PlaceholderSlot(semifinals[0].id, ROLE_LOSER),
                            PlaceholderSlot(semifinals[1].id, ROLE_LOSER), match_format)
        semifinals[0].loser_to = (third_place.id, SIDE_A)
        semifinals[1].loser_to = (third_place.id, SIDE_B)
        matches.append(third_place)

    logger.info(
        f"Built bracket for {num_entrants} entrants: {structure['total_slots']} slots, "
        f"{byes} byes, {structure['preliminary_matches']} preliminary matches, {len(matches)} matches"
    )
    return matches


def find_match(matches, match_id) -> Optional[Match]:
    for match in matches:
        if match.id == match_id:
            return match
    return None


def get_champion(matches) -> Optional[Entrant]:
    for match in matches:
        if match.round_name == THIRD_PLACE_ROUND_NAME:
            continue
        if match.winner_to is None and match.status == COMPLETED:
            return match.winner
    return None


def get_bracket_display(matches) -> Dict:
    """
    Get bracket data formatted for display.

    Returns dict with rounds (round name -> match dicts with slot labels, in
    play order), total_rounds, matches_per_round, total_matches and the
    champion once the final is played.
    """
    rounds = {}
    for match in sorted(matches, key=lambda m: (m.round, m.id)):
        entry = match.to_dict()
        entry['label_a'] = match.slot_a.label
        entry['label_b'] = match.slot_b.label
        rounds.setdefault(match.round_name, []).append(entry)

    champion = get_champion(matches)
    return {
        'rounds': rounds,
        'total_rounds': len({m.round for m in matches}),
        'matches_per_round': {name: len(entries) for name, entries in rounds.items()},
        'total_matches': len(matches),
        'champion': champion.to_dict() if champion else None,
    }
