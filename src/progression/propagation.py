"""
Propagation of match results through a bracket graph.

Every operation works on a copy of the given matches and returns
{'matches': [...], 'changed': [match ids]}. The whole update is computed
before anything is returned, so a caller can persist it in one write.
"""
import logging
from typing import Dict, List, Optional

from .errors import (
    IncompleteMatchState, MatchEditRejected, MatchNotFound, PropagationError, TournamentError,
)
from .models import (
    PlaceholderSlot, ResolvedSlot, SCHEDULED, IN_PROGRESS, COMPLETED,
    ROLE_WINNER, ROLE_LOSER,
)
from .scoring import normalize_sets, resolve_match_for

logger = logging.getLogger(__name__)

CASCADE = 'cascade'
REJECT = 'reject'
EDIT_POLICIES = (CASCADE, REJECT)


def _copy_graph(matches) -> Dict:
    graph = {}
    for match in matches:
        graph[match.id] = match.copy()
    return graph


def _get_match(graph: Dict, match_id):
    if match_id not in graph:
        raise MatchNotFound(f"Match {match_id} not found")
    return graph[match_id]


def _edges(match):
    return ((ROLE_WINNER, match.winner_to), (ROLE_LOSER, match.loser_to))


def _destination(graph: Dict, match, edge):
    dest_id, _ = edge
    if dest_id not in graph:
        raise PropagationError(f"Match {match.id} points to missing match {dest_id}")
    return graph[dest_id]


def _result(graph: Dict, changed) -> Dict:
    return {
        'matches': sorted(graph.values(), key=lambda m: m.id),
        'changed': sorted(changed),
    }


def _revert_downstream(graph: Dict, match, changed: set):
    """Put placeholders back in every slot fed by match, resetting played matches on the way."""
    for role, edge in _edges(match):
        if edge is None:
            continue
        dest = _destination(graph, match, edge)
        side = edge[1]
        placeholder = PlaceholderSlot(match.id, role)
        if dest.slot(side) == placeholder:
            continue
        if dest.status != SCHEDULED:
            _revert_downstream(graph, dest, changed)
            dest.clear_result()
            logger.info(f"Match {dest.id} reset because match {match.id} changed outcome")
        dest.set_slot(side, placeholder)
        changed.add(dest.id)


def _played_downstream(graph: Dict, match) -> List[int]:
    played = []
    for _, edge in _edges(match):
        if edge is None:
            continue
        dest = _destination(graph, match, edge)
        if dest.status != SCHEDULED:
            played.append(dest.id)
    return played


def _propagate(graph: Dict, match, changed: set):
    for role, edge in _edges(match):
        if edge is None:
            continue
        entrant = match.winner if role == ROLE_WINNER else match.loser
        dest = _destination(graph, match, edge)
        side = edge[1]
        slot = dest.slot(side)

        if slot == PlaceholderSlot(match.id, role):
            dest.set_slot(side, ResolvedSlot(entrant))
            changed.add(dest.id)
            logger.info(f"{role.capitalize()} of match {match.id} ({entrant.name}) "
                        f"moves to match {dest.id} slot {side}")
        elif slot.is_resolved and slot.entrant == entrant:
            # Already propagated by an earlier edit with the same outcome
            continue
        else:
            raise PropagationError(
                f"Slot {side} of match {dest.id} is not waiting for the {role} of match {match.id}"
            )


def _check_policy(policy: Optional[str]) -> str:
    policy = policy or CASCADE
    if policy not in EDIT_POLICIES:
        raise ValueError(f"Unknown edit policy: {policy}")
    return policy


def start_match(matches, match_id) -> Dict:
    """Move a scheduled match with two known participants to in_progress."""
    graph = _copy_graph(matches)
    match = _get_match(graph, match_id)
    if not match.is_ready:
        raise IncompleteMatchState(f"Match {match_id} is still waiting for its participants")
    if match.status != SCHEDULED:
        raise TournamentError(f"Match {match_id} is already {match.status}")
    match.status = IN_PROGRESS
    logger.debug(f"Match {match_id} started")
    return _result(graph, {match_id})


def record_result(matches, match_id, sets, policy: Optional[str] = None) -> Dict:
    """
    Record set scores for a match and propagate the outcome.

    Recording again on a completed match only replaces the scores when the
    winner stays the same. When the outcome changes, the slots fed by this
    match go back to their placeholders; with the 'cascade' policy downstream
    matches already started or played are reset too, with 'reject' the edit
    raises MatchEditRejected instead.
    """
    policy = _check_policy(policy)
    graph = _copy_graph(matches)
    match = _get_match(graph, match_id)
    if not match.is_ready:
        raise IncompleteMatchState(f"Match {match_id} is still waiting for its participants")

    normalized = normalize_sets(sets)
    outcome = resolve_match_for(match, normalized)
    new_winner = match.entrant(outcome['winner']) if outcome['winner'] else None
    new_loser = match.entrant(outcome['loser']) if outcome['loser'] else None

    changed = {match_id}
    if match.status == COMPLETED and (match.winner != new_winner or match.loser != new_loser):
        played = _played_downstream(graph, match)
        if played and policy == REJECT:
            raise MatchEditRejected(
                f"Match {match_id} feeds matches already under way: {', '.join(str(i) for i in played)}"
            )
        logger.info(f"Outcome of match {match_id} changed, reverting downstream slots")
        _revert_downstream(graph, match, changed)

    match.sets = normalized
    match.sets_won_a = outcome['sets_won_a']
    match.sets_won_b = outcome['sets_won_b']
    match.status = outcome['status']
    match.winner = new_winner
    match.loser = new_loser

    if match.status == COMPLETED:
        logger.info(f"Match {match_id} completed: {new_winner.name} beat {new_loser.name} "
                    f"{outcome['sets_won_a']}-{outcome['sets_won_b']}")
        _propagate(graph, match, changed)

    return _result(graph, changed)


def reset_match(matches, match_id) -> Dict:
    """Return a match to scheduled, clearing its scores and everything it fed."""
    graph = _copy_graph(matches)
    match = _get_match(graph, match_id)
    changed = {match_id}
    _revert_downstream(graph, match, changed)
    match.clear_result()
    logger.info(f"Match {match_id} reset")
    return _result(graph, changed)
