"""
Flask JSON API for the tournament progression engine.
"""
import os

from flask import Flask, request, jsonify

from progression.errors import TournamentError, MatchNotFound, BracketNotFound
from progression.models import Entrant, Match, MatchFormat, ResolvedSlot, COMPLETED
from progression.scoring import resolve_set, resolve_match, resolve_match_for, normalize_sets
from progression.standings import calculate_pool_ranking, calculate_final_placements
from progression.elimination import build_bracket, calculate_bracket_structure, get_bracket_display
from progression.propagation import start_match, record_result, reset_match
from progression.planner import plan_progression, validate_phase_chain
from storage import TournamentStore

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))


def get_store() -> TournamentStore:
    return TournamentStore(DATA_DIR)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise TournamentError('Request body must be a JSON object')
    return data


def _match_format(data, default=None) -> MatchFormat:
    try:
        return MatchFormat.from_dict(data or default)
    except (AttributeError, TypeError, ValueError) as e:
        raise TournamentError(f'Invalid match format: {e}')


def _entrants(data) -> list:
    raw = data.get('entrants')
    if not isinstance(raw, list):
        raise TournamentError("'entrants' must be a list")
    try:
        entrants = [Entrant.from_dict(e) for e in raw]
    except (KeyError, TypeError) as e:
        raise TournamentError(f'Invalid entrant: {e}')
    for entrant in entrants:
        if isinstance(entrant.id, bool) or not isinstance(entrant.id, (str, int)):
            raise TournamentError(f'Invalid entrant id: {entrant.id!r}')
    return entrants


@app.errorhandler(TournamentError)
def handle_tournament_error(e):
    if isinstance(e, (MatchNotFound, BracketNotFound)):
        return jsonify({'error': str(e)}), 404
    app.logger.warning(f'Rejected request to {request.path}: {e}')
    return jsonify({'error': str(e)}), 400


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@app.route('/api/sets/resolve', methods=['POST'])
def api_resolve_set():
    """Resolve a single set: {'score_a', 'score_b', 'points_per_set'}."""
    data = _json_body()
    score_a, score_b = normalize_sets([[data.get('score_a'), data.get('score_b')]])[0]
    match_format = _match_format({'points_per_set': data.get('points_per_set', 21)})
    return jsonify({'winner': resolve_set(score_a, score_b, match_format.points_per_set)})


@app.route('/api/matches/resolve', methods=['POST'])
def api_resolve_match():
    """Resolve a match from its sets without storing anything."""
    data = _json_body()
    match_format = _match_format(data.get('format'))
    outcome = resolve_match(data.get('sets'), match_format.sets_to_win, match_format.points_per_set,
                            match_format.tie_break_enabled, match_format.tie_break_points)
    return jsonify(outcome)


# ---------------------------------------------------------------------------
# Brackets
# ---------------------------------------------------------------------------

@app.route('/api/brackets/<name>', methods=['POST'])
def api_create_bracket(name):
    """Build and store a bracket from entrants ordered best to worst."""
    data = _json_body()
    store = get_store()
    entrants = _entrants(data)
    settings = store.load_settings()
    match_format = _match_format(data.get('format'), settings['bracket_format'])

    matches = build_bracket(entrants, match_format)
    store.save_bracket(name, matches)
    app.logger.info(f"Bracket '{name}' created with {len(entrants)} entrants")

    result = get_bracket_display(matches)
    result['structure'] = calculate_bracket_structure(len(entrants))
    return jsonify(result), 201


@app.route('/api/brackets/<name>', methods=['GET'])
def api_get_bracket(name):
    matches = get_store().load_bracket(name)
    return jsonify(get_bracket_display(matches))


def _update_response(result):
    changed = set(result['changed'])
    return jsonify({
        'changed': result['changed'],
        'matches': [m.to_dict() for m in result['matches'] if m.id in changed],
    })


@app.route('/api/brackets/<name>/matches/<int:match_id>/start', methods=['POST'])
def api_start_match(name, match_id):
    result = get_store().update_bracket(name, lambda matches: start_match(matches, match_id))
    return _update_response(result)


@app.route('/api/brackets/<name>/matches/<int:match_id>/result', methods=['POST'])
def api_record_result(name, match_id):
    """
    Record scores: {'sets': [[21, 15], ...], 'policy': 'cascade' | 'reject'}.

    The policy defaults to the stored settings' edit_policy.
    """
    data = _json_body()
    store = get_store()
    policy = data.get('policy') or store.load_settings().get('edit_policy')
    try:
        result = store.update_bracket(
            name, lambda matches: record_result(matches, match_id, data.get('sets'), policy)
        )
    except ValueError as e:
        raise TournamentError(str(e))
    return _update_response(result)


@app.route('/api/brackets/<name>/matches/<int:match_id>/reset', methods=['POST'])
def api_reset_match(name, match_id):
    result = get_store().update_bracket(name, lambda matches: reset_match(matches, match_id))
    return _update_response(result)


@app.route('/api/brackets/<name>/placements', methods=['GET'])
def api_placements(name):
    matches = get_store().load_bracket(name)
    placements = calculate_final_placements(matches)
    return jsonify({
        'placements': [
            {'entrant': row['entrant'].to_dict(), 'place': row['place'], 'points': row['points']}
            for row in placements
        ]
    })


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------

def _pool_matches(entrants, raw_matches, match_format):
    """Build completed Match objects from {'entrant_a', 'entrant_b', 'sets'} items."""
    by_id = {e.id: e for e in entrants}
    matches = []
    if not isinstance(raw_matches or [], list):
        raise TournamentError("'matches' must be a list")
    for index, raw in enumerate(raw_matches or [], start=1):
        if not isinstance(raw, dict):
            raise TournamentError(f'Match {index} must be an object')
        id_a = raw.get('entrant_a')
        id_b = raw.get('entrant_b')
        if not isinstance(id_a, (str, int)) or not isinstance(id_b, (str, int)) \
                or id_a not in by_id or id_b not in by_id:
            raise TournamentError(f'Match {index} refers to an unknown entrant')
        match = Match(index, 1, 'Pool', ResolvedSlot(by_id[id_a]), ResolvedSlot(by_id[id_b]), match_format)
        if raw.get('sets'):
            sets = normalize_sets(raw['sets'])
            outcome = resolve_match_for(match, sets)
            match.sets = sets
            match.status = outcome['status']
            match.sets_won_a = outcome['sets_won_a']
            match.sets_won_b = outcome['sets_won_b']
            if outcome['status'] == COMPLETED:
                match.winner = match.entrant(outcome['winner'])
                match.loser = match.entrant(outcome['loser'])
        matches.append(match)
    return matches


@app.route('/api/pools/ranking', methods=['POST'])
def api_pool_ranking():
    """Rank a pool: {'entrants': [...], 'matches': [{'entrant_a', 'entrant_b', 'sets'}], 'format': {...}}."""
    data = _json_body()
    entrants = _entrants(data)
    settings = get_store().load_settings()
    match_format = _match_format(data.get('format'), settings['pool_format'])
    matches = _pool_matches(entrants, data.get('matches'), match_format)

    ranking = calculate_pool_ranking(entrants, matches)
    for row in ranking:
        row['entrant'] = row['entrant'].to_dict()
    return jsonify({'ranking': ranking})


# ---------------------------------------------------------------------------
# King progression
# ---------------------------------------------------------------------------

@app.route('/api/progression/plan', methods=['POST'])
def api_plan():
    """Suggest configurations: {'players': n, 'fields': n}."""
    data = _json_body()
    try:
        players = int(data.get('players', 0))
        fields = int(data.get('fields', 0))
    except (TypeError, ValueError):
        raise TournamentError("'players' and 'fields' must be integers")
    settings = get_store().load_settings()
    configurations = plan_progression(players, fields, settings)
    return jsonify({'configurations': configurations})


@app.route('/api/progression/validate', methods=['POST'])
def api_validate():
    """Validate a phase chain: {'phases': [...], 'total_players': n}."""
    data = _json_body()
    phases = data.get('phases')
    if not isinstance(phases, list):
        raise TournamentError("'phases' must be a list")
    try:
        result = validate_phase_chain(phases, data.get('total_players'))
    except (KeyError, TypeError) as e:
        raise TournamentError(f'Invalid phase: {e}')
    return jsonify(result)


if __name__ == '__main__':
    app.run(debug=True, port=5000)
