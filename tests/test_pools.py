"""
Tests for phase instantiation and qualifier selection.
"""
import itertools
import random
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_entrants
from progression.planner import build_phase, ROUND_ROBIN, KOB
from progression.propagation import record_result
from progression.pools import (
    pool_name,
    generate_round_robin_matches,
    form_teams,
    generate_rotation_rounds,
    instantiate_phase,
    select_qualifiers,
    repechage_candidates,
)


def players(count):
    return [f"p{i}" for i in range(1, count + 1)]


def play_pool(matches, winner_side='a'):
    """Complete every match with the given side winning."""
    sets = [[21, 12]] if winner_side == 'a' else [[12, 21]]
    for match in list(matches):
        matches = record_result(matches, match.id, sets)['matches']
    return matches


class TestRoundRobinMatches:
    """Tests for generate_round_robin_matches."""

    def test_every_pair_once(self):
        """Test every pair of entrants meets once."""
        entrants = make_entrants(4)
        matches = generate_round_robin_matches(entrants, pool='Pool A')
        assert len(matches) == 6
        pairs = {(m.entrant('a').id, m.entrant('b').id) for m in matches}
        assert pairs == set(itertools.combinations(['E1', 'E2', 'E3', 'E4'], 2))
        assert all(m.pool == 'Pool A' for m in matches)

    def test_ids_start_at_first_id(self):
        """Test match ids start at first_id."""
        matches = generate_round_robin_matches(make_entrants(3), first_id=10)
        assert [m.id for m in matches] == [10, 11, 12]


class TestFormTeams:
    """Tests for form_teams."""

    def test_team_sizes(self):
        """Test teams have the requested size and use each player once."""
        teams = form_teams(players(12), 4, 3, random.Random(1))
        assert len(teams) == 3
        assert all(len(team) == 4 for team in teams)
        assert sorted(p for team in teams for p in team) == sorted(players(12))

    def test_seeded_rng_repeatable(self):
        """Test the same seed forms the same teams."""
        first = form_teams(players(8), 2, 4, random.Random(3))
        second = form_teams(players(8), 2, 4, random.Random(3))
        assert first == second

    def test_not_enough_players(self):
        """Test too few players for the requested teams."""
        with pytest.raises(ValueError):
            form_teams(players(5), 3, 2)


class TestRotationRounds:
    """Tests for generate_rotation_rounds."""

    def test_matches_per_round(self):
        """Test two 2v2 matches per round for 8 players."""
        schedule = generate_rotation_rounds(players(8), 2, 5)
        assert len(schedule) == 5
        assert all(len(round_) == 2 for round_ in schedule)

    def test_each_player_once_per_round(self):
        """Test every player plays once per round."""
        for round_ in generate_rotation_rounds(players(8), 2, 7):
            seen = [p for team_a, team_b in round_ for p in team_a + team_b]
            assert sorted(seen) == sorted(players(8))

    def test_eight_players_partner_everyone_once(self):
        """Test 8 players partner everyone once over 7 rounds."""
        partners = set()
        for round_ in generate_rotation_rounds(players(8), 2, 7):
            for team_a, team_b in round_:
                partners.add(frozenset(team_a))
                partners.add(frozenset(team_b))
        assert len(partners) == 28

    def test_three_v_three_grid(self):
        """Test 6 players in 3v3 follow the fixed grid."""
        schedule = generate_rotation_rounds(players(6), 3, 5)
        assert schedule[0] == [(['p1', 'p2', 'p3'], ['p4', 'p5', 'p6'])]
        assert schedule[1] == [(['p1', 'p4', 'p5'], ['p2', 'p3', 'p6'])]

    def test_three_v_three_partners_spread(self):
        """Test twelve players in 3v3 over five rounds partner no pair more than twice."""
        counts = {}
        schedule = generate_rotation_rounds(players(12), 3, 5)
        for round_ in schedule:
            seen = [p for team_a, team_b in round_ for p in team_a + team_b]
            assert sorted(seen) == sorted(players(12))
            for team_a, team_b in round_:
                for team in (team_a, team_b):
                    for pair in itertools.combinations(sorted(team), 2):
                        counts[pair] = counts.get(pair, 0) + 1
        assert max(counts.values()) <= 2
        assert len(counts) >= 40

    def test_odd_team_sits_out(self):
        """Test the odd team out sits the round."""
        schedule = generate_rotation_rounds(players(9), 3, 3)
        assert all(len(round_) == 1 for round_ in schedule)

    def test_too_few_players(self):
        """Test fewer players than two teams."""
        with pytest.raises(ValueError):
            generate_rotation_rounds(players(3), 2, 1)


class TestInstantiatePhase:
    """Tests for instantiate_phase."""

    def test_round_robin_phase(self):
        """Test a round robin phase of 36 players."""
        phase = build_phase(1, 4, ROUND_ROBIN, 9, 3, 12)
        result = instantiate_phase(phase, players(36), random.Random(5))
        assert [p['name'] for p in result['pools']] == ['Pool A', 'Pool B', 'Pool C']
        assert all(len(p['players']) == 12 for p in result['pools'])
        assert len(result['matches']) == phase['total_matches']
        assert [m.id for m in result['matches']] == list(range(1, 28))
        for match in result['matches']:
            assert len(match.entrant('a').members) == 4

    def test_round_robin_teams_stay_in_pool(self):
        """Test teams only hold players of their own pool."""
        phase = build_phase(1, 4, ROUND_ROBIN, 9, 3, 12)
        result = instantiate_phase(phase, players(36), random.Random(5))
        pools = {p['name']: set(p['players']) for p in result['pools']}
        for match in result['matches']:
            members = set(match.entrant('a').members) | set(match.entrant('b').members)
            assert members <= pools[match.pool]

    def test_kob_phase(self):
        """Test a KOB phase of 12 players."""
        phase = build_phase(2, 3, KOB, 4, 1, 8)
        result = instantiate_phase(phase, players(12))
        assert len(result['matches']) == phase['total_matches'] == 10
        assert result['pools'][0]['qualify'] == 8

    def test_not_enough_players(self):
        """Test a phase given fewer players than planned."""
        phase = build_phase(1, 4, ROUND_ROBIN, 9, 3, 12)
        with pytest.raises(ValueError):
            instantiate_phase(phase, players(30))


class TestSelectQualifiers:
    """Tests for select_qualifiers and repechage_candidates."""

    def test_top_players_per_pool(self):
        """Test the top ranked players of each pool qualify."""
        phase = build_phase(1, 2, KOB, 8, 2, 4)
        result = instantiate_phase(phase, players(16))
        matches = play_pool(result['matches'])
        selection = select_qualifiers(result['pools'], matches)
        assert len(selection['qualified']) == 4
        assert [len(v) for v in selection['by_pool'].values()] == [2, 2]
        for name, chosen in selection['by_pool'].items():
            ranking = selection['rankings'][name]
            assert chosen == [row['player'] for row in ranking[:2]]

    def test_explicit_distribution(self):
        """Test an explicit per-pool qualifier count."""
        phase = build_phase(1, 2, KOB, 8, 2, 4)
        result = instantiate_phase(phase, players(16))
        matches = play_pool(result['matches'])
        selection = select_qualifiers(result['pools'], matches, [3, 1])
        assert [len(v) for v in selection['by_pool'].values()] == [3, 1]

    def test_repechage_excludes_qualified(self):
        """Test repechage ranks only players who did not qualify."""
        phase = build_phase(1, 2, KOB, 4, 1, 2)
        result = instantiate_phase(phase, players(8))
        matches = play_pool(result['matches'])
        selection = select_qualifiers(result['pools'], matches)
        candidates = repechage_candidates(result['pools'], matches, selection['qualified'])
        assert len(candidates) == 6
        assert not set(row['player'] for row in candidates) & set(selection['qualified'])
        assert [row['rank'] for row in candidates] == list(range(1, 7))


class TestPoolName:
    def test_letters(self):
        """Test pool names."""
        assert pool_name(0) == 'Pool A'
        assert pool_name(25) == 'Pool Z'
        assert pool_name(26) == 'Pool 27'
