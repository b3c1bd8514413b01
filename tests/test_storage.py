"""
Tests for the YAML tournament store.
"""
import os
import pytest
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_entrants
from progression.errors import BracketNotFound
from progression.propagation import record_result
from progression.pools import generate_round_robin_matches
from storage import TournamentStore


@pytest.fixture
def store(tmp_path):
    return TournamentStore(str(tmp_path))


class TestBrackets:
    """Tests for bracket persistence."""

    def test_save_and_load(self, store, bracket_4):
        """Test a saved bracket loads back with its slots and edges."""
        store.save_bracket('Spring Open', bracket_4)
        loaded = store.load_bracket('Spring Open')
        assert [m.id for m in loaded] == [1, 2, 3, 4]
        assert loaded[0].entrant('a').id == 'E1'
        assert loaded[2].slot_a.label == 'Winner M1'
        assert loaded[0].winner_to == (3, 'a')

    def test_list_brackets(self, store, bracket_4):
        """Test stored brackets are listed by file name."""
        store.save_bracket('Spring Open', bracket_4)
        store.save_bracket('Autumn Cup', bracket_4)
        assert store.list_brackets() == ['autumn-cup', 'spring-open']

    def test_missing_bracket(self, store):
        """Test loading an unknown bracket."""
        with pytest.raises(BracketNotFound):
            store.load_bracket('nothing')
        assert not store.bracket_exists('nothing')

    def test_invalid_name(self, store, bracket_4):
        """Test a name without letters or digits."""
        with pytest.raises(ValueError):
            store.save_bracket('!!!', bracket_4)

    def test_update_saves_propagated_slots(self, store, bracket_4):
        """Test an update saves the result and the slots it filled."""
        store.save_bracket('cup', bracket_4)
        result = store.update_bracket('cup', lambda matches: record_result(matches, 1, [[21, 10]]))
        assert result['changed'] == [1, 3, 4]
        loaded = {m.id: m for m in store.load_bracket('cup')}
        assert loaded[1].status == 'completed'
        assert loaded[1].winner.id == 'E1'
        assert loaded[3].entrant('a').id == 'E1'
        assert loaded[4].entrant('a').id == 'E4'

    def test_failed_update_writes_nothing(self, store, bracket_4):
        """Test a failing update leaves the file untouched."""
        store.save_bracket('cup', bracket_4)
        path = os.path.join(store.brackets_dir, 'cup.yaml')
        with open(path, encoding='utf-8') as f:
            before = f.read()

        def broken(matches):
            raise RuntimeError('boom')

        with pytest.raises(RuntimeError):
            store.update_bracket('cup', broken)
        with open(path, encoding='utf-8') as f:
            assert f.read() == before

    def test_no_temporary_files_left(self, store, bracket_4):
        """Test no temporary files are left behind."""
        store.save_bracket('cup', bracket_4)
        store.update_bracket('cup', lambda matches: record_result(matches, 2, [[21, 19]]))
        assert os.listdir(store.brackets_dir) == ['cup.yaml']


class TestPools:
    """Tests for pool persistence."""

    def test_save_and_load(self, store):
        """Test a saved pool loads back as entrants and matches."""
        entrants = make_entrants(3)
        matches = generate_round_robin_matches(entrants, pool='Pool A')
        store.save_pool('Pool A', entrants, matches)
        loaded = store.load_pool('Pool A')
        assert loaded['name'] == 'Pool A'
        assert [e.id for e in loaded['entrants']] == ['E1', 'E2', 'E3']
        assert len(loaded['matches']) == 3
        assert loaded['matches'][0].pool == 'Pool A'

    def test_missing_pool(self, store):
        """Test an unknown pool."""
        assert store.load_pool('Pool Z') is None


class TestStoredSettings:
    """Tests for settings stored alongside brackets."""

    def test_defaults_without_file(self, store):
        """Test settings default without a file."""
        assert store.load_settings()['edit_policy'] == 'cascade'

    def test_round_trip(self, store):
        """Test saved settings load back."""
        settings = store.load_settings()
        settings['edit_policy'] = 'reject'
        store.save_settings(settings)
        assert store.load_settings()['edit_policy'] == 'reject'
