"""
Shared pytest fixtures for tournament progression tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from progression.models import Entrant, MatchFormat
from progression.elimination import build_bracket


def make_entrants(count):
    """Entrants E1..En seeded in order."""
    return [Entrant(f"E{i}", f"Team {i}", seed=i) for i in range(1, count + 1)]


@pytest.fixture
def entrants_4():
    return make_entrants(4)


@pytest.fixture
def entrants_8():
    return make_entrants(8)


@pytest.fixture
def entrants_12():
    return make_entrants(12)


@pytest.fixture
def single_set():
    return MatchFormat(sets_to_win=1, points_per_set=21)


@pytest.fixture
def best_of_three():
    return MatchFormat(sets_to_win=2, points_per_set=21, tie_break_enabled=True, tie_break_points=15)


@pytest.fixture
def bracket_4(entrants_4, single_set):
    """Semifinals M1 (E1 v E4), M2 (E2 v E3), Final M3, Third Place M4."""
    return build_bracket(entrants_4, single_set)


@pytest.fixture
def bracket_8(entrants_8, single_set):
    return build_bracket(entrants_8, single_set)


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at an empty data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture
def client(temp_data_dir):
    """Create a test client backed by a temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
