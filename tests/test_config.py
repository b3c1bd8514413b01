"""
Tests for settings defaults and YAML loading.
"""
import yaml
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from progression.config import get_default_settings, merge_settings, load_settings, save_settings


class TestSettings:
    """Tests for settings handling."""

    def test_defaults(self):
        """Test default settings."""
        settings = get_default_settings()
        assert settings['edit_policy'] == 'cascade'
        assert settings['timing']['minutes_per_set'] == 15
        assert settings['bracket_format']['tie_break_points'] == 15
        assert set(settings['king_formats']) == {'round_robin', 'kob', 'final'}

    def test_defaults_are_fresh_copies(self):
        """Test changing returned defaults does not leak into the next call."""
        settings = get_default_settings()
        settings['timing']['minutes_per_set'] = 99
        assert get_default_settings()['timing']['minutes_per_set'] == 15

    def test_merge_nested(self):
        """Test nested settings merge key by key."""
        settings = merge_settings({'timing': {'minutes_per_set': 12}, 'edit_policy': 'reject'})
        assert settings['timing']['minutes_per_set'] == 12
        assert settings['timing']['setup_overhead_minutes'] == 15
        assert settings['edit_policy'] == 'reject'

    def test_load_missing_file(self, tmp_path):
        """Test a missing file gives the defaults."""
        assert load_settings(str(tmp_path / 'missing.yaml')) == get_default_settings()

    def test_load_none(self):
        """Test no path gives the defaults."""
        assert load_settings(None) == get_default_settings()

    def test_load_empty_file(self, tmp_path):
        """Test an empty file gives the defaults."""
        path = tmp_path / 'settings.yaml'
        path.write_text('')
        assert load_settings(str(path)) == get_default_settings()

    def test_load_non_mapping(self, tmp_path):
        """Test a YAML list is ignored."""
        path = tmp_path / 'settings.yaml'
        path.write_text('- just\n- a list\n')
        assert load_settings(str(path)) == get_default_settings()

    def test_load_partial(self, tmp_path):
        """Test a partial file keeps the other defaults."""
        path = tmp_path / 'settings.yaml'
        path.write_text(yaml.dump({'pool_format': {'points_per_set': 15}}))
        settings = load_settings(str(path))
        assert settings['pool_format']['points_per_set'] == 15
        assert settings['pool_format']['sets_to_win'] == 1

    def test_save_and_load(self, tmp_path):
        """Test saved settings load back unchanged."""
        path = str(tmp_path / 'settings.yaml')
        settings = get_default_settings()
        settings['edit_policy'] = 'reject'
        save_settings(path, settings)
        assert load_settings(path) == settings
