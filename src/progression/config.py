"""
Tournament settings: match formats, timing constants and the edit policy.
"""
import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)


def get_default_settings():
    """Return default settings."""
    return {
        'pool_format': {
            'sets_to_win': 1,
            'points_per_set': 21,
            'tie_break_enabled': False,
            'tie_break_points': 15,
        },
        'bracket_format': {
            'sets_to_win': 2,
            'points_per_set': 21,
            'tie_break_enabled': True,
            'tie_break_points': 15,
        },
        'king_formats': {
            'round_robin': {
                'sets_to_win': 1,
                'points_per_set': 21,
                'tie_break_enabled': False,
                'tie_break_points': 15,
            },
            'kob': {
                'sets_to_win': 1,
                'points_per_set': 21,
                'tie_break_enabled': False,
                'tie_break_points': 15,
            },
            'final': {
                'sets_to_win': 2,
                'points_per_set': 21,
                'tie_break_enabled': True,
                'tie_break_points': 15,
            },
        },
        'timing': {
            'minutes_per_set': 15,
            'inter_set_break_minutes': 2,
            'inter_match_break_minutes': 5,
            'setup_overhead_minutes': 15,
        },
        'edit_policy': 'cascade',
    }


def _merge(defaults, data):
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_settings(data=None):
    """Overlay partial settings on the defaults, nested dicts included."""
    if not data:
        return get_default_settings()
    return _merge(get_default_settings(), data)


def load_settings(path):
    """Load settings from a YAML file, merging with defaults."""
    if not path or not os.path.exists(path):
        return get_default_settings()
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return get_default_settings()
    if not isinstance(data, dict):
        logger.warning(f'Ignoring {path}: settings must be a mapping')
        return get_default_settings()
    return merge_settings(data)


def save_settings(path, settings):
    """Save settings to a YAML file."""
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)
