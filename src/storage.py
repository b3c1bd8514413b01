"""
YAML file store for brackets, pools and settings.

Writers are serialized with a file lock and every document is written to a
temporary file first, then moved over the old one, so a match update and
the slots it propagated are saved together or not at all.
"""
import os
import re
import logging
import tempfile

import yaml
from filelock import FileLock

from progression.config import load_settings, save_settings
from progression.errors import BracketNotFound
from progression.models import Entrant, Match

logger = logging.getLogger(__name__)


def _slugify(name: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')
    if not slug:
        raise ValueError(f"Invalid name: {name!r}")
    return slug


class TournamentStore:
    def __init__(self, data_dir: str, lock_timeout: int = 10):
        self.data_dir = data_dir
        self.brackets_dir = os.path.join(data_dir, 'brackets')
        self.pools_dir = os.path.join(data_dir, 'pools')
        self.settings_path = os.path.join(data_dir, 'settings.yaml')
        os.makedirs(self.brackets_dir, exist_ok=True)
        os.makedirs(self.pools_dir, exist_ok=True)
        self.lock = FileLock(os.path.join(data_dir, '.lock'), timeout=lock_timeout)

    def __repr__(self):
        return f"TournamentStore(data_dir={self.data_dir})"

    def _bracket_path(self, name: str) -> str:
        return os.path.join(self.brackets_dir, f"{_slugify(name)}.yaml")

    def _pool_path(self, name: str) -> str:
        return os.path.join(self.pools_dir, f"{_slugify(name)}.yaml")

    def _read(self, path: str):
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    def _write(self, path: str, data):
        """Write to a temporary file in the same directory, then replace the target."""
        fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # Brackets

    def list_brackets(self):
        names = []
        for filename in sorted(os.listdir(self.brackets_dir)):
            if filename.endswith('.yaml'):
                names.append(filename[:-len('.yaml')])
        return names

    def _load_bracket_unlocked(self, name: str):
        data = self._read(self._bracket_path(name))
        if data is None:
            raise BracketNotFound(f"Bracket '{name}' not found")
        return [Match.from_dict(m) for m in data.get('matches') or []]

    def _save_bracket_unlocked(self, name: str, matches):
        self._write(self._bracket_path(name), {
            'name': name,
            'matches': [m.to_dict() for m in sorted(matches, key=lambda m: m.id)],
        })

    def load_bracket(self, name: str):
        with self.lock:
            return self._load_bracket_unlocked(name)

    def save_bracket(self, name: str, matches):
        with self.lock:
            self._save_bracket_unlocked(name, matches)
        logger.info(f"Saved bracket '{name}' ({len(matches)} matches)")

    def update_bracket(self, name: str, fn):
        """
        Load a bracket, apply fn to its matches and save the result under one lock.

        fn returns {'matches': [...], 'changed': [...]} (as the propagation
        functions do). Nothing is written if fn raises.
        """
        with self.lock:
            matches = self._load_bracket_unlocked(name)
            result = fn(matches)
            self._save_bracket_unlocked(name, result['matches'])
        logger.info(f"Updated bracket '{name}': matches {result['changed']} changed")
        return result

    def bracket_exists(self, name: str) -> bool:
        return os.path.exists(self._bracket_path(name))

    # Pools

    def load_pool(self, name: str):
        """Returns {'name', 'entrants': [...], 'matches': [Match]} or None."""
        with self.lock:
            data = self._read(self._pool_path(name))
        if data is None:
            return None
        data['entrants'] = [Entrant.from_dict(e) for e in data.get('entrants') or []]
        data['matches'] = [Match.from_dict(m) for m in data.get('matches') or []]
        return data

    def save_pool(self, name: str, entrants, matches):
        with self.lock:
            self._write(self._pool_path(name), {
                'name': name,
                'entrants': [e.to_dict() for e in entrants],
                'matches': [m.to_dict() for m in matches],
            })

    # Settings

    def load_settings(self):
        with self.lock:
            return load_settings(self.settings_path)

    def save_settings(self, settings):
        with self.lock:
            save_settings(self.settings_path, settings)
