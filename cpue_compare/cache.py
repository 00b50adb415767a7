"""
On-disk cache for fitted results.

A key -> serialized-object store. ``recompute=True`` ignores what is on
disk and overwrites it; otherwise an existing entry is loaded instead of
refitting. Keys are usually built from a config hash so a changed config
never reuses a stale fit.
"""

import hashlib
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import joblib
import pandas as pd


def compute_config_hash(config: dict) -> str:
    """SHA256 hash of config for cache invalidation."""
    return hashlib.sha256(json.dumps(config, sort_keys=True, default=str).encode()).hexdigest()


def dataframe_fingerprint(data) -> str:
    """SHA256 of a DataFrame's contents, index included."""
    hashed = pd.util.hash_pandas_object(data, index=True).values
    return hashlib.sha256(hashed.tobytes()).hexdigest()


def make_key(name: str, config: Optional[dict] = None) -> str:
    """Cache key '<name>' or '<name>-<hash[:12]>' when a config is given."""
    if config is None:
        return name
    return f"{name}-{compute_config_hash(config)[:12]}"


class ResultCache:
    """
    Directory-backed result store.

    Parameters
    ----------
    cache_dir : str or Path
        Directory holding one ``<key>.joblib`` file per entry and a
        ``manifest.json`` index.
    recompute : bool, default=False
        If True, get_or_compute always recomputes and overwrites.
    verbose : bool, default=False
        Print cache hits and writes.

    Examples
    --------
    >>> cache = ResultCache('cache')
    >>> effects = cache.get_or_compute('glm_lognormal', lambda: fit_glm(data))
    """

    MANIFEST = 'manifest.json'

    def __init__(self, cache_dir, recompute=False, verbose=False):
        self.cache_dir = Path(cache_dir)
        self.recompute = recompute
        self.verbose = verbose

    @staticmethod
    def _safe_key(key: str) -> str:
        if not key:
            raise ValueError("cache key must be a non-empty string")
        return re.sub(r'[^A-Za-z0-9_.-]', '_', key)

    def path_for(self, key: str) -> Path:
        """File path of an entry."""
        return self.cache_dir / f"{self._safe_key(key)}.joblib"

    def __contains__(self, key: str) -> bool:
        return self.path_for(key).exists()

    def load_manifest(self) -> dict:
        path = self.cache_dir / self.MANIFEST
        if not path.exists():
            return {}
        with open(path) as fh:
            return json.load(fh)

    def _write_manifest(self, manifest: dict):
        with open(self.cache_dir / self.MANIFEST, 'w') as fh:
            json.dump(manifest, fh, indent=2, default=str)

    def load(self, key: str) -> Any:
        """Load an entry, raising KeyError if absent."""
        path = self.path_for(key)
        if not path.exists():
            raise KeyError(key)
        if self.verbose:
            print(f"Loading cached result from {path}")
        return joblib.load(path)

    def save(self, key: str, obj: Any, config: Optional[dict] = None) -> Path:
        """Write an entry and record it in the manifest."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(obj, path)

        manifest = self.load_manifest()
        manifest[self._safe_key(key)] = {
            'key': key,
            'created_at': datetime.now().isoformat(),
            'config': config,
        }
        self._write_manifest(manifest)

        if self.verbose:
            print(f"Saved to {path}")
        return path

    def get_or_compute(self, key: str, compute_fn: Callable[[], Any],
                       config: Optional[dict] = None) -> Any:
        """
        Read the entry if it exists, else compute and write it.

        Parameters
        ----------
        key : str
            Entry key.
        compute_fn : callable
            Zero-argument function producing the result.
        config : dict, optional
            Recorded in the manifest alongside the entry.

        Returns
        -------
        object
            Cached or freshly computed result.
        """
        if not self.recompute and key in self:
            return self.load(key)

        result = compute_fn()
        self.save(key, result, config=config)
        return result

    def clear(self):
        """Delete every entry and the manifest."""
        if not self.cache_dir.exists():
            return
        for path in self.cache_dir.glob('*.joblib'):
            path.unlink()
        manifest = self.cache_dir / self.MANIFEST
        if manifest.exists():
            manifest.unlink()
