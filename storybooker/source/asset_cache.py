"""
Asset cache — keeps downloaded scenario JSON on disk.

Layout: <root>/<asset bundle>/<scenario id>.json

A cached file is never re-fetched. Files are written atomically
(write tmp -> rename) so an interrupted run never leaves a truncated asset.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger("storybooker.cache")


class AssetCache:
    """
    Load-or-download store for scenario assets.

    Args:
        root: Cache root directory
        fetch: Callable(url) -> parsed JSON, used on cache miss
    """

    def __init__(self, root: Path, fetch: Callable[[str], Any]) -> None:
        self.root = Path(root)
        self._fetch = fetch

    def path_for(self, bundle: str, scenario_id: str) -> Path:
        return self.root / bundle / f"{scenario_id}.json"

    def has(self, bundle: str, scenario_id: str) -> bool:
        return self.path_for(bundle, scenario_id).exists()

    def load(self, bundle: str, scenario_id: str, url: str) -> Any:
        """Return the cached asset, downloading and storing it first if missing."""
        path = self.path_for(bundle, scenario_id)

        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                logger.debug(f"CACHE_HIT: {path}")
                return data
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"CACHE_CORRUPT: {path} ({e}); downloading again")

        logger.info(f"CACHE_MISS: bundle={bundle} scenario={scenario_id} url={url}")
        data = self._fetch(url)
        self._write(path, data)
        return data

    def _write(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")

        # On Windows the target must be removed first
        if path.exists():
            path.unlink()
        os.rename(str(tmp_path), str(path))
