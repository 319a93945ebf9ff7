from __future__ import annotations

import logging
import os
from pathlib import Path
import time
from typing import Iterable
from uuid import uuid4

logger = logging.getLogger(__name__)


def temp_dir() -> Path:
    base = Path(os.getenv("MEDIA_TEMP_DIR", "out/temp")).expanduser().resolve()
    base.mkdir(parents=True, exist_ok=True)
    return base


def temp_path(prefix: str, suffix: str) -> Path:
    return temp_dir() / f"{prefix}_{uuid4().hex}{suffix}"


def remove_files(paths: Iterable[Path | str | None]) -> int:
    """Best-effort delete; failures are logged, never raised."""
    removed = 0
    for path in paths:
        if not path:
            continue
        try:
            Path(path).unlink()
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Failed to remove temp file %s: %s", path, exc)
    return removed


def sweep_temp_dir(max_age_hours: float, base: Path | None = None) -> int:
    base = base or temp_dir()
    cutoff = time.time() - max_age_hours * 3600
    stale = [
        path
        for path in base.iterdir()
        if path.is_file() and path.stat().st_mtime < cutoff
    ]
    return remove_files(stale)
