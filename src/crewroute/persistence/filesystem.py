"""Run-output storage under the configured data root."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings

logger = logging.getLogger(__name__)


class FileStorage:
    """Per-run output directories below ``<data_root>/outputs``.

    Directory names combine a caller prefix (normally ``routes_<date>``) with
    a UTC timestamp down to microseconds, so repeated runs for the same date
    never overwrite each other.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root or settings.data_root).expanduser().resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "routes") -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{stamp}"
        path.mkdir(exist_ok=False)
        logger.debug(f"Created run directory {path}")
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, ensure_ascii=False, indent=indent), encoding="utf-8")

    def write_csv(self, path: Path, content: str) -> None:
        # csv module output already carries its own line endings.
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)
