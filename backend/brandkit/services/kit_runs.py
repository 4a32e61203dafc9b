"""Append-only JSONL log of brand kit generation runs."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from brandkit.schemas.api import KitRun

logger = logging.getLogger(__name__)


class KitRunLog:
    """Write one :class:`KitRun` per line and page through them newest first.

    Lines that do not parse as a run are skipped when reading, so a torn
    write never hides the rest of the history.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def record(self, run: KitRun) -> None:
        line = run.model_dump_json() + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append, line)

    async def list_runs(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None,
        degraded: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> tuple[List[KitRun], int]:
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        runs = await asyncio.to_thread(self._load)
        matching = [
            run
            for run in runs
            if (status is None or run.status == status)
            and (degraded is None or degraded in run.degraded)
            and (since is None or run.created_at >= since)
        ]
        return matching[offset:offset + max(limit, 0)], len(matching)

    def _append(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)

    def _load(self) -> List[KitRun]:
        if not self._path.exists():
            return []

        runs: List[KitRun] = []
        for number, line in enumerate(self._path.read_text(encoding="utf-8").splitlines(), start=1):
            if not line.strip():
                continue
            try:
                run = KitRun.model_validate_json(line)
            except ValidationError:
                logger.warning("Skipping unreadable kit run", extra={"path": str(self._path), "line": number})
                continue
            if run.created_at.tzinfo is None:
                run = run.model_copy(update={"created_at": run.created_at.replace(tzinfo=timezone.utc)})
            runs.append(run)
        runs.sort(key=lambda run: run.created_at, reverse=True)
        return runs


__all__ = ["KitRunLog"]
