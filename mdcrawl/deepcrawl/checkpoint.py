"""
CheckpointStore: disk-backed persistence of deep crawl snapshots.

Each crawl id maps to one JSON file named after its storage key
(``deepcrawl:v1:<crawl_id>``). Files carry an expiry timestamp; expired or
unreadable files are treated as missing. Writes go to a temporary file
first and are renamed into place under an ``asyncio.Lock``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

from ..conf import DEEPCRAWL_CHECKPOINT_DIR, DEEPCRAWL_CHECKPOINT_TTL
from ..exceptions import CheckpointError
from .crawl_graph import StateSnapshot


CHECKPOINT_KEY_PREFIX = "deepcrawl:v1:"
CRAWL_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")


class CheckpointStore:
    """Async, disk-backed store of ``StateSnapshot`` values keyed by crawl id.

    Args:
        directory: Where checkpoint files live. Defaults to
            ``DEEPCRAWL_CHECKPOINT_DIR``.
        ttl: Default lifetime of a checkpoint in seconds; ``0`` or ``None``
            disables expiry. Defaults to ``DEEPCRAWL_CHECKPOINT_TTL``.
        logger: Optional logger; one is created if not provided.
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        ttl: Optional[int] = DEEPCRAWL_CHECKPOINT_TTL,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.directory = Path(directory) if directory else DEEPCRAWL_CHECKPOINT_DIR
        self.ttl = ttl
        self._lock = asyncio.Lock()
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def key_for(crawl_id: str) -> str:
        """Return the storage key of *crawl_id*.

        Raises:
            CheckpointError: *crawl_id* contains unsupported characters.
        """
        if not isinstance(crawl_id, str) or not CRAWL_ID_PATTERN.fullmatch(crawl_id):
            raise CheckpointError(f"Invalid crawl_id {crawl_id!r}")
        return f"{CHECKPOINT_KEY_PREFIX}{crawl_id}"

    def path_for(self, crawl_id: str) -> Path:
        key = self.key_for(crawl_id)
        return self.directory / f"{key.replace(':', '_')}.json"

    async def save(
        self,
        crawl_id: str,
        snapshot: StateSnapshot,
        ttl: Optional[int] = None,
    ) -> Path:
        """Persist *snapshot* under *crawl_id*, replacing any earlier one.

        Args:
            crawl_id: Identifier of the crawl.
            snapshot: Snapshot emitted by the engine.
            ttl: Lifetime override in seconds for this checkpoint.

        Returns:
            Path of the written file.
        """
        path = self.path_for(crawl_id)
        lifetime = ttl if ttl is not None else self.ttl
        now = time.time()
        payload = {
            "key": self.key_for(crawl_id),
            "saved_at": now,
            "expires_at": now + lifetime if lifetime else None,
            "snapshot": snapshot.to_dict(),
        }
        raw = json.dumps(payload)
        tmp_path = path.with_name(f"{path.name}.tmp")
        async with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(raw)
            await aiofiles.os.replace(tmp_path, path)
        self.logger.debug(
            "Saved checkpoint  crawl_id=%s frontier=%d results=%d completed=%s",
            crawl_id, len(snapshot.frontier), len(snapshot.results), snapshot.completed,
        )
        return path

    async def load(self, crawl_id: str) -> Optional[StateSnapshot]:
        """Load the snapshot stored under *crawl_id*.

        Returns:
            The snapshot, or ``None`` when nothing usable is stored (missing,
            expired or unreadable file). Expired files are removed.
        """
        path = self.path_for(crawl_id)
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
            data = json.loads(raw)
        except (OSError, ValueError) as exc:
            self.logger.warning("Unreadable checkpoint  crawl_id=%s error=%s", crawl_id, exc)
            return None
        if not isinstance(data, dict):
            self.logger.warning("Unreadable checkpoint  crawl_id=%s error=not an object", crawl_id)
            return None

        expires_at = data.get("expires_at")
        if isinstance(expires_at, (int, float)) and expires_at <= time.time():
            self.logger.info("Checkpoint expired  crawl_id=%s", crawl_id)
            await self.delete(crawl_id)
            return None
        return StateSnapshot.from_dict(data.get("snapshot"))

    async def delete(self, crawl_id: str) -> bool:
        """Remove the checkpoint of *crawl_id*; return whether one existed."""
        path = self.path_for(crawl_id)
        async with self._lock:
            if not path.exists():
                return False
            await aiofiles.os.remove(path)
        return True
