import csv
import io
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import aiofiles
import aiofiles.os

from .models import WatchEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class WatchStore:
    """
    Watch history kept as one CSV row per show:
    show_id,provider_show_id,episode,playback,score,title
    """

    def __init__(self, path: PathLike):
        self.path = Path(path)
        logger.debug(f"WatchStore initialized with path: {self.path}")

    async def _load(self) -> Dict[int, WatchEntry]:
        if not self.path.exists():
            return {}

        async with aiofiles.open(self.path, "r", encoding="utf-8", newline="") as f:
            content = await f.read()

        entries: Dict[int, WatchEntry] = {}
        for line_no, row in enumerate(csv.reader(io.StringIO(content)), start=1):
            if not row:
                continue
            entry = self._parse_row(row)
            if entry is None:
                logger.warning(f"Skipping malformed history row {line_no} in {self.path}")
                continue
            # Later rows win when an old file holds duplicates
            entries[entry.show_id] = entry
        return entries

    @staticmethod
    def _parse_row(row: List[str]) -> Optional[WatchEntry]:
        if len(row) < 6:
            return None
        try:
            return WatchEntry(
                show_id=int(row[0]),
                provider_show_id=row[1],
                episode_number=int(row[2]),
                playback_seconds=int(row[3]),
                score=float(row[4]),
                # Titles written by older tools may not be quoted
                title=",".join(row[5:]),
            )
        except ValueError:
            return None

    async def _save(self, entries: Dict[int, WatchEntry]):
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        for entry in entries.values():
            writer.writerow([
                entry.show_id, entry.provider_show_id, entry.episode_number,
                entry.playback_seconds, entry.score, entry.title,
            ])

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + f".{os.getpid()}.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8", newline="") as f:
            await f.write(buffer.getvalue())
        await aiofiles.os.replace(tmp_path, self.path)

    async def upsert(self, show_id: int, provider_show_id: str, episode_number: int,
                     playback_seconds: int, score: float, title: str) -> WatchEntry:
        entries = await self._load()
        entry = WatchEntry(
            show_id=show_id,
            provider_show_id=provider_show_id,
            episode_number=episode_number,
            playback_seconds=int(playback_seconds),
            score=score,
            title=title,
        )
        entries[show_id] = entry
        await self._save(entries)
        logger.info(f"Saved {title or show_id}: episode {episode_number}, at {playback_seconds}s")
        return entry

    async def find_by_show_id(self, show_id: int) -> Optional[WatchEntry]:
        entries = await self._load()
        return entries.get(show_id)

    async def all(self) -> List[WatchEntry]:
        entries = await self._load()
        return list(entries.values())

    async def delete(self, show_id: int) -> bool:
        entries = await self._load()
        if entries.pop(show_id, None) is None:
            return False
        await self._save(entries)
        logger.info(f"Removed show {show_id} from history")
        return True


class LastWatched:
    """Single-line file holding the id of the show played last."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    async def write(self, show_id: int):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(f"{show_id}")

    async def read(self) -> Optional[int]:
        if not self.path.exists():
            return None
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            content = (await f.read()).strip()
        try:
            return int(content)
        except ValueError:
            logger.warning(f"Invalid show id in {self.path}: {content!r}")
            return None


async def read_token(path: PathLike) -> Optional[str]:
    path = Path(path)
    if not path.exists():
        return None
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        token = (await f.read()).strip()
    return token or None
