"""
Local lyrics database.

One JSON file per song fingerprint under DATABASE_DIR. Writes are atomic
(temp file + os.replace) and last-write-wins. Entries older than the TTL
are reported as stale but never removed automatically.
"""

import json
import os
import re
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

from config import DATABASE_DIR, LYRICS
from exceptions import CacheError
from logging_config import get_logger
from models import Lyrics, utc_now

logger = get_logger(__name__)

# Same alphabet fingerprint() produces
_VALID_KEY = re.compile(r'[a-z0-9_]+')


class LyricsCache:
    def __init__(self, directory: Union[str, Path, None] = None, ttl_days: Optional[float] = None):
        self.directory = Path(directory) if directory else DATABASE_DIR
        self.ttl = timedelta(days=float(LYRICS["cache_ttl_days"] if ttl_days is None else ttl_days))
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {self.directory}: {e}") from e

    def _path(self, song_id: str) -> Path:
        # Fingerprints are already [a-z0-9_], safe as file names
        return self.directory / f"{song_id}.json"

    def _read(self, path: Path) -> Optional[Lyrics]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring corrupted cache entry {path.name}: {e}")
            return None
        except OSError as e:
            raise CacheError(f"Failed to read {path}: {e}") from e

        try:
            return Lyrics.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache entry {path.name}: {e}")
            return None

    def _entries(self) -> List[Lyrics]:
        try:
            paths = sorted(self.directory.glob("*.json"))
        except OSError as e:
            raise CacheError(f"Failed to list {self.directory}: {e}") from e
        return [lyrics for lyrics in (self._read(p) for p in paths) if lyrics is not None]

    def get(self, song_id: str) -> Optional[Lyrics]:
        """Cached lyrics for a fingerprint, or None."""
        if not song_id or not _VALID_KEY.fullmatch(song_id):
            return None
        return self._read(self._path(song_id))

    def put(self, lyrics: Lyrics) -> None:
        """Insert or replace the entry for lyrics.song_id."""
        if not lyrics.song_id or not _VALID_KEY.fullmatch(lyrics.song_id):
            raise CacheError(f"Cannot cache lyrics under song_id {lyrics.song_id!r}")

        db_path = self._path(lyrics.song_id)
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=self.directory, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(lyrics.to_dict(), f, indent=4, ensure_ascii=False)
            os.replace(temp_path, db_path)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise CacheError(f"Failed to save {db_path.name}: {e}") from e

        logger.info(f"Saved {lyrics.source} lyrics to DB ({lyrics.song_id}, synced: {lyrics.is_synced})")

    def get_all(self) -> List[Lyrics]:
        """All cached lyrics, newest first."""
        return sorted(self._entries(), key=lambda l: l.fetched_at, reverse=True)

    def delete(self, lyrics_id: str) -> bool:
        """
        Remove the entry whose Lyrics.id matches. A fingerprint is accepted
        too. Returns False when nothing matched.
        """
        target = None
        for path in self.directory.glob("*.json"):
            lyrics = self._read(path)
            if lyrics is not None and lyrics.id == lyrics_id:
                target = path
                break
        if target is None and _VALID_KEY.fullmatch(lyrics_id) and self._path(lyrics_id).exists():
            target = self._path(lyrics_id)
        if target is None:
            return False

        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Failed to delete {target.name}: {e}") from e

        logger.info(f"Deleted cached lyrics {target.stem}")
        return True

    def search_text(self, query: str) -> List[Lyrics]:
        """Case-insensitive substring search over lyrics text and metadata."""
        needle = query.strip().lower()
        if not needle:
            return []

        results = []
        for lyrics in self.get_all():
            haystack = (
                lyrics.plain_lyrics,
                lyrics.song_id,
                lyrics.artist_name or "",
                lyrics.track_name or "",
                lyrics.album_name or "",
            )
            if any(needle in field.lower() for field in haystack):
                results.append(lyrics)
        return results

    def is_stale(self, lyrics: Lyrics, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) - lyrics.fetched_at > self.ttl

    def clear(self) -> int:
        """Delete every entry. Returns how many were removed."""
        removed = 0
        try:
            for path in self.directory.glob("*.json"):
                path.unlink()
                removed += 1
        except OSError as e:
            raise CacheError(f"Failed to clear {self.directory}: {e}") from e
        logger.info(f"Cleared {removed} cached lyrics")
        return removed

    def size_bytes(self) -> int:
        try:
            return sum(p.stat().st_size for p in self.directory.glob("*.json"))
        except OSError as e:
            raise CacheError(f"Failed to stat {self.directory}: {e}") from e
