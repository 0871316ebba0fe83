"""Textyl Provider for synchronized lyrics"""

from typing import Optional

from .base import LyricsProvider, ProviderCapability
from exceptions import MalformedResponseError
from logging_config import get_logger
from lrc_parser import format_timestamp
from models import Lyrics

logger = get_logger(__name__)


class TextylProvider(LyricsProvider):
    """
    Textyl answers a free-text query with a list of timed lines:

        [{"seconds": 12, "lyrics": "First line"}, ...]

    The lines are converted to LRC, so every non-empty answer is synced.
    """
    NAME = "textyl"
    DISPLAY_NAME = "Textyl"
    BASE_URL = "https://api.textyl.co/api"

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN | ProviderCapability.SYNCED

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        search_term = self._format_search_term(artist, title)
        data = self._get_json(f"{self.base_url}/lyrics", params={"q": search_term})
        if not data:
            logger.info(f"Textyl - No lyrics found for: {search_term}")
            return None
        if not isinstance(data, list):
            raise MalformedResponseError("Expected a list of lines", self.display_name)

        lrc_lines = []
        plain_lines = []
        for line in data:
            if not isinstance(line, dict):
                continue
            try:
                seconds = float(line.get("seconds") or 0)
            except (TypeError, ValueError) as e:
                raise MalformedResponseError(f"Bad timestamp {line.get('seconds')!r}", self.display_name) from e
            text = (line.get("lyrics") or "").strip()
            lrc_lines.append(f"{format_timestamp(seconds)}{text}")
            plain_lines.append(text)

        plain = "\n".join(plain_lines).strip()
        if not plain:
            logger.info(f"Textyl - Empty lyrics for: {search_term}")
            return None

        return self._build_lyrics(
            self._song_id(artist, title),
            plain=plain,
            lrc="\n".join(lrc_lines),
            artist_name=artist,
            track_name=title,
        )

    def fetch_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        return self._synced_only(self.fetch_plain(artist, title))
