"""Lyrist Provider for plain lyrics"""

from typing import Optional
from urllib.parse import quote

from .base import LyricsProvider, ProviderCapability
from exceptions import MalformedResponseError
from logging_config import get_logger
from models import Lyrics

logger = get_logger(__name__)


class LyristProvider(LyricsProvider):
    NAME = "lyrist"
    DISPLAY_NAME = "Lyrist"
    BASE_URL = "https://lyrist.vercel.app/api"

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        if not artist.strip() or not title.strip():
            return None

        url = f"{self.base_url}/{quote(artist.strip(), safe='')}/{quote(title.strip(), safe='')}"
        data = self._get_json(url)
        if not data:
            logger.info(f"Lyrist - No lyrics found for: {artist} - {title}")
            return None
        if not isinstance(data, dict):
            raise MalformedResponseError("Expected an object", self.display_name)

        # Lyrist reports misses as {"error": "..."} with a 200
        if data.get("error"):
            logger.info(f"Lyrist - {data['error']} for: {artist} - {title}")
            return None

        return self._build_lyrics(
            self._song_id(artist, title),
            plain=data.get("lyrics"),
            artist_name=data.get("artist") or artist,
            track_name=data.get("title") or title,
        )
