"""lyrics.ovh Provider for plain lyrics"""

from typing import Optional
from urllib.parse import quote

from .base import LyricsProvider, ProviderCapability
from exceptions import MalformedResponseError
from logging_config import get_logger
from models import Lyrics

logger = get_logger(__name__)


class LyricsOvhProvider(LyricsProvider):
    NAME = "lyrics.ovh"
    DISPLAY_NAME = "lyrics.ovh"
    BASE_URL = "https://api.lyrics.ovh/v1"

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        # The API needs both path segments
        if not artist.strip() or not title.strip():
            return None

        url = f"{self.base_url}/{quote(artist.strip(), safe='')}/{quote(title.strip(), safe='')}"
        data = self._get_json(url)
        if not data:
            logger.info(f"lyrics.ovh - No lyrics found for: {artist} - {title}")
            return None
        if not isinstance(data, dict):
            raise MalformedResponseError("Expected an object", self.display_name)

        return self._build_lyrics(
            self._song_id(artist, title),
            plain=data.get("lyrics"),
            artist_name=artist,
            track_name=title,
        )
