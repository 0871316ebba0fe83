"""LRCLIB Provider for plain and synchronized lyrics"""

from typing import Any, Dict, List, Optional

from .base import LyricsProvider, ProviderCapability, USER_AGENT
from exceptions import MalformedResponseError
from logging_config import get_logger
from models import Lyrics

logger = get_logger(__name__)


class LRCLIBProvider(LyricsProvider):
    NAME = "lrclib"
    DISPLAY_NAME = "LRCLIB"
    BASE_URL = "https://lrclib.net/api"
    HEADERS = {
        "User-Agent": USER_AGENT,
        "Lrclib-Client": USER_AGENT,
    }

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN | ProviderCapability.SYNCED | ProviderCapability.SEARCH

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        """
        Exact lookup through /api/get.

        Args:
            artist (str): Artist name
            title (str): Track title
        """
        artist = artist.strip()
        title = title.strip()
        params = {"track_name": title, "artist_name": artist}

        logger.info(f"LRCLib - Trying exact match with params: {params}")
        data = self._get_json(f"{self.base_url}/get", params=params)
        if not data:
            logger.info(f"LRCLib - No exact match for: {artist} - {title}")
            return None
        if not isinstance(data, dict):
            raise MalformedResponseError("Expected an object from /get", self.display_name)

        lyrics = self._from_record(data, song_id=self._song_id(artist, title),
                                   fallback_artist=artist, fallback_title=title)
        if lyrics is None:
            logger.info(f"LRCLib - Record has no lyrics for: {artist} - {title}")
        return lyrics

    def fetch_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        lyrics = self._synced_only(self.fetch_plain(artist, title))
        if lyrics is None:
            logger.info(f"LRCLib - No synced lyrics for: {artist} - {title}")
        return lyrics

    def search(self, query: str) -> List[Lyrics]:
        query = query.strip()
        if not query:
            return []

        logger.info(f"LRCLib - Searching for: {query}")
        data = self._get_json(f"{self.base_url}/search", params={"q": query})
        if not data:
            return []
        if not isinstance(data, list):
            raise MalformedResponseError("Expected a list from /search", self.display_name)

        results = []
        for record in data[:self.search_limit]:
            if not isinstance(record, dict):
                continue
            artist = record.get("artistName") or ""
            title = record.get("trackName") or ""
            lyrics = self._from_record(record, song_id=self._song_id(artist, title))
            if lyrics is not None:
                results.append(lyrics)

        logger.info(f"LRCLib - {len(results)} search results for: {query}")
        return results

    def _from_record(self, record: Dict[str, Any], song_id: str,
                     fallback_artist: str = "", fallback_title: str = "") -> Optional[Lyrics]:
        return self._build_lyrics(
            song_id,
            plain=record.get("plainLyrics"),
            lrc=record.get("syncedLyrics"),
            record_id=record.get("id"),
            artist_name=record.get("artistName") or fallback_artist,
            track_name=record.get("trackName") or fallback_title,
            album_name=record.get("albumName"),
        )
