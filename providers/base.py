"""
Base Provider Class
All lyrics providers must inherit from this base class.

A provider declares what it can do through capabilities() and implements
the matching operations:

    PLAIN   -> fetch_plain(artist, title)
    SYNCED  -> fetch_synced(artist, title)
    SEARCH  -> search(query)

Operations return None (or an empty list) when the provider simply has no
lyrics for the song. Network failures raise TransportError and undecodable
bodies raise MalformedResponseError.
"""

import time
from abc import ABC, abstractmethod
from enum import Flag, auto
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import LYRICS, VERSION, get_provider_config
from exceptions import MalformedResponseError, TransportError
from fingerprint import fingerprint
from logging_config import get_logger
from lrc_parser import extract_plain_from_lrc
from models import Lyrics, utc_now

logger = get_logger(__name__)

USER_AGENT = f"FlashLyrics v{VERSION} (https://github.com/flashlyrics/flashlyrics)"


class ProviderCapability(Flag):
    """
    Operations a provider supports.

    Combine with bitwise OR: PLAIN | SYNCED
    Check with bitwise AND: if provider.capabilities() & ProviderCapability.SEARCH
    """
    NONE = 0
    PLAIN = auto()    # fetch_plain()
    SYNCED = auto()   # fetch_synced()
    SEARCH = auto()   # search()


class LyricsProvider(ABC):
    """Base class for all lyrics providers."""

    # Config key, also used in provider_priority lists
    NAME = ""
    # Human readable name stored as Lyrics.source
    DISPLAY_NAME = ""
    BASE_URL = ""
    HEADERS: Dict[str, str] = {"User-Agent": USER_AGENT}

    # HTTP statuses worth retrying
    RETRY_STATUSES = (429, 500, 502, 503, 504)

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        """
        Initialize the provider using configuration from config.py

        Args:
            options: Overrides for the LYRICS config dict (timeouts, retries)
        """
        config = get_provider_config(self.NAME)
        options = {**LYRICS, **(options or {})}

        self.name = self.NAME
        self.display_name = self.DISPLAY_NAME or self.NAME
        self.enabled = config.get('enabled', True)
        self.base_url = config.get('base_url', self.BASE_URL).rstrip('/')
        self.timeout: Tuple[float, float] = (
            float(options['connect_timeout']),
            float(options['receive_timeout']),
        )
        self.max_retries = int(options['max_retries'])
        self.retry_delay = float(options['retry_delay'])
        self.search_limit = int(options.get('search_limit', 10))

        self.session = requests.Session()
        self.session.headers.update(self.HEADERS)

        logger.debug(f"Initialized {self.display_name} provider ({self.capabilities()})")

    @classmethod
    @abstractmethod
    def capabilities(cls) -> ProviderCapability:
        """Return the operations this provider implements."""

    def supports(self, capability: ProviderCapability) -> bool:
        return bool(self.capabilities() & capability)

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        """Fetch lyrics for an exact artist/title. Result may or may not be synced."""
        raise NotImplementedError(f"{self.display_name} does not support plain lyrics")

    def fetch_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        """Fetch lyrics only if the provider has a valid time-synced version."""
        raise NotImplementedError(f"{self.display_name} does not support synced lyrics")

    def search(self, query: str) -> List[Lyrics]:
        """Free-text search, results in provider relevance order."""
        raise NotImplementedError(f"{self.display_name} does not support search")

    def _request(self, url: str, params: Optional[Dict[str, Any]] = None,
                 method: str = "GET") -> Optional[requests.Response]:
        """
        Make a request with retry logic.

        Retries connection errors, timeouts, 429 and 5xx up to max_retries
        times with a growing delay. Returns None on 404.

        Raises:
            TransportError: retries exhausted or a non-retryable 4xx
        """
        attempts = self.max_retries + 1
        last_error = None

        for attempt in range(attempts):
            try:
                response = self.session.request(method, url, params=params, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
                logger.warning(f"{self.display_name} - Request attempt {attempt + 1}/{attempts} failed: {e}")
            except requests.RequestException as e:
                raise TransportError(str(e), self.display_name) from e
            else:
                status = response.status_code
                if status == 404:
                    logger.debug(f"{self.display_name} - 404 Not Found: {url}")
                    return None
                if status in self.RETRY_STATUSES:
                    last_error = f"HTTP {status}"
                    logger.warning(f"{self.display_name} - Request attempt {attempt + 1}/{attempts} returned {status}")
                elif status >= 400:
                    raise TransportError(f"HTTP {status}", self.display_name)
                else:
                    return response

            if attempt < attempts - 1:
                time.sleep(self.retry_delay * (attempt + 1))

        raise TransportError(f"Request failed after {attempts} attempts: {last_error}", self.display_name)

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET and decode JSON. Empty bodies and 404 come back as None."""
        response = self._request(url, params=params)
        if response is None or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON: {e}", self.display_name) from e

    def _build_lyrics(self, song_id: str, plain: Optional[str], lrc: Optional[str] = None,
                      record_id: Optional[Any] = None, artist_name: Optional[str] = None,
                      track_name: Optional[str] = None, album_name: Optional[str] = None) -> Optional[Lyrics]:
        """
        Turn decoded provider fields into a Lyrics value.

        Returns None when there is nothing usable. Plain text is derived
        from the LRC when the provider only sent synced lyrics.
        """
        plain = (plain or "").strip()
        lrc = (lrc or "").strip() or None
        if not plain and lrc:
            plain = extract_plain_from_lrc(lrc)
        if not plain:
            # Bare time tags carry no words
            return None

        now = utc_now()
        if record_id is not None:
            lyrics_id = f"{song_id}_{self.name}_{record_id}"
        else:
            lyrics_id = f"{song_id}_{int(now.timestamp() * 1000)}"

        return Lyrics(
            id=lyrics_id,
            song_id=song_id,
            plain_lyrics=plain,
            lrc_lyrics=lrc,
            source=self.display_name,
            fetched_at=now,
            artist_name=artist_name or None,
            track_name=track_name or None,
            album_name=album_name or None,
        )

    @staticmethod
    def _synced_only(lyrics: Optional[Lyrics]) -> Optional[Lyrics]:
        if lyrics is not None and lyrics.is_synced:
            return lyrics
        return None

    @staticmethod
    def _song_id(artist: str, title: str) -> str:
        return fingerprint(artist, title)

    def _format_search_term(self, artist: str, title: str) -> str:
        """Format artist and title for searching"""
        return f"{artist} {title}".strip()

    def close(self) -> None:
        self.session.close()

    def __str__(self) -> str:
        status = "enabled" if self.enabled else "disabled"
        return f"{self.display_name} Provider ({status})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name='{self.name}' capabilities={self.capabilities()} enabled={self.enabled}>"
