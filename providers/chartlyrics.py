"""ChartLyrics Provider for plain lyrics"""

import xml.etree.ElementTree as ET
from typing import Optional

from .base import LyricsProvider, ProviderCapability
from exceptions import MalformedResponseError
from logging_config import get_logger
from models import Lyrics

logger = get_logger(__name__)

NAMESPACE = {"cl": "http://api.chartlyrics.com/"}


class ChartLyricsProvider(LyricsProvider):
    """
    ChartLyrics only speaks XML. SearchLyricDirect returns a single best
    match:

        <GetLyricResult xmlns="http://api.chartlyrics.com/">
          <LyricId>123</LyricId>
          <LyricSong>...</LyricSong>
          <LyricArtist>...</LyricArtist>
          <Lyric>...</Lyric>
        </GetLyricResult>

    A LyricId of 0 (or a missing Lyric) means no match.
    """
    NAME = "chartlyrics"
    DISPLAY_NAME = "ChartLyrics"
    BASE_URL = "http://api.chartlyrics.com/apiv1.asmx"

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        if not title.strip():
            return None

        params = {"artist": artist.strip() or " ", "song": title.strip()}
        response = self._request(f"{self.base_url}/SearchLyricDirect", params=params)
        if response is None or not response.content.strip():
            logger.info(f"ChartLyrics - No lyrics found for: {artist} - {title}")
            return None

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as e:
            raise MalformedResponseError(f"Invalid XML: {e}", self.display_name) from e

        lyric_id = self._text(root, "LyricId")
        if not lyric_id or lyric_id == "0":
            logger.info(f"ChartLyrics - No match for: {artist} - {title}")
            return None

        return self._build_lyrics(
            self._song_id(artist, title),
            plain=self._text(root, "Lyric"),
            record_id=lyric_id,
            artist_name=self._text(root, "LyricArtist") or artist,
            track_name=self._text(root, "LyricSong") or title,
        )

    @staticmethod
    def _text(root: ET.Element, tag: str) -> str:
        element = root.find(f"cl:{tag}", NAMESPACE)
        if element is None:
            element = root.find(tag)
        if element is None or element.text is None:
            return ""
        return element.text.strip()
