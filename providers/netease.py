"""NetEase Provider (music.163.com) for synchronized lyrics"""

from typing import Any, Dict, List, Optional, Tuple

from .base import LyricsProvider, ProviderCapability, USER_AGENT
from exceptions import MalformedResponseError
from logging_config import get_logger
from models import Lyrics

logger = get_logger(__name__)


class NetEaseProvider(LyricsProvider):
    NAME = "netease"
    DISPLAY_NAME = "NetEase Music"
    BASE_URL = "https://music.163.com/api"
    HEADERS = {
        "User-Agent": USER_AGENT,
        "Referer": "https://music.163.com/",
    }

    # Minimum score for a confident match (title must match)
    MIN_CONFIDENCE_THRESHOLD = 65
    # Title-only queries carry no artist bonus, so only an exact title passes
    TITLE_ONLY_THRESHOLD = 50

    @classmethod
    def capabilities(cls) -> ProviderCapability:
        return ProviderCapability.PLAIN | ProviderCapability.SYNCED

    def _score_result(self, song: Dict[str, Any], target_artist: str, target_title: str) -> int:
        """
        Score a search result based on how well it matches the target song.
        Higher score = better match.

        Scoring:
        - Title exact match: +50
        - Title contains target (or the reverse): +40
        - Artist match: +40
        """
        score = 0

        song_title = (song.get('name') or '').lower().strip()
        song_artists = [(a.get('name') or '').lower().strip() for a in song.get('artists') or []]

        target_title_lower = target_title.lower().strip()
        target_artist_lower = target_artist.lower().strip()

        if song_title == target_title_lower:
            score += 50
        elif target_title_lower in song_title or song_title in target_title_lower:
            score += 40

        if target_artist_lower and any(
                target_artist_lower in artist or artist in target_artist_lower for artist in song_artists if artist):
            score += 40

        return score

    def _find_best_match(self, songs: List[Dict[str, Any]], artist: str, title: str) -> Tuple[Optional[Dict[str, Any]], int]:
        """
        Find the best matching song from search results.

        Returns:
            tuple: (best_song, best_score) or (None, 0) if no songs
        """
        best_song = None
        best_score = 0

        for song in songs:
            score = self._score_result(song, artist, title)
            if score > best_score:
                best_score = score
                best_song = song

        return best_song, best_score

    def fetch_plain(self, artist: str, title: str) -> Optional[Lyrics]:
        search_term = self._format_search_term(artist, title)

        search_response = self._get_json(
            f"{self.base_url}/search/pc",
            params={"s": search_term, "limit": 10, "type": 1},
        )
        if search_response is None:
            return None
        if not isinstance(search_response, dict):
            raise MalformedResponseError("Expected an object from search", self.display_name)

        songs = (search_response.get("result") or {}).get("songs")
        if not songs:
            logger.info(f"NetEase - No search results found for: {search_term}")
            return None

        selected_song, best_score = self._find_best_match(songs, artist, title)
        threshold = self.MIN_CONFIDENCE_THRESHOLD if artist.strip() else self.TITLE_ONLY_THRESHOLD
        if selected_song is None or best_score < threshold:
            # Low confidence matches usually belong to a different artist with a similar name
            logger.info(f"NetEase - Rejecting low confidence match (score: {best_score}, threshold: {threshold}) for: {search_term}")
            return None

        song_name = selected_song.get('name') or title
        song_artist = ', '.join(a.get('name') or '' for a in selected_song.get('artists') or [])
        logger.info(f"NetEase - Selected '{song_name}' by '{song_artist}' (score: {best_score})")

        track_id = selected_song.get("id")
        if not track_id:
            logger.warning(f"NetEase - Song missing 'id' field: {song_name}")
            return None

        lyrics_response = self._get_json(f"{self.base_url}/song/lyric", params={"id": track_id, "lv": 1})
        if not lyrics_response:
            return None
        if not isinstance(lyrics_response, dict):
            raise MalformedResponseError("Expected an object from song/lyric", self.display_name)

        lyrics_text = (lyrics_response.get("lrc") or {}).get("lyric")
        if not lyrics_text:
            logger.info(f"NetEase - No lyrics found for: {search_term}")
            return None

        album_name = (selected_song.get("album") or {}).get("name")
        return self._build_lyrics(
            self._song_id(artist, title),
            plain=None,
            lrc=lyrics_text,
            record_id=track_id,
            artist_name=song_artist or artist,
            track_name=song_name,
            album_name=album_name,
        )

    def fetch_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        return self._synced_only(self.fetch_plain(artist, title))
