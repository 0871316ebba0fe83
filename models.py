"""
Domain values shared across FlashLyrics.

Song comes from the media detection side (whatever player is active).
Lyrics is what a provider produced for a song; it is keyed by the song
fingerprint, not by Song.id.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lrc_parser import is_valid_lrc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Song:
    id: str
    title: str
    artist: str
    album: Optional[str] = None
    artwork_url: Optional[str] = None
    duration: Optional[float] = None  # seconds
    source: Optional[str] = None  # Spotify, YouTube Music, ...

    @classmethod
    def from_metadata(cls, artist: str, title: str, **kwargs) -> "Song":
        """Build a Song the way media detection names tracks: "artist_title" with spaces as underscores."""
        song_id = f"{artist}_{title}".lower().replace(' ', '_')
        return cls(id=song_id, title=title, artist=artist, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'artworkUrl': self.artwork_url,
            'duration': int(self.duration * 1000) if self.duration is not None else None,
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Song":
        duration_ms = data.get('duration')
        return cls(
            id=data.get('id') or '',
            title=data.get('title') or '',
            artist=data.get('artist') or '',
            album=data.get('album'),
            artwork_url=data.get('artworkUrl'),
            duration=duration_ms / 1000.0 if duration_ms is not None else None,
            source=data.get('source'),
        )


@dataclass(frozen=True)
class Lyrics:
    """
    A lyrics result.

    is_synced is derived from lrc_lyrics and cannot be passed in: it is true
    exactly when lrc_lyrics holds at least one valid time tag.
    """
    id: str
    song_id: str
    plain_lyrics: str
    source: str
    lrc_lyrics: Optional[str] = None
    fetched_at: datetime = field(default_factory=utc_now)
    artist_name: Optional[str] = None
    track_name: Optional[str] = None
    album_name: Optional[str] = None
    is_synced: bool = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'is_synced', bool(self.lrc_lyrics) and is_valid_lrc(self.lrc_lyrics))

    @property
    def lines(self) -> List[str]:
        """Plain lyrics split into non-blank lines"""
        return [line for line in self.plain_lyrics.splitlines() if line.strip()]

    @property
    def is_empty(self) -> bool:
        return not self.plain_lyrics.strip()

    def with_song_id(self, song_id: str) -> "Lyrics":
        if song_id == self.song_id:
            return self
        return replace(self, song_id=song_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'songId': self.song_id,
            'plainLyrics': self.plain_lyrics,
            'lrcLyrics': self.lrc_lyrics,
            'isSynced': self.is_synced,
            'source': self.source,
            'fetchedAt': self.fetched_at.isoformat(),
            'artistName': self.artist_name,
            'trackName': self.track_name,
            'albumName': self.album_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lyrics":
        """Rebuild from to_dict() output. The stored isSynced flag is recomputed, not trusted."""
        fetched_at = data.get('fetchedAt')
        if fetched_at:
            fetched_at = datetime.fromisoformat(fetched_at)
            if fetched_at.tzinfo is None:
                fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        else:
            fetched_at = utc_now()

        return cls(
            id=data.get('id') or '',
            song_id=data.get('songId') or '',
            plain_lyrics=data.get('plainLyrics') or '',
            lrc_lyrics=data.get('lrcLyrics'),
            source=data.get('source') or 'unknown',
            fetched_at=fetched_at,
            artist_name=data.get('artistName'),
            track_name=data.get('trackName'),
            album_name=data.get('albumName'),
        )
