"""Pytest configuration and shared fixtures"""
import os
import tempfile
import threading
import time

# Keep settings, logs and the lyrics database out of the source tree.
# Must run before config/settings are imported.
_SANDBOX = tempfile.mkdtemp(prefix="flashlyrics-tests-")
os.environ.setdefault("FLASHLYRICS_SETTINGS_FILE", os.path.join(_SANDBOX, "settings.json"))
os.environ.setdefault("FLASHLYRICS_LYRICS_DB", os.path.join(_SANDBOX, "lyrics_database"))
os.environ.setdefault("FLASHLYRICS_LOGS_DIR", os.path.join(_SANDBOX, "logs"))

import pytest

from fingerprint import fingerprint
from lyrics_cache import LyricsCache
from models import Lyrics
from providers.base import LyricsProvider, ProviderCapability

SAMPLE_LRC = "[00:00.00]First\n[00:05.00]Second\n[00:10.00]Third"
SAMPLE_PLAIN = "First\nSecond\nThird"

PLAIN = ProviderCapability.PLAIN
SYNCED = ProviderCapability.SYNCED
SEARCH = ProviderCapability.SEARCH


def make_lyrics(artist="Daft Punk", title="One More Time", synced=False, source="Test", **kwargs):
    song_id = kwargs.pop("song_id", fingerprint(artist, title))
    return Lyrics(
        id=kwargs.pop("id", f"{song_id}_{source.lower()}"),
        song_id=song_id,
        plain_lyrics=kwargs.pop("plain_lyrics", SAMPLE_PLAIN),
        lrc_lyrics=SAMPLE_LRC if synced else None,
        source=source,
        artist_name=artist,
        track_name=title,
        **kwargs,
    )


class FakeProvider(LyricsProvider):
    """
    In-memory provider. Blocks for `delay` seconds (in the worker thread),
    then raises `error` or returns `result`.
    """

    def __init__(self, name, capabilities, result=None, delay=0.0, error=None, search_results=None):
        self._capabilities = capabilities
        super().__init__()
        self.name = name
        self.display_name = name
        self.result = result
        self.delay = delay
        self.error = error
        self.search_results = search_results or []
        self.calls = []
        self._lock = threading.Lock()

    def capabilities(self):
        return self._capabilities

    def _answer(self, operation, *args):
        with self._lock:
            self.calls.append((operation,) + args)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    def fetch_plain(self, artist, title):
        if not self.supports(PLAIN):
            return super().fetch_plain(artist, title)
        return self._answer("fetch_plain", artist, title)

    def fetch_synced(self, artist, title):
        if not self.supports(SYNCED):
            return super().fetch_synced(artist, title)
        return self._synced_only(self._answer("fetch_synced", artist, title))

    def search(self, query):
        if not self.supports(SEARCH):
            return super().search(query)
        self._answer("search", query)
        return list(self.search_results)


@pytest.fixture
def cache(tmp_path):
    return LyricsCache(tmp_path / "lyrics_database", ttl_days=7)


@pytest.fixture
def fast_options():
    """Short timeouts and no retry sleeps"""
    return {
        "provider_timeout": 1.0,
        "race_timeout": 2.0,
        "max_retries": 0,
        "retry_delay": 0.0,
        "provider_priority": ["lrclib", "textyl", "chartlyrics", "lyrics.ovh", "lyrist", "netease"],
        "non_latin_priority": ["netease", "lrclib", "textyl", "lyrics.ovh", "lyrist", "chartlyrics"],
    }
