"""Provider adapter tests with the HTTP session mocked out"""
import json
from unittest.mock import MagicMock

import pytest
import requests

from exceptions import MalformedResponseError, TransportError
from providers import (
    ChartLyricsProvider,
    LRCLIBProvider,
    LyricsOvhProvider,
    LyristProvider,
    NetEaseProvider,
    ProviderCapability,
    TextylProvider,
    build_providers,
)

OPTIONS = {"max_retries": 1, "retry_delay": 0.0}

LRCLIB_RECORD = {
    "id": 3396226,
    "trackName": "One More Time",
    "artistName": "Daft Punk",
    "albumName": "Discovery",
    "duration": 320,
    "instrumental": False,
    "plainLyrics": "One more time\nOne more time",
    "syncedLyrics": "[00:01.00]One more time\n[00:03.50]One more time",
}


def fake_response(status=200, body=None, text=None):
    response = MagicMock()
    response.status_code = status
    if body is not None:
        content = json.dumps(body).encode("utf-8")
    else:
        content = (text or "").encode("utf-8")
    response.content = content
    response.json.side_effect = lambda: json.loads(content)
    return response


def with_responses(provider, *responses):
    provider.session.request = MagicMock(side_effect=list(responses))
    return provider.session.request


# ==========================================
# Shared request behaviour
# ==========================================

def test_retries_transient_connection_error():
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, requests.ConnectionError("reset"), fake_response(body=LRCLIB_RECORD))
    lyrics = provider.fetch_plain("Daft Punk", "One More Time")
    assert lyrics is not None
    assert request.call_count == 2


def test_retries_server_errors_then_gives_up():
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, fake_response(503), fake_response(503))
    with pytest.raises(TransportError):
        provider.fetch_plain("Daft Punk", "One More Time")
    assert request.call_count == 2


def test_timeout_is_transport_error():
    provider = LRCLIBProvider({"max_retries": 0, "retry_delay": 0.0})
    with_responses(provider, requests.Timeout("slow"))
    with pytest.raises(TransportError):
        provider.fetch_plain("Daft Punk", "One More Time")


def test_client_error_not_retried():
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, fake_response(400))
    with pytest.raises(TransportError):
        provider.fetch_plain("Daft Punk", "One More Time")
    assert request.call_count == 1


def test_404_is_absence_not_error():
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, fake_response(404))
    assert provider.fetch_plain("Nobody", "Nothing") is None
    assert request.call_count == 1


def test_invalid_json_is_malformed():
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(text="<html>oops</html>"))
    with pytest.raises(MalformedResponseError):
        provider.fetch_plain("Daft Punk", "One More Time")


def test_request_uses_configured_timeouts():
    provider = LRCLIBProvider({**OPTIONS, "connect_timeout": 3, "receive_timeout": 4})
    request = with_responses(provider, fake_response(body=LRCLIB_RECORD))
    provider.fetch_plain("Daft Punk", "One More Time")
    assert request.call_args.kwargs["timeout"] == (3.0, 4.0)


# ==========================================
# Capabilities
# ==========================================

def test_capabilities():
    assert LRCLIBProvider.capabilities() == (
        ProviderCapability.PLAIN | ProviderCapability.SYNCED | ProviderCapability.SEARCH
    )
    assert TextylProvider.capabilities() & ProviderCapability.SYNCED
    assert NetEaseProvider.capabilities() & ProviderCapability.SYNCED
    assert LyricsOvhProvider.capabilities() == ProviderCapability.PLAIN
    assert LyristProvider.capabilities() == ProviderCapability.PLAIN
    assert ChartLyricsProvider.capabilities() == ProviderCapability.PLAIN


def test_unsupported_operation_raises():
    provider = LyricsOvhProvider(OPTIONS)
    with pytest.raises(NotImplementedError):
        provider.fetch_synced("a", "b")
    with pytest.raises(NotImplementedError):
        provider.search("a b")


def test_build_providers_default_set():
    names = [p.name for p in build_providers(OPTIONS)]
    assert names == ["lrclib", "textyl", "chartlyrics", "lyrics.ovh", "lyrist", "netease"]


# ==========================================
# LRCLIB
# ==========================================

def test_lrclib_fetch_synced():
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, fake_response(body=LRCLIB_RECORD))

    lyrics = provider.fetch_synced("Daft Punk", "One More Time")

    assert lyrics.is_synced
    assert lyrics.song_id == "daft_punk_one_more_time"
    assert lyrics.source == "LRCLIB"
    assert lyrics.album_name == "Discovery"
    assert lyrics.id == "daft_punk_one_more_time_lrclib_3396226"
    args, kwargs = request.call_args
    assert args == ("GET", "https://lrclib.net/api/get")
    assert kwargs["params"] == {"track_name": "One More Time", "artist_name": "Daft Punk"}
    assert "Lrclib-Client" in provider.session.headers


def test_lrclib_plain_only_record():
    record = {**LRCLIB_RECORD, "syncedLyrics": None}
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(body=record), fake_response(body=record))

    assert provider.fetch_synced("Daft Punk", "One More Time") is None
    lyrics = provider.fetch_plain("Daft Punk", "One More Time")
    assert not lyrics.is_synced
    assert lyrics.plain_lyrics == record["plainLyrics"]


def test_lrclib_synced_only_record_gets_plain_text():
    record = {**LRCLIB_RECORD, "plainLyrics": ""}
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(body=record))
    lyrics = provider.fetch_plain("Daft Punk", "One More Time")
    assert lyrics.plain_lyrics == "One more time\nOne more time"


def test_lrclib_empty_record_is_none():
    record = {**LRCLIB_RECORD, "plainLyrics": "", "syncedLyrics": ""}
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(body=record))
    assert provider.fetch_plain("Daft Punk", "One More Time") is None


def test_lrclib_time_tags_without_words_is_none():
    record = {**LRCLIB_RECORD, "plainLyrics": "", "syncedLyrics": "[00:00.00]\n[00:05.00] "}
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(body=record), fake_response(body=record))

    assert provider.fetch_synced("A", "T") is None
    assert provider.fetch_plain("A", "T") is None


def test_lrclib_search():
    other = {**LRCLIB_RECORD, "id": 1, "artistName": "Someone", "trackName": "Cover", "syncedLyrics": None}
    provider = LRCLIBProvider(OPTIONS)
    request = with_responses(provider, fake_response(body=[LRCLIB_RECORD, other]))

    results = provider.search("one more time")

    assert [r.song_id for r in results] == ["daft_punk_one_more_time", "someone_cover"]
    assert results[0].is_synced and not results[1].is_synced
    assert request.call_args.kwargs["params"] == {"q": "one more time"}


def test_lrclib_search_wrong_shape():
    provider = LRCLIBProvider(OPTIONS)
    with_responses(provider, fake_response(body={"error": "nope"}))
    with pytest.raises(MalformedResponseError):
        provider.search("anything")


# ==========================================
# Textyl
# ==========================================

def test_textyl_converts_lines_to_lrc():
    provider = TextylProvider(OPTIONS)
    request = with_responses(provider, fake_response(body=[
        {"seconds": 1, "lyrics": "First"},
        {"seconds": 65.5, "lyrics": "Second"},
    ]))

    lyrics = provider.fetch_synced("Daft Punk", "One More Time")

    assert lyrics.lrc_lyrics == "[00:01.00]First\n[01:05.50]Second"
    assert lyrics.plain_lyrics == "First\nSecond"
    assert lyrics.is_synced
    assert request.call_args.kwargs["params"] == {"q": "Daft Punk One More Time"}


def test_textyl_empty_list():
    provider = TextylProvider(OPTIONS)
    with_responses(provider, fake_response(body=[]))
    assert provider.fetch_plain("a", "b") is None


# ==========================================
# lyrics.ovh / Lyrist
# ==========================================

def test_lyrics_ovh_path_is_encoded():
    provider = LyricsOvhProvider(OPTIONS)
    request = with_responses(provider, fake_response(body={"lyrics": "Hello\nWorld"}))

    lyrics = provider.fetch_plain("AC/DC", "T.N.T.")

    assert request.call_args.args[1] == "https://api.lyrics.ovh/v1/AC%2FDC/T.N.T."
    assert lyrics.plain_lyrics == "Hello\nWorld"
    assert not lyrics.is_synced
    assert lyrics.source == "lyrics.ovh"


def test_lyrics_ovh_empty_lyrics_is_none():
    provider = LyricsOvhProvider(OPTIONS)
    with_responses(provider, fake_response(body={"lyrics": ""}))
    assert provider.fetch_plain("a", "b") is None


def test_lyrics_ovh_needs_artist():
    provider = LyricsOvhProvider(OPTIONS)
    request = with_responses(provider)
    assert provider.fetch_plain("", "b") is None
    request.assert_not_called()


def test_lyrist_error_payload_is_none():
    provider = LyristProvider(OPTIONS)
    with_responses(provider, fake_response(body={"error": "Lyrics not found"}))
    assert provider.fetch_plain("a", "b") is None


def test_lyrist_result():
    provider = LyristProvider(OPTIONS)
    with_responses(provider, fake_response(body={"lyrics": "La la", "title": "Song", "artist": "Band"}))
    lyrics = provider.fetch_plain("band", "song")
    assert lyrics.track_name == "Song"
    assert lyrics.song_id == "band_song"


# ==========================================
# ChartLyrics
# ==========================================

CHARTLYRICS_XML = """<?xml version="1.0" encoding="utf-8"?>
<GetLyricResult xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xmlns="http://api.chartlyrics.com/">
  <TrackId>0</TrackId>
  <LyricId>42</LyricId>
  <LyricSong>Numb</LyricSong>
  <LyricArtist>Linkin Park</LyricArtist>
  <Lyric>I'm tired of being what you want me to be</Lyric>
</GetLyricResult>"""


def test_chartlyrics_parses_xml():
    provider = ChartLyricsProvider(OPTIONS)
    request = with_responses(provider, fake_response(text=CHARTLYRICS_XML))

    lyrics = provider.fetch_plain("Linkin Park", "Numb")

    assert lyrics.plain_lyrics.startswith("I'm tired")
    assert lyrics.id == "linkin_park_numb_chartlyrics_42"
    assert lyrics.artist_name == "Linkin Park"
    assert request.call_args.kwargs["params"] == {"artist": "Linkin Park", "song": "Numb"}


def test_chartlyrics_no_match():
    xml = CHARTLYRICS_XML.replace("<LyricId>42</LyricId>", "<LyricId>0</LyricId>")
    provider = ChartLyricsProvider(OPTIONS)
    with_responses(provider, fake_response(text=xml))
    assert provider.fetch_plain("Linkin Park", "Numb") is None


def test_chartlyrics_bad_xml():
    provider = ChartLyricsProvider(OPTIONS)
    with_responses(provider, fake_response(text="<GetLyricResult><LyricId>"))
    with pytest.raises(MalformedResponseError):
        provider.fetch_plain("Linkin Park", "Numb")


# ==========================================
# NetEase
# ==========================================

NETEASE_SEARCH = {
    "result": {
        "songs": [
            {"id": 1, "name": "Something Else", "artists": [{"name": "Other"}]},
            {"id": 186016, "name": "稻香", "artists": [{"name": "周杰伦"}], "album": {"name": "魔杰座"}},
        ]
    }
}


def test_netease_picks_best_match():
    provider = NetEaseProvider(OPTIONS)
    request = with_responses(
        provider,
        fake_response(body=NETEASE_SEARCH),
        fake_response(body={"lrc": {"lyric": "[00:01.00]对这个世界如果你有太多的抱怨"}}),
    )

    lyrics = provider.fetch_synced("周杰伦", "稻香")

    assert lyrics.is_synced
    assert lyrics.source == "NetEase Music"
    assert lyrics.album_name == "魔杰座"
    assert lyrics.plain_lyrics == "对这个世界如果你有太多的抱怨"
    assert request.call_args.kwargs["params"] == {"id": 186016, "lv": 1}


def test_netease_rejects_low_confidence():
    provider = NetEaseProvider(OPTIONS)
    request = with_responses(provider, fake_response(body={
        "result": {"songs": [{"id": 1, "name": "Different", "artists": [{"name": "Nobody"}]}]}
    }))
    assert provider.fetch_plain("Bad Omens", "Like A Villain") is None
    assert request.call_count == 1


def test_netease_no_results():
    provider = NetEaseProvider(OPTIONS)
    with_responses(provider, fake_response(body={"result": {}}))
    assert provider.fetch_plain("a", "b") is None


def test_netease_title_only_gets_no_artist_bonus():
    provider = NetEaseProvider(OPTIONS)
    song = {"id": 1, "name": "稻香 (Live)", "artists": [{"name": "Other"}]}
    assert provider._score_result(song, "", "稻香") == 40

    request = with_responses(provider, fake_response(body={"result": {"songs": [song]}}))
    assert provider.fetch_plain("", "稻香") is None
    assert request.call_count == 1


def test_netease_title_only_exact_match():
    provider = NetEaseProvider(OPTIONS)
    with_responses(
        provider,
        fake_response(body={"result": {"songs": [NETEASE_SEARCH["result"]["songs"][1]]}}),
        fake_response(body={"lrc": {"lyric": "[00:01.00]对这个世界如果你有太多的抱怨"}}),
    )

    lyrics = provider.fetch_synced("", "稻香")

    assert lyrics.is_synced
    assert lyrics.track_name == "稻香"
