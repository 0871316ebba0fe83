"""Tests for Song and Lyrics values"""
import dataclasses
from datetime import datetime, timezone

import pytest

from models import Lyrics, Song
from conftest import SAMPLE_LRC, make_lyrics


def test_song_from_metadata_id():
    song = Song.from_metadata("Daft Punk", "One More Time", source="Spotify")
    assert song.id == "daft_punk_one_more_time"
    assert song.source == "Spotify"


def test_song_is_immutable():
    song = Song(id="x", title="t", artist="a")
    with pytest.raises(dataclasses.FrozenInstanceError):
        song.title = "other"


def test_song_dict_round_trip_uses_milliseconds():
    song = Song(id="x", title="t", artist="a", duration=215.5)
    data = song.to_dict()
    assert data["duration"] == 215500
    assert Song.from_dict(data) == song


def test_lyrics_is_synced_derived_from_lrc():
    assert make_lyrics(synced=True).is_synced
    assert not make_lyrics(synced=False).is_synced
    bogus = Lyrics(id="1", song_id="s", plain_lyrics="a", source="x", lrc_lyrics="not really lrc")
    assert not bogus.is_synced


def test_lyrics_is_synced_not_settable():
    with pytest.raises(TypeError):
        Lyrics(id="1", song_id="s", plain_lyrics="a", source="x", is_synced=True)


def test_lyrics_lines_drop_blanks():
    lyrics = make_lyrics(plain_lyrics="Line 1\n\nLine 2\n   \nLine 3")
    assert lyrics.lines == ["Line 1", "Line 2", "Line 3"]


def test_with_song_id_keeps_everything_else():
    lyrics = make_lyrics(synced=True)
    moved = lyrics.with_song_id("other_key")
    assert moved.song_id == "other_key"
    assert moved.id == lyrics.id
    assert moved.is_synced
    assert lyrics.with_song_id(lyrics.song_id) is lyrics


def test_lyrics_dict_round_trip():
    lyrics = make_lyrics(synced=True, album_name="Discovery")
    data = lyrics.to_dict()
    assert data["songId"] == lyrics.song_id
    assert data["isSynced"] is True
    assert data["lrcLyrics"] == SAMPLE_LRC
    assert Lyrics.from_dict(data) == lyrics


def test_from_dict_recomputes_is_synced():
    data = make_lyrics().to_dict()
    data["isSynced"] = True
    assert not Lyrics.from_dict(data).is_synced


def test_from_dict_naive_timestamp_is_utc():
    data = make_lyrics().to_dict()
    data["fetchedAt"] = "2024-01-02T03:04:05"
    lyrics = Lyrics.from_dict(data)
    assert lyrics.fetched_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
