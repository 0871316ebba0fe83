"""
Song identity and query text helpers.

fingerprint() is the cache key for a song and the song_id stored on every
Lyrics value. normalize_query_text() produces the "cleaned" variant of an
artist or title used when the raw metadata finds nothing.
"""
import re

_INVALID_CHARS = re.compile(r'[^a-z0-9_]')
_UNDERSCORE_RUNS = re.compile(r'_+')

# Devanagari, CJK, Hiragana/Katakana, Hangul, Arabic
_NON_LATIN = re.compile(r"[\u0900-\u097F\u4E00-\u9FFF\u3040-\u30FF\uAC00-\uD7AF\u0600-\u06FF]")

_BRACKETED = re.compile(r'\s*[(\[][^)\]]*[)\]]')
_VIDEO_SUFFIX = re.compile(
    r'\s*-\s*(official|audio|video|lyrics?|hd|hq|4k|visuali[sz]er|remaster(ed)?)\b.*$',
    re.IGNORECASE,
)
_PIPE_SUFFIX = re.compile(r'\s*\|.*$')
_WHITESPACE = re.compile(r'\s+')

_QUOTES = str.maketrans({
    '‘': "'", '’': "'", '‚': "'", '′': "'",
    '“': '"', '”': '"', '„': '"', '″': '"',
})


def fingerprint(artist: str, title: str) -> str:
    """
    Build the stable cache key for an (artist, title) pair.

    "Daft Punk", "One More Time" -> "daft_punk_one_more_time"
    "AC/DC", "T.N.T." -> "ac_dc_t_n_t_"
    """
    key = f"{artist}_{title}".lower()
    key = _INVALID_CHARS.sub('_', key)
    return _UNDERSCORE_RUNS.sub('_', key)


def contains_non_latin(text: str) -> bool:
    return bool(text) and _NON_LATIN.search(text) is not None


def normalize_query_text(text: str, non_latin: bool = False) -> str:
    """
    Clean up artist/title metadata for a second lookup attempt.

    Latin text loses bracketed segments ("(Remastered 2011)", "[Live]"),
    video-style suffixes ("- Official Video") and anything after a pipe.
    Non-Latin text only gets quote and whitespace normalization, since
    brackets there often carry the romanized or original title.
    """
    if not text:
        return ""
    result = text.translate(_QUOTES)
    if not non_latin:
        result = _BRACKETED.sub('', result)
        result = _VIDEO_SUFFIX.sub('', result)
        result = _PIPE_SUFFIX.sub('', result)
    return _WHITESPACE.sub(' ', result).strip()
