"""
LRC synchronized lyrics parser.

Handles the common subset of the format:

    [ti:Title]
    [ar:Artist]
    [offset:+250]
    [00:12.34]A line of lyrics
    [00:20.00][01:20.00]A repeated chorus line

Lines are kept in the order they appear in the file. Timestamps are floats
in seconds from the start of the track.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Union

TIME_TAG = re.compile(r'\[(\d{1,3}):(\d{2})[.:](\d{2,3})\]')
META_TAG = re.compile(r'^\[(ti|ar|al|au|by|offset|length):(.*)\]$', re.IGNORECASE)
OFFSET_VALUE = re.compile(r'^[+-]?\d+$')

Position = Union[float, int, timedelta]


@dataclass(frozen=True)
class LrcLine:
    timestamp: float
    text: str


@dataclass
class ParsedLrc:
    lines: List[LrcLine] = field(default_factory=list)
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    author: Optional[str] = None
    offset: float = 0.0
    length: Optional[str] = None
    is_monotonic: bool = True

    def get_line_index_at_time(self, position: Position) -> int:
        """
        Index of the line active at `position`, or -1 before the first line.

        The active line is the one with the greatest timestamp not after the
        (offset adjusted) position. Ties go to the later line in the file.
        """
        if not self.lines:
            return -1

        t = _to_seconds(position) - self.offset

        if self.is_monotonic:
            return bisect_right(self.lines, t, key=lambda line: line.timestamp) - 1

        best_index = -1
        best_timestamp = None
        for i, line in enumerate(self.lines):
            if line.timestamp <= t and (best_timestamp is None or line.timestamp >= best_timestamp):
                best_index = i
                best_timestamp = line.timestamp
        return best_index

    def get_line_at_time(self, position: Position) -> Optional[LrcLine]:
        index = self.get_line_index_at_time(position)
        if index < 0:
            return None
        return self.lines[index]


def _to_seconds(position: Position) -> float:
    if isinstance(position, timedelta):
        return position.total_seconds()
    return float(position)


def _parse_timestamp(match) -> float:
    minutes, seconds, fraction = match.groups()
    # "5" -> 500ms, "05" -> 50ms, "050" -> 50ms
    millis = int(fraction.ljust(3, '0'))
    return int(minutes) * 60 + int(seconds) + millis / 1000.0


def parse_lrc(text: str) -> ParsedLrc:
    """Parse LRC text. Text without time tags yields an empty line list."""
    parsed = ParsedLrc()
    if not text:
        return parsed

    previous = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        meta = META_TAG.match(line)
        if meta:
            _apply_meta(parsed, meta.group(1).lower(), meta.group(2).strip())
            continue

        matches = list(TIME_TAG.finditer(line))
        if not matches:
            continue

        lyric = TIME_TAG.sub('', line).strip()
        for match in matches:
            timestamp = _parse_timestamp(match)
            if previous is not None and timestamp < previous:
                parsed.is_monotonic = False
            previous = timestamp
            parsed.lines.append(LrcLine(timestamp, lyric))

    return parsed


def _apply_meta(parsed: ParsedLrc, tag: str, value: str) -> None:
    if tag == 'ti':
        parsed.title = value
    elif tag == 'ar':
        parsed.artist = value
    elif tag == 'al':
        parsed.album = value
    elif tag in ('au', 'by'):
        parsed.author = value
    elif tag == 'length':
        parsed.length = value
    elif tag == 'offset' and OFFSET_VALUE.match(value):
        parsed.offset = int(value) / 1000.0


def is_valid_lrc(text: Optional[str]) -> bool:
    """True when the text contains at least one [mm:ss.xx] time tag."""
    return bool(text) and TIME_TAG.search(text) is not None


def to_plain_text(parsed: ParsedLrc) -> str:
    return '\n'.join(line.text for line in parsed.lines)


def extract_plain_from_lrc(lrc: str) -> str:
    """Strip time tags from each line, dropping header tags and empty lines."""
    result = []
    for raw_line in lrc.splitlines():
        line = raw_line.strip()
        if not line or META_TAG.match(line):
            continue
        text = TIME_TAG.sub('', line).strip()
        if text:
            result.append(text)
    return '\n'.join(result)


def format_timestamp(seconds: float) -> str:
    """Format seconds as an LRC time tag, e.g. 65.5 -> [01:05.50]"""
    centis = int(round(max(seconds, 0.0) * 100))
    minutes, centis = divmod(centis, 6000)
    secs, centis = divmod(centis, 100)
    return f"[{minutes:02d}:{secs:02d}.{centis:02d}]"
