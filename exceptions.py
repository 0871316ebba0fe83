"""
Exception hierarchy for FlashLyrics.

Provider failures stay inside the fetch pipeline; callers only ever see
LyricsNotFoundError or CacheError.
"""

from typing import Optional


class LyricsError(Exception):
    """Base exception for all FlashLyrics errors."""


class ProviderError(LyricsError):
    """Raised when a provider call fails."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        if provider:
            message = f"{provider}: {message}"
        super().__init__(message)


class TransportError(ProviderError):
    """Network failure: timeout, refused connection or bad HTTP status after retries."""


class MalformedResponseError(ProviderError):
    """The provider answered but the body could not be decoded into lyrics."""


class LyricsNotFoundError(LyricsError):
    """Raised when no provider produced lyrics for a song."""

    def __init__(self, artist: str, title: str):
        self.artist = artist
        self.title = title
        super().__init__(f"No lyrics found for {artist} - {title}")


class CacheError(LyricsError):
    """Raised when the lyrics cache cannot be read or written."""
