"""
Lyrics Providers Package
This package contains the adapters for the free lyrics APIs.
"""
from typing import Any, Dict, List, Optional

from config import is_provider_enabled

from .base import LyricsProvider, ProviderCapability
from .chartlyrics import ChartLyricsProvider
from .lrclib import LRCLIBProvider
from .lyrics_ovh import LyricsOvhProvider
from .lyrist import LyristProvider
from .netease import NetEaseProvider
from .textyl import TextylProvider

# List of all available providers
available_providers = [
    LRCLIBProvider,
    TextylProvider,
    ChartLyricsProvider,
    LyricsOvhProvider,
    LyristProvider,
    NetEaseProvider,
]


def build_providers(options: Optional[Dict[str, Any]] = None) -> List[LyricsProvider]:
    """Instantiate every provider enabled in config."""
    return [cls(options) for cls in available_providers if is_provider_enabled(cls.NAME)]


__all__ = [
    'LyricsProvider',
    'ProviderCapability',
    'LRCLIBProvider',
    'TextylProvider',
    'ChartLyricsProvider',
    'LyricsOvhProvider',
    'LyristProvider',
    'NetEaseProvider',
    'available_providers',
    'build_providers',
]
