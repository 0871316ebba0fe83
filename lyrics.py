"""
Lyrics fetching pipeline.

LyricsFetcher resolves one (artist, title) pair to a single Lyrics value:

1. Cache: a synced hit is returned immediately. An unsynced hit is kept
   as a fallback; if it is still fresh only the synced steps below run.
2. Race: every synced-capable provider is queried at once (for each query
   variant). The first synced answer wins and the rest are cancelled.
   If the race finds nothing, search providers are asked for a synced hit.
3. Sequential: plain-capable providers in priority order, first answer wins.
4. Search: fuzzy search with "artist title", then with the title alone.

Whatever resolves is written back to the cache under the request
fingerprint. If nothing does, LyricsNotFoundError is raised.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import FEATURES, LYRICS
from exceptions import LyricsNotFoundError, ProviderError
from fingerprint import contains_non_latin, fingerprint, normalize_query_text
from logging_config import get_logger
from lyrics_cache import LyricsCache
from models import Lyrics, Song
from providers import LyricsProvider, ProviderCapability, build_providers

logger = get_logger(__name__)


def split_query(query: str) -> Optional[Tuple[str, str]]:
    """
    Guess (artist, title) from free text.

    "Daft Punk - One More Time" -> ("Daft Punk", "One More Time")
    "One More Time by Daft Punk" -> ("Daft Punk", "One More Time")
    """
    if ' - ' in query:
        parts = query.split(' - ')
        if len(parts) == 2 and parts[0].strip() and parts[1].strip():
            return parts[0].strip(), parts[1].strip()
        return None

    by_index = query.lower().rfind(' by ')
    if by_index > 0:
        title = query[:by_index].strip()
        artist = query[by_index + 4:].strip()
        if artist and title:
            return artist, title
    return None


class LyricsFetcher:
    def __init__(self, providers: Sequence[LyricsProvider], cache: Optional[LyricsCache] = None,
                 options: Optional[Dict[str, Any]] = None, features: Optional[Dict[str, Any]] = None):
        """
        Args:
            providers: Provider adapters, in default priority order
            cache: Lyrics database, or None to skip persistence
            options: Overrides for config.LYRICS (timeouts, priority lists)
            features: Overrides for config.FEATURES
        """
        self.providers = list(providers)
        self.cache = cache
        self.options = {**LYRICS, **(options or {})}
        self.features = {**FEATURES, **(features or {})}
        # Lookups currently running, keyed by fingerprint
        self._in_flight: Dict[str, asyncio.Task] = {}

    @classmethod
    def from_config(cls) -> "LyricsFetcher":
        cache = LyricsCache() if FEATURES.get("save_lyrics_locally", True) else None
        return cls(build_providers(), cache=cache)

    def close(self) -> None:
        for provider in self.providers:
            provider.close()

    # ==========================================
    # Provider selection
    # ==========================================

    def _with_capability(self, capability: ProviderCapability) -> List[LyricsProvider]:
        return [p for p in self.providers if p.supports(capability)]

    def _ordered(self, providers: List[LyricsProvider], non_latin: bool) -> List[LyricsProvider]:
        """Sort by the configured priority list. Unlisted providers keep their order at the end."""
        key = "non_latin_priority" if non_latin else "provider_priority"
        priority = self.options.get(key) or []
        rank = {name: i for i, name in enumerate(priority)}
        return sorted(providers, key=lambda p: rank.get(p.name, len(rank)))

    def _query_variants(self, artist: str, title: str) -> List[Tuple[str, str]]:
        """
        Artist/title pairs to try, in order: as given, cleaned up, and for
        non-Latin songs the title on its own (metadata there often carries
        a romanized artist that providers do not know).
        """
        non_latin = contains_non_latin(f"{artist}{title}")
        variants = [(artist, title)]

        clean_artist, clean_title = artist, title
        if self.features.get("normalize_queries", True):
            clean_artist = normalize_query_text(artist, non_latin=non_latin)
            clean_title = normalize_query_text(title, non_latin=non_latin)
            variants.append((clean_artist, clean_title))

        if non_latin:
            variants.append(("", title))
            variants.append(("", clean_title))

        unique = []
        for variant in variants:
            if variant[1].strip() and variant not in unique:
                unique.append(variant)
        return unique

    async def _call(self, provider: LyricsProvider, operation: str, *args) -> Any:
        """
        Run a blocking provider operation in a worker thread, bounded by
        provider_timeout. Provider failures are logged and become None.
        """
        func = getattr(provider, operation)
        timeout = float(self.options["provider_timeout"])
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{provider.display_name} timed out after {timeout}s ({operation})")
        except ProviderError as e:
            logger.warning(f"{provider.display_name} failed ({operation}): {e}")
        except Exception as e:
            logger.error(f"Error with {provider.display_name} ({operation}): {e}", exc_info=True)
        return None

    # ==========================================
    # Cache access
    # ==========================================

    async def _cache_get(self, song_id: str) -> Optional[Lyrics]:
        if self.cache is None:
            return None
        return await asyncio.to_thread(self.cache.get, song_id)

    async def _cache_put(self, lyrics: Lyrics) -> None:
        if self.cache is None or not self.features.get("save_lyrics_locally", True):
            return
        await asyncio.to_thread(self.cache.put, lyrics)

    # ==========================================
    # Pipeline stages
    # ==========================================

    async def _race_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        """
        Query all synced-capable providers in parallel and return the first
        synced result. Tasks finishing in the same wakeup are ranked by query
        variant, then provider priority.
        """
        if not self.features.get("parallel_provider_fetch", True):
            return None

        non_latin = contains_non_latin(f"{artist}{title}")
        racers = self._ordered(self._with_capability(ProviderCapability.SYNCED), non_latin)
        if not racers:
            return None

        task_info: Dict[asyncio.Task, Tuple[int, int, LyricsProvider]] = {}
        for variant_index, (variant_artist, variant_title) in enumerate(self._query_variants(artist, title)):
            for rank, provider in enumerate(racers):
                task = asyncio.create_task(self._call(provider, "fetch_synced", variant_artist, variant_title))
                task_info[task] = (variant_index, rank, provider)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + float(self.options["race_timeout"])
        pending = set(task_info)
        logger.info(f"Racing {len(pending)} synced lookups for: {artist} - {title}")

        try:
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.info(f"Race deadline reached with {len(pending)} lookups pending")
                    return None

                done, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)

                winners = []
                for task in done:
                    lyrics = task.result()
                    if lyrics is not None and lyrics.is_synced and not lyrics.is_empty:
                        winners.append((task_info[task], lyrics))
                if winners:
                    (_, _, provider), lyrics = min(winners, key=lambda w: (w[0][0], w[0][1]))
                    logger.info(f"Race won by {provider.display_name}, cancelling {len(pending)} lookups")
                    return lyrics
            return None
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    def _synced_search_queries(self, artist: str, title: str) -> List[str]:
        """Artist+title queries, then title-only ones, raw before cleaned, without repeats."""
        queries = []
        for variant_artist, variant_title in self._query_variants(artist, title):
            queries.append(f"{variant_artist} {variant_title}".strip())
        for _, variant_title in self._query_variants(artist, title):
            queries.append(variant_title.strip())

        unique = []
        for query in queries:
            if query and query not in unique:
                unique.append(query)
        return unique

    async def _search_synced(self, artist: str, title: str) -> Optional[Lyrics]:
        """
        Second synced attempt after the race: fuzzy search, keeping only
        synced hits. Catches metadata that direct lookups do not match.
        """
        non_latin = contains_non_latin(f"{artist}{title}")
        searchers = self._ordered(self._with_capability(ProviderCapability.SEARCH), non_latin)
        if not searchers:
            return None

        for query in self._synced_search_queries(artist, title):
            for provider in searchers:
                for lyrics in await self._call(provider, "search", query) or []:
                    if lyrics.is_synced and not lyrics.is_empty:
                        logger.info(f"Synced search matched via {provider.display_name} for query: {query}")
                        return lyrics
        return None

    async def _sequential_fallback(self, artist: str, title: str) -> Optional[Lyrics]:
        non_latin = contains_non_latin(f"{artist}{title}")
        ordered = self._ordered(self._with_capability(ProviderCapability.PLAIN), non_latin)

        for variant_artist, variant_title in self._query_variants(artist, title):
            for provider in ordered:
                lyrics = await self._call(provider, "fetch_plain", variant_artist, variant_title)
                if lyrics is not None and not lyrics.is_empty:
                    logger.info(f"Found lyrics using {provider.display_name} ({variant_artist} - {variant_title})")
                    return lyrics
        return None

    async def _search_fallback(self, artist: str, title: str) -> Optional[Lyrics]:
        queries = [f"{artist} {title}".strip()]
        if artist.strip():
            queries.append(title.strip())

        searchers = self._with_capability(ProviderCapability.SEARCH)
        for query in queries:
            for provider in searchers:
                for lyrics in await self._call(provider, "search", query) or []:
                    if not lyrics.is_empty:
                        logger.info(f"Search fallback matched via {provider.display_name} for query: {query}")
                        return lyrics
        return None

    async def _resolve(self, artist: str, title: str, song_id: str) -> Lyrics:
        cached = await self._cache_get(song_id)
        if cached is not None and cached.is_synced:
            logger.info(f"Cache hit (synced) for: {artist} - {title}")
            return cached

        run_fallbacks = True
        if cached is not None:
            run_fallbacks = self.cache.is_stale(cached)
            logger.info(f"Cache hit (unsynced, {'stale' if run_fallbacks else 'fresh'}) for: {artist} - {title}, trying to upgrade")

        result = await self._race_synced(artist, title)
        if result is None:
            result = await self._search_synced(artist, title)
        if result is None and run_fallbacks:
            result = await self._sequential_fallback(artist, title)
            if result is None:
                result = await self._search_fallback(artist, title)

        if result is not None:
            result = result.with_song_id(song_id)
            await self._cache_put(result)
            return result

        if cached is not None:
            logger.info(f"No upgrade found, using cached lyrics for: {artist} - {title}")
            return cached

        logger.info(f"No lyrics found for: {artist} - {title}")
        raise LyricsNotFoundError(artist, title)

    # ==========================================
    # Public API
    # ==========================================

    async def get_lyrics(self, song: Song) -> Lyrics:
        """Resolve lyrics for a detected song. Raises LyricsNotFoundError."""
        return await self.get_lyrics_for(song.artist, song.title)

    async def get_lyrics_for(self, artist: str, title: str) -> Lyrics:
        song_id = fingerprint(artist, title)
        if not self.features.get("single_flight", True):
            return await self._resolve(artist, title, song_id)

        task = self._in_flight.get(song_id)
        if task is None:
            task = asyncio.ensure_future(self._resolve(artist, title, song_id))
            self._in_flight[song_id] = task
            task.add_done_callback(lambda t: self._forget(song_id, t))
        else:
            logger.info(f"Joining in-flight lookup for: {artist} - {title}")
        # Shielded so one caller giving up does not cancel the others
        return await asyncio.shield(task)

    def _forget(self, song_id: str, task: asyncio.Task) -> None:
        if self._in_flight.get(song_id) is task:
            del self._in_flight[song_id]

    async def search_lyrics(self, artist: str, title: str) -> Lyrics:
        """Manual search: any cached entry is returned as-is, otherwise the full pipeline runs."""
        cached = await self._cache_get(fingerprint(artist, title))
        if cached is not None:
            return cached
        return await self.get_lyrics_for(artist, title)

    async def search_online(self, query: str) -> List[Lyrics]:
        """Query every search-capable provider; results merged, duplicates dropped."""
        searchers = self._with_capability(ProviderCapability.SEARCH)
        batches = await asyncio.gather(*(self._call(p, "search", query) for p in searchers))

        results: List[Lyrics] = []
        seen = set()
        for batch in batches:
            for lyrics in batch or []:
                if lyrics.id not in seen:
                    seen.add(lyrics.id)
                    results.append(lyrics)
        return results

    async def search_by_query(self, query: str) -> List[Lyrics]:
        """
        Free-form search. Combines search providers with direct lookups when
        the query looks like "artist - title" or "title by artist", then
        falls back to treating the whole query as a title.
        """
        results: List[Lyrics] = []
        seen = set()

        def add(lyrics: Optional[Lyrics]) -> None:
            if lyrics is not None and lyrics.plain_lyrics and lyrics.song_id not in seen:
                seen.add(lyrics.song_id)
                results.append(lyrics)

        for lyrics in await self.search_online(query):
            add(lyrics)

        direct = [p for p in self._with_capability(ProviderCapability.PLAIN)
                  if not p.supports(ProviderCapability.SEARCH)]

        guess = split_query(query)
        if guess:
            artist, title = guess
            for lyrics in await asyncio.gather(*(self._call(p, "fetch_plain", artist, title) for p in direct)):
                add(lyrics)

        if not results:
            for provider in direct:
                lyrics = await self._call(provider, "fetch_plain", "", query)
                if lyrics is not None:
                    add(lyrics)
                    break

        return results

    async def search_all_providers(self, artist: str, title: str) -> Dict[str, Optional[Lyrics]]:
        """Ask every plain-capable provider at once. Failures map to None."""
        providers = self._with_capability(ProviderCapability.PLAIN)
        answers = await asyncio.gather(*(self._call(p, "fetch_plain", artist, title) for p in providers))
        return {provider.name: lyrics for provider, lyrics in zip(providers, answers)}

    async def get_cached_lyrics(self, song_id: str) -> Optional[Lyrics]:
        return await self._cache_get(song_id)

    async def get_all_cached_lyrics(self) -> List[Lyrics]:
        if self.cache is None:
            return []
        return await asyncio.to_thread(self.cache.get_all)

    async def cache_lyrics(self, lyrics: Lyrics) -> None:
        await self._cache_put(lyrics)

    async def delete_cached_lyrics(self, lyrics_id: str) -> bool:
        if self.cache is None:
            return False
        return await asyncio.to_thread(self.cache.delete, lyrics_id)

    async def search_cached_lyrics(self, query: str) -> List[Lyrics]:
        if self.cache is None:
            return []
        return await asyncio.to_thread(self.cache.search_text, query)

    async def clear_cache(self) -> int:
        if self.cache is None:
            return 0
        return await asyncio.to_thread(self.cache.clear)
