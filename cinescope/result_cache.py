"""
Result cache module.
Maps a normalized (query, year) lookup to the metadata record it produced, with
TTL-based expiry checked on read. Storage is a pluggable strategy object; the cache
itself never lets a storage failure reach the caller.
"""

# Time handling for TTL checks
from datetime import datetime, timedelta, timezone  # aware UTC timestamps
# Typing helpers for the store protocol
from typing import Callable, Dict, Optional, Protocol  # clock, in-memory map, store protocol

# Console logging
from loguru import logger  # console logger

from .models import CacheEntry, MetadataRecord

DEFAULT_TTL = timedelta(days=7)  # metadata rarely changes


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def normalize_query(query: str) -> str:
	"""Lowercase and trim so "The Matrix " and "the matrix" share one entry."""
	return (query or '').strip().lower()


class CacheStore(Protocol):
	"""Storage strategy: read by lookup key, upsert by the record's own id."""

	def read(self, normalized_query: str, year: Optional[int]) -> Optional[CacheEntry]:
		...

	def upsert(self, entry: CacheEntry) -> None:
		...


class NullCacheStore:
	"""Store used when no persistent cache is configured: remembers nothing."""

	def read(self, normalized_query: str, year: Optional[int]) -> Optional[CacheEntry]:
		return None

	def upsert(self, entry: CacheEntry) -> None:
		return None


class MemoryCacheStore:
	"""Process-local store keyed by metadata id."""

	def __init__(self):
		self._entries: Dict[int, CacheEntry] = {}  # metadata id -> entry

	def read(self, normalized_query: str, year: Optional[int]) -> Optional[CacheEntry]:
		matches = [
			e for e in self._entries.values()
			if e.normalized_query == normalized_query and e.year == year
		]
		if not matches:
			return None
		return max(matches, key=lambda e: e.updated_at)  # freshest binding wins

	def upsert(self, entry: CacheEntry) -> None:
		self._entries[entry.metadata.id] = entry  # last write wins

	def __len__(self) -> int:
		return len(self._entries)


class ResultCache:
	"""
	Cache-aside helper for metadata lookups.
	- store: storage strategy (defaults to NullCacheStore)
	- ttl: entries at least this old are treated as absent
	- clock: returns the current aware datetime (tests inject a fake one)
	"""

	def __init__(
		self,
		store: Optional[CacheStore] = None,
		ttl: timedelta = DEFAULT_TTL,
		clock: Optional[Callable[[], datetime]] = None,
	):
		self.store = store if store is not None else NullCacheStore()
		self.ttl = ttl
		self.clock = clock or utc_now

	def get(self, query: str, year: Optional[int] = None) -> Optional[MetadataRecord]:
		"""Return the cached record for (query, year), or None on miss, expiry, or store failure."""
		key = normalize_query(query)
		try:
			entry = self.store.read(key, year)
		except Exception as e:
			logger.warning(f"[Cache] Read failed for '{key}' ({year}); treating as miss: {e}")
			return None

		if entry is None:
			logger.debug(f"[Cache] MISS for '{key}' ({year})")
			return None

		age = self.clock() - entry.updated_at
		if age >= self.ttl:
			logger.debug(f"[Cache] EXPIRED for '{key}' ({year}) | age={age.days}d")
			return None

		logger.debug(f"[Cache] HIT for '{key}' ({year}) | age={age.days}d")
		return entry.metadata

	def put(self, query: str, year: Optional[int], metadata: MetadataRecord) -> None:
		"""Store a record under (query, year); the record's id decides which row is overwritten."""
		key = normalize_query(query)
		entry = CacheEntry(normalized_query=key, year=year, metadata=metadata, updated_at=self.clock())
		try:
			self.store.upsert(entry)
		except Exception as e:
			logger.warning(f"[Cache] Write skipped for '{key}' (id={metadata.id}): {e}")
			return
		logger.debug(f"[Cache] SAVED '{key}' ({year}) -> id={metadata.id}")
