"""
Persistent metadata cache store backed by SQLite.
One row per metadata id; rows are found by (normalized query, year) and carry an
updated_at timestamp that ResultCache uses for TTL checks.
"""

# JSON for the record payload column
import json  # serialize MetadataRecord dicts
# SQLite for the persistent cache file
import sqlite3  # embedded database
# Time parsing for the updated_at column
from datetime import datetime, timezone  # ISO timestamps
# Pathlib for robust path handling
from pathlib import Path  # filesystem paths
# Typing hints for clarity of public API
from typing import Optional, Union  # type hints

# Console logging
from loguru import logger  # console logger

from .models import CacheEntry, MetadataRecord

SCHEMA = """
CREATE TABLE IF NOT EXISTS tmdb_cache (
	id INTEGER PRIMARY KEY,
	search_query TEXT NOT NULL,
	search_year INTEGER,
	payload TEXT NOT NULL,
	created_at TEXT NOT NULL,
	updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tmdb_cache_lookup ON tmdb_cache (search_query, search_year);
"""

UPSERT = """
INSERT INTO tmdb_cache (id, search_query, search_year, payload, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
	search_query = excluded.search_query,
	search_year = excluded.search_year,
	payload = excluded.payload,
	updated_at = excluded.updated_at
"""

SELECT = """
SELECT payload, search_query, search_year, updated_at
FROM tmdb_cache
WHERE search_query = ? AND search_year IS ?
ORDER BY updated_at DESC
LIMIT 1
"""


class SQLiteCacheStore:
	"""
	SQLite implementation of the cache store strategy.
	- db_path: database file, or ":memory:" for a throwaway store
	"""

	def __init__(self, db_path: Union[str, Path] = ':memory:'):
		self.db_path = str(db_path)  # keep as string for sqlite3
		if self.db_path != ':memory:':
			Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)  # ensure folder exists
		# Lookups finish on the event loop thread, but allow use from worker threads too
		self.conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
		self.conn.executescript(SCHEMA)  # idempotent schema setup
		logger.info(f"[CacheDB] Opened metadata cache at {self.db_path}")

	def read(self, normalized_query: str, year: Optional[int]) -> Optional[CacheEntry]:
		row = self.conn.execute(SELECT, (normalized_query, year)).fetchone()
		if row is None:
			return None
		payload, query, row_year, updated_at = row
		return CacheEntry(
			normalized_query=query,
			year=row_year,
			metadata=MetadataRecord.from_dict(json.loads(payload)),
			updated_at=_parse_timestamp(updated_at),
		)

	def upsert(self, entry: CacheEntry) -> None:
		stamp = entry.updated_at.isoformat()  # ISO strings sort chronologically
		self.conn.execute(
			UPSERT,
			(
				entry.metadata.id,
				entry.normalized_query,
				entry.year,
				json.dumps(entry.metadata.to_dict()),
				stamp,
				stamp,
			),
		)

	def count(self) -> int:
		"""Return the number of cached records."""
		return self.conn.execute('SELECT COUNT(*) FROM tmdb_cache').fetchone()[0]

	def close(self) -> None:
		self.conn.close()


def _parse_timestamp(value: str) -> datetime:
	stamp = datetime.fromisoformat(value)
	if stamp.tzinfo is None:
		stamp = stamp.replace(tzinfo=timezone.utc)  # rows written without offset are UTC
	return stamp
