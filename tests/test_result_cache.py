"""
Unit tests for ResultCache: normalization, TTL expiry, id-keyed upserts, and failing stores.
Run: pytest tests/test_result_cache.py
"""

from cinescope.models import MetadataRecord
from cinescope.result_cache import MemoryCacheStore, NullCacheStore, ResultCache, normalize_query

from fakes import FakeClock


MATRIX = MetadataRecord(id=603, title='The Matrix', release_date='1999-03-31')


class BrokenStore:
	def read(self, normalized_query, year):
		raise RuntimeError('database is locked')

	def upsert(self, entry):
		raise RuntimeError('disk full')


def make_cache(clock=None):
	store = MemoryCacheStore()
	return ResultCache(store, clock=clock or FakeClock()), store


def test_normalize_query():
	assert normalize_query('  The Matrix ') == 'the matrix'
	assert normalize_query(None) == ''


def test_round_trip_is_case_and_space_insensitive():
	cache, _ = make_cache()
	cache.put('The Matrix ', 1999, MATRIX)
	assert cache.get('the matrix', 1999) == MATRIX
	assert cache.get('THE MATRIX', 1999) == MATRIX


def test_year_is_part_of_the_key():
	cache, _ = make_cache()
	cache.put('the matrix', 1999, MATRIX)
	assert cache.get('the matrix') is None
	assert cache.get('the matrix', 2003) is None


def test_entries_expire_after_ttl():
	clock = FakeClock()
	cache, _ = make_cache(clock)
	cache.put('the matrix', 1999, MATRIX)

	clock.advance(days=6, hours=23)
	assert cache.get('the matrix', 1999) == MATRIX

	clock.advance(hours=1)  # exactly 7 days old
	assert cache.get('the matrix', 1999) is None


def test_put_refreshes_timestamp():
	clock = FakeClock()
	cache, _ = make_cache(clock)
	cache.put('the matrix', 1999, MATRIX)
	clock.advance(days=5)
	cache.put('the matrix', 1999, MATRIX)
	clock.advance(days=5)
	assert cache.get('the matrix', 1999) == MATRIX


def test_upsert_by_id_rebinds_the_row():
	cache, store = make_cache()
	cache.put('matrix', 1999, MATRIX)
	cache.put('the matrix', 1999, MATRIX)  # same id, new lookup key

	assert len(store) == 1
	assert cache.get('matrix', 1999) is None
	assert cache.get('the matrix', 1999) == MATRIX


def test_store_failures_never_reach_the_caller():
	cache = ResultCache(BrokenStore(), clock=FakeClock())
	cache.put('the matrix', 1999, MATRIX)  # skipped, no exception
	assert cache.get('the matrix', 1999) is None


def test_null_store_remembers_nothing():
	cache = ResultCache(NullCacheStore())
	cache.put('the matrix', 1999, MATRIX)
	assert cache.get('the matrix', 1999) is None
