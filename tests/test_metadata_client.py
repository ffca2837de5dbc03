"""
Tests for MetadataClient: cache-aside lookups, the retry policy per failure class,
and the detail / trending endpoints. HTTP is served by a fake requests session.
"""

import asyncio

import pytest
import requests

from cinescope.metadata_client import MetadataClient
from cinescope.models import LookupOutcome
from cinescope.result_cache import MemoryCacheStore, ResultCache
from cinescope.transport import JsonTransport

from fakes import FakeResponse, FakeSession, SleepRecorder, tmdb_result


def make_client(session, max_retries=2):
	sleep = SleepRecorder()
	client = MetadataClient(
		'tmdb-key',
		cache=ResultCache(MemoryCacheStore()),
		transport=JsonTransport('https://tmdb.test/3', session=session, name='TMDB'),
		max_retries=max_retries,
		retry_delay_s=1.0,
		sleep=sleep,
	)
	return client, sleep


def found(tmdb_id=603, title='The Matrix'):
	return FakeResponse(200, {'page': 1, 'results': [tmdb_result(tmdb_id, title)], 'total_pages': 1, 'total_results': 1})


def test_lookup_hits_typed_endpoint_with_year():
	session = FakeSession([found()])
	client, _ = make_client(session)

	result = asyncio.run(client.lookup_detailed(' The Matrix ', 1999, 'movie'))

	assert result.outcome is LookupOutcome.FOUND
	assert result.record.id == 603
	assert result.record.media_type == 'movie'
	assert result.attempts == 1
	call = session.calls[0]
	assert call['url'] == 'https://tmdb.test/3/search/movie'
	assert call['params']['query'] == 'The Matrix'
	assert call['params']['year'] == 1999
	assert call['params']['api_key'] == 'tmdb-key'


def test_second_lookup_is_served_from_cache():
	session = FakeSession([found()])
	client, _ = make_client(session)

	first = asyncio.run(client.lookup('The Matrix', 1999, 'movie'))
	second = asyncio.run(client.lookup_detailed('the matrix', 1999, 'movie'))

	assert first == second.record
	assert second.attempts == 0
	assert len(session.calls) == 1


def test_no_media_type_uses_multi_search_and_year_zero_is_dropped():
	session = FakeSession([found()])
	client, _ = make_client(session)

	asyncio.run(client.lookup('The Matrix', 0, 'documentary'))

	assert session.calls[0]['url'].endswith('/search/multi')
	assert 'year' not in session.calls[0]['params']


def test_empty_title_is_invalid_without_io():
	session = FakeSession([])
	client, _ = make_client(session)

	result = asyncio.run(client.lookup_detailed('   '))

	assert result.outcome is LookupOutcome.INVALID_INPUT
	assert session.calls == []


def test_not_found_is_not_cached():
	empty = {'page': 1, 'results': [], 'total_pages': 0, 'total_results': 0}
	session = FakeSession([FakeResponse(200, empty), FakeResponse(200, empty)])
	client, _ = make_client(session)

	assert asyncio.run(client.lookup('Nonexistent Film')) is None
	assert asyncio.run(client.lookup_detailed('Nonexistent Film')).outcome is LookupOutcome.NOT_FOUND
	assert len(session.calls) == 2


@pytest.mark.parametrize('status', [400, 401, 404, 429])
def test_client_errors_are_terminal(status):
	session = FakeSession([FakeResponse(status, {'status_message': 'nope'}, reason='Client Error')])
	client, sleep = make_client(session)

	result = asyncio.run(client.lookup_detailed('The Matrix'))

	assert result.outcome is LookupOutcome.TERMINAL_FAILURE
	assert result.status_code == status
	assert result.attempts == 1
	assert sleep.delays == []


def test_server_errors_retry_with_exponential_backoff():
	session = FakeSession([
		FakeResponse(500, reason='Internal Server Error'),
		FakeResponse(503, reason='Service Unavailable'),
		found(),
	])
	client, sleep = make_client(session)

	result = asyncio.run(client.lookup_detailed('The Matrix', 1999))

	assert result.outcome is LookupOutcome.FOUND
	assert result.attempts == 3
	assert sleep.delays == [1.0, 2.0]


def test_retries_are_exhausted_after_max_retries():
	session = FakeSession([FakeResponse(502, reason='Bad Gateway') for _ in range(3)])
	client, sleep = make_client(session, max_retries=2)

	result = asyncio.run(client.lookup_detailed('The Matrix'))

	assert result.outcome is LookupOutcome.RETRIES_EXHAUSTED
	assert result.status_code == 502
	assert result.attempts == 3
	assert len(session.calls) == 3
	assert len(sleep.delays) == 2


def test_timeouts_and_connection_errors_are_retried():
	session = FakeSession([
		requests.Timeout('read timed out'),
		requests.ConnectionError('connection refused'),
		found(),
	])
	client, _ = make_client(session)

	record = asyncio.run(client.lookup('The Matrix'))

	assert record is not None and record.id == 603
	assert len(session.calls) == 3


def test_malformed_body_is_terminal():
	session = FakeSession([FakeResponse(200, {'unexpected': True})])
	client, _ = make_client(session)

	result = asyncio.run(client.lookup_detailed('The Matrix'))

	assert result.outcome is LookupOutcome.TERMINAL_FAILURE


def test_get_details_appends_sub_resources():
	session = FakeSession([FakeResponse(200, {'id': 1399, 'name': 'Game of Thrones'})])
	client, _ = make_client(session)

	data = asyncio.run(client.get_details('tv', 1399))

	assert data['name'] == 'Game of Thrones'
	assert session.calls[0]['url'] == 'https://tmdb.test/3/tv/1399'
	assert session.calls[0]['params']['append_to_response'] == 'credits,videos,images,similar,content_ratings'

	with pytest.raises(ValueError):
		asyncio.run(client.get_details('person', 1))


def test_trending_combines_two_pages_and_keeps_24():
	def handler(call):
		page = call['params']['page']
		start = (page - 1) * 20
		return FakeResponse(200, {'page': page, 'results': [tmdb_result(start + i, f"Title {start + i}") for i in range(1, 21)]})

	session = FakeSession(handler=handler)
	client, _ = make_client(session)

	records = asyncio.run(client.trending())

	assert len(records) == 24
	assert sorted(call['params']['page'] for call in session.calls) == [1, 2]
	assert records[0].id == 1  # page 1 first


def test_backoff_scales_with_retry_delay_and_zero_retries_means_one_attempt():
	session = FakeSession([FakeResponse(500), FakeResponse(500), FakeResponse(500)])
	client, sleep = make_client(session)
	client.retry_delay_s = 0.5

	result = asyncio.run(client.lookup_detailed('The Matrix'))

	assert result.outcome is LookupOutcome.RETRIES_EXHAUSTED
	assert sleep.delays == [0.5, 1.0]

	session = FakeSession([requests.Timeout('read timed out')])
	client, sleep = make_client(session, max_retries=0)

	result = asyncio.run(client.lookup_detailed('The Matrix'))

	assert result.outcome is LookupOutcome.RETRIES_EXHAUSTED
	assert result.attempts == 1
	assert sleep.delays == []
