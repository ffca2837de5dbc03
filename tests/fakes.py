"""
Small fakes shared by the tests: a requests-like session, scripted search and
metadata clients, and a couple of builders.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from cinescope.errors import SearchFailed
from cinescope.models import (
	LookupOutcome,
	LookupResult,
	MetadataRecord,
	SearchHit,
	SearchPage,
	Suggestion,
	SuggestionPage,
)


class FakeResponse:
	"""Just enough of requests.Response for JsonTransport."""

	def __init__(self, status_code: int = 200, body: Any = None, reason: str = ''):
		self.status_code = status_code
		self.body = body
		self.reason = reason

	@property
	def ok(self) -> bool:
		return 200 <= self.status_code < 400

	def json(self):
		if isinstance(self.body, Exception):
			raise self.body
		if self.body is None:
			raise ValueError('no JSON body')
		return self.body


class FakeSession:
	"""
	Stand-in for requests.Session.
	Serves scripted items in order (a FakeResponse, or an exception to raise), or asks
	handler(call) when one is given. Every call is recorded.
	"""

	def __init__(self, responses: Optional[List[Any]] = None, handler: Optional[Callable[[Dict[str, Any]], Any]] = None):
		self.responses = list(responses or [])
		self.handler = handler
		self.calls: List[Dict[str, Any]] = []

	def request(self, method, url, headers=None, timeout=None, **kwargs):
		call = {
			'method': method,
			'url': url,
			'headers': dict(headers or {}),
			'timeout': timeout,
			'params': kwargs.get('params'),
			'json': kwargs.get('json'),
		}
		self.calls.append(call)
		item = self.handler(call) if self.handler else self.responses.pop(0)
		if isinstance(item, Exception):
			raise item
		return item


class FakeClock:
	"""Controllable clock returning aware UTC datetimes."""

	def __init__(self, start: Optional[datetime] = None):
		self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

	def __call__(self) -> datetime:
		return self.now

	def advance(self, **kwargs) -> None:
		self.now = self.now + timedelta(**kwargs)


class SleepRecorder:
	"""Async sleep replacement that records delays instead of waiting."""

	def __init__(self):
		self.delays: List[float] = []

	async def __call__(self, delay: float) -> None:
		self.delays.append(delay)


def make_hit(hit_id: int, title: Optional[str] = None, /, **fields) -> SearchHit:
	return SearchHit(id=hit_id, title=title or f"Movie {hit_id}", relevance=1.0, fields=dict(fields))


def make_hits(count: int, start: int = 1) -> List[SearchHit]:
	return [make_hit(i) for i in range(start, start + count)]


def tmdb_result(tmdb_id: int, title: str, **extra) -> Dict[str, Any]:
	data = {'id': tmdb_id, 'title': title, 'poster_path': f"/{tmdb_id}.jpg", 'vote_average': 8.2}
	data.update(extra)
	return data


class FakeSearchClient:
	"""
	Scripted search backend.
	- corpus: query -> every hit the backend knows for it (paged by offset/size)
	- gates: query -> asyncio.Event the request waits on before answering
	- fail: when set, every call raises SearchFailed
	"""

	def __init__(self, corpus: Optional[Dict[str, List[SearchHit]]] = None):
		self.corpus = dict(corpus or {})
		self.gates: Dict[str, asyncio.Event] = {}
		self.fail = False
		self.calls: List[Dict[str, Any]] = []
		self.autocomplete_calls: List[tuple] = []

	async def search(self, query, filters=None, offset=0, page_size=20, mode='hybrid_search'):
		self.calls.append({'query': query, 'filters': dict(filters or {}), 'offset': offset, 'size': page_size, 'mode': mode})
		gate = self.gates.get(query)
		if gate is not None:
			await gate.wait()
		if self.fail:
			raise SearchFailed('API error: 500 backend exploded', status_code=500)
		hits = self.corpus.get(query, [])
		return SearchPage(hits=list(hits[offset:offset + page_size]), total=len(hits))

	async def autocomplete(self, field, value=None, size=10, offset=0):
		self.autocomplete_calls.append((field, value))
		gate = self.gates.get(value)
		if gate is not None:
			await gate.wait()
		if self.fail:
			raise SearchFailed('Autocomplete failed: connection refused')
		return SuggestionPage(suggestions=[Suggestion(value=f"{value} result")], total=1)


class FakeMetadataClient:
	"""
	Scripted metadata client.
	- records: title -> MetadataRecord (missing titles are "not found")
	- broken: titles whose lookup raises
	"""

	def __init__(self, records: Optional[Dict[str, MetadataRecord]] = None, broken: Optional[List[str]] = None):
		self.records = dict(records or {})
		self.broken = set(broken or [])
		self.lookups: List[tuple] = []
		self.failure_status: Optional[int] = None
		self.details: Dict[str, Any] = {}
		self.trending_records: List[MetadataRecord] = []

	async def lookup(self, title, year=None, media_type=None):
		self.lookups.append((title, year, media_type))
		if title in self.broken:
			raise RuntimeError(f"lookup exploded for {title}")
		return self.records.get(title)

	async def lookup_detailed(self, title, year=None, media_type=None):
		if not (title or '').strip():
			return LookupResult(LookupOutcome.INVALID_INPUT, message='Missing required field: query')
		if self.failure_status is not None:
			return LookupResult(LookupOutcome.TERMINAL_FAILURE, attempts=1, status_code=self.failure_status, message='Unauthorized')
		record = await self.lookup(title, year, media_type)
		if record is None:
			return LookupResult(LookupOutcome.NOT_FOUND, attempts=1)
		return LookupResult(LookupOutcome.FOUND, record=record, attempts=1)

	async def get_details(self, media_type, tmdb_id):
		return dict(self.details[f"{media_type}/{tmdb_id}"])

	async def trending(self, limit=24):
		return self.trending_records[:limit]
