"""
Data models for CineScope.
Defines the core data structures shared by the cache, the clients, the enrichment
pipeline, and the session controller.
"""

# Import dataclass helpers to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field, fields as dataclass_fields  # auto-generated __init__, __repr__, etc.
# datetime for cache timestamps
from datetime import datetime  # aware UTC timestamps
# Enum for the fixed outcome and state vocabularies
from enum import Enum  # string-valued enums
# Import typing helpers for precise and self-documenting types
from typing import Any, Dict, List, Optional  # maps, lists, optional values


def parse_year(value: Any) -> Optional[int]:
	"""Backend year field as an int; blanks and non-numeric placeholders like "N/A" give None."""
	if value is None or isinstance(value, bool):
		return None
	try:
		year = int(str(value).strip())
	except ValueError:
		return None
	return year or None  # 0 means unknown


@dataclass(frozen=True)
class MetadataRecord:
	"""
	Metadata for one movie or TV show as returned by the metadata provider (TMDB).
	The same shape is rebuilt from a cache row, so consumers never care where it came from.
	"""
	id: int  # provider identity (TMDB id)
	title: Optional[str] = None  # movie title
	name: Optional[str] = None  # TV show name
	poster_path: Optional[str] = None  # relative poster image path
	backdrop_path: Optional[str] = None  # relative backdrop image path
	media_type: Optional[str] = None  # "movie" or "tv"
	release_date: Optional[str] = None  # movies: YYYY-MM-DD
	first_air_date: Optional[str] = None  # TV: YYYY-MM-DD
	vote_average: Optional[float] = None  # 0..10 rating
	vote_count: Optional[int] = None  # number of votes
	popularity: Optional[float] = None  # provider popularity score
	overview: Optional[str] = None  # synopsis
	original_language: Optional[str] = None  # ISO 639-1 code
	adult: Optional[bool] = None  # adult content flag
	genre_ids: List[int] = field(default_factory=list)  # provider genre ids

	@property
	def display_title(self) -> str:
		"""Movies carry a title, TV shows a name."""
		return self.title or self.name or ''

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'MetadataRecord':
		"""
		Build a record from a provider result (or a cached payload).
		Unknown keys are ignored; a missing id is an error.
		"""
		if data.get('id') is None:
			raise ValueError("Metadata record requires an 'id'")
		known = {f.name for f in dataclass_fields(cls)}  # accepted keys
		values = {k: v for k, v in data.items() if k in known}  # drop extras
		values['id'] = int(data['id'])  # normalize id type
		values['genre_ids'] = [int(g) for g in (data.get('genre_ids') or [])]  # always a list
		return cls(**values)

	def to_dict(self) -> Dict[str, Any]:
		"""Serialize to the provider's field names, dropping empty values."""
		out: Dict[str, Any] = {}
		for f in dataclass_fields(self):
			value = getattr(self, f.name)
			if value is None:
				continue  # keep payloads compact
			out[f.name] = list(value) if isinstance(value, list) else value
		return out


@dataclass(frozen=True)
class SearchHit:
	"""
	One search result returned by the search backend.
	Identity is the id; instances are never mutated (enrichment builds a new one).
	"""
	id: int  # backend document id
	title: str  # display title from the index
	relevance: float  # backend relevance score
	fields: Dict[str, Any] = field(default_factory=dict)  # open map of optional attributes
	metadata: Optional[MetadataRecord] = None  # filled in by the enrichment pipeline

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'SearchHit':
		"""Convert a raw hit from the backend envelope into a SearchHit."""
		return cls(
			id=int(data['id']),  # required identity
			title=str(data.get('title') or ''),  # tolerate missing titles
			relevance=float(data.get('relevance') or 0.0),  # tolerate missing scores
			fields=dict(data.get('fields') or {}),  # own copy of the attribute map
		)

	def to_dict(self) -> Dict[str, Any]:
		"""Serialize back to the backend hit shape, plus tmdbData when enriched."""
		out: Dict[str, Any] = {
			'id': self.id,
			'title': self.title,
			'relevance': self.relevance,
			'fields': dict(self.fields),
		}
		if self.metadata is not None:
			out['tmdbData'] = self.metadata.to_dict()
		return out


@dataclass
class CacheEntry:
	"""A cached metadata lookup, bound to the (normalized query, year) that produced it."""
	normalized_query: str  # lowercase, trimmed lookup text
	year: Optional[int]  # lookup year or None
	metadata: MetadataRecord  # cached record (its id is the physical key)
	updated_at: datetime  # last write time, used for TTL checks


@dataclass
class FieldFilter:
	"""A backend attribute filter: one field, a list of accepted values."""
	field: str  # one of the backend field names
	values: List[str]  # accepted values (OR)

	def to_payload(self) -> Dict[str, Any]:
		return {'field': self.field, 'value': list(self.values)}


@dataclass
class SearchPage:
	"""Flat page of hits decoupled from the backend's pagination envelope."""
	hits: List[SearchHit]  # hits in backend order
	total: Optional[int] = None  # totalElements when the backend reports it


@dataclass
class Suggestion:
	"""One autocomplete suggestion."""
	value: str  # suggested text
	media_type: Optional[str] = None  # e.g. "film" or "television"
	released_year: Optional[int] = None  # release year when known
	image_url: Optional[str] = None  # optional thumbnail

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'Suggestion':
		return cls(
			value=str(data.get('value') or ''),
			media_type=data.get('media_type'),
			released_year=parse_year(data.get('released_year')),
			image_url=data.get('image_url'),
		)

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {'value': self.value}
		for key in ('media_type', 'released_year', 'image_url'):
			if getattr(self, key) is not None:
				out[key] = getattr(self, key)
		return out


@dataclass
class SuggestionPage:
	"""Flat page of autocomplete suggestions."""
	suggestions: List[Suggestion]
	total: Optional[int] = None


class LookupOutcome(str, Enum):
	"""How a single metadata lookup ended."""
	FOUND = 'found'
	NOT_FOUND = 'not_found'  # provider answered with no candidates
	INVALID_INPUT = 'invalid_input'  # empty title, nothing was sent
	TERMINAL_FAILURE = 'terminal_failure'  # 4xx or other non-retryable error
	RETRIES_EXHAUSTED = 'retries_exhausted'  # network/5xx on every attempt


@dataclass
class LookupResult:
	"""Result of a metadata lookup with enough detail to tell failures apart."""
	outcome: LookupOutcome
	record: Optional[MetadataRecord] = None  # set only when outcome is FOUND
	attempts: int = 0  # provider requests made (0 on cache hit)
	status_code: Optional[int] = None  # last HTTP status for failures, when known
	message: Optional[str] = None  # human-readable failure reason

	@property
	def ok(self) -> bool:
		return self.outcome is LookupOutcome.FOUND


class SessionState(str, Enum):
	"""States of the incremental result session."""
	IDLE = 'idle'
	SEARCHING = 'searching'
	READY = 'ready'
	LOADING_MORE = 'loading_more'
	ERROR = 'error'


@dataclass
class ResultSession:
	"""
	One logical query session: the current query and filters, the pagination cursor,
	and everything loaded so far. Only the SessionController mutates it.
	"""
	query: str = ''  # submitted query text
	filters: Dict[str, Any] = field(default_factory=dict)  # field -> value(s)
	offset: int = 0  # next page offset
	has_more: bool = True  # last page was full
	accumulated_hits: List[SearchHit] = field(default_factory=list)  # unique by id
	active_request_key: Optional[str] = None  # signature of the in-flight search
	state: SessionState = SessionState.IDLE  # state machine position
	error_message: Optional[str] = None  # user-facing message in ERROR
	total: Optional[int] = None  # backend total for the current query
	generation: int = 0  # liveness token for async responses


@dataclass
class QueryBatch:
	"""One entry of the conversation-style history: a query and what it returned."""
	query: str
	filters: Dict[str, Any]
	hits: List[SearchHit] = field(default_factory=list)
	total: Optional[int] = None
	error: Optional[str] = None

	@property
	def summary(self) -> str:
		if self.error:
			return f"Error: {self.error}. Please check if the server is running and try again."
		return f'Found {self.total or 0} movies matching "{self.query}"'
