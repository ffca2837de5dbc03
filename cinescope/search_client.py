"""
Search client module.
Issues single paginated search and autocomplete requests against the search backend
and flattens its paginated envelope ({content, totalElements, pageable, ...}) into the
{hits, total} shape used everywhere else.
"""

# Typing helpers for clear contracts
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union  # type hints

# Console logging
from loguru import logger  # console logger

from .errors import CineScopeError, RequestValidationError, SearchFailed, UpstreamError
from .models import FieldFilter, SearchHit, SearchPage, Suggestion, SuggestionPage
from .transport import JsonTransport

# Backend attribute names accepted for filters and autocomplete
FIELD_NAMES = frozenset([
	'imdb_id', 'metacritic_id', 'rotten_tomatoes_id', 'title_raw', 'title',
	'director', 'producer', 'writer', 'screenplay', 'story', 'developer',
	'starring', 'music', 'cinematography', 'editing', 'studio', 'distributor',
	'country', 'language', 'production_companies', 'media_type',
])
SEARCH_MODES = ('hybrid_search', 'title_search')
DEFAULT_PAGE_SIZE = 20

FilterValue = Union[str, Sequence[str], None]


def build_filters(filters: Optional[Mapping[str, FilterValue]]) -> List[FieldFilter]:
	"""
	Normalize a {field: value | [values]} map into backend filters.
	Empty values are dropped; unknown fields are a validation error.
	"""
	result: List[FieldFilter] = []
	for name, raw in (filters or {}).items():
		if raw is None:
			continue
		values = [raw] if isinstance(raw, str) else list(raw)  # always a list
		values = [str(v).strip() for v in values if v is not None and str(v).strip()]
		if not values:
			continue  # cleared inputs do not filter
		if name not in FIELD_NAMES:
			raise RequestValidationError(f"Unknown filter field: {name}")
		result.append(FieldFilter(field=name, values=values))
	return result


class SearchClient:
	"""
	Client for the search backend (bearer-token authenticated JSON API).
	- base_url: backend root URL
	- api_key: bearer token
	- timeout_s: fixed per-request timeout; search calls are never retried
	"""

	def __init__(
		self,
		base_url: str,
		api_key: str,
		timeout_s: float = 10.0,
		transport: Optional[JsonTransport] = None,
	):
		self.transport = transport or JsonTransport(
			base_url,
			headers={
				'Content-Type': 'application/json',
				'Authorization': f"Bearer {api_key}",
			},
			timeout_s=timeout_s,
			name='Search',
		)

	async def search(
		self,
		query: str,
		filters: Optional[Mapping[str, FilterValue]] = None,
		offset: int = 0,
		page_size: int = DEFAULT_PAGE_SIZE,
		mode: str = 'hybrid_search',
	) -> SearchPage:
		"""Fetch one page of hits. Every failure is raised as SearchFailed."""
		try:
			payload = self._search_payload(query, filters, offset, page_size, mode)
			logger.debug(f"[Search] POST /search value='{payload['value']}' offset={offset} size={page_size}")
			envelope = await self.transport.post_json('/search', payload)
			page = SearchPage(
				hits=[SearchHit.from_dict(item) for item in self._content(envelope)],
				total=self._total(envelope),
			)
		except CineScopeError as e:
			raise self._failed(e, 'Search') from e
		except (KeyError, TypeError, ValueError) as e:
			raise SearchFailed(f"Search returned malformed hits: {e}") from e

		logger.info(f"[Search] '{query}' offset={offset} -> {len(page.hits)} hits (total={page.total})")
		return page

	async def autocomplete(
		self,
		field: str,
		value: Union[str, Sequence[str], None] = None,
		size: int = 10,
		offset: int = 0,
	) -> SuggestionPage:
		"""Fetch suggestions for one field. Every failure is raised as SearchFailed."""
		try:
			if field not in FIELD_NAMES:
				raise RequestValidationError(f"Unknown autocomplete field: {field}")
			if not isinstance(size, int) or size <= 0:
				raise RequestValidationError('size must be a positive integer')
			payload: Dict[str, Any] = {'field': field, 'size': size, 'offset': max(0, offset)}
			if value is not None:
				payload['value'] = value.strip() if isinstance(value, str) else list(value)
			envelope = await self.transport.post_json('/autocomplete', payload)
			page = SuggestionPage(
				suggestions=[Suggestion.from_dict(item) for item in self._content(envelope)],
				total=self._total(envelope),
			)
		except CineScopeError as e:
			raise self._failed(e, 'Autocomplete') from e
		except (TypeError, ValueError, AttributeError) as e:
			raise SearchFailed(f"Autocomplete returned malformed suggestions: {e}") from e

		logger.debug(f"[Search] Autocomplete {field}='{value}' -> {len(page.suggestions)} suggestions")
		return page

	def _search_payload(
		self,
		query: str,
		filters: Optional[Mapping[str, FilterValue]],
		offset: int,
		page_size: int,
		mode: str,
	) -> Dict[str, Any]:
		"""Validate inputs before anything touches the network."""
		if not isinstance(query, str) or not query.strip():
			raise RequestValidationError('Missing required field: value (must be a non-empty string)')
		if not isinstance(offset, int) or offset < 0:
			raise RequestValidationError('offset must be a non-negative integer')
		if not isinstance(page_size, int) or page_size <= 0:
			raise RequestValidationError('size must be a positive integer')
		if mode not in SEARCH_MODES:
			raise RequestValidationError(f"Unknown search mode: {mode}")

		payload: Dict[str, Any] = {
			'value': query.strip(),
			'size': page_size,
			'offset': offset,
			'mode': mode,
		}
		field_filters = build_filters(filters)
		if field_filters:
			payload['filters'] = [f.to_payload() for f in field_filters]
		return payload

	@staticmethod
	def _content(envelope: Any) -> List[Dict[str, Any]]:
		content = envelope.get('content') if isinstance(envelope, dict) else None
		if not isinstance(content, list):
			raise UpstreamError('Backend returned a malformed paginated envelope')
		return content

	@staticmethod
	def _total(envelope: Dict[str, Any]) -> Optional[int]:
		total = envelope.get('totalElements')
		return int(total) if isinstance(total, (int, float)) else None

	@staticmethod
	def _failed(error: CineScopeError, what: str) -> SearchFailed:
		status = getattr(error, 'status_code', None)
		if isinstance(error, RequestValidationError):
			message = f"Invalid request: {error}"
		elif status:
			message = f"API error: {status} {error}"
		else:
			message = f"{what} failed: {error}"
		logger.error(f"[Search] {message}")
		return SearchFailed(message, status_code=status)
