"""
Metadata lookup client for TMDB.
Resolves a title (and optional year / media type) to the best-ranked TMDB record,
reading through the ResultCache first and retrying transient failures with
exponential backoff. Also exposes the detail and trending endpoints used by the API.
"""

# asyncio for backoff sleeps and parallel page fetches
import asyncio  # sleep, gather
# Typing helpers for clear contracts
from typing import Any, Awaitable, Callable, Dict, List, Optional  # type hints

# Console logging
from loguru import logger  # console logger
# tenacity drives the retry policy (attempt limit, exponential wait)
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential  # retries

from .errors import CineScopeError, UpstreamError, is_retryable
from .models import LookupOutcome, LookupResult, MetadataRecord
from .result_cache import ResultCache
from .transport import JsonTransport

TMDB_BASE_URL = 'https://api.themoviedb.org/3'
DETAIL_APPENDS = 'credits,videos,images,similar,content_ratings'  # one call for the detail page
MEDIA_TYPES = ('movie', 'tv')


class MetadataClient:
	"""
	Cache-aside TMDB client.
	- api_key: TMDB v3 key, sent as the api_key query parameter
	- cache: ResultCache used for read-through / write-through
	- max_retries: extra attempts after the first for network errors and 5xx
	- retry_delay_s: base delay; attempt n waits retry_delay_s * 2**n
	- sleep: awaitable sleep (tests pass a recorder instead of waiting)
	"""

	def __init__(
		self,
		api_key: str,
		cache: Optional[ResultCache] = None,
		transport: Optional[JsonTransport] = None,
		base_url: str = TMDB_BASE_URL,
		timeout_s: float = 10.0,
		max_retries: int = 2,
		retry_delay_s: float = 1.0,
		language: str = 'en-US',
		sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
	):
		self.api_key = api_key
		self.cache = cache or ResultCache()  # null store unless configured
		self.transport = transport or JsonTransport(
			base_url,
			headers={'Accept': 'application/json'},
			timeout_s=timeout_s,
			name='TMDB',
		)
		self.max_retries = max_retries
		self.retry_delay_s = retry_delay_s
		self.language = language
		self._sleep = sleep

	async def lookup(
		self,
		title: str,
		year: Optional[int] = None,
		media_type: Optional[str] = None,
	) -> Optional[MetadataRecord]:
		"""Return the best match for title/year, or None when nothing usable came back."""
		result = await self.lookup_detailed(title, year, media_type)
		return result.record

	async def lookup_detailed(
		self,
		title: str,
		year: Optional[int] = None,
		media_type: Optional[str] = None,
	) -> LookupResult:
		"""
		Resolve title/year to a TMDB record and report how the lookup ended.
		Never raises for provider failures; the outcome says what happened.
		"""
		query = (title or '').strip()  # normalized lookup text
		if not query:
			return LookupResult(LookupOutcome.INVALID_INPUT, message='Missing required field: query')
		year = int(year) if year else None  # 0 and None both mean "any year"
		if media_type not in MEDIA_TYPES:
			media_type = None  # unknown hints fall back to a combined search

		cached = self.cache.get(query, year)
		if cached is not None:
			return LookupResult(LookupOutcome.FOUND, record=cached, attempts=0)

		def log_retry(state: RetryCallState) -> None:
			logger.info(
				f"[TMDB] Retry {state.attempt_number}/{self.max_retries} for \"{query}\" "
				f"after {state.next_action.sleep:.2f}s ({state.outcome.exception()})"
			)

		retrying = AsyncRetrying(
			retry=retry_if_exception(is_retryable),  # network errors and 5xx only
			stop=stop_after_attempt(self.max_retries + 1),
			wait=wait_exponential(multiplier=self.retry_delay_s),  # retry_delay_s * 2**n
			sleep=self._sleep,
			before_sleep=log_retry,
			reraise=True,
		)
		attempts = 0
		try:
			async for attempt in retrying:
				with attempt:
					attempts = attempt.retry_state.attempt_number
					record = await self._search(query, year, media_type)
		except CineScopeError as e:
			status = getattr(e, 'status_code', None)
			if not is_retryable(e):
				logger.error(f"[TMDB] [{status or type(e).__name__}] \"{query}\" failed: {e}")
				outcome = LookupOutcome.TERMINAL_FAILURE
			else:
				logger.error(f"[TMDB] \"{query}\" failed after {attempts - 1} retries: {e}")
				outcome = LookupOutcome.RETRIES_EXHAUSTED
			return LookupResult(outcome, attempts=attempts, status_code=status, message=str(e))

		if record is None:
			logger.debug(f"[TMDB] No match for \"{query}\" ({year})")
			return LookupResult(LookupOutcome.NOT_FOUND, attempts=attempts)

		self.cache.put(query, year, record)  # best effort
		return LookupResult(LookupOutcome.FOUND, record=record, attempts=attempts)

	async def _search(self, query: str, year: Optional[int], media_type: Optional[str]) -> Optional[MetadataRecord]:
		"""One provider request; returns the first ranked result or None."""
		params: Dict[str, Any] = {
			'api_key': self.api_key,
			'language': self.language,
			'query': query,
			'page': 1,
			'include_adult': 'false',
		}
		if year:
			params['year'] = year
		endpoint = f"/search/{media_type}" if media_type else '/search/multi'

		data = await self.transport.get_json(endpoint, params=params)
		results = data.get('results') if isinstance(data, dict) else None
		if not isinstance(results, list):
			raise UpstreamError('TMDB search returned a malformed body')
		if not results:
			return None

		first = dict(results[0])
		if media_type and not first.get('media_type'):
			first['media_type'] = media_type  # type-specific endpoints omit it
		try:
			return MetadataRecord.from_dict(first)
		except (TypeError, ValueError) as e:
			raise UpstreamError(f"TMDB search returned a malformed result: {e}") from e

	async def get_details(self, media_type: str, tmdb_id: int) -> Dict[str, Any]:
		"""Full detail document for one movie or TV show (credits, videos, images, ...)."""
		if media_type not in MEDIA_TYPES:
			raise ValueError(f"Unsupported media type: {media_type}")
		params = {'api_key': self.api_key, 'append_to_response': DETAIL_APPENDS}
		logger.debug(f"[TMDB] Fetching {media_type} details for id={tmdb_id}")
		return await self.transport.get_json(f"/{media_type}/{int(tmdb_id)}", params=params)

	async def trending(self, limit: int = 24) -> List[MetadataRecord]:
		"""Weekly trending titles; two pages fetched in parallel to fill the grid."""
		params = {'api_key': self.api_key, 'language': self.language}
		pages = await asyncio.gather(
			self.transport.get_json('/trending/all/week', params={**params, 'page': 1}),
			self.transport.get_json('/trending/all/week', params={**params, 'page': 2}),
		)
		records: List[MetadataRecord] = []
		for page in pages:
			for item in (page or {}).get('results') or []:
				try:
					records.append(MetadataRecord.from_dict(item))
				except (TypeError, ValueError) as e:
					logger.warning(f"[TMDB] Skipping malformed trending item: {e}")
		logger.info(f"[TMDB] Trending returned {len(records)} items, keeping {min(limit, len(records))}")
		return records[:limit]
