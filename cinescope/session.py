"""
Incremental result session.
SessionController owns one ResultSession and moves it through
idle -> searching -> ready <-> loading_more (or error) for a query, its filter changes,
and its "load more" continuations. Every async step captures the session generation
and drops its response if a newer submission has replaced the session meanwhile.
"""

# JSON to build stable request signatures
import json  # sorted-key dumps
# Typing helpers
from typing import Any, Dict, List, Mapping, Optional  # type hints

# Console logging
from loguru import logger  # console logger

from .enrichment import EnrichmentPipeline
from .errors import SearchFailed
from .models import QueryBatch, ResultSession, SearchHit, SessionState
from .search_client import DEFAULT_PAGE_SIZE, SearchClient


def _normalize_filters(filters: Mapping[str, Any]) -> Dict[str, List[str]]:
	"""Filters as sorted value lists, without empty entries, for signature comparison."""
	out: Dict[str, List[str]] = {}
	for name, raw in filters.items():
		if raw is None:
			continue
		values = [raw] if isinstance(raw, str) else list(raw)
		values = sorted(str(v).strip() for v in values if str(v).strip())
		if values:
			out[name] = values
	return out


def _unique(hits: List[SearchHit], seen: Optional[set] = None) -> List[SearchHit]:
	"""Drop hits whose id was already seen, keeping first occurrences."""
	seen = set() if seen is None else seen
	out = []
	for hit in hits:
		if hit.id in seen:
			continue
		seen.add(hit.id)
		out.append(hit)
	return out


class SessionController:
	"""
	Drives query sessions against the search backend.
	- search_client: SearchClient used for every page
	- enrichment: optional EnrichmentPipeline applied to each page before it is shown
	- page_size: hits requested per page; a full page means "there may be more"
	"""

	def __init__(
		self,
		search_client: SearchClient,
		enrichment: Optional[EnrichmentPipeline] = None,
		page_size: int = DEFAULT_PAGE_SIZE,
		mode: str = 'hybrid_search',
	):
		self.search_client = search_client
		self.enrichment = enrichment
		self.page_size = page_size
		self.mode = mode
		self.session = ResultSession()  # idle until the first submission
		self.history: List[QueryBatch] = []  # one batch per distinct submitted query
		self._generation = 0  # bumped by every new search cycle
		self._batch_pending = False  # submitted query has no history batch yet

	@property
	def state(self) -> SessionState:
		return self.session.state

	@staticmethod
	def request_key(query: str, offset: int, filters: Mapping[str, Any]) -> str:
		"""Signature of a search request, used for duplicate suppression."""
		return json.dumps(
			{'query': query, 'offset': offset, 'filters': _normalize_filters(filters)},
			sort_keys=True,
		)

	async def submit_query(self, query: str, filters: Optional[Mapping[str, Any]] = None) -> ResultSession:
		"""
		Start a new session for query. Filters default to the ones currently held.
		A repeat of the in-flight request (same query, offset 0, same filters) is a no-op.
		"""
		query = (query or '').strip()
		if not query:
			logger.debug("[Session] Ignoring empty query")
			return self.session
		filters = dict(filters) if filters is not None else dict(self.session.filters)

		key = self.request_key(query, 0, filters)
		if self.session.active_request_key == key:
			logger.debug(f"[Session] Duplicate submission suppressed for '{query}'")
			return self.session

		session = self._begin(query, filters, key, previous_hits=[])
		self._batch_pending = True
		logger.info(f"[Session] New query '{query}' filters={_normalize_filters(filters)} (generation {session.generation})")
		return await self._first_page(session, new_query=True)

	async def change_filters(self, filters: Mapping[str, Any]) -> ResultSession:
		"""
		Apply new filters. With an active query this re-runs it from offset 0 and the result
		replaces that query's batch (or adds it if the first page never landed); without
		one the filters are kept for the next submission.
		"""
		filters = dict(filters or {})
		current = self.session
		if not current.query:
			current.filters = filters
			return current

		key = self.request_key(current.query, 0, filters)
		if current.active_request_key == key:
			logger.debug(f"[Session] Duplicate filter change suppressed for '{current.query}'")
			return current

		# Keep the visible results until the new batch arrives (or fails)
		session = self._begin(current.query, filters, key, previous_hits=list(current.accumulated_hits))
		logger.info(f"[Session] Filters changed for '{current.query}' -> {_normalize_filters(filters)}")
		# A query whose first page never landed still needs its own batch
		return await self._first_page(session, new_query=self._batch_pending)

	async def load_more(self) -> ResultSession:
		"""Fetch and append the next page. No-op unless ready with more results to load."""
		session = self.session
		if session.state is not SessionState.READY or not session.has_more:
			logger.debug(f"[Session] load_more ignored (state={session.state.value}, has_more={session.has_more})")
			return session

		session.state = SessionState.LOADING_MORE  # blocks overlapping loads
		offset = session.offset
		try:
			page = await self.search_client.search(
				session.query, session.filters, offset=offset, page_size=self.page_size, mode=self.mode,
			)
			hits = await self._enrich(page.hits)
		except Exception as e:
			if not self._is_current(session):
				return self.session
			# Pagination failures end the list quietly; the results already shown stay
			logger.warning(f"[Session] Load more failed for '{session.query}' at offset {offset}: {e}")
			session.has_more = False
			session.state = SessionState.READY
			return session

		if not self._is_current(session):
			logger.debug(f"[Session] Discarding stale page for '{session.query}' at offset {offset}")
			return self.session

		new_hits = _unique(hits, seen={h.id for h in session.accumulated_hits})
		session.accumulated_hits.extend(new_hits)
		session.offset = offset + self.page_size
		session.has_more = len(page.hits) == self.page_size
		if page.total is not None:
			session.total = page.total
		session.state = SessionState.READY
		if self.history:
			self.history[-1].hits.extend(new_hits)
		logger.info(
			f"[Session] Loaded {len(new_hits)} more for '{session.query}' | total shown={len(session.accumulated_hits)} has_more={session.has_more}"
		)
		return session

	def _begin(self, query: str, filters: Dict[str, Any], key: str, previous_hits: List[SearchHit]) -> ResultSession:
		self._generation += 1
		self.session = ResultSession(
			query=query,
			filters=filters,
			offset=0,
			has_more=True,
			accumulated_hits=previous_hits,
			active_request_key=key,
			state=SessionState.SEARCHING,
			generation=self._generation,
		)
		return self.session

	async def _first_page(self, session: ResultSession, new_query: bool) -> ResultSession:
		try:
			page = await self.search_client.search(
				session.query, session.filters, offset=0, page_size=self.page_size, mode=self.mode,
			)
			hits = await self._enrich(page.hits)
		except Exception as e:
			if not self._is_current(session):
				return self.session
			message = e.message if isinstance(e, SearchFailed) else str(e)
			logger.warning(f"[Session] Search failed for '{session.query}': {message}")
			session.active_request_key = None
			session.state = SessionState.ERROR
			session.error_message = message
			if new_query:
				self._batch_pending = False
				session.accumulated_hits = []  # nothing to fall back on
				self.history.append(QueryBatch(query=session.query, filters=dict(session.filters), error=message))
			return session

		if not self._is_current(session):
			logger.debug(f"[Session] Discarding stale results for '{session.query}'")
			return self.session

		session.accumulated_hits = _unique(hits)
		session.total = page.total
		session.offset = self.page_size
		session.has_more = len(page.hits) == self.page_size
		session.active_request_key = None
		session.error_message = None
		session.state = SessionState.READY

		batch = QueryBatch(
			query=session.query,
			filters=dict(session.filters),
			hits=list(session.accumulated_hits),
			total=page.total,
		)
		if new_query or not self.history:
			self._batch_pending = False
			self.history.append(batch)
		else:
			self.history[-1] = batch  # filter change replaces the latest batch
		logger.info(f"[Session] {batch.summary} | shown={len(batch.hits)} has_more={session.has_more}")
		return session

	async def _enrich(self, hits: List[SearchHit]) -> List[SearchHit]:
		if self.enrichment is None:
			return hits
		return await self.enrichment.enrich(hits)

	def _is_current(self, session: ResultSession) -> bool:
		return session.generation == self._generation
