"""
Service wiring.
Builds the cache, the clients, the enrichment pipeline and session factories from one
Settings object, so the API and the console driver share the same construction.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

# Console logging
from loguru import logger  # console logger

from .enrichment import EnrichmentPipeline
from .metadata_client import MetadataClient
from .result_cache import CacheStore, MemoryCacheStore, ResultCache
from .search_client import SearchClient
from .session import SessionController
from .settings import Settings
from .sqlite_store import SQLiteCacheStore
from .suggestions import SuggestionFetcher


@dataclass
class Services:
	"""Everything a front end needs, built once per process."""
	settings: Settings
	cache: ResultCache
	search_client: SearchClient
	metadata_client: MetadataClient
	enrichment: EnrichmentPipeline

	def new_session(self) -> SessionController:
		"""Fresh session controller; one per user or console run."""
		return SessionController(
			self.search_client,
			enrichment=self.enrichment,
			page_size=self.settings.search_page_size,
		)

	def new_suggestion_fetcher(self, field: str = 'title') -> SuggestionFetcher:
		if field == 'title':
			return SuggestionFetcher(self.search_client)
		return SuggestionFetcher.for_filter(self.search_client, field)


def build_services(settings: Settings, store: Optional[CacheStore] = None) -> Services:
	"""Wire every component from settings. A store passed in replaces the configured one."""
	if store is None:
		store = SQLiteCacheStore(settings.cache_db_path) if settings.cache_db_path else MemoryCacheStore()
	cache = ResultCache(store, ttl=timedelta(days=settings.tmdb_cache_days))

	search_client = SearchClient(
		settings.backend_base_url,
		settings.backend_api_key,
		timeout_s=settings.search_timeout_s,
	)
	metadata_client = MetadataClient(
		settings.tmdb_api_key,
		cache=cache,
		timeout_s=settings.tmdb_timeout_s,
		max_retries=settings.tmdb_max_retries,
		retry_delay_s=settings.tmdb_retry_delay_s,
	)
	logger.info(
		f"[Services] Backend={settings.backend_base_url} cache={type(store).__name__} ttl={settings.tmdb_cache_days}d"
	)
	return Services(
		settings=settings,
		cache=cache,
		search_client=search_client,
		metadata_client=metadata_client,
		enrichment=EnrichmentPipeline(metadata_client),
	)
