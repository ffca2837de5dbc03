"""
Enrichment pipeline.
Augments a page of search hits with TMDB metadata. Hits whose tmdb_id is explicitly
None have no TMDB entry and pass through; every other hit is looked up by title/year,
all lookups run concurrently, and the output keeps the input order and length.
"""

# asyncio for concurrent lookups
import asyncio  # gather
# dataclasses.replace to build enriched copies of frozen hits
from dataclasses import replace  # immutable update
# Typing helpers
from typing import List, Optional, Tuple  # type hints

# Console logging
from loguru import logger  # console logger

from .metadata_client import MetadataClient
from .models import SearchHit, parse_year


def needs_lookup(hit: SearchHit) -> bool:
	"""
	tmdb_id absent  -> look it up
	tmdb_id None    -> confirmed missing on TMDB, skip
	tmdb_id <int>   -> still looked up by title/year (no id-based fetch yet)
	"""
	return 'tmdb_id' not in hit.fields or hit.fields['tmdb_id'] is not None


def lookup_terms(hit: SearchHit) -> Tuple[str, Optional[int], str]:
	"""Title, year and media type hint used to query TMDB for a hit."""
	fields = hit.fields
	title = fields.get('title') or fields.get('title_raw') or hit.title or ''
	media_type = 'tv' if fields.get('media_type') == 'television' else 'movie'
	return str(title), parse_year(fields.get('released_year')), media_type


class EnrichmentPipeline:
	"""Runs metadata lookups for a batch of hits without letting one failure sink the batch."""

	def __init__(self, metadata_client: MetadataClient):
		self.metadata_client = metadata_client

	async def enrich_hit(self, hit: SearchHit) -> SearchHit:
		"""Return the hit with metadata attached, or the hit unchanged when nothing was found."""
		if not needs_lookup(hit):
			return hit
		title, year, media_type = lookup_terms(hit)
		if not title.strip():
			return hit
		try:
			record = await self.metadata_client.lookup(title, year, media_type)
		except Exception as e:
			logger.error(f"[Enrich] Failed to enrich \"{title}\" with TMDB data: {e}")
			return hit
		if record is None:
			return hit
		return replace(hit, metadata=record)

	async def enrich(self, hits: List[SearchHit]) -> List[SearchHit]:
		"""Enrich a batch; output order and length always match the input."""
		positions = [i for i, hit in enumerate(hits) if needs_lookup(hit)]  # hits needing TMDB
		logger.info(f"[Enrich] Enriching {len(positions)}/{len(hits)} search results with TMDB data")
		if not positions:
			return list(hits)

		enriched = await asyncio.gather(*(self.enrich_hit(hits[i]) for i in positions))

		merged = list(hits)
		for i, hit in zip(positions, enriched):
			merged[i] = hit  # reassemble in original order
		return merged
