"""
Run one search session from the console.

This script:
1) Reads settings from the environment (BACKEND_BASE_URL, BACKEND_API_KEY, TMDB_API_KEY, ...)
2) Submits a query with optional field=value filters
3) Loads up to N pages, enriching each with TMDB metadata
4) Logs every page and the final batch summary

Usage:
    python -m scripts.search_session "the matrix" --filter country=USA --pages 2
"""

import argparse  # command-line flags
import asyncio  # run the session coroutine
import time  # measure step timings
from typing import Dict, List  # filter map

from loguru import logger  # console logging

from cinescope.logging_setup import configure_logging  # stderr sink
from cinescope.models import SessionState  # state checks
from cinescope.services import build_services  # wiring
from cinescope.settings import Settings  # environment config


def parse_filters(pairs: List[str]) -> Dict[str, List[str]]:
	"""Turn ["country=USA", "country=UK"] into {"country": ["USA", "UK"]}."""
	filters: Dict[str, List[str]] = {}
	for pair in pairs:
		field, sep, value = pair.partition('=')
		if not sep or not field.strip():
			raise argparse.ArgumentTypeError(f"Filters must look like field=value, got '{pair}'")
		filters.setdefault(field.strip(), []).append(value.strip())
	return filters


async def run(query: str, filters: Dict[str, List[str]], pages: int) -> int:
	settings = Settings.from_env()  # raises ConfigurationError on bad env
	configure_logging(settings.log_level)
	services = build_services(settings)
	controller = services.new_session()

	# 1) First page
	logger.info("=" * 60)
	logger.info(f"Query: '{query}' filters={filters or '{}'}")
	logger.info("=" * 60)
	t0 = time.time()  # start timer
	session = await controller.submit_query(query, filters)
	if session.state is SessionState.ERROR:
		logger.error(controller.history[-1].summary)
		return 1
	logger.info(f"[1/{pages}] {len(session.accumulated_hits)} hits in {time.time() - t0:.2f}s")

	# 2) Further pages while the backend keeps returning full pages
	for page_no in range(2, pages + 1):
		if not session.has_more:
			logger.info("[OK] No more results.")
			break
		t0 = time.time()
		session = await controller.load_more()
		logger.info(f"[{page_no}/{pages}] {len(session.accumulated_hits)} hits total in {time.time() - t0:.2f}s")

	# 3) Listing
	for i, hit in enumerate(session.accumulated_hits, 1):
		meta = hit.metadata
		rating = f"{meta.vote_average:.1f}" if meta and meta.vote_average is not None else '-'
		year = hit.fields.get('released_year') or '?'
		logger.info(f"  {i:>3}. {hit.title} ({year}) tmdb={meta.id if meta else '-'} rating={rating}")

	logger.info(controller.history[-1].summary)
	return 0


def main():
	parser = argparse.ArgumentParser(description='Run a CineScope search session.')
	parser.add_argument('query', help='free-text query')
	parser.add_argument('--filter', dest='filters', action='append', default=[], help='field=value (repeatable)')
	parser.add_argument('--pages', type=int, default=1, help='pages to load (default 1)')
	args = parser.parse_args()

	try:
		filters = parse_filters(args.filters)
	except argparse.ArgumentTypeError as e:
		parser.error(str(e))
	raise SystemExit(asyncio.run(run(args.query, filters, max(1, args.pages))))


if __name__ == '__main__':
	main()  # invoke session runner
