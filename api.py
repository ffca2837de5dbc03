"""
FastAPI server exposing the CineScope API.
Endpoints:
- GET /health: basic health check
- POST /search: one page of search hits enriched with TMDB metadata ({total, hits})
- POST /autocomplete: field suggestions ({total, suggestions})
- POST /tmdb/lookup: best TMDB match for {query, year?, media_type?} (or null)
- POST /tmdb/poster: multi-search poster match for {query, year?} (or null)
- GET /tmdb/movie/{id}, GET /tmdb/tv/{id}: TMDB detail documents
- GET /trending: this week's trending movies and shows

Startup reads the environment (see cinescope/settings.py) and wires every client once.
Run: uvicorn api:app --reload
"""

# Import standard libraries for timing
import time  # measure startup and request latencies
from typing import Any, Dict, List, Optional, Union  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for request models
from fastapi import FastAPI, Request  # FastAPI primitives
from fastapi.exceptions import RequestValidationError as BodyValidationError  # malformed bodies
from fastapi.responses import JSONResponse  # explicit error responses
from pydantic import BaseModel, Field  # request schema definitions

# Import our internal modules for configuration, wiring and errors
from cinescope.errors import CineScopeError, SearchFailed
from cinescope.logging_setup import configure_logging
from cinescope.media_utils import backdrop_url, poster_url, should_show_tv_status, tv_date_range
from cinescope.models import LookupOutcome
from cinescope.services import Services, build_services
from cinescope.settings import Settings

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title="CineScope API", version="1.0.0")  # web app

# Globals that hold the wired services and measured startup time
SERVICES: Optional[Services] = None  # set by the startup hook
STARTUP_TIME_S: float = 0.0  # measures how long startup took


# Pydantic model for a single backend filter
class FilterIn(BaseModel):
	field: str  # backend field name
	value: Union[str, List[str]]  # accepted value(s)


# Pydantic model for the search request body
class SearchRequest(BaseModel):
	value: str  # free-text query
	size: int = 20  # page size
	offset: int = 0  # page offset
	mode: str = 'hybrid_search'  # hybrid_search | title_search
	filters: List[FilterIn] = Field(default_factory=list)  # optional attribute filters


# Pydantic model for the autocomplete request body
class AutocompleteRequest(BaseModel):
	field: str  # field to complete
	value: Optional[Union[str, List[str]]] = None  # typed prefix
	size: int = 10  # suggestions requested
	offset: int = 0  # suggestion offset


# Pydantic model for the TMDB lookup request body
class LookupRequest(BaseModel):
	query: str  # title to look up
	year: Optional[int] = None  # optional release year
	media_type: Optional[str] = None  # "movie" or "tv"


# Pydantic model for the poster request body
class PosterRequest(BaseModel):
	query: str  # title to look up
	year: Optional[int] = None  # optional release year


def error_response(status: int, error: str, details: Any = None) -> JSONResponse:
	"""Uniform error body: {error, status, details}."""
	return JSONResponse(status_code=status, content={'error': error, 'status': status, 'details': details})


def services_or_503() -> Union[Services, JSONResponse]:
	if SERVICES is None:  # services must be ready to serve
		logger.warning("[API] Request received but services are not initialized")  # guard log
		return error_response(503, 'Service unavailable', 'Server is still starting up')
	return SERVICES


# FastAPI startup hook to wire services once
@app.on_event("startup")
async def startup_event():
	"""Load settings from the environment and build the clients."""
	global SERVICES, STARTUP_TIME_S  # refer to module-level globals
	start = time.time()  # start timer for startup latency

	settings = Settings.from_env()  # raises ConfigurationError naming bad variables
	configure_logging(settings.log_level)  # honour LOG_LEVEL before anything else logs
	logger.info("[API] Startup: wiring search backend, TMDB client and cache...")  # log intent

	SERVICES = build_services(settings)  # shared across requests

	STARTUP_TIME_S = time.time() - start  # elapsed seconds
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s.")  # summary log


# Convert body validation failures into the same error shape as everything else
@app.exception_handler(BodyValidationError)
async def body_validation_handler(request: Request, exc: BodyValidationError):
	logger.debug(f"[API] {request.url.path} invalid body: {exc.errors()}")
	return error_response(400, 'Invalid request', [err.get('msg') for err in exc.errors()])


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"services_ready": SERVICES is not None,  # True once startup finished
		"startup_seconds": round(STARTUP_TIME_S, 2)  # startup latency
	}


# Main search endpoint: one backend page, enriched with TMDB metadata
@app.post("/search")
async def search(body: SearchRequest):
	"""Execute a search and return {total, hits} with tmdbData where found."""
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services

	start = time.time()  # start timer
	logger.debug(f"[API] /search value='{body.value}' offset={body.offset} size={body.size}")  # debug log of input

	filters: Dict[str, List[str]] = {}  # merge repeated fields
	for f in body.filters:
		values = [f.value] if isinstance(f.value, str) else list(f.value)
		filters.setdefault(f.field, []).extend(values)

	try:
		page = await services.search_client.search(
			body.value, filters, offset=body.offset, page_size=body.size, mode=body.mode,
		)
	except SearchFailed as e:
		return error_response(e.status_code or 500, e.message)

	hits = await services.enrichment.enrich(page.hits)
	elapsed_ms = (time.time() - start) * 1000  # compute ms
	logger.info(f"[API] /search served {len(hits)} hits in {elapsed_ms:.2f} ms")  # summary
	return {'total': page.total, 'hits': [h.to_dict() for h in hits]}


@app.post("/autocomplete")
async def autocomplete(body: AutocompleteRequest):
	"""Suggestions for one field."""
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services
	try:
		page = await services.search_client.autocomplete(body.field, body.value, size=body.size, offset=body.offset)
	except SearchFailed as e:
		return error_response(e.status_code or 500, e.message)
	return {'total': page.total, 'suggestions': [s.to_dict() for s in page.suggestions]}


@app.post("/tmdb/lookup")
async def tmdb_lookup(body: LookupRequest):
	"""Best TMDB match for a title; null when TMDB has nothing."""
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services

	result = await services.metadata_client.lookup_detailed(body.query, body.year, body.media_type)
	if result.outcome is LookupOutcome.INVALID_INPUT:
		return error_response(400, 'Invalid request', result.message)
	if result.outcome in (LookupOutcome.TERMINAL_FAILURE, LookupOutcome.RETRIES_EXHAUSTED):
		return error_response(result.status_code or 500, 'Failed to fetch from TMDB', result.message)
	return result.record.to_dict() if result.record is not None else None


@app.post("/tmdb/poster")
async def tmdb_poster(body: PosterRequest):
	"""Poster for a title across movies and TV (multi search); null when TMDB has nothing."""
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services

	result = await services.metadata_client.lookup_detailed(body.query, body.year, None)
	if result.outcome is LookupOutcome.INVALID_INPUT:
		return error_response(400, 'Invalid request', 'Missing required field: query (must be a non-empty string)')
	if result.outcome in (LookupOutcome.TERMINAL_FAILURE, LookupOutcome.RETRIES_EXHAUSTED):
		return error_response(result.status_code or 500, 'Failed to fetch from TMDB', result.message)
	if result.record is None:
		return None
	data = result.record.to_dict()
	data['poster_url'] = poster_url(result.record.poster_path)
	return data


async def _details(media_type: str, tmdb_id: int):
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services
	try:
		data = await services.metadata_client.get_details(media_type, tmdb_id)
	except CineScopeError as e:
		status = getattr(e, 'status_code', None) or 500
		logger.error(f"[API] TMDB {media_type} {tmdb_id} [{status}] failed: {e}")
		return error_response(status, f"Failed to fetch {media_type} details from TMDB", str(e))
	# Ready-to-use image URLs for the detail page
	data['poster_url'] = poster_url(data.get('poster_path'))
	data['backdrop_url'] = backdrop_url(data.get('backdrop_path'))
	return data


@app.get("/tmdb/movie/{tmdb_id}")
async def movie_details(tmdb_id: int):
	"""Movie details with credits, videos, images and similar titles."""
	return await _details('movie', tmdb_id)


@app.get("/tmdb/tv/{tmdb_id}")
async def tv_details(tmdb_id: int):
	"""TV details plus a human-readable date_range and whether to badge the status."""
	data = await _details('tv', tmdb_id)
	if isinstance(data, dict):
		data['date_range'] = tv_date_range(data.get('first_air_date'), data.get('last_air_date'), data.get('status'))
		data['show_status'] = should_show_tv_status(data.get('status'))
	return data


@app.get("/trending")
async def trending():
	"""Weekly trending titles (top 24)."""
	services = services_or_503()
	if isinstance(services, JSONResponse):
		return services
	try:
		records = await services.metadata_client.trending(limit=24)
	except CineScopeError as e:
		status = getattr(e, 'status_code', None) or 500
		logger.error(f"[API] TMDB Trending [{status}] - {e}")
		return error_response(status, 'Failed to fetch trending from TMDB', str(e))
	return {'results': [r.to_dict() for r in records]}
