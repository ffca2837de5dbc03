"""
Helpers for TMDB image URLs and TV air-date ranges.
"""

from datetime import date
from typing import Optional

TMDB_IMAGE_BASE_URL = 'https://image.tmdb.org/t/p'
DEFAULT_POSTER_URL = 'https://placehold.co/500x750/1a1a1a/gray?text=No+Poster'
POSTER_SIZES = ('w92', 'w154', 'w185', 'w342', 'w500', 'w780', 'original')
BACKDROP_SIZES = ('w300', 'w780', 'w1280', 'original')


def poster_url(poster_path: Optional[str], size: str = 'w500') -> str:
	"""Full poster URL, or a placeholder image when the title has no poster."""
	if size not in POSTER_SIZES:
		raise ValueError(f"Unsupported poster size: {size}")
	if not poster_path:
		return DEFAULT_POSTER_URL
	return f"{TMDB_IMAGE_BASE_URL}/{size}{poster_path}"


def backdrop_url(backdrop_path: Optional[str], size: str = 'w1280') -> Optional[str]:
	if size not in BACKDROP_SIZES:
		raise ValueError(f"Unsupported backdrop size: {size}")
	if not backdrop_path:
		return None
	return f"{TMDB_IMAGE_BASE_URL}/{size}{backdrop_path}"


def _year(value: str) -> int:
	return date.fromisoformat(value[:10]).year


def tv_date_range(
	first_air_date: Optional[str],
	last_air_date: Optional[str],
	status: Optional[str],
) -> Optional[str]:
	"""
	Years a show has been on air, e.g.
	- running:        "2016 – Present"
	- ended/canceled: "2008–2013", or "2019" when it started and ended the same year
	- anything else:  "2021"
	"""
	if not first_air_date:
		return None
	start = _year(first_air_date)

	if status in ('Returning Series', 'In Production'):
		return f"{start} – Present"

	if status in ('Ended', 'Canceled') and last_air_date:
		end = _year(last_air_date)
		return f"{start}" if start == end else f"{start}–{end}"

	return f"{start}"


def should_show_tv_status(status: Optional[str]) -> bool:
	"""Only unusual statuses get a badge."""
	return status in ('Canceled', 'Pilot')
