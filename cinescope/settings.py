"""
Runtime configuration.
Settings are read from environment variables by pydantic-settings once at startup;
anything missing or out of range is reported in one ConfigurationError that names
every offending variable.
"""

# Typing helpers
from typing import Optional  # type hints

# pydantic validates and coerces the raw environment strings
from pydantic import Field, ValidationError, field_validator  # field rules
# pydantic-settings maps environment variables onto the model
from pydantic_settings import BaseSettings, SettingsConfigDict  # env-backed settings

from .errors import ConfigurationError


class Settings(BaseSettings):
	"""Validated configuration for the clients, the cache and the API."""

	model_config = SettingsConfigDict(
		env_ignore_empty=True,  # VAR= counts as unset
		populate_by_name=True,  # Settings(backend_base_url=...) in code and tests
		extra='ignore',
	)

	# ---------- Required ----------
	backend_base_url: str = Field(validation_alias='BACKEND_BASE_URL')  # search backend root URL
	backend_api_key: str = Field(min_length=1, validation_alias='BACKEND_API_KEY')  # bearer token
	tmdb_api_key: str = Field(min_length=1, validation_alias='TMDB_API_KEY')  # TMDB v3 api key

	# ---------- Cache ----------
	cache_db_path: Optional[str] = Field(default=None, validation_alias='CACHE_DB_PATH')  # None keeps it in memory
	tmdb_cache_days: int = Field(default=7, gt=0, validation_alias='TMDB_CACHE_DAYS')  # TTL of cached metadata

	# ---------- TMDB client ----------
	tmdb_timeout_ms: int = Field(default=10000, ge=1000, validation_alias='TMDB_TIMEOUT')
	tmdb_max_retries: int = Field(default=2, ge=0, validation_alias='TMDB_MAX_RETRIES')
	tmdb_retry_delay_ms: int = Field(default=1000, ge=0, validation_alias='TMDB_RETRY_DELAY')

	# ---------- Search client ----------
	search_timeout_ms: int = Field(default=10000, ge=1000, validation_alias='SEARCH_TIMEOUT')
	search_page_size: int = Field(default=20, gt=0, validation_alias='SEARCH_PAGE_SIZE')

	log_level: str = Field(default='info', validation_alias='LOG_LEVEL')  # debug | info | error

	@field_validator('backend_base_url')
	@classmethod
	def _check_url(cls, value: str) -> str:
		value = value.strip()
		if not value.startswith(('http://', 'https://')):
			raise ValueError('must be a valid URL')
		return value.rstrip('/')

	@field_validator('log_level')
	@classmethod
	def _check_level(cls, value: str) -> str:
		value = value.strip().lower()
		if value not in ('debug', 'info', 'error'):
			raise ValueError('must be one of debug, info, error')
		return value

	@field_validator('cache_db_path')
	@classmethod
	def _blank_path(cls, value: Optional[str]) -> Optional[str]:
		if value is None:
			return None
		return value.strip() or None  # blank means "no persistent cache"

	@property
	def tmdb_timeout_s(self) -> float:
		return self.tmdb_timeout_ms / 1000

	@property
	def tmdb_retry_delay_s(self) -> float:
		return self.tmdb_retry_delay_ms / 1000

	@property
	def search_timeout_s(self) -> float:
		return self.search_timeout_ms / 1000

	@classmethod
	def env_names(cls) -> dict:
		"""Settings field -> environment variable."""
		return {name: f.validation_alias for name, f in cls.model_fields.items()}

	@classmethod
	def from_env(cls) -> 'Settings':
		"""Load settings from the process environment."""
		try:
			return cls()
		except ValidationError as e:
			names = cls.env_names()
			bad = sorted({names.get(str(err['loc'][0]), str(err['loc'][0])) for err in e.errors()})
			raise ConfigurationError(
				f"Invalid environment variables: {', '.join(bad)}. Please check your environment."
			) from e
