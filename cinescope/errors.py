"""
Error taxonomy for CineScope.
Transport and client code raise these; the enrichment pipeline, the cache, and the
session controller catch them at their boundaries so no single failure escalates.
"""

from typing import Optional


class CineScopeError(Exception):
	"""Base class for every error raised by this package."""


class ConfigurationError(CineScopeError):
	"""Raised when environment configuration is missing or invalid."""


class RequestValidationError(CineScopeError):
	"""Raised before any network call when a query or filter payload is invalid."""

	status_code = 400  # 4xx-equivalent for API callers


class UpstreamError(CineScopeError):
	"""An upstream service answered with a non-2xx status or a malformed body."""

	def __init__(self, message: str, status_code: Optional[int] = None):
		super().__init__(message)
		self.message = message
		self.status_code = status_code

	@property
	def is_server_error(self) -> bool:
		return self.status_code is not None and self.status_code >= 500


class NetworkError(CineScopeError):
	"""Timeout, refused/reset connection, or DNS failure: no HTTP response at all."""

	def __init__(self, message: str, kind: str = 'connection'):
		super().__init__(message)
		self.message = message
		self.kind = kind  # "timeout" or "connection"


class SearchFailed(CineScopeError):
	"""Single failure signal of the search client, whatever the underlying cause."""

	def __init__(self, message: str, status_code: Optional[int] = None):
		super().__init__(message)
		self.message = message
		self.status_code = status_code


def is_retryable(error: Exception) -> bool:
	"""Network-class failures and 5xx responses may be retried; everything else is terminal."""
	if isinstance(error, NetworkError):
		return True
	if isinstance(error, UpstreamError):
		return error.is_server_error
	return False
