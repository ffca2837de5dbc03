"""
HTTP JSON transport.
Wraps a requests.Session with a base URL, default headers and a fixed timeout, and
translates requests failures into the CineScope error taxonomy. Blocking calls run in
a worker thread so the asyncio event loop is never blocked while waiting on the network.
"""

# asyncio to hand blocking I/O to a worker thread
import asyncio  # to_thread
# Typing helpers for clarity
from typing import Any, Dict, Optional  # payloads and headers

# requests is the HTTP client used for every outbound call
import requests  # sessions, timeouts, connection errors

# Console logging
from loguru import logger  # console logger

from .errors import NetworkError, UpstreamError


class JsonTransport:
	"""
	Minimal JSON-over-HTTP client bound to one upstream service.
	- base_url: service root, e.g. https://api.themoviedb.org/3
	- headers: default headers sent with every request
	- timeout_s: per-request timeout in seconds
	- session: optional requests.Session (tests pass a fake one)
	"""

	def __init__(
		self,
		base_url: str,
		headers: Optional[Dict[str, str]] = None,
		timeout_s: float = 10.0,
		session: Optional[requests.Session] = None,
		name: str = 'HTTP',
	):
		self.base_url = base_url.rstrip('/')  # join paths without doubled slashes
		self.headers = dict(headers or {})  # defaults for every call
		self.timeout_s = timeout_s  # fixed per-call timeout
		self.session = session or requests.Session()  # connection pooling
		self.name = name  # log prefix

	async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
		"""GET a JSON document without blocking the event loop."""
		return await asyncio.to_thread(self.request_json, 'GET', path, params=params)

	async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
		"""POST a JSON body and return the decoded JSON response."""
		return await asyncio.to_thread(self.request_json, 'POST', path, json=payload)

	def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
		"""
		Perform one blocking request and decode the JSON body.
		Raises NetworkError when no response arrived, UpstreamError for non-2xx or bad JSON.
		"""
		url = f"{self.base_url}/{path.lstrip('/')}"  # absolute URL
		try:
			response = self.session.request(
				method,
				url,
				headers=self.headers,
				timeout=self.timeout_s,
				**kwargs,
			)
		except requests.Timeout as e:
			logger.warning(f"[{self.name}] {method} {path} timed out after {self.timeout_s}s")
			raise NetworkError(f"{self.name} request timed out after {self.timeout_s}s", kind='timeout') from e
		except requests.ConnectionError as e:
			logger.warning(f"[{self.name}] {method} {path} connection failed: {e}")
			raise NetworkError(f"{self.name} connection failed: {e}", kind='connection') from e
		except requests.RequestException as e:
			# Malformed URL, too many redirects, ... : not worth retrying
			raise UpstreamError(f"{self.name} request failed: {e}") from e

		if not response.ok:
			message = self._error_message(response)
			logger.warning(f"[{self.name}] {method} {path} -> {response.status_code} {message}")
			raise UpstreamError(message, status_code=response.status_code)

		try:
			return response.json()
		except ValueError as e:
			raise UpstreamError(f"{self.name} returned malformed JSON", status_code=response.status_code) from e

	def _error_message(self, response: Any) -> str:
		"""Prefer the service's own error detail over the bare status line."""
		try:
			body = response.json()
		except ValueError:
			body = None
		if isinstance(body, dict):
			for key in ('detail', 'status_message', 'error'):
				if isinstance(body.get(key), str) and body[key]:
					return body[key]
		return response.reason or f"HTTP {response.status_code}"
