"""
Debounced autocomplete.
SuggestionFetcher turns keystrokes into at most one autocomplete request per pause in
typing. Each keystroke bumps a generation counter; a pending timer or response that
belongs to an older generation is dropped without touching the visible suggestions.
"""

# asyncio for the debounce timer tasks
import asyncio  # sleep, tasks
# Typing helpers
from typing import List, Optional  # type hints

# Console logging
from loguru import logger  # console logger

from .models import Suggestion
from .search_client import SearchClient


class SuggestionFetcher:
	"""
	Autocomplete for one field.
	- field: backend field to complete ("title" for the main box, any filter field otherwise)
	- min_length: stripped input shorter than this clears suggestions and sends nothing
	- delay_s: quiet period after the last keystroke before a request is sent
	- size: suggestions requested per fetch
	Must be driven from inside a running event loop.
	"""

	def __init__(
		self,
		search_client: SearchClient,
		field: str = 'title',
		min_length: int = 3,
		delay_s: float = 0.5,
		size: int = 10,
	):
		self.search_client = search_client
		self.field = field
		self.min_length = min_length
		self.delay_s = delay_s
		self.size = size
		self.suggestions: List[Suggestion] = []  # what the dropdown shows
		self.requests_sent = 0  # autocomplete calls actually issued
		self._generation = 0
		self._task: Optional[asyncio.Task] = None

	@classmethod
	def for_filter(cls, search_client: SearchClient, field: str) -> 'SuggestionFetcher':
		"""Filter panels complete from the first character with a shorter pause."""
		return cls(search_client, field=field, min_length=1, delay_s=0.3)

	def input_changed(self, text: str) -> None:
		"""Record a keystroke; supersedes any pending timer."""
		self._generation += 1
		generation = self._generation
		value = (text or '').strip()
		if len(value) < self.min_length:
			self.suggestions = []
			return
		self._task = asyncio.get_running_loop().create_task(self._fire(value, generation))

	async def _fire(self, value: str, generation: int) -> None:
		await asyncio.sleep(self.delay_s)
		if generation != self._generation:
			return  # superseded while waiting

		self.requests_sent += 1
		try:
			page = await self.search_client.autocomplete(self.field, value, size=self.size)
		except Exception as e:
			if generation == self._generation:
				logger.warning(f"[Suggest] Autocomplete for {self.field}='{value}' failed: {e}")
				self.suggestions = []
			return

		if generation != self._generation:
			logger.debug(f"[Suggest] Ignoring late suggestions for '{value}'")
			return
		self.suggestions = page.suggestions
		logger.debug(f"[Suggest] {len(self.suggestions)} suggestions for {self.field}='{value}'")

	async def wait_idle(self) -> None:
		"""Wait until the most recent timer (and its request) has finished."""
		task = self._task
		if task is not None and not task.done():
			await asyncio.gather(task, return_exceptions=True)

	def close(self) -> None:
		"""Drop any pending request; its result will never be applied."""
		self._generation += 1
		if self._task is not None and not self._task.done():
			self._task.cancel()
		self._task = None
