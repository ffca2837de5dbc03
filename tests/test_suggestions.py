"""
Tests for SuggestionFetcher debouncing and late-response handling.
Delays are shortened so the suite stays fast.
"""

import asyncio

from cinescope.suggestions import SuggestionFetcher

from fakes import FakeSearchClient


def test_typing_ma_mat_matr_sends_one_request():
	backend = FakeSearchClient()

	async def scenario():
		fetcher = SuggestionFetcher(backend, delay_s=0.05)
		fetcher.input_changed('ma')  # too short
		assert fetcher.suggestions == []
		fetcher.input_changed('mat')
		await asyncio.sleep(0.01)
		fetcher.input_changed('matr')
		await fetcher.wait_idle()
		await asyncio.sleep(0.06)  # let the superseded timer run out too
		return fetcher

	fetcher = asyncio.run(scenario())

	assert backend.autocomplete_calls == [('title', 'matr')]
	assert fetcher.requests_sent == 1
	assert [s.value for s in fetcher.suggestions] == ['matr result']


def test_late_response_is_ignored():
	backend = FakeSearchClient()

	async def scenario():
		backend.gates['mat'] = asyncio.Event()
		fetcher = SuggestionFetcher(backend, delay_s=0)
		fetcher.input_changed('mat')
		await asyncio.sleep(0.01)  # 'mat' request in flight
		fetcher.input_changed('matr')
		await fetcher.wait_idle()
		backend.gates['mat'].set()  # old response arrives last
		await asyncio.sleep(0.01)
		return fetcher

	fetcher = asyncio.run(scenario())

	assert backend.autocomplete_calls == [('title', 'mat'), ('title', 'matr')]
	assert [s.value for s in fetcher.suggestions] == ['matr result']


def test_short_input_clears_and_cancels_pending_request():
	backend = FakeSearchClient()

	async def scenario():
		fetcher = SuggestionFetcher(backend, delay_s=0.02)
		fetcher.input_changed('matrix')
		await fetcher.wait_idle()
		assert fetcher.suggestions
		fetcher.input_changed('matrix reloaded')
		fetcher.input_changed('m ')
		await asyncio.sleep(0.05)
		return fetcher

	fetcher = asyncio.run(scenario())

	assert backend.autocomplete_calls == [('title', 'matrix')]
	assert fetcher.suggestions == []


def test_failure_clears_suggestions():
	backend = FakeSearchClient()

	async def scenario():
		fetcher = SuggestionFetcher(backend, delay_s=0)
		fetcher.input_changed('matrix')
		await fetcher.wait_idle()
		backend.fail = True
		fetcher.input_changed('matrix 2')
		await fetcher.wait_idle()
		return fetcher

	fetcher = asyncio.run(scenario())

	assert fetcher.suggestions == []
	assert fetcher.requests_sent == 2


def test_close_drops_pending_timer():
	backend = FakeSearchClient()

	async def scenario():
		fetcher = SuggestionFetcher(backend, delay_s=0.02)
		fetcher.input_changed('matrix')
		fetcher.close()
		await asyncio.sleep(0.04)

	asyncio.run(scenario())

	assert backend.autocomplete_calls == []


def test_filter_fetcher_defaults():
	backend = FakeSearchClient()

	async def scenario():
		fetcher = SuggestionFetcher.for_filter(backend, 'director')
		assert (fetcher.min_length, fetcher.delay_s) == (1, 0.3)
		fetcher.delay_s = 0
		fetcher.input_changed('w')
		await fetcher.wait_idle()

	asyncio.run(scenario())

	assert backend.autocomplete_calls == [('director', 'w')]
