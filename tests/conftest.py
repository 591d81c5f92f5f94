"""Shared fixtures for the ClassStacks test suite."""

import asyncio
from collections import deque
from typing import Any, Dict, List, Tuple

import pytest

from classstacks import ClassStacksClient, ClassStacksConfig, EventBus, MemoryStorage, Scheduler

BASE_URL = "https://script.google.com/macros/s/test-deployment/exec"


class MockResponse:
	"""Simple mock response class."""
	def __init__(self, status=200, json_data=None, text_data="", json_error=None):
		self.status = status
		self._json_data = json_data
		self._text_data = text_data
		self._json_error = json_error
		self.headers = {}

	async def json(self):
		if self._json_error is not None:
			raise self._json_error
		return self._json_data

	async def text(self):
		return self._text_data

	async def __aenter__(self):
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		pass


class FakeSession:
	"""Stands in for aiohttp.ClientSession, answering by ``action``.

	Queued answers are served in order; the last one is repeated once the
	queue runs dry. An answer may be a payload, a MockResponse or an
	exception to raise.
	"""
	def __init__(self):
		self.calls: List[Tuple[str, List[Tuple[str, str]]]] = []
		self.headers: List[Dict[str, str]] = []
		self._answers: Dict[str, deque] = {}
		self.closed = False

	def queue(self, action: str, *answers: Any) -> None:
		self._answers.setdefault(action, deque()).extend(answers)

	def get(self, url, params=None, headers=None, timeout=None):
		params = list(params or [])
		self.calls.append((url, params))
		self.headers.append(dict(headers or {}))
		action = _first_values(params).get("action")

		answers = self._answers.get(action)
		if not answers:
			raise AssertionError(f"No answer queued for action {action}")
		answer = answers.popleft() if len(answers) > 1 else answers[0]

		if isinstance(answer, BaseException):
			raise answer
		if isinstance(answer, MockResponse):
			return answer
		return MockResponse(200, answer)

	def actions(self) -> List[str]:
		return [_first_values(params).get("action") for _, params in self.calls]

	def params_for(self, action: str) -> Dict[str, str]:
		for _, params in reversed(self.calls):
			query = _first_values(params)
			if query.get("action") == action:
				return query
		raise AssertionError(f"{action} was never requested")

	async def close(self):
		self.closed = True


def _first_values(params) -> Dict[str, str]:
	"""Query as a dict where the first occurrence of a key wins, as on the server."""
	query: Dict[str, str] = {}
	for key, value in params:
		query.setdefault(key, value)
	return query


class ManualSleep:
	"""Replacement for asyncio.sleep that only wakes when advanced."""
	def __init__(self):
		self._waiters: List[asyncio.Future] = []
		self.requested: List[float] = []

	async def sleep(self, seconds: float) -> None:
		self.requested.append(seconds)
		future = asyncio.get_running_loop().create_future()
		self._waiters.append(future)
		await future

	async def advance(self) -> None:
		"""Fire every pending timer once and let the spawned ticks run."""
		await _settle()
		waiters, self._waiters = self._waiters, []
		for future in waiters:
			if not future.done():
				future.set_result(None)
		await _settle()


async def _settle(rounds: int = 10) -> None:
	for _ in range(rounds):
		await asyncio.sleep(0)


@pytest.fixture
def config(tmp_path):
	return ClassStacksConfig.from_dict({
		"base_url": BASE_URL,
		"user_agent": "Mozilla/5.0 (X11; Linux x86_64)",
		"storage_path": tmp_path / "storage.json",
	})


@pytest.fixture
def fake_session():
	return FakeSession()


@pytest.fixture
def manual_sleep():
	return ManualSleep()


@pytest.fixture
def now():
	return 1_700_000_000_000


@pytest.fixture
async def client(config, fake_session, manual_sleep, now):
	client = ClassStacksClient(
		config,
		session=fake_session,
		storage=MemoryStorage(),
		events=EventBus(),
		scheduler=Scheduler(sleep=manual_sleep.sleep),
		clock=lambda: now,
	)
	yield client
	await client.async_close()


@pytest.fixture
def recorded_events(client):
	"""Collect every event the client publishes."""
	events: List[Tuple[str, Any]] = []

	def _record(event_type, data):
		events.append((event_type, data))

	for event_type in ("classstacks:message", "classstacks:locked", "classstacks:update"):
		client.events.subscribe(event_type, _record)
	return events
