"""Named repeating jobs for the polling loops."""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

_LOGGER = logging.getLogger(__name__)

JobAction = Callable[[], Awaitable[None]]
SleepFunc = Callable[[float], Awaitable[None]]


class RepeatingJob:
	"""Run an async action every ``interval`` until stopped.

	Each tick is spawned as its own task, so a slow tick does not hold back
	the next one and several ticks may be in flight at once. Stopping cancels
	the timer only; ticks already running are left to finish.
	"""

	def __init__(
		self,
		name: str,
		interval: Union[timedelta, float],
		action: JobAction,
		sleep: SleepFunc = asyncio.sleep,
	) -> None:
		self.name = name
		self.interval = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
		self._action = action
		self._sleep = sleep
		self._timer: Optional[asyncio.Task] = None
		self._in_flight: Set[asyncio.Task] = set()
		self.tick_count = 0

	@property
	def running(self) -> bool:
		return self._timer is not None and not self._timer.done()

	@property
	def in_flight(self) -> int:
		return len(self._in_flight)

	def start(self) -> None:
		if self.running:
			return
		self._timer = asyncio.get_running_loop().create_task(self._run_timer())
		_LOGGER.debug(f"Started job {self.name} every {self.interval}s")

	def stop(self) -> None:
		if self._timer is None:
			return
		self._timer.cancel()
		self._timer = None
		_LOGGER.debug(f"Stopped job {self.name}")

	async def _run_timer(self) -> None:
		while True:
			await self._sleep(self.interval)
			task = asyncio.get_running_loop().create_task(self.async_run_once())
			self._in_flight.add(task)
			task.add_done_callback(self._in_flight.discard)

	async def async_run_once(self) -> None:
		"""Run a single tick, logging any failure instead of raising it."""
		self.tick_count += 1
		try:
			await self._action()
		except asyncio.CancelledError:
			raise
		except Exception as err:  # pylint: disable=broad-except
			_LOGGER.error(f"Polling error in job {self.name}: {err}")

	async def async_wait_idle(self) -> None:
		"""Wait until no ticks are in flight."""
		while self._in_flight:
			await asyncio.gather(*list(self._in_flight), return_exceptions=True)


class Scheduler:
	"""Registry of named repeating jobs; one job per name."""

	def __init__(self, sleep: SleepFunc = asyncio.sleep) -> None:
		self._sleep = sleep
		self._jobs: Dict[str, RepeatingJob] = {}

	@property
	def names(self) -> List[str]:
		return list(self._jobs)

	def get(self, name: str) -> Optional[RepeatingJob]:
		return self._jobs.get(name)

	def is_running(self, name: str) -> bool:
		return name in self._jobs

	def start(self, name: str, interval: Union[timedelta, float], action: JobAction) -> RepeatingJob:
		"""Start a job unless one with this name is already running."""
		existing = self._jobs.get(name)
		if existing is not None:
			_LOGGER.debug(f"Job {name} already running; not starting another")
			return existing

		job = RepeatingJob(name, interval, action, sleep=self._sleep)
		job.start()
		self._jobs[name] = job
		return job

	def stop(self, name: str) -> None:
		job = self._jobs.pop(name, None)
		if job is not None:
			job.stop()

	def stop_all(self) -> None:
		for name in list(self._jobs):
			self.stop(name)
