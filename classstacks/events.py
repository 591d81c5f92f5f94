"""Subscription interface for notifications published by the client."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

_LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[str, Any], Any]


class EventBus:
	"""Deliver published events to the listeners registered for them.

	Listeners receive ``(event_type, data)``. Coroutine listeners are
	scheduled on the running loop; plain callables run inline.
	"""

	def __init__(self) -> None:
		self._listeners: Dict[str, List[EventCallback]] = {}
		self._pending: Set[asyncio.Task] = set()

	def subscribe(self, event_type: str, callback: EventCallback) -> Callable[[], None]:
		"""Register a listener and return a function that removes it."""
		self._listeners.setdefault(event_type, []).append(callback)

		def unsubscribe() -> None:
			listeners = self._listeners.get(event_type)
			if listeners and callback in listeners:
				listeners.remove(callback)
				if not listeners:
					del self._listeners[event_type]

		return unsubscribe

	def listen_once(self, event_type: str, callback: EventCallback) -> Callable[[], None]:
		"""Register a listener that removes itself after the first event."""
		unsubscribe: Optional[Callable[[], None]] = None

		def _once(fired_type: str, data: Any) -> Any:
			unsubscribe()
			return callback(fired_type, data)

		unsubscribe = self.subscribe(event_type, _once)
		return unsubscribe

	def listener_count(self, event_type: str) -> int:
		return len(self._listeners.get(event_type, []))

	def fire(self, event_type: str, data: Any = None) -> None:
		"""Publish an event to every current listener."""
		listeners = list(self._listeners.get(event_type, []))
		_LOGGER.debug(f"Firing {event_type} to {len(listeners)} listener(s)")

		for callback in listeners:
			try:
				result = callback(event_type, data)
			except Exception:  # pylint: disable=broad-except
				_LOGGER.exception(f"Error in listener for {event_type}")
				continue

			if asyncio.iscoroutine(result):
				task = asyncio.get_running_loop().create_task(result)
				self._pending.add(task)
				task.add_done_callback(self._listener_done)

	def _listener_done(self, task: asyncio.Task) -> None:
		self._pending.discard(task)
		if task.cancelled():
			return
		err = task.exception()
		if err is not None:
			_LOGGER.error("Error in async event listener", exc_info=err)

	async def async_drain(self) -> None:
		"""Wait for scheduled coroutine listeners to finish."""
		while self._pending:
			await asyncio.gather(*list(self._pending), return_exceptions=True)
