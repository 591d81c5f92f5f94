#!/usr/bin/env python3
"""Tests for the event subscription interface."""

from classstacks.events import EventBus


def test_fire_reaches_subscribers_of_that_event_only():
	bus = EventBus()
	seen = []
	bus.subscribe("classstacks:message", lambda t, d: seen.append((t, d)))
	bus.subscribe("classstacks:update", lambda t, d: seen.append(("other", d)))

	bus.fire("classstacks:message", {"message": "hi"})

	assert seen == [("classstacks:message", {"message": "hi"})]


def test_unsubscribe_stops_delivery():
	bus = EventBus()
	seen = []
	unsubscribe = bus.subscribe("classstacks:locked", lambda t, d: seen.append(d))
	unsubscribe()
	unsubscribe()

	bus.fire("classstacks:locked", {"locked": True})

	assert seen == []
	assert bus.listener_count("classstacks:locked") == 0


def test_listen_once():
	bus = EventBus()
	seen = []
	bus.listen_once("classstacks:update", lambda t, d: seen.append(d))

	bus.fire("classstacks:update", 1)
	bus.fire("classstacks:update", 2)

	assert seen == [1]


def test_failing_listener_does_not_block_others():
	bus = EventBus()
	seen = []

	def broken(event_type, data):
		raise RuntimeError("boom")

	bus.subscribe("classstacks:message", broken)
	bus.subscribe("classstacks:message", lambda t, d: seen.append(d))

	bus.fire("classstacks:message", "payload")

	assert seen == ["payload"]


async def test_coroutine_listeners_are_scheduled():
	bus = EventBus()
	seen = []

	async def listener(event_type, data):
		seen.append(data)

	async def broken(event_type, data):
		raise RuntimeError("boom")

	bus.subscribe("classstacks:update", listener)
	bus.subscribe("classstacks:update", broken)
	bus.fire("classstacks:update", {"timestamp": 1})
	await bus.async_drain()

	assert seen == [{"timestamp": 1}]
