#!/usr/bin/env python3
"""Tests for named repeating jobs, driven by a manual sleep."""

import asyncio
from datetime import timedelta

import pytest

from classstacks.scheduler import RepeatingJob, Scheduler


async def test_start_is_idempotent_by_name(manual_sleep):
	scheduler = Scheduler(sleep=manual_sleep.sleep)
	calls = []

	async def action():
		calls.append(1)

	first = scheduler.start("teacher", timedelta(seconds=3), action)
	second = scheduler.start("teacher", timedelta(seconds=3), action)

	assert first is second
	assert scheduler.names == ["teacher"]

	await manual_sleep.advance()
	assert calls == [1]
	assert manual_sleep.requested[0] == 3.0

	scheduler.stop_all()


async def test_stop_unknown_job_is_noop():
	scheduler = Scheduler()
	scheduler.stop("never-started")
	assert scheduler.names == []


async def test_job_ticks_on_each_interval_until_stopped(manual_sleep):
	scheduler = Scheduler(sleep=manual_sleep.sleep)
	calls = []

	async def action():
		calls.append(1)

	scheduler.start("s1", 5, action)
	await manual_sleep.advance()
	await manual_sleep.advance()
	assert len(calls) == 2

	scheduler.stop("s1")
	assert not scheduler.is_running("s1")
	await manual_sleep.advance()
	assert len(calls) == 2


async def test_failing_tick_keeps_schedule(manual_sleep):
	attempts = []

	async def action():
		attempts.append(1)
		raise RuntimeError("sheet unavailable")

	job = RepeatingJob("s1", 5, action, sleep=manual_sleep.sleep)
	job.start()
	await manual_sleep.advance()
	await manual_sleep.advance()

	assert len(attempts) == 2
	assert job.running
	job.stop()


async def test_stop_leaves_in_flight_tick_running(manual_sleep):
	release = asyncio.Event()
	finished = []

	async def slow_action():
		await release.wait()
		finished.append(1)

	scheduler = Scheduler(sleep=manual_sleep.sleep)
	job = scheduler.start("teacher", 3, slow_action)
	await manual_sleep.advance()
	assert job.in_flight == 1

	scheduler.stop("teacher")
	release.set()
	await job.async_wait_idle()

	assert finished == [1]


async def test_ticks_are_not_serialised(manual_sleep):
	release = asyncio.Event()

	async def slow_action():
		await release.wait()

	job = RepeatingJob("s1", 5, slow_action, sleep=manual_sleep.sleep)
	job.start()
	await manual_sleep.advance()
	await manual_sleep.advance()

	assert job.in_flight == 2
	job.stop()
	release.set()
	await job.async_wait_idle()
	assert job.tick_count == 2


def test_job_that_fails_to_start_is_not_registered():
	scheduler = Scheduler()

	async def action():
		pass

	# No running event loop here, so the timer task cannot be created
	with pytest.raises(RuntimeError):
		scheduler.start("teacher", 3, action)

	assert scheduler.names == []
	assert not scheduler.is_running("teacher")
