"""Tests for HeartbeatMonitor."""

import asyncio

import pytest

from tokenwatch.heartbeat import HeartbeatMonitor


class Probe:
    def __init__(self, delay=0.0, error=None):
        self.delay = delay
        self.error = error
        self.calls = 0
        self.completed = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return 123


class TestHeartbeatMonitor:
    """Tests for the probe cycle."""

    @pytest.mark.asyncio
    async def test_healthy_probe_never_times_out(self):
        probe = Probe()
        timeouts = []
        monitor = HeartbeatMonitor(probe, lambda: timeouts.append(1), interval=0.01, timeout=0.5)

        monitor.start()
        await asyncio.sleep(0.1)
        monitor.stop()

        assert probe.completed >= 2
        assert timeouts == []
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_overdue_probe_triggers_exactly_one_timeout(self):
        probe = Probe(delay=10)
        timeouts = []
        monitor = HeartbeatMonitor(probe, lambda: timeouts.append(1), interval=0.01, timeout=0.02)

        monitor.start()
        await asyncio.sleep(0.2)

        assert timeouts == [1]
        assert probe.calls == 1
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_late_success_is_ignored(self):
        probe = Probe(delay=0.05)
        timeouts = []
        monitor = HeartbeatMonitor(probe, lambda: timeouts.append(1), interval=10, timeout=0.01)

        assert await monitor.beat() is False
        await asyncio.sleep(0.1)

        assert timeouts == [1]
        assert probe.completed == 0

    @pytest.mark.asyncio
    async def test_failed_probe_is_retried_next_cycle(self):
        probe = Probe(error=ConnectionError("socket gone"))
        timeouts = []
        monitor = HeartbeatMonitor(probe, lambda: timeouts.append(1), interval=0.01, timeout=0.5)

        monitor.start()
        await asyncio.sleep(0.1)

        assert probe.calls >= 2
        assert timeouts == []
        assert monitor.running
        monitor.stop()

    @pytest.mark.asyncio
    async def test_restart_replaces_previous_cycle(self):
        monitor = HeartbeatMonitor(Probe(), lambda: None, interval=10, timeout=1)

        monitor.start()
        first = monitor._task
        monitor.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert first.cancelled()
        assert monitor.running
        assert monitor._task is not first
        monitor.stop()
