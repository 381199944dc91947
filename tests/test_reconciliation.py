"""Tests for tokentop.services.reconciliation."""

import pytest

from tokentop.services.reconciliation import DEFAULT_INTERVAL_MS, ReconciliationScheduler
from helpers import pump_events


@pytest.fixture
def scheduler(qapp):
    s = ReconciliationScheduler()
    yield s
    s.stop()


class TestForceFlag:
    def test_initially_clear(self, scheduler):
        assert scheduler.pending() is False
        assert scheduler.consume() is False

    def test_consume_reads_and_clears(self, scheduler):
        scheduler.request_sweep()
        assert scheduler.pending() is True
        assert scheduler.consume() is True
        assert scheduler.consume() is False

    def test_sweep_requested_signal(self, scheduler):
        fired = []
        scheduler.sweep_requested.connect(lambda: fired.append(True))
        scheduler.request_sweep()
        assert fired == [True]


class TestTimer:
    def test_default_interval(self, scheduler):
        assert scheduler.interval_ms == DEFAULT_INTERVAL_MS

    def test_start_stop_idempotent(self, scheduler):
        scheduler.start()
        scheduler.start()
        assert scheduler.is_active()
        scheduler.stop()
        scheduler.stop()
        assert not scheduler.is_active()

    def test_stop_clears_pending_flag(self, scheduler):
        scheduler.request_sweep()
        scheduler.stop()
        assert scheduler.pending() is False

    def test_timer_raises_flag(self, qapp):
        scheduler = ReconciliationScheduler(interval_ms=20)
        try:
            scheduler.start()
            assert pump_events(qapp, until=scheduler.pending)
        finally:
            scheduler.stop()
