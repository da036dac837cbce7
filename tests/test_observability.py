"""Tests for reactive_data.observability — cache event log and collector."""

from __future__ import annotations

import threading

import pytest

from reactive_data._errors import OptimisticUpdateError
from reactive_data._types import MISS
from reactive_data.manager import ReactiveDataManager
from reactive_data.observability.collector import CacheCollector
from reactive_data.observability.events import (
    CacheCleared,
    FetchEvent,
    ManagerDisposed,
    UpdateEvent,
    now_ns,
)
from reactive_data.observability.latency import compute_latency_stats
from reactive_data.observability.log import EventLog
from tests.conftest import ControlledCall, drain, fetch_prefixed


def _fetch(key: str = "'k'", outcome: str = "fetched", duration_ms: float = 1.0) -> FetchEvent:
    return FetchEvent(
        key=key,
        outcome=outcome,  # type: ignore[arg-type]
        duration_ms=duration_ms,
        timestamp_ns=now_ns(),
    )


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    """Tests for the event log store."""

    def test_append_and_len(self) -> None:
        log = EventLog()
        assert len(log) == 0
        log.append(_fetch())
        assert len(log) == 1

    def test_max_events_enforced(self) -> None:
        log = EventLog(max_events=5)
        for i in range(10):
            log.append(_fetch(key=repr(i)))
        assert len(log) == 5
        assert [e.key for e in log.query()] == ["9", "8", "7", "6", "5"]

    def test_query_by_type(self) -> None:
        log = EventLog()
        log.append(_fetch())
        log.append(UpdateEvent(key="'k'", outcome="confirmed", duration_ms=2.0, timestamp_ns=now_ns()))
        log.append(CacheCleared(entries_cleared=1, channels_notified=1, timestamp_ns=now_ns()))

        results = log.query(event_type=UpdateEvent)
        assert len(results) == 1
        assert results[0].outcome == "confirmed"

    def test_query_by_key(self) -> None:
        log = EventLog()
        log.append(_fetch(key="'user:1'"))
        log.append(_fetch(key="'user:2'"))
        log.append(CacheCleared(entries_cleared=2, channels_notified=2, timestamp_ns=now_ns()))

        results = log.query(key="user:2")
        assert len(results) == 1
        assert results[0].key == "'user:2'"

    def test_query_by_key_is_exact(self) -> None:
        log = EventLog()
        log.append(_fetch(key=repr(1)))
        log.append(_fetch(key=repr(11)))
        log.append(_fetch(key=repr("1")))

        assert [e.key for e in log.query(key=1)] == ["1"]
        assert [e.key for e in log.query(key="1")] == ["'1'"]

    def test_query_by_outcome(self) -> None:
        log = EventLog()
        log.append(_fetch(outcome="hit"))
        log.append(_fetch(outcome="failed"))
        log.append(CacheCleared(entries_cleared=0, channels_notified=0, timestamp_ns=now_ns()))

        results = log.query(outcomes={"failed", "filtered"})
        assert [e.outcome for e in results] == ["failed"]

    def test_limit_applies_after_filters(self) -> None:
        log = EventLog()
        log.append(_fetch(outcome="failed"))
        for _ in range(5):
            log.append(_fetch(outcome="hit"))
        assert len(log.query(outcomes={"failed"}, limit=1)) == 1

    def test_query_newest_first_and_limit(self) -> None:
        log = EventLog()
        for i in range(5):
            log.append(_fetch(key=repr(i)))
        results = log.query(limit=2)
        assert [e.key for e in results] == ["4", "3"]

    def test_query_since(self) -> None:
        log = EventLog()
        log.append(FetchEvent(key="old", outcome="hit", duration_ms=0.0, timestamp_ns=10))
        log.append(FetchEvent(key="new", outcome="hit", duration_ms=0.0, timestamp_ns=20))
        assert [e.key for e in log.query(since_ns=15)] == ["new"]

    def test_clear(self) -> None:
        log = EventLog()
        for _ in range(3):
            log.append(_fetch())
        assert log.clear() == 3
        assert len(log) == 0

    def test_stats(self) -> None:
        log = EventLog()
        log.append(_fetch(outcome="hit"))
        log.append(_fetch(outcome="fetched"))
        log.append(UpdateEvent(key="'k'", outcome="rolled_back", duration_ms=2.0, timestamp_ns=now_ns()))

        stats = log.stats()
        assert stats["total"] == 3
        assert stats["by_type"]["FetchEvent"] == 2
        assert stats["by_outcome"]["FetchEvent.hit"] == 1
        assert stats["by_outcome"]["UpdateEvent.rolled_back"] == 1

    def test_thread_safety(self) -> None:
        """Concurrent appends should not lose events."""
        log = EventLog(max_events=50_000)
        errors: list[Exception] = []

        def worker(start: int) -> None:
            try:
                for i in range(1000):
                    log.append(_fetch(key=f"{start}_{i}"))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(log) == 10_000


# ---------------------------------------------------------------------------
# CacheCollector
# ---------------------------------------------------------------------------


class TestCacheCollector:
    """Tests for the collector's record_* methods."""

    def test_record_fetch_uses_key_repr(self) -> None:
        collector = CacheCollector()
        collector.record_fetch(("user", 1), "fetched", duration_ms=3.5)

        events = collector.log.query(event_type=FetchEvent)
        assert len(events) == 1
        assert events[0].key == "('user', 1)"
        assert events[0].duration_ms == 3.5

    def test_record_update(self) -> None:
        collector = CacheCollector()
        collector.record_update("k", "local")
        assert collector.log.query(event_type=UpdateEvent)[0].outcome == "local"

    def test_record_clear_and_dispose(self) -> None:
        collector = CacheCollector()
        collector.record_clear(entries_cleared=4, channels_notified=6)
        collector.record_dispose(operations_cancelled=2, channels_closed=6)

        cleared = collector.log.query(event_type=CacheCleared)[0]
        disposed = collector.log.query(event_type=ManagerDisposed)[0]
        assert cleared.entries_cleared == 4
        assert disposed.operations_cancelled == 2

    def test_shared_log(self) -> None:
        log = EventLog()
        collector = CacheCollector(log)
        collector.record_fetch("k", "hit")
        assert collector.log is log
        assert len(log) == 1

    def test_verbose_prints_failures(self, capsys: pytest.CaptureFixture[str]) -> None:
        collector = CacheCollector(verbose=True)
        collector.record_fetch("k", "fetched")
        collector.record_update("k", "rolled_back", duration_ms=12.0, error=TimeoutError("slow"))

        err = capsys.readouterr().err
        assert "fetched" not in err
        assert "update 'k' rolled_back: TimeoutError: slow" in err

    def test_quiet_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        collector = CacheCollector()
        collector.record_fetch("k", "failed", error=RuntimeError("x"))
        assert capsys.readouterr().err == ""


class TestManagerEvents:
    """The manager reports each settled operation."""

    @pytest.mark.asyncio
    async def test_fetch_outcomes(self) -> None:
        collector = CacheCollector()
        manager: ReactiveDataManager[str, str] = ReactiveDataManager(
            fetch_prefixed,
            fetch_filter=lambda key, value: MISS if key == "hidden" else None,
            collector=collector,
        )
        await manager.get_data("k")
        await manager.get_data("k")
        with pytest.raises(Exception):
            await manager.get_data("hidden")

        outcomes = [e.outcome for e in reversed(collector.log.query(event_type=FetchEvent))]
        assert outcomes == ["fetched", "hit", "filtered"]

    @pytest.mark.asyncio
    async def test_superseded_fetch_recorded(self, controlled: ControlledCall) -> None:
        collector = CacheCollector()
        manager: ReactiveDataManager[str, str] = ReactiveDataManager(controlled, collector=collector)
        first = manager.get_data("k")
        second = manager.get_data("k")
        await drain()
        controlled.resolve(0, "v")
        await second
        with pytest.raises(Exception):
            await first

        outcomes = sorted(e.outcome for e in collector.log.query(event_type=FetchEvent))
        assert outcomes == ["cancelled", "fetched"]

    @pytest.mark.asyncio
    async def test_update_outcomes(self) -> None:
        async def updater(key: str, value: str) -> str:
            if value == "bad":
                raise ValueError(value)
            return value

        collector = CacheCollector()
        manager: ReactiveDataManager[str, str] = ReactiveDataManager(
            fetch_prefixed, updater=updater, collector=collector
        )
        await manager.update_data("k", "good")
        with pytest.raises(OptimisticUpdateError):
            await manager.update_data("k", "bad")

        outcomes = [e.outcome for e in reversed(collector.log.query(event_type=UpdateEvent))]
        assert outcomes == ["confirmed", "rolled_back"]

    @pytest.mark.asyncio
    async def test_clear_and_dispose_recorded(self) -> None:
        collector = CacheCollector()
        manager: ReactiveDataManager[str, str] = ReactiveDataManager(fetch_prefixed, collector=collector)
        await manager.get_data("a")
        manager.get_stream("b")
        manager.clear_cache()
        manager.dispose()

        cleared = collector.log.query(event_type=CacheCleared)[0]
        disposed = collector.log.query(event_type=ManagerDisposed)[0]
        assert (cleared.entries_cleared, cleared.channels_notified) == (1, 2)
        assert (disposed.operations_cancelled, disposed.channels_closed) == (0, 2)


# ---------------------------------------------------------------------------
# Latency stats
# ---------------------------------------------------------------------------


class TestLatencyStats:
    """Percentiles over fetch/update durations."""

    def test_empty_log(self) -> None:
        assert compute_latency_stats(EventLog()) == {"count": 0}

    def test_hits_excluded(self) -> None:
        log = EventLog()
        log.append(_fetch(outcome="hit", duration_ms=0.0))
        log.append(_fetch(outcome="fetched", duration_ms=10.0))
        log.append(_fetch(outcome="failed", duration_ms=30.0))

        stats = compute_latency_stats(log)
        assert stats["count"] == 2
        assert stats["duration_ms"]["min"] == 10.0
        assert stats["duration_ms"]["max"] == 30.0
        assert stats["by_outcome"] == {"fetched": 1, "failed": 1}

    def test_update_events(self) -> None:
        log = EventLog()
        log.append(_fetch(duration_ms=5.0))
        log.append(UpdateEvent(key="'k'", outcome="local", duration_ms=0.0, timestamp_ns=now_ns()))
        log.append(UpdateEvent(key="'k'", outcome="confirmed", duration_ms=7.0, timestamp_ns=now_ns()))

        stats = compute_latency_stats(log, event_type=UpdateEvent)
        assert stats["count"] == 1
        assert stats["duration_ms"]["p50"] == 7.0

    def test_limit_counts_timed_events_only(self) -> None:
        log = EventLog()
        for duration in (10.0, 20.0, 30.0):
            log.append(_fetch(outcome="fetched", duration_ms=duration))
            for _ in range(10):
                log.append(_fetch(outcome="hit", duration_ms=0.0))

        stats = compute_latency_stats(log, limit=2)
        assert stats["count"] == 2
        assert stats["duration_ms"]["min"] == 20.0
        assert stats["duration_ms"]["max"] == 30.0
