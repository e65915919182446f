"""
Tests for finguard.ai.operation_log.OperationLog.
"""

from datetime import timedelta

import pytest

from finguard.ai.operation_log import OperationLog
from finguard.ai.types import AnalysisContext


class TestRingBuffer:
    def test_oldest_entries_dropped_past_bound(self):
        log = OperationLog(max_entries=5)
        for i in range(8):
            log.info(f"op {i}")

        entries = log.get_recent_logs(100)
        assert len(log) == 5
        assert [e.operation for e in entries] == [f"op {i}" for i in range(3, 8)]

    def test_recent_logs_returns_tail(self):
        log = OperationLog()
        for i in range(10):
            log.debug(f"op {i}")

        assert [e.operation for e in log.get_recent_logs(2)] == ["op 8", "op 9"]
        assert log.get_recent_logs(0) == []

    def test_clear(self):
        log = OperationLog()
        log.info("something")
        log.clear()

        assert len(log) == 0


class TestLevels:
    def test_logs_by_level(self):
        log = OperationLog()
        log.info("a")
        log.warn("b")
        log.error("c", ValueError("bad"))

        assert [e.operation for e in log.get_logs_by_level("warn")] == ["b"]
        assert log.get_error_logs()[0].error == "bad"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            OperationLog().get_logs_by_level("fatal")

    def test_error_logs_since(self):
        log = OperationLog()
        log.error("recent", RuntimeError("x"))

        assert len(log.get_error_logs(since=timedelta(minutes=5))) == 1
        assert log.get_error_logs(since=timedelta(seconds=-60)) == []

    def test_entry_to_dict(self):
        log = OperationLog()
        context = AnalysisContext(user_id="user-1")
        log.info("op", context, metadata={"k": 1})

        data = log.get_recent_logs(1)[0].to_dict()
        assert data["context"]["userId"] == "user-1"
        assert data["metadata"] == {"k": 1}
        assert data["level"] == "info"


class TestTiming:
    def test_start_operation_records_duration(self):
        log = OperationLog()
        end = log.start_operation("Fraud Risk Analysis")
        end()

        started, completed = log.get_recent_logs(2)
        assert started.operation == "Fraud Risk Analysis - Started"
        assert completed.operation == "Fraud Risk Analysis - Completed"
        assert completed.duration_ms is not None
        assert completed.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_log_operation_returns_result(self):
        log = OperationLog()

        async def work():
            return 42

        assert await log.log_operation("Work", work) == 42
        assert log.get_recent_logs(1)[0].operation == "Work - Completed"

    @pytest.mark.asyncio
    async def test_log_operation_records_failure_and_reraises(self):
        log = OperationLog()

        async def work():
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            await log.log_operation("Work", work)

        failure = log.get_error_logs()[0]
        assert failure.operation == "Work - Failed"
        assert failure.duration_ms is not None


class TestMetrics:
    def test_empty_metrics(self):
        metrics = OperationLog().get_performance_metrics()

        assert metrics.total_operations == 0
        assert metrics.average_response_time == 0
        assert metrics.error_rate == 0.0

    def test_metrics_over_timed_operations(self):
        log = OperationLog()
        log._append("info", "Fraud Risk Analysis - Completed", None, duration_ms=100)
        log._append("info", "Fraud Risk Analysis - Completed", None, duration_ms=300)
        log._append("error", "Credit Scoring Enhancement - Failed", None, duration_ms=200, error="x")
        log.info("Fraud Risk Analysis - Started")

        metrics = log.get_performance_metrics()

        assert metrics.total_operations == 3
        assert metrics.average_response_time == 200
        assert metrics.error_rate == pytest.approx(33.33)
        assert metrics.operation_counts == {"Fraud Risk Analysis": 3, "Credit Scoring Enhancement": 1}
        assert metrics.to_dict()["operationCounts"]["Fraud Risk Analysis"] == 3
