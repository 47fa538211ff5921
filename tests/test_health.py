"""Tests for the pipeline health report."""

from datetime import timedelta
from unittest.mock import Mock

from daystart.errors import StoreUnavailableError
from daystart.health import (
    CRITICAL,
    HEALTHY,
    WARNING,
    HealthCheck,
    HealthReport,
    check_content_pipeline,
    check_stuck_content,
    pipeline_health,
)

from conftest import NOW, make_block


class TestCheckContentPipeline:
    """Queue depth and failure rate thresholds."""

    def test_healthy(self):
        check = check_content_pipeline({"content_ready": 3, "ready": 40})
        assert check.status == HEALTHY
        assert check.metrics["total_content_blocks"] == 43

    def test_queue_warning(self):
        assert check_content_pipeline({"content_ready": 21, "ready": 500}).status == WARNING

    def test_queue_critical(self):
        assert check_content_pipeline({"script_generated": 51, "ready": 500}).status == CRITICAL

    def test_failure_rate_warning(self):
        check = check_content_pipeline({"ready": 85, "audio_failed": 15})
        assert check.status == WARNING
        assert check.metrics["failure_rate_percent"] == 15.0

    def test_failure_rate_critical(self):
        check = check_content_pipeline({"ready": 70, "script_failed": 20, "failed": 10})
        assert check.status == CRITICAL
        assert "30.0%" in check.message

    def test_empty_store(self):
        check = check_content_pipeline({})
        assert check.status == HEALTHY
        assert check.metrics["failure_rate_percent"] == 0.0


class TestCheckStuckContent:
    """Stuck-count thresholds."""

    def test_levels(self):
        store = Mock()
        cutoff = NOW - timedelta(hours=1)

        store.count_stuck.return_value = 0
        assert check_stuck_content(store, cutoff, critical_count=50).status == HEALTHY
        store.count_stuck.return_value = 3
        assert check_stuck_content(store, cutoff, critical_count=50).status == WARNING
        store.count_stuck.return_value = 50
        assert check_stuck_content(store, cutoff, critical_count=50).status == CRITICAL


class TestHealthReport:
    """Overall status and serialization."""

    def test_overall_is_worst(self):
        report = HealthReport(
            checks=[
                HealthCheck("a", HEALTHY, "ok"),
                HealthCheck("b", WARNING, "meh"),
            ],
            timestamp=NOW,
        )
        assert report.overall_status == WARNING
        assert report.to_dict()["summary"] == {
            "total_checks": 2,
            "healthy_count": 1,
            "warning_count": 1,
            "critical_count": 0,
        }

    def test_pipeline_health_with_stuck_block(self, store, config, clock):
        old = NOW - timedelta(hours=3)
        store.insert_block(make_block(status="audio_generating", created_at=old, updated_at=old))

        report = pipeline_health(store, config, clock)

        statuses = {c.component: c.status for c in report.checks}
        assert statuses == {
            "database_connectivity": HEALTHY,
            "content_pipeline": HEALTHY,
            "stuck_content": WARNING,
        }
        assert report.overall_status == WARNING

    def test_database_down_is_critical(self, config, clock):
        store = Mock()
        store.count_by_status.side_effect = StoreUnavailableError("unable to open database file")

        report = pipeline_health(store, config, clock)

        assert report.overall_status == CRITICAL
        assert [c.component for c in report.checks] == ["database_connectivity"]
