"""Pipeline health report.

Checks:
- database_connectivity: the content store answers queries
- content_pipeline: status distribution, queue depths, failure rate
- stuck_content: in-progress blocks older than the stuck timeout

Overall status is the worst individual status.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from .config import PipelineConfig
from .content_store import ContentStore
from .errors import PipelineError
from .models import to_timestamp, utc_now
from .status import ContentBlockStatus

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
WARNING = "warning"
CRITICAL = "critical"

_SEVERITY = {HEALTHY: 0, WARNING: 1, CRITICAL: 2}

QUEUE_WARNING_DEPTH = 20
QUEUE_CRITICAL_DEPTH = 50
FAILURE_RATE_WARNING = 10.0
FAILURE_RATE_CRITICAL = 20.0

FAILURE_STATUSES = (
    ContentBlockStatus.CONTENT_FAILED,
    ContentBlockStatus.SCRIPT_FAILED,
    ContentBlockStatus.AUDIO_FAILED,
    ContentBlockStatus.FAILED,
)


@dataclass
class HealthCheck:
    component: str
    status: str
    message: str
    metrics: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    checks: list[HealthCheck]
    timestamp: datetime

    @property
    def overall_status(self) -> str:
        if not self.checks:
            return HEALTHY
        return max((c.status for c in self.checks), key=_SEVERITY.__getitem__)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_status": self.overall_status,
            "timestamp": to_timestamp(self.timestamp),
            "checks": [
                {
                    "component": c.component,
                    "status": c.status,
                    "message": c.message,
                    "metrics": c.metrics,
                }
                for c in self.checks
            ],
            "summary": {
                "total_checks": len(self.checks),
                "healthy_count": sum(c.status == HEALTHY for c in self.checks),
                "warning_count": sum(c.status == WARNING for c in self.checks),
                "critical_count": sum(c.status == CRITICAL for c in self.checks),
            },
        }


def check_database(store: ContentStore) -> tuple[HealthCheck, dict[str, int]]:
    """Returns the check and the status distribution it read (empty on failure)."""
    try:
        distribution = store.count_by_status()
    except PipelineError as e:
        logger.error(f"Database connectivity check failed: {e}")
        return HealthCheck("database_connectivity", CRITICAL, f"Database query failed: {e}"), {}
    return HealthCheck("database_connectivity", HEALTHY, "Database connection successful"), distribution


def check_content_pipeline(distribution: dict[str, int]) -> HealthCheck:
    content_ready = distribution.get(ContentBlockStatus.CONTENT_READY.value, 0)
    script_generated = distribution.get(ContentBlockStatus.SCRIPT_GENERATED.value, 0)
    total = sum(distribution.values())
    failures = sum(distribution.get(s.value, 0) for s in FAILURE_STATUSES)
    failure_rate = (failures / total) * 100 if total else 0.0

    status, message = HEALTHY, "Content pipeline operating normally"
    deepest = max(content_ready, script_generated)
    if deepest > QUEUE_CRITICAL_DEPTH:
        status = CRITICAL
        message = f"Critical queue depth: {content_ready} content_ready, {script_generated} script_generated"
    elif deepest > QUEUE_WARNING_DEPTH:
        status = WARNING
        message = f"Queue depth warning: {content_ready} content_ready, {script_generated} script_generated"

    if failure_rate > FAILURE_RATE_CRITICAL:
        status = CRITICAL
        message = f"Critical failure rate: {failure_rate:.1f}%"
    elif failure_rate > FAILURE_RATE_WARNING and status != CRITICAL:
        status = WARNING
        message = f"High failure rate detected: {failure_rate:.1f}%"

    return HealthCheck(
        "content_pipeline",
        status,
        message,
        metrics={
            "status_distribution": dict(distribution),
            "queue_depths": {
                "content_ready": content_ready,
                "script_generated": script_generated,
            },
            "total_content_blocks": total,
            "failure_rate_percent": round(failure_rate, 2),
        },
    )


def check_stuck_content(store: ContentStore, cutoff: datetime, critical_count: int) -> HealthCheck:
    try:
        stuck = store.count_stuck(cutoff)
    except PipelineError as e:
        return HealthCheck("stuck_content", CRITICAL, f"Failed to count stuck content: {e}")

    if stuck >= critical_count:
        status, message = CRITICAL, f"{stuck} content blocks stuck in processing"
    elif stuck > 0:
        status, message = WARNING, f"{stuck} content blocks stuck in processing"
    else:
        status, message = HEALTHY, "No stuck content"
    return HealthCheck(
        "stuck_content",
        status,
        message,
        metrics={"stuck_count": stuck, "cutoff_time": to_timestamp(cutoff)},
    )


def pipeline_health(
    store: ContentStore,
    config: PipelineConfig,
    clock: Callable[[], datetime] = utc_now,
) -> HealthReport:
    now = clock()
    database, distribution = check_database(store)
    checks = [database]

    if database.status != CRITICAL:
        cutoff = now - timedelta(hours=config.sweeps.stuck_timeout_hours)
        checks.append(check_content_pipeline(distribution))
        # Critical at one full stuck-sweep batch
        checks.append(check_stuck_content(store, cutoff, config.sweeps.stuck_batch_size))

    return HealthReport(checks=checks, timestamp=now)
