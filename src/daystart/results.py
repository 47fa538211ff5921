"""Run summaries shared by the sweeps and synthesis stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .audit import AuditWriteResult


class RunOutcome(str, Enum):
    """Three outcomes that are never conflated."""

    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def http_status(self) -> int:
        return {
            RunOutcome.SUCCEEDED: 200,
            RunOutcome.PARTIAL: 207,
            RunOutcome.FAILED: 500,
        }[self]

    @property
    def exit_code(self) -> int:
        return {
            RunOutcome.SUCCEEDED: 0,
            RunOutcome.PARTIAL: 2,
            RunOutcome.FAILED: 1,
        }[self]


@dataclass
class SweepResult:
    """Summary of one sweep or synthesis batch.

    ``errors`` decide the outcome. ``audit_failures`` are reported alongside
    and never change it.
    """

    name: str
    counts: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    audit_failures: list[str] = field(default_factory=list)
    status_breakdown: dict[str, int] = field(default_factory=dict)
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def outcome(self) -> RunOutcome:
        if self.aborted:
            return RunOutcome.FAILED
        if self.errors:
            return RunOutcome.PARTIAL
        return RunOutcome.SUCCEEDED

    @property
    def success(self) -> bool:
        return self.outcome is RunOutcome.SUCCEEDED

    def bump(self, counter: str, by: int = 1) -> None:
        self.counts[counter] = self.counts.get(counter, 0) + by

    def track_audit(self, result: AuditWriteResult) -> None:
        if not result.ok:
            self.audit_failures.append(result.describe())

    def abort(self, reason: str) -> None:
        self.aborted = True
        self.abort_reason = reason
        self.errors.append(reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "outcome": self.outcome.value,
            "function": self.name,
            "counts": dict(self.counts),
            "status_breakdown": dict(self.status_breakdown),
            "errors": list(self.errors),
            "audit_failures": list(self.audit_failures),
        }
