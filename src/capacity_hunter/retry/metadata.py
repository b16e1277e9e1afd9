"""
Orchestration result tracking.

This module defines the OrchestrationResult dataclass that captures the
winning attempt plus the run totals for the final report and metrics.
"""

from dataclasses import dataclass

from capacity_hunter.models.domain import AttemptRecord


@dataclass(frozen=True)
class OrchestrationResult:
    """
    Outcome of a RetryOrchestrator run that ended in success.

    Attributes:
        record: The successful AttemptRecord (possibly a dry run)
        rounds: Rounds started, including the winning one
        total_attempts: Provisioning attempts made across all rounds
        elapsed_seconds: Wall time from the first attempt to success
    """

    record: AttemptRecord
    rounds: int
    total_attempts: int
    elapsed_seconds: float

    def __post_init__(self) -> None:
        """Validate result invariants."""
        if not self.record.succeeded:
            raise ValueError("record must be a successful attempt")

        if self.rounds < 1:
            raise ValueError("rounds must be >= 1")

        if self.total_attempts < self.rounds:
            raise ValueError("total_attempts must be >= rounds")

        if self.elapsed_seconds < 0:
            raise ValueError("elapsed_seconds must be >= 0")
