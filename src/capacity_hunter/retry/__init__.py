"""
Retry orchestration for capacity hunting.

Drives provisioning attempts across availability domains until one
succeeds:

1. **Prerequisites**: OCI authenticated, Terraform installed
2. **Rounds**: one ProvisionAttempt per eligible target, in order
3. **Backoff**: uniform jitter between rounds (never exponential)
4. **Stop**: first success, quota exhausted everywhere, or cancellation

Main Components:
    - RetryOrchestrator: Main loop
    - BackoffPolicy: Delay drawn between rounds
    - OrchestrationResult: Winning attempt plus run totals

Usage:
    >>> from capacity_hunter.retry import RetryOrchestrator
    >>> orchestrator = RetryOrchestrator(settings, cloud_api, provisioner, attempt, backoff, targets, token)
    >>> result = await orchestrator.run()
"""

from capacity_hunter.retry.backoff import BackoffPolicy
from capacity_hunter.retry.engine import RetryOrchestrator
from capacity_hunter.retry.metadata import OrchestrationResult

__all__ = [
    "BackoffPolicy",
    "OrchestrationResult",
    "RetryOrchestrator",
]
