"""
Classification of provider diagnostics.

OCI reports capacity and quota problems only as free-form text inside the
Terraform error output. This module is the single place where those text
patterns live; everything else asks `classify_failure()` or
`mentions_capacity_exhaustion()`.

Patterns are matched case-insensitively as plain substrings. Table order
is significant: the first matching row wins, and quota markers come first
because a LimitExceeded error body may also carry a 5xx-looking fragment.
"""

from capacity_hunter.models.enums import AttemptOutcome

CLASSIFICATION_TABLE: tuple[tuple[str, AttemptOutcome], ...] = (
    # Service limit / quota
    ("limitexceeded", AttemptOutcome.QUOTA_EXCEEDED),
    ("quotaexceeded", AttemptOutcome.QUOTA_EXCEEDED),
    ("service limit", AttemptOutcome.QUOTA_EXCEEDED),
    # Host capacity
    ("out of host capacity", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("out of capacity", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("outofhostcapacity", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("insufficient capacity", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("capacity not available", AttemptOutcome.CAPACITY_EXHAUSTED),
    # 500-class internal error: how OCI reports missing A1 capacity
    ("internalerror", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("500-internal", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("status: 500", AttemptOutcome.CAPACITY_EXHAUSTED),
    ("error: 500", AttemptOutcome.CAPACITY_EXHAUSTED),
)

# Phrases that downgrade a successful plan and mark a failed probe apply
CAPACITY_PHRASES: tuple[str, ...] = tuple(
    pattern
    for pattern, outcome in CLASSIFICATION_TABLE
    if outcome is AttemptOutcome.CAPACITY_EXHAUSTED and "capacity" in pattern
)


def classify_failure(diagnostic: str) -> AttemptOutcome:
    """
    Classify the output of a failed provisioning step.

    Never returns SUCCESS: success is decided by the exit code alone.

    Args:
        diagnostic: Raw provisioner output

    Returns:
        First matching outcome from CLASSIFICATION_TABLE, or UNEXPECTED_ERROR
    """
    text = diagnostic.lower()
    for pattern, outcome in CLASSIFICATION_TABLE:
        if pattern in text:
            return outcome
    return AttemptOutcome.UNEXPECTED_ERROR


def mentions_capacity_exhaustion(text: str) -> bool:
    """True if `text` contains any capacity-exhaustion phrase."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in CAPACITY_PHRASES)
