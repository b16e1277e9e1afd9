"""
Unit tests for the provider output classification table.
"""

import pytest

from capacity_hunter.models.enums import AttemptOutcome
from capacity_hunter.provisioning.classifier import (
    CAPACITY_PHRASES,
    CLASSIFICATION_TABLE,
    classify_failure,
    mentions_capacity_exhaustion,
)


@pytest.mark.parametrize(
    "output,expected",
    [
        ("Error: 500-InternalError, Out of host capacity.", AttemptOutcome.CAPACITY_EXHAUSTED),
        ("OUT OF HOST CAPACITY", AttemptOutcome.CAPACITY_EXHAUSTED),
        ("Error: Insufficient capacity for shape VM.Standard.A1.Flex", AttemptOutcome.CAPACITY_EXHAUSTED),
        ("Service error:InternalError. Status: 500", AttemptOutcome.CAPACITY_EXHAUSTED),
        ("Error: 400-LimitExceeded, standard-a1-core-count", AttemptOutcome.QUOTA_EXCEEDED),
        ("QuotaExceeded: compartment quota reached", AttemptOutcome.QUOTA_EXCEEDED),
        ("You have reached your service limit for this shape", AttemptOutcome.QUOTA_EXCEEDED),
        ("Error: 401-NotAuthenticated", AttemptOutcome.UNEXPECTED_ERROR),
        ("", AttemptOutcome.UNEXPECTED_ERROR),
    ],
)
def test_classify_failure(output, expected):
    assert classify_failure(output) is expected


def test_quota_rows_win_over_internal_error():
    """A LimitExceeded body that also carries a 500 fragment is still quota."""
    output = "Error: 500-InternalError ... LimitExceeded: standard-a1-core-count"

    assert classify_failure(output) is AttemptOutcome.QUOTA_EXCEEDED


def test_table_never_yields_success():
    assert all(outcome is not AttemptOutcome.SUCCESS for _, outcome in CLASSIFICATION_TABLE)


def test_capacity_phrases_derived_from_table():
    assert "out of host capacity" in CAPACITY_PHRASES
    assert "internalerror" not in CAPACITY_PHRASES


def test_mentions_capacity_exhaustion():
    assert mentions_capacity_exhaustion("Warning: Out Of Host Capacity in AD-1")
    assert not mentions_capacity_exhaustion("Plan: 1 to add, 0 to change, 0 to destroy.")
