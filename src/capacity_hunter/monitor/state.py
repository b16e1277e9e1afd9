"""Mutable per-invocation monitor state."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from capacity_hunter.models.enums import MonitorPhase, ProbeTier


@dataclass
class MonitorState:
    """
    Bookkeeping for one CapacityMonitor invocation.

    Mutated in place every cycle; never persisted.

    Attributes:
        tier: Probe tier, fixed for the monitor's lifetime
        attempt_count: Checks performed so far
        last_check_at: Completion time of the latest check
        consecutive_misses: Negative checks since the last positive one
        phase: Current MonitorPhase
    """

    tier: ProbeTier
    attempt_count: int = 0
    last_check_at: Optional[datetime] = None
    consecutive_misses: int = 0
    phase: MonitorPhase = field(default=MonitorPhase.IDLE)
