"""
Capacity monitoring loop.

Main Components:
    - CapacityMonitor: Fixed-cadence probe loop with operator hand-off
    - MonitorState: Per-invocation counters and phase
    - ConsolePrompt / StaticPrompt: Deploy confirmation
"""

from capacity_hunter.monitor.capacity_monitor import MANUAL_DEPLOY_HINT, CapacityMonitor
from capacity_hunter.monitor.prompt import ConsolePrompt, OperatorPrompt, StaticPrompt
from capacity_hunter.monitor.state import MonitorState

__all__ = [
    "MANUAL_DEPLOY_HINT",
    "CapacityMonitor",
    "ConsolePrompt",
    "MonitorState",
    "OperatorPrompt",
    "StaticPrompt",
]
