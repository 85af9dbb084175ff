from .policy import Policy, PolicyStatus, PaperMode, AutoFailureMode
from .policy_version import PolicyVersion
from .week_lock import PolicyWeekLock
from .telemetry import TerminalTelemetry
from .daily_result import DailyResult
from .weekly_result import WeeklyResult

__all__ = [
    "Policy",
    "PolicyStatus",
    "PaperMode",
    "AutoFailureMode",
    "PolicyVersion",
    "PolicyWeekLock",
    "TerminalTelemetry",
    "DailyResult",
    "WeeklyResult",
]
