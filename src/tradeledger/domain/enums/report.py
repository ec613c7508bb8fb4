from enum import Enum


class TradeOutcome(str, Enum):
    """Realized outcome of a trade; buys and unmatched sells stay OPEN."""

    PROFITABLE = "profitable"
    UNPROFITABLE = "unprofitable"
    BREAK_EVEN = "break_even"
    OPEN = "open"


class CommissionWarning(str, Enum):
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"


class CostTrend(str, Enum):
    """Year-over-year change of cost as a percentage of volume."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
