from enum import Enum


class AlertRule(str, Enum):
    HIGH_COMMISSION_PCT = "HIGH_COMMISSION_PCT"
    FREQUENT_SMALL_TRADES = "FREQUENT_SMALL_TRADES"
    EXCESSIVE_CUSTODY = "EXCESSIVE_CUSTODY"
    FEES_ERASED_GAIN = "FEES_ERASED_GAIN"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RelativePerformance(str, Enum):
    """Own cost percentage against an industry benchmark."""

    BETTER = "better"
    AVERAGE = "average"
    WORSE = "worse"


class CustodyStrategy(str, Enum):
    MAINTAIN_EXEMPT = "MAINTAIN_EXEMPT"
    REDUCE_TO_EXEMPT = "REDUCE_TO_EXEMPT"
    ACCEPT_CUSTODY = "ACCEPT_CUSTODY"
