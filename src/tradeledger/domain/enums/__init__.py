from tradeledger.domain.enums.alert import AlertRule, AlertSeverity, CustodyStrategy, RelativePerformance
from tradeledger.domain.enums.period import PeriodBucket
from tradeledger.domain.enums.report import CommissionWarning, CostTrend, TradeOutcome
from tradeledger.domain.enums.trade import LotMethod, TradeSide

__all__ = [
    "AlertRule",
    "AlertSeverity",
    "CommissionWarning",
    "CostTrend",
    "CustodyStrategy",
    "LotMethod",
    "PeriodBucket",
    "RelativePerformance",
    "TradeOutcome",
    "TradeSide",
]
