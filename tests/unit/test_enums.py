from tradeledger.domain.enums import (
    AlertRule,
    AlertSeverity,
    CommissionWarning,
    CostTrend,
    CustodyStrategy,
    LotMethod,
    PeriodBucket,
    RelativePerformance,
    TradeOutcome,
    TradeSide,
)


class TestEnumsAreStringMixin:
    """All enums use (str, Enum) so they serialize to strings in JSON."""

    def test_trade_side_is_str(self):
        assert isinstance(TradeSide.BUY, str)
        assert TradeSide.SELL == "SELL"

    def test_period_bucket_is_str(self):
        assert PeriodBucket.QUARTER == "quarter"

    def test_alert_enums_are_str(self):
        assert isinstance(AlertRule.FEES_ERASED_GAIN, str)
        assert AlertSeverity.HIGH == "high"
        assert RelativePerformance.WORSE == "worse"
        assert CustodyStrategy.REDUCE_TO_EXEMPT == "REDUCE_TO_EXEMPT"

    def test_report_enums_are_str(self):
        assert TradeOutcome.BREAK_EVEN == "break_even"
        assert CommissionWarning.HIGH == "high"
        assert CostTrend.IMPROVING == "improving"


class TestEnumMembers:
    def test_trade_sides(self):
        assert set(TradeSide) == {TradeSide.BUY, TradeSide.SELL}

    def test_only_fifo_lot_method(self):
        assert list(LotMethod) == [LotMethod.FIFO]

    def test_period_buckets(self):
        assert [b.value for b in PeriodBucket] == ["month", "quarter", "year"]
