from datetime import date
from decimal import Decimal

from tradeledger.accounting.alerts import ALERT_RULES, alerts
from tradeledger.domain.enums.alert import AlertRule, AlertSeverity
from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.models.analytics import AlertThresholds
from tradeledger.domain.models.fees import CustodyFeeRecord
from tradeledger.domain.models.lots import CompletedRoundTrip
from tradeledger.domain.models.trade import Trade

THRESHOLDS = AlertThresholds()


def _trade(trade_id: int, side: str, gross: str, commission: str = "0", tax: str = "0") -> Trade:
    return Trade(
        id=trade_id,
        instrument_id=1,
        symbol="GGAL",
        side=TradeSide(side),
        quantity=Decimal(1),
        unit_price=Decimal(gross),
        trade_date=date(2024, 5, 2),
        commission=Decimal(commission),
        tax=Decimal(tax),
    )


def _round_trip(realized: str, fees: str) -> CompletedRoundTrip:
    return CompletedRoundTrip(
        instrument_id=1,
        symbol="GGAL",
        buy_trade_id=1,
        sell_trade_id=2,
        buy_date=date(2024, 5, 1),
        sell_date=date(2024, 5, 20),
        matched_quantity=Decimal(10),
        cost_basis=Decimal(1000),
        proceeds=Decimal(1000) + Decimal(realized),
        fees=Decimal(fees),
        realized_gain_loss=Decimal(realized),
        holding_days=19,
    )


def _custody(portfolio_value: str) -> CustodyFeeRecord:
    return CustodyFeeRecord(
        broker_id="galicia",
        month=date(2024, 5, 1),
        portfolio_value=Decimal(portfolio_value),
        fee_amount=Decimal(500),
        tax_amount=Decimal(105),
    )


def _by_rule(found, rule):
    return [a for a in found if a.rule == rule]


class TestHighCommissionPct:
    def test_high_severity_above_upper_threshold(self, schedule):
        found = alerts([_trade(1, "BUY", "1000", "150", "31.50")], [], [], THRESHOLDS, schedule)
        raised = _by_rule(found, AlertRule.HIGH_COMMISSION_PCT)

        assert len(raised) == 1
        assert raised[0].severity == AlertSeverity.HIGH
        assert raised[0].trade_id == 1
        assert raised[0].symbol == "GGAL"
        assert raised[0].potential_savings == Decimal("157.87")

    def test_medium_severity_between_thresholds(self, schedule):
        found = alerts([_trade(1, "BUY", "6000", "150")], [], [], THRESHOLDS, schedule)
        raised = _by_rule(found, AlertRule.HIGH_COMMISSION_PCT)

        assert raised[0].severity == AlertSeverity.MEDIUM
        assert raised[0].potential_savings == Decimal("27.00")

    def test_no_alert_for_cheap_trade(self, schedule):
        found = alerts([_trade(1, "BUY", "100000", "500", "105")], [], [], THRESHOLDS, schedule)
        assert _by_rule(found, AlertRule.HIGH_COMMISSION_PCT) == []


class TestFrequentSmallTrades:
    def test_savings_from_consolidating(self, schedule):
        trades = [
            _trade(1, "BUY", "10000", "150", "31.50"),
            _trade(2, "BUY", "10000", "150", "31.50"),
            _trade(3, "BUY", "10000", "150", "31.50"),
            _trade(4, "BUY", "100000", "500", "105"),
        ]
        raised = _by_rule(alerts(trades, [], [], THRESHOLDS, schedule), AlertRule.FREQUENT_SMALL_TRADES)

        assert len(raised) == 1
        assert raised[0].affected_trades == 3
        assert raised[0].severity == AlertSeverity.MEDIUM
        assert raised[0].potential_savings == Decimal("363.00")

    def test_share_at_threshold_is_not_flagged(self, schedule):
        trades = [_trade(i, "BUY", "10000", "150", "31.50") for i in range(1, 4)] + [
            _trade(i, "BUY", "100000", "500", "105") for i in range(4, 11)
        ]
        raised = _by_rule(alerts(trades, [], [], THRESHOLDS, schedule), AlertRule.FREQUENT_SMALL_TRADES)
        assert raised == []


class TestExcessiveCustody:
    def test_minimum_floor_binding(self, schedule):
        raised = _by_rule(alerts([], [], [_custody("1100000")], THRESHOLDS, schedule), AlertRule.EXCESSIVE_CUSTODY)

        assert len(raised) == 1
        assert raised[0].potential_savings == Decimal("7260.00")

    def test_proportional_custody_is_not_flagged(self, schedule):
        assert alerts([], [], [_custody("2000000")], THRESHOLDS, schedule) == []


class TestFeesErasedGain:
    def test_gain_eaten_by_fees(self, schedule):
        raised = _by_rule(alerts([], [_round_trip("-2", "12")], [], THRESHOLDS, schedule), AlertRule.FEES_ERASED_GAIN)

        assert len(raised) == 1
        assert raised[0].severity == AlertSeverity.LOW
        assert raised[0].trade_id == 2
        assert raised[0].potential_savings == Decimal("2")

    def test_plain_loss_is_not_flagged(self, schedule):
        assert alerts([], [_round_trip("-20", "12")], [], THRESHOLDS, schedule) == []

    def test_profitable_round_trip_is_not_flagged(self, schedule):
        assert alerts([], [_round_trip("50", "12")], [], THRESHOLDS, schedule) == []


class TestAlertTable:
    def test_every_rule_has_one_entry(self):
        assert [spec.rule for spec in ALERT_RULES] == list(AlertRule)

    def test_empty_inputs(self, schedule):
        assert alerts([], [], [], THRESHOLDS, schedule) == []

    def test_rules_can_be_restricted(self, schedule):
        trades = [_trade(1, "BUY", "1000", "150", "31.50")]
        only_custody = tuple(s for s in ALERT_RULES if s.rule == AlertRule.EXCESSIVE_CUSTODY)

        assert alerts(trades, [], [], THRESHOLDS, schedule, rules=only_custody) == []
