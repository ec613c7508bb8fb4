"""Tests for period aggregation, profitability and benchmark metrics."""

from datetime import date
from decimal import Decimal

import pytest

from tradeledger.accounting.aggregation import (
    aggregate_by_period,
    benchmark_comparison,
    costs_by_instrument,
    custody_for_broker,
    custody_in_range,
    period_key,
    period_starts,
    profit_factor,
    profitability_metrics,
    realized_by_instrument,
)
from tradeledger.domain.enums.alert import RelativePerformance
from tradeledger.domain.enums.period import PeriodBucket
from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.models.analytics import DateRange
from tradeledger.domain.models.fees import CustodyFeeRecord
from tradeledger.domain.models.lots import CompletedRoundTrip
from tradeledger.domain.models.trade import Trade

YEAR_2024 = DateRange.for_year(2024)


def _trade(
    trade_id: int,
    side: str,
    qty: str,
    price: str,
    trade_date: date,
    commission: str = "0",
    tax: str = "0",
    instrument_id: int = 1,
    symbol: str = "GGAL",
) -> Trade:
    return Trade(
        id=trade_id,
        instrument_id=instrument_id,
        symbol=symbol,
        side=TradeSide(side),
        quantity=Decimal(qty),
        unit_price=Decimal(price),
        trade_date=trade_date,
        commission=Decimal(commission),
        tax=Decimal(tax),
    )


def _round_trip(
    realized: str,
    sell_date: date,
    cost_basis: str = "1000",
    fees: str = "10",
    holding_days: int = 30,
    instrument_id: int = 1,
    symbol: str = "GGAL",
) -> CompletedRoundTrip:
    return CompletedRoundTrip(
        instrument_id=instrument_id,
        symbol=symbol,
        buy_trade_id=1,
        sell_trade_id=2,
        buy_date=date(2023, 1, 1),
        sell_date=sell_date,
        matched_quantity=Decimal("10"),
        cost_basis=Decimal(cost_basis),
        proceeds=Decimal(cost_basis) + Decimal(realized),
        fees=Decimal(fees),
        realized_gain_loss=Decimal(realized),
        holding_days=holding_days,
    )


def _custody(month: str, fee: str, tax: str) -> CustodyFeeRecord:
    return CustodyFeeRecord(
        broker_id="galicia",
        month=month,
        portfolio_value=Decimal("1100000"),
        fee_amount=Decimal(fee),
        tax_amount=Decimal(tax),
    )


class TestPeriodKeys:
    @pytest.mark.parametrize(
        "bucket,expected",
        [(PeriodBucket.MONTH, "2024-05"), (PeriodBucket.QUARTER, "2024-Q2"), (PeriodBucket.YEAR, "2024")],
    )
    def test_key_format(self, bucket, expected):
        assert period_key(date(2024, 5, 15), bucket) == expected

    def test_fourth_quarter(self):
        assert period_key(date(2024, 12, 31), PeriodBucket.QUARTER) == "2024-Q4"

    def test_starts_cover_unaligned_range(self):
        starts = period_starts(DateRange(start=date(2023, 11, 15), end=date(2024, 2, 10)), PeriodBucket.MONTH)
        assert starts == [date(2023, 11, 1), date(2023, 12, 1), date(2024, 1, 1), date(2024, 2, 1)]


class TestAggregateByPeriod:
    def test_every_bucket_is_emitted(self):
        trades = [_trade(1, "BUY", "10", "100", date(2024, 2, 10))]
        result = aggregate_by_period(
            trades, [], [], PeriodBucket.MONTH, DateRange(start=date(2024, 1, 1), end=date(2024, 3, 31))
        )

        assert [a.period for a in result] == ["2024-01", "2024-02", "2024-03"]
        assert result[0].number_of_trades == 0
        assert result[0].trading_volume == Decimal(0)
        assert result[0].profit_factor == Decimal(0)
        assert result[1].number_of_trades == 1
        assert result[2].total_costs == Decimal(0)

    def test_month_totals(self):
        trades = [
            _trade(1, "BUY", "10", "100", date(2024, 2, 10), commission="5", tax="1.05"),
            _trade(2, "BUY", "5", "100", date(2024, 1, 3)),
        ]
        round_trips = [_round_trip("100", date(2024, 2, 20))]
        custody = [_custody("2024-02", "500", "105")]

        result = aggregate_by_period(trades, round_trips, custody, PeriodBucket.MONTH, YEAR_2024)
        feb = result[1]

        assert len(result) == 12
        assert feb.period == "2024-02"
        assert feb.period_start == date(2024, 2, 1)
        assert feb.period_end == date(2024, 2, 29)
        assert feb.trading_volume == Decimal("1000.00")
        assert feb.total_commissions == Decimal("5.00")
        assert feb.total_taxes == Decimal("1.05")
        assert feb.total_custody == Decimal("605.00")
        assert feb.total_costs == Decimal("611.05")
        assert feb.cost_as_pct_of_volume == Decimal("61.1050")
        assert feb.realized_gain == Decimal("100.00")
        assert feb.net_realized == Decimal("100.00")
        assert feb.number_of_round_trips == 1
        assert feb.win_rate == Decimal("1.0000")
        assert feb.profit_factor == Decimal("Infinity")

    def test_quarters_of_a_year(self):
        round_trips = [
            _round_trip("100", date(2024, 2, 1)),
            _round_trip("-40", date(2024, 3, 31)),
            _round_trip("50", date(2024, 11, 5)),
        ]
        result = aggregate_by_period([], round_trips, [], PeriodBucket.QUARTER, YEAR_2024)

        assert [a.period for a in result] == ["2024-Q1", "2024-Q2", "2024-Q3", "2024-Q4"]
        q1 = result[0]
        assert q1.period_end == date(2024, 3, 31)
        assert q1.realized_gain == Decimal("100.00")
        assert q1.realized_loss == Decimal("40.00")
        assert q1.net_realized == Decimal("60.00")
        assert q1.win_rate == Decimal("0.5000")
        assert q1.profit_factor == Decimal("2.5000")
        assert result[3].number_of_round_trips == 1

    def test_year_bucket(self):
        trades = [_trade(1, "BUY", "1", "100", date(2024, 6, 1))]
        result = aggregate_by_period(trades, [], [], PeriodBucket.YEAR, YEAR_2024)

        assert len(result) == 1
        assert result[0].period == "2024"
        assert result[0].trading_volume == Decimal("100.00")

    def test_entities_outside_range_are_ignored(self):
        trades = [_trade(1, "BUY", "1", "100", date(2023, 12, 31)), _trade(2, "BUY", "1", "100", date(2025, 1, 1))]
        round_trips = [_round_trip("100", date(2025, 1, 2))]
        custody = [_custody("2023-12", "500", "105")]

        result = aggregate_by_period(trades, round_trips, custody, PeriodBucket.YEAR, YEAR_2024)

        assert result[0].number_of_trades == 0
        assert result[0].number_of_round_trips == 0
        assert result[0].total_custody == Decimal(0)

    def test_idempotent(self):
        trades = [_trade(1, "BUY", "3", "33.33", date(2024, 4, 1), commission="1.01")]
        round_trips = [_round_trip("12.34", date(2024, 4, 2))]
        custody = [_custody("2024-04", "500", "105")]

        first = aggregate_by_period(trades, round_trips, custody, PeriodBucket.MONTH, YEAR_2024)
        second = aggregate_by_period(trades, round_trips, custody, PeriodBucket.MONTH, YEAR_2024)

        assert [a.model_dump_json() for a in first] == [a.model_dump_json() for a in second]


class TestCustodyInRange:
    def test_month_overlapping_range_start_is_included(self):
        records = [_custody("2024-01", "1", "0"), _custody("2024-02", "2", "0"), _custody("2024-04", "3", "0")]
        selected = custody_in_range(records, DateRange(start=date(2024, 1, 20), end=date(2024, 3, 31)))

        assert [r.month for r in selected] == [date(2024, 1, 1), date(2024, 2, 1)]


class TestCustodyForBroker:
    def test_other_brokers_dropped(self):
        other = _custody("2024-01", "10000", "2100").model_copy(update={"broker_id": "other"})
        unattributed = _custody("2024-01", "5", "0").model_copy(update={"broker_id": ""})
        records = [_custody("2024-01", "1", "0"), other, unattributed]

        assert custody_for_broker(records, "galicia") == [records[0], unattributed]

    @pytest.mark.parametrize("broker_id", ["", None])
    def test_empty_broker_keeps_all(self, broker_id):
        records = [_custody("2024-01", "1", "0"), _custody("2024-01", "2", "0").model_copy(update={"broker_id": "other"})]
        assert custody_for_broker(records, broker_id) == records


class TestProfitability:
    def test_profit_factor_conventions(self):
        assert profit_factor(Decimal("100"), Decimal(0)) == Decimal("Infinity")
        assert profit_factor(Decimal(0), Decimal(0)) == Decimal(0)
        assert profit_factor(Decimal("100"), Decimal("50")) == Decimal("2.0000")
        assert profit_factor(Decimal(0), Decimal("50")) == Decimal(0)

    def test_metrics(self):
        round_trips = [
            _round_trip("100", date(2024, 1, 5), cost_basis="1000"),
            _round_trip("50", date(2024, 1, 6), cost_basis="500"),
            _round_trip("-30", date(2024, 1, 7), cost_basis="500"),
        ]
        metrics = profitability_metrics(round_trips)

        assert metrics.closed_count == 3
        assert metrics.win_count == 2
        assert metrics.loss_count == 1
        assert metrics.win_rate == Decimal("0.6667")
        assert metrics.avg_win == Decimal("75.00")
        assert metrics.avg_loss == Decimal("30.00")
        assert metrics.total_losses == Decimal("30.00")
        assert metrics.net_realized == Decimal("120.00")
        assert metrics.profit_factor == Decimal("5.0000")
        assert metrics.cost_adjusted_roi == Decimal("6.0000")

    def test_break_even_round_trip_is_neither_win_nor_loss(self):
        metrics = profitability_metrics([_round_trip("0", date(2024, 1, 5))])

        assert metrics.closed_count == 1
        assert metrics.win_count == 0
        assert metrics.loss_count == 0
        assert metrics.profit_factor == Decimal(0)

    def test_no_round_trips(self):
        metrics = profitability_metrics([])

        assert metrics.win_rate == Decimal(0)
        assert metrics.cost_adjusted_roi == Decimal(0)


class TestBenchmark:
    def test_better_than_industry(self):
        result = benchmark_comparison(Decimal("1.0"), Decimal("1.5"))

        assert result.relative_performance == RelativePerformance.BETTER
        assert result.efficiency_score == Decimal("150.00")
        assert result.potential_savings == Decimal(0)

    def test_within_twenty_percent_is_average(self):
        assert benchmark_comparison(Decimal("1.8"), Decimal("1.5")).relative_performance == RelativePerformance.AVERAGE

    def test_worse_with_savings(self):
        result = benchmark_comparison(Decimal("2.0"), Decimal("1.5"), Decimal("1000000"))

        assert result.relative_performance == RelativePerformance.WORSE
        assert result.efficiency_score == Decimal("75.00")
        assert result.potential_savings == Decimal("5000.00")

    def test_zero_own_cost_is_clamped(self):
        assert benchmark_comparison(Decimal(0), Decimal("1.5")).efficiency_score == Decimal("15000.00")

    def test_no_industry_figure(self):
        assert benchmark_comparison(Decimal("1.0"), Decimal(0)).efficiency_score == Decimal(100)


class TestPerInstrument:
    def test_realized_split_by_holding_period(self):
        round_trips = [
            _round_trip("100", date(2024, 3, 1), holding_days=400, symbol="YPF", instrument_id=2),
            _round_trip("-20", date(2024, 3, 2), holding_days=10, symbol="YPF", instrument_id=2),
            _round_trip("5", date(2024, 3, 3), holding_days=5, symbol="GGAL", instrument_id=1),
        ]
        rows = realized_by_instrument(round_trips, long_term_holding_days=365)

        assert [r.symbol for r in rows] == ["GGAL", "YPF"]
        ypf = rows[1]
        assert ypf.round_trips == 2
        assert ypf.realized_gain_loss == Decimal("80")
        assert ypf.long_term_gain_loss == Decimal("100")
        assert ypf.short_term_gain_loss == Decimal("-20")
        assert ypf.avg_holding_days == Decimal("205.00")

    def test_costs_ranked_costliest_first(self):
        trades = [
            _trade(1, "BUY", "1", "100", date(2024, 1, 1), commission="5", symbol="GGAL"),
            _trade(2, "BUY", "1", "100", date(2024, 1, 1), commission="20", tax="4.2", instrument_id=2, symbol="YPF"),
            _trade(3, "SELL", "1", "100", date(2024, 1, 2), commission="6", symbol="GGAL"),
            _trade(4, "BUY", "1", "100", date(2024, 1, 1), commission="1", instrument_id=3, symbol="PAMP"),
        ]
        rows = costs_by_instrument(trades, limit=2)

        assert [r.symbol for r in rows] == ["YPF", "GGAL"]
        assert rows[0].total_fees == Decimal("24.2")
        assert rows[1].number_of_trades == 2
        assert rows[1].average_fee_per_trade == Decimal("5.50")
