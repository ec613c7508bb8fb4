"""Matches a ledger snapshot and shapes the results into report payloads."""

import logging
from collections.abc import Iterable
from decimal import Decimal

from tradeledger.accounting.aggregation import (
    aggregate_by_period,
    benchmark_comparison,
    costs_by_instrument,
    custody_for_broker,
    custody_in_range,
    profitability_metrics,
    realized_by_instrument,
)
from tradeledger.accounting.alerts import alerts
from tradeledger.accounting.comparison import commission_vs_gain
from tradeledger.accounting.fees import compare_schedules
from tradeledger.accounting.fifo import match_ledger, sort_key
from tradeledger.accounting.mapping import effective_trades
from tradeledger.config import Settings
from tradeledger.domain.enums.period import PeriodBucket
from tradeledger.domain.enums.report import CostTrend
from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.models.analytics import AlertThresholds, CommissionVsGain, DateRange, PeriodAggregate
from tradeledger.domain.models.fees import CustodyFeeRecord, FeeSchedule
from tradeledger.domain.models.lots import CompletedRoundTrip, LedgerMatch
from tradeledger.domain.models.trade import Trade
from tradeledger.domain.money import ZERO, percentage, to_currency
from tradeledger.report.schemas import (
    AnnualTaxReport,
    BrokerComparisonReport,
    CostDashboard,
    CostTotals,
    DeductibleCosts,
    RealizedGainRow,
    YearOverYearComparison,
)

logger = logging.getLogger(__name__)

# Points of cost_pct_of_volume a year may move and still count as stable
TREND_BAND = Decimal("0.2")


def thresholds_from_settings(settings: Settings) -> AlertThresholds:
    return AlertThresholds(
        commission_pct_medium=settings.commission_pct_medium,
        commission_pct_high=settings.commission_pct_high,
        small_trade_floor=settings.small_trade_floor,
        small_trade_share=settings.small_trade_share,
    )


class ReportAssembler:
    """Builds dashboard, tax-report, comparison and export payloads.

    Reversals are applied and lots are rematched from the trades on every call, using
    only trades dated on or before the end of the requested range.
    """

    def __init__(self, settings: Settings, thresholds: AlertThresholds | None = None) -> None:
        self._settings = settings
        self._thresholds = thresholds or thresholds_from_settings(settings)

    def _match(self, trades: Iterable[Trade], date_range: DateRange) -> tuple[list[Trade], LedgerMatch]:
        kept, reversal_failures = effective_trades(trades)
        match = match_ledger(t for t in kept if t.trade_date <= date_range.end)
        if reversal_failures:
            match.failures = sorted(reversal_failures + match.failures, key=lambda f: f.instrument_id)
        return kept, match

    @staticmethod
    def _window(
        trades: list[Trade],
        match: LedgerMatch,
        custody_records: Iterable[CustodyFeeRecord],
        date_range: DateRange,
    ) -> tuple[list[Trade], list[CompletedRoundTrip], list[CustodyFeeRecord]]:
        return (
            sorted((t for t in trades if date_range.contains(t.trade_date)), key=sort_key),
            [rt for rt in match.round_trips if date_range.contains(rt.sell_date)],
            custody_in_range(custody_records, date_range),
        )

    @staticmethod
    def _warnings(match: LedgerMatch) -> list[str]:
        return [f"{f.symbol} (instrument {f.instrument_id}): {f.message}" for f in match.failures]

    # ── Dashboard ───────────────────────────────────────────────

    def cost_dashboard(
        self,
        trades: Iterable[Trade],
        custody_records: Iterable[CustodyFeeRecord],
        schedule: FeeSchedule,
        date_range: DateRange,
    ) -> CostDashboard:
        """Cost dashboard for one broker over a date range.

        Only custody records charged by ``schedule.broker_id`` are counted.
        """
        kept, match = self._match(trades, date_range)
        window_trades, window_round_trips, window_custody = self._window(
            kept, match, custody_for_broker(custody_records, schedule.broker_id), date_range
        )

        monthly = aggregate_by_period(
            window_trades, window_round_trips, window_custody, PeriodBucket.MONTH, date_range
        )
        totals = self._totals(monthly)

        portfolio_value = None
        if window_custody:
            portfolio_value = max(window_custody, key=lambda r: r.month).portfolio_value

        dashboard = CostDashboard(
            date_range=date_range,
            broker_id=schedule.broker_id,
            totals=totals,
            monthly_trend=monthly,
            top_costly_instruments=costs_by_instrument(window_trades, self._settings.top_instruments_limit),
            profitability=profitability_metrics(window_round_trips),
            benchmark=benchmark_comparison(
                totals.cost_pct_of_volume, self._settings.industry_cost_pct, portfolio_value
            ),
            alerts=alerts(window_trades, window_round_trips, window_custody, self._thresholds, schedule),
            warnings=self._warnings(match),
        )
        logger.info(
            "Cost dashboard %s..%s: %d trades, %d alerts",
            date_range.start, date_range.end, totals.number_of_trades, len(dashboard.alerts),
        )
        return dashboard

    @staticmethod
    def _totals(periods: list[PeriodAggregate]) -> CostTotals:
        totals = CostTotals()
        for agg in periods:
            totals.trading_volume += agg.trading_volume
            totals.total_commissions += agg.total_commissions
            totals.total_taxes += agg.total_taxes
            totals.total_custody += agg.total_custody
            totals.total_costs += agg.total_costs
            totals.number_of_trades += agg.number_of_trades

        if totals.number_of_trades:
            totals.average_cost_per_trade = to_currency(totals.total_costs / totals.number_of_trades)
        totals.cost_pct_of_volume = percentage(totals.total_costs, totals.trading_volume)
        return totals

    # ── Annual tax report ───────────────────────────────────────

    def annual_tax_report(
        self,
        year: int,
        trades: Iterable[Trade],
        custody_records: Iterable[CustodyFeeRecord],
        broker_id: str | None = None,
    ) -> AnnualTaxReport:
        """Realized results and deductible costs for one calendar year.

        Custody is limited to ``broker_id`` when one is given. The cost totals are
        compared with the previous year whenever that year had trades or custody.
        """
        custody_records = custody_for_broker(custody_records, broker_id)
        date_range = DateRange.for_year(year)
        kept, match = self._match(trades, date_range)
        window_trades, window_round_trips, window_custody = self._window(kept, match, custody_records, date_range)

        by_instrument = realized_by_instrument(window_round_trips, self._settings.long_term_holding_days)

        deductible = DeductibleCosts(
            commissions=to_currency(sum((t.commission for t in window_trades), ZERO)),
            custody_fees=to_currency(sum((r.fee_amount for r in window_custody), ZERO)),
            tax_on_commissions=to_currency(sum((t.tax for t in window_trades), ZERO)),
            tax_on_custody=to_currency(sum((r.tax_amount for r in window_custody), ZERO)),
        )
        deductible.total_deductible = (
            deductible.commissions + deductible.custody_fees
            + deductible.tax_on_commissions + deductible.tax_on_custody
        )

        monthly = aggregate_by_period(
            window_trades, window_round_trips, window_custody, PeriodBucket.MONTH, date_range
        )
        totals = self._totals(monthly)

        report = AnnualTaxReport(
            year=year,
            monthly=monthly,
            quarterly=aggregate_by_period(
                window_trades, window_round_trips, window_custody, PeriodBucket.QUARTER, date_range
            ),
            realized_by_instrument=by_instrument,
            total_realized=sum((r.realized_gain_loss for r in by_instrument), ZERO),
            short_term_realized=sum((r.short_term_gain_loss for r in by_instrument), ZERO),
            long_term_realized=sum((r.long_term_gain_loss for r in by_instrument), ZERO),
            totals=totals,
            deductible_costs=deductible,
            open_positions=match.positions,
            year_over_year=self._previous_year_comparison(year, totals, kept, custody_records),
            warnings=self._warnings(match),
        )
        logger.info("Annual tax report %d: realized %s", year, report.total_realized)
        return report

    def _previous_year_comparison(
        self,
        year: int,
        totals: CostTotals,
        trades: list[Trade],
        custody_records: list[CustodyFeeRecord],
    ) -> YearOverYearComparison | None:
        previous = DateRange.for_year(year - 1)
        previous_trades = [t for t in trades if previous.contains(t.trade_date)]
        previous_custody = custody_in_range(custody_records, previous)
        if not previous_trades and not previous_custody:
            return None

        # Cost totals do not depend on round-trips
        previous_totals = self._totals(
            aggregate_by_period(previous_trades, [], previous_custody, PeriodBucket.MONTH, previous)
        )
        return year_over_year(year - 1, totals, previous_totals)

    # ── Commission vs gain ──────────────────────────────────────

    def commission_vs_gain(
        self,
        trades: Iterable[Trade],
        date_range: DateRange,
        custody_records: Iterable[CustodyFeeRecord] = (),
    ) -> CommissionVsGain:
        """Fees of every trade in the range against the results they realized."""
        kept, match = self._match(trades, date_range)
        window_trades, window_round_trips, window_custody = self._window(kept, match, custody_records, date_range)
        monthly = aggregate_by_period(
            window_trades, window_round_trips, window_custody, PeriodBucket.MONTH, date_range
        )
        report = commission_vs_gain(window_trades, window_round_trips, monthly, date_range)
        report.warnings = self._warnings(match)
        return report

    # ── Broker comparison / export ──────────────────────────────

    def broker_comparison(
        self,
        side: TradeSide,
        amount: Decimal,
        portfolio_value: Decimal,
        schedules: Iterable[FeeSchedule],
    ) -> BrokerComparisonReport:
        return BrokerComparisonReport(
            side=side,
            amount=amount,
            portfolio_value=portfolio_value,
            comparisons=compare_schedules(side, amount, portfolio_value, schedules),
        )

    def realized_gains_rows(self, round_trips: Iterable[CompletedRoundTrip]) -> list[RealizedGainRow]:
        """Flat rows ordered by sell date, then sell and buy trade ids."""
        ordered = sorted(round_trips, key=lambda rt: (rt.sell_date, rt.sell_trade_id, rt.buy_trade_id))
        return [
            RealizedGainRow(
                symbol=rt.symbol,
                instrument_id=rt.instrument_id,
                buy_trade_id=rt.buy_trade_id,
                sell_trade_id=rt.sell_trade_id,
                buy_date=rt.buy_date,
                sell_date=rt.sell_date,
                quantity=rt.matched_quantity,
                cost_basis=rt.cost_basis,
                proceeds=rt.proceeds,
                fees=rt.fees,
                realized_gain_loss=rt.realized_gain_loss,
                holding_days=rt.holding_days,
                long_term=rt.holding_days >= self._settings.long_term_holding_days,
            )
            for rt in ordered
        ]


def year_over_year(previous_year: int, current: CostTotals, previous: CostTotals) -> YearOverYearComparison:
    """A year improves when its cost share of volume falls by more than TREND_BAND points."""
    efficiency_change = current.cost_pct_of_volume - previous.cost_pct_of_volume
    if efficiency_change < -TREND_BAND:
        trend = CostTrend.IMPROVING
    elif efficiency_change > TREND_BAND:
        trend = CostTrend.DECLINING
    else:
        trend = CostTrend.STABLE

    volume_change = current.trading_volume - previous.trading_volume
    cost_change = current.total_costs - previous.total_costs
    return YearOverYearComparison(
        previous_year=previous_year,
        volume_change=volume_change,
        volume_change_pct=percentage(volume_change, previous.trading_volume),
        cost_change=cost_change,
        cost_change_pct=percentage(cost_change, previous.total_costs),
        efficiency_change=efficiency_change,
        number_of_trades_change=current.number_of_trades - previous.number_of_trades,
        trend=trend,
    )
