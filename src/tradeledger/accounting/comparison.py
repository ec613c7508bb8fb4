"""Commission-versus-gain comparison: fees paid per trade against realized results."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from tradeledger.accounting.aggregation import profitability_metrics
from tradeledger.domain.enums.report import CommissionWarning, TradeOutcome
from tradeledger.domain.models.analytics import (
    CommissionVsGain,
    ComparisonSummary,
    DateRange,
    PeriodAggregate,
    PeriodicComparison,
    TradeComparison,
)
from tradeledger.domain.models.lots import CompletedRoundTrip
from tradeledger.domain.models.trade import Trade
from tradeledger.domain.money import HUNDRED, ZERO, percentage, to_currency

logger = logging.getLogger(__name__)

# Fees as a percentage of the trade's gross amount
WARNING_PCT_MEDIUM = Decimal("1.5")
WARNING_PCT_HIGH = Decimal("3")


def commission_warning(commission_pct: Decimal) -> CommissionWarning:
    if commission_pct > WARNING_PCT_HIGH:
        return CommissionWarning.HIGH
    if commission_pct > WARNING_PCT_MEDIUM:
        return CommissionWarning.MEDIUM
    return CommissionWarning.NONE


def trade_outcome(realized: Decimal | None) -> TradeOutcome:
    if realized is None:
        return TradeOutcome.OPEN
    if realized > 0:
        return TradeOutcome.PROFITABLE
    if realized < 0:
        return TradeOutcome.UNPROFITABLE
    return TradeOutcome.BREAK_EVEN


def trade_comparisons(
    trades: Iterable[Trade],
    round_trips: Iterable[CompletedRoundTrip],
) -> list[TradeComparison]:
    """One comparison per trade, in input order.

    A sell's realized result is the sum of the round-trips it closed. Buys, and sells
    that closed nothing, stay OPEN.
    """
    realized: dict[int, Decimal] = defaultdict(Decimal)
    for rt in round_trips:
        realized[rt.sell_trade_id] += rt.realized_gain_loss

    rows = []
    for trade in trades:
        gross = to_currency(trade.gross_amount)
        fees = to_currency(trade.fees)
        commission_pct = percentage(fees, gross)
        gain_loss = realized.get(trade.id)

        ratio_pct = None
        if gain_loss is not None:
            ratio_pct = percentage(fees, abs(gain_loss))

        rows.append(TradeComparison(
            trade_id=trade.id,
            instrument_id=trade.instrument_id,
            symbol=trade.symbol,
            side=trade.side,
            trade_date=trade.trade_date,
            gross_amount=gross,
            total_fees=fees,
            commission_pct=commission_pct,
            realized_gain_loss=gain_loss,
            commission_to_gain_ratio=ratio_pct,
            outcome=trade_outcome(gain_loss),
            warning=commission_warning(commission_pct),
        ))
    return rows


def comparison_summary(trades: list[Trade], round_trips: list[CompletedRoundTrip]) -> ComparisonSummary:
    metrics = profitability_metrics(round_trips)
    total_fees = to_currency(sum((t.fees for t in trades), ZERO))
    return ComparisonSummary(
        total_trades=len(trades),
        profitable_round_trips=metrics.win_count,
        unprofitable_round_trips=metrics.loss_count,
        break_even_round_trips=metrics.closed_count - metrics.win_count - metrics.loss_count,
        total_gains=metrics.total_gains,
        total_losses=metrics.total_losses,
        total_fees=total_fees,
        net_result=metrics.net_realized,
        fees_pct_of_gains=percentage(total_fees, metrics.total_gains),
        profitability_pct=percentage(Decimal(metrics.win_count), Decimal(metrics.closed_count)),
    )


def periodic_comparison(periods: Iterable[PeriodAggregate]) -> list[PeriodicComparison]:
    rows = []
    for agg in periods:
        rows.append(PeriodicComparison(
            period=agg.period,
            gains=agg.realized_gain,
            losses=agg.realized_loss,
            total_costs=agg.total_costs,
            net_result=agg.net_realized,
            costs_pct_of_gains=percentage(agg.total_costs, agg.realized_gain),
            number_of_trades=agg.number_of_trades,
            average_cost_per_trade=(
                to_currency(agg.total_costs / agg.number_of_trades) if agg.number_of_trades else ZERO
            ),
            win_rate=to_currency(agg.win_rate * HUNDRED),
        ))
    return rows


def commission_vs_gain(
    trades: Iterable[Trade],
    round_trips: Iterable[CompletedRoundTrip],
    periods: Iterable[PeriodAggregate],
    date_range: DateRange,
) -> CommissionVsGain:
    """Trades and round-trips are expected to be windowed to ``date_range`` already."""
    trades = list(trades)
    round_trips = list(round_trips)
    report = CommissionVsGain(
        date_range=date_range,
        summary=comparison_summary(trades, round_trips),
        trades=trade_comparisons(trades, round_trips),
        periodic=periodic_comparison(periods),
    )
    logger.info(
        "Commission vs gain %s..%s: %d trades, fees %s",
        date_range.start, date_range.end, len(trades), report.summary.total_fees,
    )
    return report
