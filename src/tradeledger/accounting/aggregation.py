"""Period aggregation, profitability and benchmark metrics. Pure functions.

Every aggregate is recomputed from the trades, round-trips and custody records it is
given; nothing is cached between calls.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from tradeledger.domain.enums.alert import RelativePerformance
from tradeledger.domain.enums.period import PeriodBucket
from tradeledger.domain.models.analytics import (
    BenchmarkComparison,
    DateRange,
    InstrumentCost,
    InstrumentRealized,
    PeriodAggregate,
    ProfitabilityMetrics,
)
from tradeledger.domain.models.fees import CustodyFeeRecord
from tradeledger.domain.models.lots import CompletedRoundTrip
from tradeledger.domain.models.trade import Trade
from tradeledger.domain.money import HUNDRED, ZERO, percentage, ratio, to_currency, to_rate

INFINITY = Decimal("Infinity")
MIN_COST_PCT = Decimal("0.01")
WORSE_THAN_INDUSTRY = Decimal("1.2")

_MONTHS_PER_BUCKET = {
    PeriodBucket.MONTH: 1,
    PeriodBucket.QUARTER: 3,
    PeriodBucket.YEAR: 12,
}


# ── Period keys ─────────────────────────────────────────────────────


def period_key(day: date, bucket: PeriodBucket) -> str:
    if bucket == PeriodBucket.MONTH:
        return f"{day.year}-{day.month:02d}"
    if bucket == PeriodBucket.QUARTER:
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    return str(day.year)


def bucket_start(day: date, bucket: PeriodBucket) -> date:
    months = _MONTHS_PER_BUCKET[bucket]
    first_month = (day.month - 1) // months * months + 1
    return date(day.year, first_month, 1)


def _next_bucket_start(start: date, bucket: PeriodBucket) -> date:
    years, month_index = divmod(start.month - 1 + _MONTHS_PER_BUCKET[bucket], 12)
    return date(start.year + years, month_index + 1, 1)


def period_starts(date_range: DateRange, bucket: PeriodBucket) -> list[date]:
    """First day of every bucket that overlaps the range, in order."""
    starts = []
    current = bucket_start(date_range.start, bucket)
    while current <= date_range.end:
        starts.append(current)
        current = _next_bucket_start(current, bucket)
    return starts


# ── Aggregation ─────────────────────────────────────────────────────


def custody_in_range(
    custody_records: Iterable[CustodyFeeRecord],
    date_range: DateRange,
) -> list[CustodyFeeRecord]:
    """Custody records whose month overlaps the range."""
    first_month = date_range.start.replace(day=1)
    return [r for r in custody_records if first_month <= r.month <= date_range.end]


def custody_for_broker(
    custody_records: Iterable[CustodyFeeRecord],
    broker_id: str | None,
) -> list[CustodyFeeRecord]:
    """Custody records charged by one broker.

    An empty ``broker_id`` keeps every record. Records without a broker id are kept too.
    """
    if not broker_id:
        return list(custody_records)
    return [r for r in custody_records if not r.broker_id or r.broker_id == broker_id]


def aggregate_by_period(
    trades: Iterable[Trade],
    round_trips: Iterable[CompletedRoundTrip],
    custody_records: Iterable[CustodyFeeRecord],
    bucket: PeriodBucket,
    date_range: DateRange,
) -> list[PeriodAggregate]:
    """Bucket trades by trade date, round-trips by sell date and custody by month.

    Every bucket of the range is emitted, zero-valued when it had no activity.
    """
    buckets: dict[str, PeriodAggregate] = {}
    for start in period_starts(date_range, bucket):
        key = period_key(start, bucket)
        buckets[key] = PeriodAggregate(
            period=key,
            bucket=bucket,
            period_start=start,
            period_end=_next_bucket_start(start, bucket) - timedelta(days=1),
        )

    for trade in trades:
        if not date_range.contains(trade.trade_date):
            continue
        agg = buckets[period_key(trade.trade_date, bucket)]
        agg.trading_volume += trade.gross_amount
        agg.total_commissions += trade.commission
        agg.total_taxes += trade.tax
        agg.number_of_trades += 1

    closed: dict[str, list[CompletedRoundTrip]] = defaultdict(list)
    for rt in round_trips:
        if date_range.contains(rt.sell_date):
            closed[period_key(rt.sell_date, bucket)].append(rt)

    for record in custody_in_range(custody_records, date_range):
        buckets[period_key(record.month, bucket)].total_custody += record.total_charged

    for key, agg in buckets.items():
        _finalize(agg, closed.get(key, []))

    return list(buckets.values())


def _finalize(agg: PeriodAggregate, round_trips: list[CompletedRoundTrip]) -> None:
    metrics = profitability_metrics(round_trips)
    agg.trading_volume = to_currency(agg.trading_volume)
    agg.total_commissions = to_currency(agg.total_commissions)
    agg.total_taxes = to_currency(agg.total_taxes)
    agg.total_custody = to_currency(agg.total_custody)
    agg.total_costs = agg.total_commissions + agg.total_taxes + agg.total_custody
    agg.realized_gain = metrics.total_gains
    agg.realized_loss = metrics.total_losses
    agg.net_realized = metrics.net_realized
    agg.number_of_round_trips = metrics.closed_count
    agg.win_rate = metrics.win_rate
    agg.profit_factor = metrics.profit_factor
    agg.cost_as_pct_of_volume = percentage(agg.total_costs, agg.trading_volume)


def profit_factor(total_gains: Decimal, total_losses: Decimal) -> Decimal:
    """Gains over absolute losses; +Infinity without losses, 0 without either."""
    if total_losses > 0:
        return to_rate(total_gains / total_losses)
    if total_gains > 0:
        return INFINITY
    return ZERO


def profitability_metrics(round_trips: Iterable[CompletedRoundTrip]) -> ProfitabilityMetrics:
    round_trips = list(round_trips)
    gains = [rt.realized_gain_loss for rt in round_trips if rt.realized_gain_loss > 0]
    losses = [-rt.realized_gain_loss for rt in round_trips if rt.realized_gain_loss < 0]
    total_gains = to_currency(sum(gains, ZERO))
    total_losses = to_currency(sum(losses, ZERO))
    net = total_gains - total_losses
    cost_basis = sum((rt.cost_basis for rt in round_trips), ZERO)

    return ProfitabilityMetrics(
        closed_count=len(round_trips),
        win_count=len(gains),
        loss_count=len(losses),
        win_rate=ratio(Decimal(len(gains)), Decimal(len(round_trips))),
        avg_win=to_currency(total_gains / len(gains)) if gains else ZERO,
        avg_loss=to_currency(total_losses / len(losses)) if losses else ZERO,
        total_gains=total_gains,
        total_losses=total_losses,
        net_realized=net,
        profit_factor=profit_factor(total_gains, total_losses),
        cost_adjusted_roi=percentage(net, cost_basis),
    )


def benchmark_comparison(
    our_cost_pct: Decimal,
    industry_pct: Decimal,
    portfolio_value: Decimal | None = None,
) -> BenchmarkComparison:
    """Rate our cost percentage against an industry average."""
    if our_cost_pct < industry_pct:
        relative = RelativePerformance.BETTER
    elif our_cost_pct > industry_pct * WORSE_THAN_INDUSTRY:
        relative = RelativePerformance.WORSE
    else:
        relative = RelativePerformance.AVERAGE

    if industry_pct > 0:
        score = to_currency(industry_pct / max(our_cost_pct, MIN_COST_PCT) * HUNDRED)
    else:
        score = HUNDRED

    savings = ZERO
    if portfolio_value is not None:
        savings = to_currency(max(ZERO, (our_cost_pct - industry_pct) * portfolio_value / HUNDRED))

    return BenchmarkComparison(
        our_cost_pct=our_cost_pct,
        industry_cost_pct=industry_pct,
        efficiency_score=score,
        relative_performance=relative,
        potential_savings=savings,
    )


# ── Per-instrument breakdowns ───────────────────────────────────────


def realized_by_instrument(
    round_trips: Iterable[CompletedRoundTrip],
    long_term_holding_days: int,
) -> list[InstrumentRealized]:
    """Realized results per instrument, ordered by symbol then instrument id."""
    rows: dict[int, InstrumentRealized] = {}
    holding_days: dict[int, int] = defaultdict(int)

    for rt in round_trips:
        row = rows.get(rt.instrument_id)
        if row is None:
            row = rows[rt.instrument_id] = InstrumentRealized(instrument_id=rt.instrument_id, symbol=rt.symbol)
        row.round_trips += 1
        row.quantity += rt.matched_quantity
        row.cost_basis += rt.cost_basis
        row.proceeds += rt.proceeds
        row.realized_gain_loss += rt.realized_gain_loss
        if rt.holding_days >= long_term_holding_days:
            row.long_term_gain_loss += rt.realized_gain_loss
        else:
            row.short_term_gain_loss += rt.realized_gain_loss
        holding_days[rt.instrument_id] += rt.holding_days

    for instrument_id, row in rows.items():
        row.avg_holding_days = to_currency(Decimal(holding_days[instrument_id]) / row.round_trips)

    return sorted(rows.values(), key=lambda r: (r.symbol, r.instrument_id))


def costs_by_instrument(trades: Iterable[Trade], limit: int | None = None) -> list[InstrumentCost]:
    """Commission and tax paid per instrument, costliest first."""
    rows: dict[int, InstrumentCost] = {}
    for trade in trades:
        row = rows.get(trade.instrument_id)
        if row is None:
            row = rows[trade.instrument_id] = InstrumentCost(instrument_id=trade.instrument_id, symbol=trade.symbol)
        row.total_commissions += trade.commission
        row.total_taxes += trade.tax
        row.total_fees += trade.fees
        row.number_of_trades += 1

    for row in rows.values():
        row.average_fee_per_trade = to_currency(row.total_fees / row.number_of_trades)

    ranked = sorted(rows.values(), key=lambda r: (-r.total_fees, r.symbol, r.instrument_id))
    return ranked[:limit] if limit is not None else ranked
