"""Cost alerts: a table of rules evaluated over one window of the ledger.

Each rule returns zero or more alerts, each with a recommended action and a
potential-savings figure computed from the inputs alone.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from tradeledger.accounting.custody import optimize_custody
from tradeledger.accounting.fees import commission
from tradeledger.domain.enums.alert import AlertRule, AlertSeverity
from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.models.analytics import Alert, AlertThresholds
from tradeledger.domain.models.fees import CustodyFeeRecord, FeeSchedule
from tradeledger.domain.models.lots import CompletedRoundTrip
from tradeledger.domain.models.trade import Trade
from tradeledger.domain.money import ZERO, percentage, to_currency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertContext:
    """Everything a rule may look at."""

    trades: list[Trade]
    round_trips: list[CompletedRoundTrip]
    custody_records: list[CustodyFeeRecord]
    thresholds: AlertThresholds
    schedule: FeeSchedule


@dataclass(frozen=True)
class AlertRuleSpec:
    rule: AlertRule
    condition: str
    evaluate: Callable[[AlertContext], list[Alert]]


def _high_commission_pct(ctx: AlertContext) -> list[Alert]:
    """Trades whose commission plus tax exceeds a share of the net amount."""
    medium = ctx.thresholds.commission_pct_medium
    high = ctx.thresholds.commission_pct_high
    found: list[Alert] = []

    for trade in ctx.trades:
        net = trade.net_amount
        if net <= 0:
            continue
        share = trade.fees / net
        if share <= medium:
            continue
        found.append(Alert(
            rule=AlertRule.HIGH_COMMISSION_PCT,
            severity=AlertSeverity.HIGH if share > high else AlertSeverity.MEDIUM,
            message=f"{trade.symbol} trade {trade.id}: fees are {percentage(trade.fees, net)}% of the net amount",
            recommended_action="Operate in larger amounts to dilute the minimum commission",
            potential_savings=to_currency(trade.fees - net * medium),
            trade_id=trade.id,
            symbol=trade.symbol,
            affected_trades=1,
        ))

    return found


def _frequent_small_trades(ctx: AlertContext) -> list[Alert]:
    """Too many trades below the size floor; savings = fees paid minus one trade per side."""
    if not ctx.trades:
        return []

    floor = ctx.thresholds.small_trade_floor
    small = [t for t in ctx.trades if t.gross_amount < floor]
    if Decimal(len(small)) <= ctx.thresholds.small_trade_share * len(ctx.trades):
        return []

    paid = sum((t.fees for t in small), ZERO)
    consolidated = ZERO
    for side in TradeSide:
        side_gross = sum((t.gross_amount for t in small if t.side == side), ZERO)
        if side_gross > 0:
            consolidated += commission(side, to_currency(side_gross), ctx.schedule).total

    return [Alert(
        rule=AlertRule.FREQUENT_SMALL_TRADES,
        severity=AlertSeverity.MEDIUM,
        message=f"{len(small)} of {len(ctx.trades)} trades are below {floor}",
        recommended_action="Group small operations into fewer, larger ones",
        potential_savings=max(ZERO, to_currency(paid - consolidated)),
        affected_trades=len(small),
    )]


def _excessive_custody(ctx: AlertContext) -> list[Alert]:
    """The custody optimizer finds annual savings for the latest portfolio value."""
    if not ctx.custody_records:
        return []

    latest = max(ctx.custody_records, key=lambda r: r.month)
    optimization = optimize_custody(latest.portfolio_value, ctx.schedule)
    if optimization.annual_savings <= 0:
        return []

    return [Alert(
        rule=AlertRule.EXCESSIVE_CUSTODY,
        severity=AlertSeverity.MEDIUM,
        message=f"Custody for {latest.month:%Y-%m} costs {optimization.current_annual_custody} a year",
        recommended_action=optimization.recommendation,
        potential_savings=optimization.annual_savings,
    )]


def _fees_erased_gain(ctx: AlertContext) -> list[Alert]:
    """Round-trips that gained before fees but not after."""
    found: list[Alert] = []
    for rt in ctx.round_trips:
        if rt.gain_before_fees > 0 and rt.realized_gain_loss <= 0:
            found.append(Alert(
                rule=AlertRule.FEES_ERASED_GAIN,
                severity=AlertSeverity.LOW,
                message=(
                    f"{rt.symbol} sell {rt.sell_trade_id}: gain of {rt.gain_before_fees} before fees "
                    f"became {rt.realized_gain_loss}"
                ),
                recommended_action="Hold longer or trade larger sizes so the gain covers both commissions",
                potential_savings=-rt.realized_gain_loss,
                trade_id=rt.sell_trade_id,
                symbol=rt.symbol,
                affected_trades=1,
            ))
    return found


ALERT_RULES: tuple[AlertRuleSpec, ...] = (
    AlertRuleSpec(AlertRule.HIGH_COMMISSION_PCT, "(commission + tax) / net amount > medium threshold", _high_commission_pct),
    AlertRuleSpec(AlertRule.FREQUENT_SMALL_TRADES, "share of trades below floor > small-trade share", _frequent_small_trades),
    AlertRuleSpec(AlertRule.EXCESSIVE_CUSTODY, "custody optimizer annual savings > 0", _excessive_custody),
    AlertRuleSpec(AlertRule.FEES_ERASED_GAIN, "gain before fees > 0 and realized <= 0", _fees_erased_gain),
)


def alerts(
    trades: Iterable[Trade],
    round_trips: Iterable[CompletedRoundTrip],
    custody_records: Iterable[CustodyFeeRecord],
    thresholds: AlertThresholds,
    schedule: FeeSchedule,
    rules: tuple[AlertRuleSpec, ...] = ALERT_RULES,
) -> list[Alert]:
    """Evaluate every rule in order and return the alerts they raise."""
    ctx = AlertContext(
        trades=list(trades),
        round_trips=list(round_trips),
        custody_records=list(custody_records),
        thresholds=thresholds,
        schedule=schedule,
    )
    found: list[Alert] = []
    for spec in rules:
        raised = spec.evaluate(ctx)
        if raised:
            logger.debug("Rule %s raised %d alerts", spec.rule.value, len(raised))
        found.extend(raised)
    return found
