"""Fee schedule calculator — pure functions, no configuration lookup.

Commission is charged per operation from a tiered rate table with a minimum fee,
custody monthly on the portfolio value above an exempt threshold. Tax is levied on
both fees at the schedule's tax rate.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.errors import InvalidScheduleError
from tradeledger.domain.models.fees import (
    CommissionImpact,
    CommissionQuote,
    CustodyQuote,
    FeeSchedule,
    FeeTier,
    FirstYearProjection,
    MinimumInvestment,
    ScheduleComparison,
)
from tradeledger.domain.money import HUNDRED, MONTHS_PER_YEAR, ZERO, percentage, to_currency

logger = logging.getLogger(__name__)

LOW_MINIMUM_INVESTMENT = Decimal("10000")
HIGH_MINIMUM_INVESTMENT = Decimal("100000")


def validate_tiers(schedule: FeeSchedule, side: TradeSide) -> tuple[FeeTier, ...]:
    """Return the tiers for ``side`` after checking they are sorted and non-overlapping."""
    tiers = schedule.tiers_for(side)
    if not tiers:
        raise InvalidScheduleError(f"no {side.value} tiers configured", schedule.broker_id)

    for tier in tiers:
        if tier.rate < 0:
            raise InvalidScheduleError(f"negative {side.value} rate {tier.rate}", schedule.broker_id)
        if tier.max_amount is not None and tier.max_amount <= tier.min_amount:
            raise InvalidScheduleError(
                f"empty {side.value} tier [{tier.min_amount}, {tier.max_amount})", schedule.broker_id
            )

    for prev, nxt in zip(tiers, tiers[1:]):
        if prev.max_amount is None:
            raise InvalidScheduleError(
                f"open-ended {side.value} tier at {prev.min_amount} is not the last tier", schedule.broker_id
            )
        if nxt.min_amount < prev.max_amount:
            raise InvalidScheduleError(
                f"{side.value} tiers unsorted or overlapping at {nxt.min_amount}", schedule.broker_id
            )

    return tiers


def select_tier(side: TradeSide, amount: Decimal, schedule: FeeSchedule) -> FeeTier:
    for tier in validate_tiers(schedule, side):
        if tier.contains(amount):
            return tier
    raise InvalidScheduleError(f"no {side.value} tier covers amount {amount}", schedule.broker_id)


def commission(side: TradeSide, amount: Decimal, schedule: FeeSchedule) -> CommissionQuote:
    """Commission for one operation: tier rate, floored at the minimum fee, plus tax."""
    if amount < 0:
        raise ValueError(f"operation amount must not be negative: {amount}")

    tier = select_tier(side, amount, schedule)
    percentage_fee = to_currency(amount * tier.rate)
    minimum_fee = to_currency(schedule.minimum_fee)
    minimum_applied = percentage_fee < minimum_fee
    base = minimum_fee if minimum_applied else percentage_fee
    tax = to_currency(base * schedule.tax_rate)

    quote = CommissionQuote(
        side=side,
        amount=amount,
        rate=tier.rate,
        base=base,
        tax=tax,
        total=base + tax,
        minimum_applied=minimum_applied,
    )
    logger.debug("Commission %s %s @ %s: %s", side.value, amount, schedule.broker_id, quote.total)
    return quote


def custody_fee(portfolio_value: Decimal, schedule: FeeSchedule) -> CustodyQuote:
    """Monthly custody fee. An exempt portfolio is never charged, not even the minimum."""
    terms = schedule.custody
    applicable = max(ZERO, portfolio_value - terms.exempt_threshold)
    is_exempt = portfolio_value <= terms.exempt_threshold

    fee = ZERO
    if not is_exempt:
        fee = max(to_currency(applicable * terms.rate), to_currency(terms.minimum_fee))
    tax = to_currency(fee * schedule.tax_rate)
    total = fee + tax

    return CustodyQuote(
        portfolio_value=portfolio_value,
        applicable_amount=applicable,
        fee=fee,
        tax=tax,
        total=total,
        annual_total=total * MONTHS_PER_YEAR,
        is_exempt=is_exempt,
    )


def _project(
    side: TradeSide,
    operation_amount: Decimal,
    projected_portfolio_value: Decimal,
    schedule: FeeSchedule,
) -> tuple[CommissionQuote, CustodyQuote, FirstYearProjection]:
    if operation_amount <= 0:
        raise ValueError(f"operation amount must be positive: {operation_amount}")

    operation = commission(side, operation_amount, schedule)
    custody = custody_fee(projected_portfolio_value, schedule)
    total = operation.total + custody.annual_total
    projection = FirstYearProjection(
        operation_cost=operation.total,
        annual_custody=custody.annual_total,
        total_first_year_cost=total,
        break_even_pct=percentage(total, operation_amount),
    )
    return operation, custody, projection


def project_first_year_cost(
    side: TradeSide,
    operation_amount: Decimal,
    projected_portfolio_value: Decimal,
    schedule: FeeSchedule,
) -> FirstYearProjection:
    """Operation commission plus twelve months of custody, and the break-even percentage."""
    _, _, projection = _project(side, operation_amount, projected_portfolio_value, schedule)
    return projection


def compare_schedules(
    side: TradeSide,
    amount: Decimal,
    portfolio_value: Decimal,
    schedules: Iterable[FeeSchedule],
) -> list[ScheduleComparison]:
    """Rank brokers by first-year cost, cheapest first; ties broken by broker name."""
    comparisons: list[ScheduleComparison] = []
    for schedule in schedules:
        operation, custody, projection = _project(side, amount, portfolio_value, schedule)
        comparisons.append(ScheduleComparison(
            broker_id=schedule.broker_id,
            broker_name=schedule.display_name,
            operation=operation,
            custody=custody,
            projection=projection,
        ))

    comparisons.sort(key=lambda c: (c.projection.total_first_year_cost, c.broker_name, c.broker_id))
    for index, comparison in enumerate(comparisons, start=1):
        comparison.ranking = index

    if comparisons:
        logger.info(
            "Compared %d schedules for %s %s: cheapest %s",
            len(comparisons), side.value, amount, comparisons[0].broker_name,
        )
    return comparisons


def minimum_investment_for_threshold(threshold_pct: Decimal, schedule: FeeSchedule) -> MinimumInvestment:
    """Smallest buy amount at which the minimum-fee charge is ``threshold_pct`` percent of it."""
    if threshold_pct <= 0:
        raise ValueError(f"threshold percentage must be positive: {threshold_pct}")

    minimum_charge = schedule.minimum_fee * (1 + schedule.tax_rate)
    minimum_amount = to_currency(minimum_charge / (threshold_pct / HUNDRED))
    actual = commission(TradeSide.BUY, minimum_amount, schedule)

    if minimum_amount < LOW_MINIMUM_INVESTMENT:
        recommendation = "Minimum is low; larger operations still improve cost efficiency"
    elif minimum_amount > HIGH_MINIMUM_INVESTMENT:
        recommendation = "Minimum is high because of fixed fees; consider a broker with a lower minimum fee"
    else:
        recommendation = "Operations at or above this amount keep commissions under control"

    return MinimumInvestment(
        minimum_amount=minimum_amount,
        commission_pct=percentage(actual.total, minimum_amount),
        recommendation=recommendation,
    )


def commission_impact_on_returns(
    initial_investment: Decimal,
    expected_annual_return_pct: Decimal,
    holding_period_years: int,
    schedule: FeeSchedule,
) -> CommissionImpact:
    """How much of a compounded return is eaten by commissions and custody.

    The position is bought at ``initial_investment`` and sold at its compounded value
    after ``holding_period_years``. Custody is charged every year on the average of the
    initial and final values.
    """
    if initial_investment <= 0:
        raise ValueError(f"initial investment must be positive: {initial_investment}")
    if holding_period_years < 1:
        raise ValueError(f"holding period must be at least one year: {holding_period_years}")

    growth = (1 + expected_annual_return_pct / HUNDRED) ** holding_period_years
    future_value = to_currency(initial_investment * growth)
    gross_return = future_value - initial_investment

    buy = commission(TradeSide.BUY, initial_investment, schedule)
    sell = commission(TradeSide.SELL, future_value, schedule)
    average_value = to_currency((initial_investment + future_value) / 2)
    custody = custody_fee(average_value, schedule).annual_total * holding_period_years

    total_costs = buy.total + sell.total + custody
    impact = CommissionImpact(
        initial_investment=initial_investment,
        future_value=future_value,
        gross_return=gross_return,
        buy_commission=buy.total,
        sell_commission=sell.total,
        total_custody_fees=custody,
        total_costs=total_costs,
        net_return=gross_return - total_costs,
        return_impact_pct=percentage(total_costs, gross_return),
        break_even_return_pct=percentage(total_costs, initial_investment),
    )
    logger.info(
        "Commission impact over %d years @ %s: %s%% of the gross return",
        holding_period_years, schedule.broker_id, impact.return_impact_pct,
    )
    return impact
