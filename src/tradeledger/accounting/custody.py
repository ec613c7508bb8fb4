"""Custody projections, the custody optimizer and monthly custody records."""

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal

from tradeledger.accounting.fees import custody_fee
from tradeledger.domain.enums.alert import CustodyStrategy
from tradeledger.domain.models.fees import (
    CustodyFeeRecord,
    CustodyOptimization,
    CustodyProjection,
    CustodyThreshold,
    FeeSchedule,
)
from tradeledger.domain.money import MONTHS_PER_YEAR, ZERO, to_currency

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_GROWTH = Decimal("0.015")


def custody_threshold(schedule: FeeSchedule) -> CustodyThreshold:
    """Smallest custody charge once the portfolio leaves the exemption."""
    minimum_fee = to_currency(schedule.custody.minimum_fee)
    monthly = minimum_fee + to_currency(minimum_fee * schedule.tax_rate)
    return CustodyThreshold(
        exempt_threshold=schedule.custody.exempt_threshold,
        minimum_monthly_charge=monthly,
        minimum_annual_charge=monthly * MONTHS_PER_YEAR,
    )


def project_custody_growth(
    current_value: Decimal,
    schedule: FeeSchedule,
    months: int = MONTHS_PER_YEAR,
    monthly_growth_rate: Decimal = DEFAULT_MONTHLY_GROWTH,
) -> list[CustodyProjection]:
    """Custody month by month for a portfolio compounding at ``monthly_growth_rate``."""
    projections: list[CustodyProjection] = []
    cumulative = ZERO
    previous = custody_fee(current_value, schedule)

    for month in range(1, months + 1):
        value = to_currency(current_value * (1 + monthly_growth_rate) ** month)
        quote = custody_fee(value, schedule)
        cumulative += quote.total
        projections.append(CustodyProjection(
            month=month,
            portfolio_value=value,
            custody=quote,
            cumulative_custody=cumulative,
            threshold_crossed=previous.is_exempt and not quote.is_exempt,
        ))
        previous = quote

    return projections


def optimize_custody(portfolio_value: Decimal, schedule: FeeSchedule) -> CustodyOptimization:
    """Pick a custody strategy for the current portfolio size.

    While the minimum fee floor binds, the whole charge is for a small excess over the
    exempt threshold; bringing the portfolio down to the threshold saves the full
    annual custody.
    """
    terms = schedule.custody
    current = custody_fee(portfolio_value, schedule)

    if current.is_exempt:
        return CustodyOptimization(
            strategy=CustodyStrategy.MAINTAIN_EXEMPT,
            current_size=portfolio_value,
            optimized_size=portfolio_value,
            current_annual_custody=ZERO,
            optimized_annual_custody=ZERO,
            annual_savings=ZERO,
            recommendation=f"Keep the portfolio at or below {terms.exempt_threshold} to stay custody-exempt",
        )

    percentage_fee = to_currency(current.applicable_amount * terms.rate)
    if percentage_fee < to_currency(terms.minimum_fee):
        optimized = custody_fee(terms.exempt_threshold, schedule)
        return CustodyOptimization(
            strategy=CustodyStrategy.REDUCE_TO_EXEMPT,
            current_size=portfolio_value,
            optimized_size=terms.exempt_threshold,
            current_annual_custody=current.annual_total,
            optimized_annual_custody=optimized.annual_total,
            annual_savings=current.annual_total - optimized.annual_total,
            recommendation=(
                f"Only {current.applicable_amount} is above the exempt threshold but the minimum "
                f"custody fee applies; withdraw or reallocate it to avoid custody"
            ),
        )

    return CustodyOptimization(
        strategy=CustodyStrategy.ACCEPT_CUSTODY,
        current_size=portfolio_value,
        optimized_size=portfolio_value,
        current_annual_custody=current.annual_total,
        optimized_annual_custody=current.annual_total,
        annual_savings=ZERO,
        recommendation="Custody is proportional to the portfolio; focus on returns",
    )


def custody_records(
    monthly_values: Mapping[date | str, Decimal],
    schedule: FeeSchedule,
) -> list[CustodyFeeRecord]:
    """Monthly custody charge per month-end portfolio value, ordered by month."""
    records = []
    for month, value in monthly_values.items():
        quote = custody_fee(value, schedule)
        records.append(CustodyFeeRecord(
            broker_id=schedule.broker_id,
            month=month,
            portfolio_value=value,
            fee_amount=quote.fee,
            tax_amount=quote.tax,
        ))

    records.sort(key=lambda r: r.month)
    logger.info("Built %d custody records for %s", len(records), schedule.broker_id)
    return records
