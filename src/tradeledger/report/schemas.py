"""Pydantic payloads handed to the export and presentation layers."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from tradeledger.domain.enums.report import CostTrend
from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.models.analytics import (
    Alert,
    BenchmarkComparison,
    DateRange,
    InstrumentCost,
    InstrumentRealized,
    PeriodAggregate,
    ProfitabilityMetrics,
)
from tradeledger.domain.models.fees import ScheduleComparison
from tradeledger.domain.models.lots import OpenPosition


class CostTotals(BaseModel):
    trading_volume: Decimal = Decimal(0)
    total_commissions: Decimal = Decimal(0)
    total_taxes: Decimal = Decimal(0)
    total_custody: Decimal = Decimal(0)
    total_costs: Decimal = Decimal(0)
    number_of_trades: int = 0
    average_cost_per_trade: Decimal = Decimal(0)
    cost_pct_of_volume: Decimal = Decimal(0)


class CostDashboard(BaseModel):
    date_range: DateRange
    broker_id: str
    totals: CostTotals
    monthly_trend: list[PeriodAggregate]
    top_costly_instruments: list[InstrumentCost]
    profitability: ProfitabilityMetrics
    benchmark: BenchmarkComparison
    alerts: list[Alert]
    warnings: list[str] = []


class DeductibleCosts(BaseModel):
    commissions: Decimal = Decimal(0)
    custody_fees: Decimal = Decimal(0)
    tax_on_commissions: Decimal = Decimal(0)
    tax_on_custody: Decimal = Decimal(0)
    total_deductible: Decimal = Decimal(0)


class YearOverYearComparison(BaseModel):
    """Change of the annual cost totals against the previous year."""

    previous_year: int
    volume_change: Decimal
    volume_change_pct: Decimal
    cost_change: Decimal
    cost_change_pct: Decimal
    efficiency_change: Decimal  # Points of cost_pct_of_volume; negative is better
    number_of_trades_change: int
    trend: CostTrend


class AnnualTaxReport(BaseModel):
    year: int
    monthly: list[PeriodAggregate]
    quarterly: list[PeriodAggregate]
    realized_by_instrument: list[InstrumentRealized]
    total_realized: Decimal = Decimal(0)
    short_term_realized: Decimal = Decimal(0)
    long_term_realized: Decimal = Decimal(0)
    totals: CostTotals = Field(default_factory=CostTotals)
    deductible_costs: DeductibleCosts
    open_positions: list[OpenPosition]
    year_over_year: YearOverYearComparison | None = None
    warnings: list[str] = []


class RealizedGainRow(BaseModel):
    """One exported row per round-trip."""

    symbol: str
    instrument_id: int
    buy_trade_id: int
    sell_trade_id: int
    buy_date: date
    sell_date: date
    quantity: Decimal
    cost_basis: Decimal
    proceeds: Decimal
    fees: Decimal
    realized_gain_loss: Decimal
    holding_days: int
    long_term: bool


class BrokerComparisonReport(BaseModel):
    side: TradeSide
    amount: Decimal
    portfolio_value: Decimal
    comparisons: list[ScheduleComparison]
