"""Domain types for period aggregation, profitability and cost alerts."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from tradeledger.domain.enums.alert import AlertRule, AlertSeverity, RelativePerformance
from tradeledger.domain.enums.period import PeriodBucket
from tradeledger.domain.enums.report import CommissionWarning, TradeOutcome
from tradeledger.domain.enums.trade import TradeSide


class DateRange(BaseModel):
    """Inclusive [start, end] range of calendar dates."""

    model_config = {"frozen": True}

    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        return cls(start=date(year, 1, 1), end=date(year, 12, 31))


class PeriodAggregate(BaseModel):
    """Trading, cost and realized-result totals for one period bucket."""

    period: str  # YYYY-MM, YYYY-Qn or YYYY
    bucket: PeriodBucket
    period_start: date
    period_end: date
    trading_volume: Decimal = Decimal(0)
    total_commissions: Decimal = Decimal(0)
    total_taxes: Decimal = Decimal(0)
    total_custody: Decimal = Decimal(0)
    total_costs: Decimal = Decimal(0)
    realized_gain: Decimal = Decimal(0)
    realized_loss: Decimal = Decimal(0)  # Magnitude, always >= 0
    net_realized: Decimal = Decimal(0)
    number_of_trades: int = 0
    number_of_round_trips: int = 0
    win_rate: Decimal = Decimal(0)
    profit_factor: Decimal = Field(default=Decimal(0), allow_inf_nan=True)
    cost_as_pct_of_volume: Decimal = Decimal(0)


class ProfitabilityMetrics(BaseModel):
    closed_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    win_rate: Decimal = Decimal(0)
    avg_win: Decimal = Decimal(0)
    avg_loss: Decimal = Decimal(0)  # Magnitude
    total_gains: Decimal = Decimal(0)
    total_losses: Decimal = Decimal(0)  # Magnitude
    net_realized: Decimal = Decimal(0)
    profit_factor: Decimal = Field(default=Decimal(0), allow_inf_nan=True)
    cost_adjusted_roi: Decimal = Decimal(0)  # Percent of total cost basis


class AlertThresholds(BaseModel):
    commission_pct_medium: Decimal = Decimal("0.02")
    commission_pct_high: Decimal = Decimal("0.05")
    small_trade_floor: Decimal = Decimal("50000")
    small_trade_share: Decimal = Decimal("0.30")


class Alert(BaseModel):
    rule: AlertRule
    severity: AlertSeverity
    message: str
    recommended_action: str
    potential_savings: Decimal = Decimal(0)
    trade_id: int | None = None
    symbol: str | None = None
    affected_trades: int = 0


class BenchmarkComparison(BaseModel):
    our_cost_pct: Decimal
    industry_cost_pct: Decimal
    efficiency_score: Decimal
    relative_performance: RelativePerformance
    potential_savings: Decimal = Decimal(0)


class InstrumentRealized(BaseModel):
    """Realized result of one instrument, split by holding period."""

    instrument_id: int
    symbol: str
    round_trips: int = 0
    quantity: Decimal = Decimal(0)
    cost_basis: Decimal = Decimal(0)
    proceeds: Decimal = Decimal(0)
    realized_gain_loss: Decimal = Decimal(0)
    short_term_gain_loss: Decimal = Decimal(0)
    long_term_gain_loss: Decimal = Decimal(0)
    avg_holding_days: Decimal = Decimal(0)


class InstrumentCost(BaseModel):
    instrument_id: int
    symbol: str
    total_commissions: Decimal = Decimal(0)
    total_taxes: Decimal = Decimal(0)
    total_fees: Decimal = Decimal(0)
    number_of_trades: int = 0
    average_fee_per_trade: Decimal = Decimal(0)


class TradeComparison(BaseModel):
    """Fees paid on one trade against the result it realized."""

    trade_id: int
    instrument_id: int
    symbol: str
    side: TradeSide
    trade_date: date
    gross_amount: Decimal
    total_fees: Decimal
    commission_pct: Decimal
    realized_gain_loss: Decimal | None = None  # None for buys and unmatched sells
    commission_to_gain_ratio: Decimal | None = None
    outcome: TradeOutcome = TradeOutcome.OPEN
    warning: CommissionWarning = CommissionWarning.NONE


class ComparisonSummary(BaseModel):
    total_trades: int = 0
    profitable_round_trips: int = 0
    unprofitable_round_trips: int = 0
    break_even_round_trips: int = 0
    total_gains: Decimal = Decimal(0)
    total_losses: Decimal = Decimal(0)  # Magnitude
    total_fees: Decimal = Decimal(0)
    net_result: Decimal = Decimal(0)  # Realized results are already net of fees
    fees_pct_of_gains: Decimal = Decimal(0)
    profitability_pct: Decimal = Decimal(0)


class PeriodicComparison(BaseModel):
    period: str
    gains: Decimal = Decimal(0)
    losses: Decimal = Decimal(0)
    total_costs: Decimal = Decimal(0)
    net_result: Decimal = Decimal(0)
    costs_pct_of_gains: Decimal = Decimal(0)
    number_of_trades: int = 0
    average_cost_per_trade: Decimal = Decimal(0)
    win_rate: Decimal = Decimal(0)


class CommissionVsGain(BaseModel):
    date_range: DateRange
    summary: ComparisonSummary
    trades: list[TradeComparison]
    periodic: list[PeriodicComparison]
    warnings: list[str] = []
