"""Fee schedules and the quotes computed from them."""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, computed_field, field_validator

from tradeledger.domain.enums.alert import CustodyStrategy
from tradeledger.domain.enums.trade import TradeSide


class FeeTier(BaseModel):
    """Commission rate for operation amounts in [min_amount, max_amount)."""

    model_config = {"frozen": True, "populate_by_name": True}

    min_amount: Decimal = Field(default=Decimal(0), validation_alias=AliasChoices("min_amount", "minAmount"))
    max_amount: Decimal | None = Field(default=None, validation_alias=AliasChoices("max_amount", "maxAmount"))
    rate: Decimal

    def contains(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount < self.max_amount


class CustodyTerms(BaseModel):
    model_config = {"frozen": True, "populate_by_name": True}

    exempt_threshold: Decimal = Field(
        default=Decimal(0), validation_alias=AliasChoices("exempt_threshold", "exemptThreshold")
    )
    rate: Decimal = Decimal(0)  # Monthly, on the value above the exempt threshold
    minimum_fee: Decimal = Field(default=Decimal(0), validation_alias=AliasChoices("minimum_fee", "minimumFee"))


class FeeSchedule(BaseModel):
    """A broker's fee configuration. Immutable within a calculation."""

    model_config = {"frozen": True, "populate_by_name": True}

    broker_id: str = Field(validation_alias=AliasChoices("broker_id", "brokerId"))
    broker_name: str = Field(default="", validation_alias=AliasChoices("broker_name", "brokerName", "name"))
    buy_tiers: tuple[FeeTier, ...] = Field(validation_alias=AliasChoices("buy_tiers", "buyTiers"))
    sell_tiers: tuple[FeeTier, ...] = Field(validation_alias=AliasChoices("sell_tiers", "sellTiers"))
    minimum_fee: Decimal = Field(default=Decimal(0), validation_alias=AliasChoices("minimum_fee", "minimumFee"))
    tax_rate: Decimal = Field(default=Decimal(0), validation_alias=AliasChoices("tax_rate", "taxRate"))
    custody: CustodyTerms = CustodyTerms()
    effective_from: date | None = Field(
        default=None, validation_alias=AliasChoices("effective_from", "effectiveFrom")
    )

    @property
    def display_name(self) -> str:
        return self.broker_name or self.broker_id

    def tiers_for(self, side: TradeSide) -> tuple[FeeTier, ...]:
        return self.buy_tiers if side == TradeSide.BUY else self.sell_tiers


class CommissionQuote(BaseModel):
    side: TradeSide
    amount: Decimal
    rate: Decimal
    base: Decimal
    tax: Decimal
    total: Decimal
    minimum_applied: bool = False

    @property
    def net_amount(self) -> Decimal:
        if self.side == TradeSide.BUY:
            return self.amount + self.total
        return self.amount - self.total


class CustodyQuote(BaseModel):
    """Monthly custody charge for one portfolio value."""

    portfolio_value: Decimal
    applicable_amount: Decimal
    fee: Decimal
    tax: Decimal
    total: Decimal
    annual_total: Decimal
    is_exempt: bool


class FirstYearProjection(BaseModel):
    operation_cost: Decimal
    annual_custody: Decimal
    total_first_year_cost: Decimal
    break_even_pct: Decimal


class ScheduleComparison(BaseModel):
    broker_id: str
    broker_name: str
    operation: CommissionQuote
    custody: CustodyQuote
    projection: FirstYearProjection
    ranking: int = 0


class MinimumInvestment(BaseModel):
    minimum_amount: Decimal
    commission_pct: Decimal
    recommendation: str


class CommissionImpact(BaseModel):
    """Effect of commissions and custody on an investment held for whole years."""

    initial_investment: Decimal
    future_value: Decimal
    gross_return: Decimal
    buy_commission: Decimal
    sell_commission: Decimal
    total_custody_fees: Decimal
    total_costs: Decimal
    net_return: Decimal
    return_impact_pct: Decimal  # Costs as a percentage of the gross return
    break_even_return_pct: Decimal  # Return needed to cover the costs


class CustodyThreshold(BaseModel):
    exempt_threshold: Decimal
    minimum_monthly_charge: Decimal
    minimum_annual_charge: Decimal


class CustodyProjection(BaseModel):
    month: int
    portfolio_value: Decimal
    custody: CustodyQuote
    cumulative_custody: Decimal
    threshold_crossed: bool


class CustodyOptimization(BaseModel):
    strategy: CustodyStrategy
    current_size: Decimal
    optimized_size: Decimal
    current_annual_custody: Decimal
    optimized_annual_custody: Decimal
    annual_savings: Decimal
    recommendation: str


class CustodyFeeRecord(BaseModel):
    """Custody actually charged by one broker for one month."""

    model_config = {"frozen": True, "populate_by_name": True}

    broker_id: str = Field(default="", validation_alias=AliasChoices("broker_id", "brokerId", "broker"))
    month: date  # First day of the month
    portfolio_value: Decimal = Field(validation_alias=AliasChoices("portfolio_value", "portfolioValue"))
    fee_amount: Decimal = Field(validation_alias=AliasChoices("fee_amount", "feeAmount"))
    tax_amount: Decimal = Field(
        default=Decimal(0), validation_alias=AliasChoices("tax_amount", "taxAmount", "ivaAmount")
    )

    @computed_field
    @property
    def total_charged(self) -> Decimal:
        return self.fee_amount + self.tax_amount

    @field_validator("month", mode="before")
    @classmethod
    def _first_of_month(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) == 7:
            value = f"{value}-01"
        if isinstance(value, str):
            value = date.fromisoformat(value[:10])
        if isinstance(value, date):
            return value.replace(day=1)
        return value
