"""Canonical trade record. Accepts both ledger field-name generations."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from tradeledger.domain.enums.trade import TradeSide


class Trade(BaseModel):
    """A BUY or SELL snapshot read from the ledger store. Never mutated."""

    model_config = {"frozen": True, "populate_by_name": True}

    id: int = Field(validation_alias=AliasChoices("id", "trade_id", "tradeId"))
    instrument_id: int = Field(validation_alias=AliasChoices("instrument_id", "instrumentId"))
    symbol: str
    side: TradeSide = Field(validation_alias=AliasChoices("side", "type"))
    quantity: Decimal
    unit_price: Decimal = Field(validation_alias=AliasChoices("unit_price", "unitPrice", "price"))
    trade_date: date = Field(validation_alias=AliasChoices("trade_date", "tradeDate"))
    commission: Decimal = Field(
        default=Decimal(0),
        validation_alias=AliasChoices("commission", "commissionAmount", "commission_amount"),
    )
    tax: Decimal = Field(default=Decimal(0), validation_alias=AliasChoices("tax", "taxes"))
    reverses_trade_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("reverses_trade_id", "reversesTradeId"),
    )

    @field_validator("side", mode="before")
    @classmethod
    def _normalize_side(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("trade_date", mode="before")
    @classmethod
    def _date_only(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @property
    def gross_amount(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def fees(self) -> Decimal:
        return self.commission + self.tax

    @property
    def net_amount(self) -> Decimal:
        if self.side == TradeSide.BUY:
            return self.gross_amount + self.fees
        return self.gross_amount - self.fees
