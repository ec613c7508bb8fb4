"""Domain types for FIFO lot matching."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class OpenLot(BaseModel):
    """An unmatched (or partially matched) buy position."""

    instrument_id: int
    symbol: str
    buy_trade_id: int
    open_date: date
    original_quantity: Decimal
    remaining_quantity: Decimal
    unit_cost_basis: Decimal  # (gross + commission + tax) / quantity
    remaining_cost: Decimal  # Cost not yet assigned to a round-trip
    remaining_fees: Decimal  # Buy commission + tax not yet assigned


class CompletedRoundTrip(BaseModel):
    """A realized gain/loss from matching one sell slice against one lot."""

    model_config = {"frozen": True}

    instrument_id: int
    symbol: str
    buy_trade_id: int
    sell_trade_id: int
    buy_date: date
    sell_date: date
    matched_quantity: Decimal
    cost_basis: Decimal  # Includes the pro-rated buy fees
    proceeds: Decimal  # Net of the pro-rated sell fees
    fees: Decimal  # Buy-fee slice + sell-fee slice
    realized_gain_loss: Decimal  # proceeds - cost_basis
    holding_days: int

    @property
    def gain_before_fees(self) -> Decimal:
        return self.realized_gain_loss + self.fees


class OpenPosition(BaseModel):
    """Remaining open quantity of one instrument after matching."""

    instrument_id: int
    symbol: str
    quantity: Decimal = Decimal(0)
    total_cost: Decimal = Decimal(0)
    average_cost: Decimal = Decimal(0)  # Weighted by remaining quantity
    lots: list[OpenLot] = []


class InstrumentMatch(BaseModel):
    instrument_id: int
    symbol: str
    round_trips: list[CompletedRoundTrip] = []
    position: OpenPosition


class MatchFailure(BaseModel):
    """An instrument whose matching run raised DataIntegrityError."""

    instrument_id: int
    symbol: str
    message: str
    shortfall: Decimal | None = None


class LedgerMatch(BaseModel):
    """Result of matching a whole ledger snapshot, instrument by instrument."""

    round_trips: list[CompletedRoundTrip] = []
    positions: list[OpenPosition] = []
    failures: list[MatchFailure] = []
