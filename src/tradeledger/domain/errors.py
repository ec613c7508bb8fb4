"""Error taxonomy for ledger matching and fee calculation."""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for errors raised by the analytics core."""


class DataIntegrityError(LedgerError):
    """The trade sequence of one instrument cannot be matched.

    Raised for oversells, non-positive quantities or prices, negative fees and
    sequences that are not in (trade_date, id) order.
    """

    def __init__(
        self,
        message: str,
        instrument_id: int | None = None,
        symbol: str | None = None,
        shortfall: Decimal | None = None,
    ) -> None:
        super().__init__(message)
        self.instrument_id = instrument_id
        self.symbol = symbol
        self.shortfall = shortfall


class InvalidScheduleError(LedgerError):
    """A fee schedule has a tier gap or is malformed."""

    def __init__(self, message: str, schedule_id: str | None = None) -> None:
        super().__init__(f"{message} (schedule={schedule_id})" if schedule_id else message)
        self.schedule_id = schedule_id
