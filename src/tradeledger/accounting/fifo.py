"""FIFO lot matching — pure functions, no ledger access.

Each instrument is matched on its own: the oldest open lot is consumed first, and
trades on the same date are ordered by trade id (ingestion order). Fees are folded
into both legs: a lot's cost basis includes its buy commission and tax, a sell's
proceeds are net of its commission and tax pro-rated by quantity.
"""

import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from datetime import date

from tradeledger.domain.enums.trade import TradeSide
from tradeledger.domain.errors import DataIntegrityError
from tradeledger.domain.models.lots import (
    CompletedRoundTrip,
    InstrumentMatch,
    LedgerMatch,
    MatchFailure,
    OpenLot,
    OpenPosition,
)
from tradeledger.domain.models.trade import Trade
from tradeledger.domain.money import ZERO, to_currency, to_price

logger = logging.getLogger(__name__)


def sort_key(trade: Trade) -> tuple[date, int]:
    return (trade.trade_date, trade.id)


def _check_trade(trade: Trade, instrument_id: int) -> None:
    if trade.instrument_id != instrument_id:
        raise DataIntegrityError(
            f"trade {trade.id} belongs to instrument {trade.instrument_id}, not {instrument_id}",
            instrument_id=instrument_id,
            symbol=trade.symbol,
        )
    if trade.quantity <= 0:
        raise DataIntegrityError(
            f"trade {trade.id} has non-positive quantity {trade.quantity}",
            instrument_id=instrument_id,
            symbol=trade.symbol,
        )
    if trade.unit_price <= 0:
        raise DataIntegrityError(
            f"trade {trade.id} has non-positive unit price {trade.unit_price}",
            instrument_id=instrument_id,
            symbol=trade.symbol,
        )
    if trade.commission < 0 or trade.tax < 0:
        raise DataIntegrityError(
            f"trade {trade.id} has a negative commission or tax",
            instrument_id=instrument_id,
            symbol=trade.symbol,
        )


def _open_lot(trade: Trade) -> OpenLot:
    cost = trade.gross_amount + trade.fees
    return OpenLot(
        instrument_id=trade.instrument_id,
        symbol=trade.symbol,
        buy_trade_id=trade.id,
        open_date=trade.trade_date,
        original_quantity=trade.quantity,
        remaining_quantity=trade.quantity,
        unit_cost_basis=cost / trade.quantity,
        remaining_cost=to_currency(cost),
        remaining_fees=to_currency(trade.fees),
    )


def _close_against_lots(sell: Trade, buy_queue: deque[OpenLot]) -> list[CompletedRoundTrip]:
    """Consume ``sell`` from the front of ``buy_queue``, one round-trip per lot touched.

    Every slice is the quantity share of what is still unassigned, rounded to the
    cent; the last slice of a sell or of a lot takes the exact leftover, so sums
    over a sell or a lot are exact to the cent.
    """
    available = sum((lot.remaining_quantity for lot in buy_queue), ZERO)
    if sell.quantity > available:
        shortfall = sell.quantity - available
        raise DataIntegrityError(
            f"sell {sell.id} of {sell.quantity} {sell.symbol} exceeds open position {available}",
            instrument_id=sell.instrument_id,
            symbol=sell.symbol,
            shortfall=shortfall,
        )

    round_trips: list[CompletedRoundTrip] = []
    sell_remaining = sell.quantity
    gross_left = to_currency(sell.gross_amount)
    fees_left = to_currency(sell.fees)

    while sell_remaining > 0:
        front = buy_queue[0]
        match_qty = min(sell_remaining, front.remaining_quantity)

        if match_qty == sell_remaining:
            gross_slice = gross_left
            sell_fee_slice = fees_left
        else:
            gross_slice = to_currency(gross_left * match_qty / sell_remaining)
            sell_fee_slice = to_currency(fees_left * match_qty / sell_remaining)

        if match_qty == front.remaining_quantity:
            cost_basis = front.remaining_cost
            buy_fee_slice = front.remaining_fees
        else:
            lot_share = match_qty / front.remaining_quantity
            cost_basis = to_currency(front.remaining_cost * lot_share)
            buy_fee_slice = to_currency(front.remaining_fees * lot_share)

        proceeds = gross_slice - sell_fee_slice
        round_trips.append(CompletedRoundTrip(
            instrument_id=sell.instrument_id,
            symbol=sell.symbol,
            buy_trade_id=front.buy_trade_id,
            sell_trade_id=sell.id,
            buy_date=front.open_date,
            sell_date=sell.trade_date,
            matched_quantity=match_qty,
            cost_basis=cost_basis,
            proceeds=proceeds,
            fees=buy_fee_slice + sell_fee_slice,
            realized_gain_loss=proceeds - cost_basis,
            holding_days=(sell.trade_date - front.open_date).days,
        ))

        front.remaining_quantity -= match_qty
        front.remaining_cost -= cost_basis
        front.remaining_fees -= buy_fee_slice
        sell_remaining -= match_qty
        gross_left -= gross_slice
        fees_left -= sell_fee_slice

        if front.remaining_quantity <= 0:
            buy_queue.popleft()

    return round_trips


def fifo_match(trades: list[Trade]) -> tuple[list[CompletedRoundTrip], list[OpenLot]]:
    """Match trades using FIFO for a single instrument.

    Args:
        trades: Sorted by (trade_date, id), all for the same instrument.

    Returns:
        (round_trips, remaining_open_lots)

    Raises:
        DataIntegrityError: oversell, invalid trade values or unsorted input.
    """
    if not trades:
        return [], []

    instrument_id = trades[0].instrument_id
    buy_queue: deque[OpenLot] = deque()
    round_trips: list[CompletedRoundTrip] = []
    previous: Trade | None = None

    for trade in trades:
        _check_trade(trade, instrument_id)
        if previous is not None and sort_key(trade) <= sort_key(previous):
            raise DataIntegrityError(
                f"trade {trade.id} ({trade.trade_date}) is out of order after "
                f"trade {previous.id} ({previous.trade_date})",
                instrument_id=instrument_id,
                symbol=trade.symbol,
            )
        previous = trade

        if trade.side == TradeSide.BUY:
            buy_queue.append(_open_lot(trade))
        else:
            round_trips.extend(_close_against_lots(trade, buy_queue))

    return round_trips, list(buy_queue)


def open_position(instrument_id: int, symbol: str, lots: list[OpenLot]) -> OpenPosition:
    """Aggregate remaining lots into quantity and weighted-average cost."""
    quantity = sum((lot.remaining_quantity for lot in lots), ZERO)
    total_cost = sum((lot.remaining_cost for lot in lots), ZERO)
    return OpenPosition(
        instrument_id=instrument_id,
        symbol=symbol,
        quantity=quantity,
        total_cost=total_cost,
        average_cost=to_price(total_cost / quantity) if quantity > 0 else ZERO,
        lots=lots,
    )


def match_instrument(trades: Iterable[Trade]) -> InstrumentMatch:
    """Sort one instrument's trades and match them."""
    ordered = sorted(trades, key=sort_key)
    if not ordered:
        raise ValueError("match_instrument needs at least one trade")

    round_trips, lots = fifo_match(ordered)
    first = ordered[0]
    return InstrumentMatch(
        instrument_id=first.instrument_id,
        symbol=first.symbol,
        round_trips=round_trips,
        position=open_position(first.instrument_id, first.symbol, lots),
    )


def match_ledger(trades: Iterable[Trade]) -> LedgerMatch:
    """Match a whole ledger snapshot, instrument by instrument.

    An instrument whose trades cannot be matched is reported as a failure and the
    remaining instruments are still matched.
    """
    by_instrument: dict[int, list[Trade]] = defaultdict(list)
    for trade in trades:
        by_instrument[trade.instrument_id].append(trade)

    result = LedgerMatch()
    for instrument_id in sorted(by_instrument):
        group = by_instrument[instrument_id]
        try:
            match = match_instrument(group)
        except DataIntegrityError as e:
            logger.warning("Lot matching failed for instrument %s: %s", instrument_id, e)
            result.failures.append(MatchFailure(
                instrument_id=instrument_id,
                symbol=e.symbol or group[0].symbol,
                message=str(e),
                shortfall=e.shortfall,
            ))
            continue

        result.round_trips.extend(match.round_trips)
        if match.position.quantity > 0:
            result.positions.append(match.position)

    logger.info(
        "Matched %d instruments: %d round-trips, %d open positions, %d failures",
        len(by_instrument), len(result.round_trips), len(result.positions), len(result.failures),
    )
    return result
