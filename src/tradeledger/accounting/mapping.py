"""Mapping layer from ledger and configuration records to domain models.

Ledger rows come in two field-name generations (``type``/``price``/``commissionAmount``
and ``side``/``unitPrice``/``commission``); both validate into the one Trade model.
"""

import json
import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from tradeledger.domain.errors import DataIntegrityError, InvalidScheduleError
from tradeledger.domain.models.fees import CustodyFeeRecord, FeeSchedule
from tradeledger.domain.models.lots import MatchFailure
from tradeledger.domain.models.trade import Trade

logger = logging.getLogger(__name__)

_schedules_adapter = TypeAdapter(list[FeeSchedule])
_custody_adapter = TypeAdapter(list[CustodyFeeRecord])


def _apply_reversals(group: list[Trade]) -> list[Trade]:
    """Drop reversal trades of one instrument together with the trades they reverse."""
    by_id = {t.id: t for t in group}
    reversed_ids: set[int] = set()

    for trade in group:
        if trade.reverses_trade_id is None:
            continue
        original = by_id.get(trade.reverses_trade_id)
        if original is None:
            raise DataIntegrityError(
                f"trade {trade.id} reverses unknown trade {trade.reverses_trade_id} of this instrument",
                instrument_id=trade.instrument_id,
                symbol=trade.symbol,
            )
        if original.reverses_trade_id is not None:
            raise DataIntegrityError(
                f"trade {trade.id} reverses trade {original.id}, which is itself a reversal",
                instrument_id=trade.instrument_id,
                symbol=trade.symbol,
            )
        if original.id in reversed_ids:
            raise DataIntegrityError(
                f"trade {original.id} is reversed more than once",
                instrument_id=trade.instrument_id,
                symbol=trade.symbol,
            )
        reversed_ids.add(original.id)

    return [t for t in group if t.reverses_trade_id is None and t.id not in reversed_ids]


def effective_trades(trades: Iterable[Trade]) -> tuple[list[Trade], list[MatchFailure]]:
    """Apply reversals instrument by instrument.

    A correction is recorded as a reversal of the original plus a new trade, so the
    ledger never mutates a trade in place. An instrument whose reversals do not line up
    is dropped and reported; the other instruments are kept.

    Returns:
        (kept_trades, failures)
    """
    by_instrument: dict[int, list[Trade]] = defaultdict(list)
    for trade in trades:
        by_instrument[trade.instrument_id].append(trade)

    kept: list[Trade] = []
    failures: list[MatchFailure] = []
    for instrument_id in sorted(by_instrument):
        group = by_instrument[instrument_id]
        try:
            effective = _apply_reversals(group)
        except DataIntegrityError as e:
            logger.warning("Reversals rejected for instrument %s: %s", instrument_id, e)
            failures.append(MatchFailure(
                instrument_id=instrument_id,
                symbol=e.symbol or group[0].symbol,
                message=str(e),
            ))
            continue
        if len(effective) != len(group):
            logger.debug("Dropped %d reversed/reversal trades of instrument %s", len(group) - len(effective), instrument_id)
        kept.extend(effective)

    return kept, failures


def trades_from_records(records: Iterable[dict[str, Any]]) -> list[Trade]:
    """Validate raw ledger rows into Trades. Reversals are kept; see ``effective_trades``."""
    return [Trade.model_validate(record) for record in records]


def schedules_from_records(records: Iterable[dict[str, Any]]) -> list[FeeSchedule]:
    schedules = _schedules_adapter.validate_python(list(records))
    seen: set[str] = set()
    for schedule in schedules:
        if schedule.broker_id in seen:
            raise InvalidScheduleError("duplicate broker id", schedule.broker_id)
        seen.add(schedule.broker_id)
    return schedules


def load_fee_schedules(path: str | Path) -> list[FeeSchedule]:
    """Load fee schedules from a JSON file holding a list or ``{"schedules": [...]}``."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"), parse_float=Decimal)
    if isinstance(payload, dict):
        payload = payload.get("schedules", [])
    schedules = schedules_from_records(payload)
    logger.info("Loaded %d fee schedules from %s", len(schedules), path)
    return schedules


def custody_records_from_records(records: Iterable[dict[str, Any]]) -> list[CustodyFeeRecord]:
    return sorted(_custody_adapter.validate_python(list(records)), key=lambda r: (r.month, r.broker_id))
