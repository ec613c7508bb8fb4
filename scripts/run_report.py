"""Match a ledger export and print the dashboard, tax report and commission comparison as JSON.

Usage:
    PYTHONPATH=src python scripts/run_report.py trades.json [custody.json] [YEAR]
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from tradeledger.config import settings

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")


def _load(path: str) -> list[dict]:
    return json.loads(Path(path).read_text(encoding="utf-8"), parse_float=Decimal)


def main() -> None:
    from tradeledger.accounting.mapping import custody_records_from_records, trades_from_records
    from tradeledger.container import Container
    from tradeledger.domain.models.analytics import DateRange

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    trades = trades_from_records(_load(sys.argv[1]))  # reversals are applied by the assembler
    custody = custody_records_from_records(_load(sys.argv[2])) if len(sys.argv) > 2 else []
    year = int(sys.argv[3]) if len(sys.argv) > 3 else date.today().year

    container = Container()
    schedules = {s.broker_id: s for s in container.fee_schedules()}
    schedule = schedules[container.settings().default_broker_id]
    assembler = container.report_assembler()

    dashboard = assembler.cost_dashboard(trades, custody, schedule, DateRange.for_year(year))
    tax_report = assembler.annual_tax_report(year, trades, custody, broker_id=schedule.broker_id)
    comparison = assembler.commission_vs_gain(trades, DateRange.for_year(year), custody)

    print(dashboard.model_dump_json(indent=2))
    print(tax_report.model_dump_json(indent=2))
    print(comparison.model_dump_json(indent=2))
    for warning in dashboard.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)


if __name__ == "__main__":
    main()
