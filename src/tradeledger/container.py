from dependency_injector import containers, providers

from tradeledger.accounting.mapping import load_fee_schedules
from tradeledger.config import Settings
from tradeledger.report.assembler import ReportAssembler, thresholds_from_settings


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(Settings)

    fee_schedules = providers.Singleton(
        load_fee_schedules,
        path=settings.provided.fee_schedules_path,
    )

    alert_thresholds = providers.Singleton(
        thresholds_from_settings,
        settings=settings,
    )

    report_assembler = providers.Factory(
        ReportAssembler,
        settings=settings,
        thresholds=alert_thresholds,
    )
