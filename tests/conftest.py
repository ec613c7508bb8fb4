from decimal import Decimal

import pytest

from tradeledger.domain.models.fees import CustodyTerms, FeeSchedule, FeeTier


def make_schedule(
    broker_id: str = "galicia",
    broker_name: str = "Banco Galicia",
    minimum_fee: str = "150",
    tax_rate: str = "0.21",
    exempt_threshold: str = "1000000",
    custody_rate: str = "0.0025",
    custody_minimum: str = "500",
) -> FeeSchedule:
    tiers = (
        FeeTier(min_amount=Decimal(0), max_amount=Decimal("1000000"), rate=Decimal("0.005")),
        FeeTier(min_amount=Decimal("1000000"), rate=Decimal("0.004")),
    )
    return FeeSchedule(
        broker_id=broker_id,
        broker_name=broker_name,
        buy_tiers=tiers,
        sell_tiers=tiers,
        minimum_fee=Decimal(minimum_fee),
        tax_rate=Decimal(tax_rate),
        custody=CustodyTerms(
            exempt_threshold=Decimal(exempt_threshold),
            rate=Decimal(custody_rate),
            minimum_fee=Decimal(custody_minimum),
        ),
    )


@pytest.fixture()
def schedule() -> FeeSchedule:
    return make_schedule()


@pytest.fixture()
def schedule_factory():
    return make_schedule
