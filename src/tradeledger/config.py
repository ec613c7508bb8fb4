from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    fee_schedules_path: str = "fee_schedules.json"
    default_broker_id: str = "galicia"
    industry_cost_pct: Decimal = Decimal("1.5")  # Industry average cost, percent of volume
    small_trade_floor: Decimal = Decimal("50000")
    small_trade_share: Decimal = Decimal("0.30")
    commission_pct_medium: Decimal = Decimal("0.02")
    commission_pct_high: Decimal = Decimal("0.05")
    top_instruments_limit: int = 10
    long_term_holding_days: int = 365
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
