from enum import Enum


class PeriodBucket(str, Enum):
    """Aggregation granularity."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
