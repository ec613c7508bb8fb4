from enum import Enum


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class LotMethod(str, Enum):
    """Tax-lot convention. Only FIFO is implemented."""

    FIFO = "FIFO"
