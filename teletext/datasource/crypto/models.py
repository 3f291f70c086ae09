"""
Crypto price payload models.
"""

from typing import Any

from pydantic import BaseModel, Field

MAX_CRYPTOS = 7


class CryptoQuote(BaseModel):
    """Price snapshot for one coin."""

    id: str
    symbol: str
    name: str
    price: float | None = None
    change_24h: float | None = None
    change_1h: float | None = None
    change_7d: float | None = None
    market_cap: float | None = None
    volume_24h: float | None = None
    rank: int | None = None


class CryptoBoard(BaseModel):
    """Top coins by market cap."""

    cryptos: list[CryptoQuote] = Field(default_factory=list)


def to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> int | None:
    number = to_float(value)
    return int(number) if number is not None else None
