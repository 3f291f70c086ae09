"""
Coinlore API provider for cryptocurrency prices.

API: https://api.coinlore.net/api/tickers/
Free, no API key required. Self-imposed limit of 30 calls/minute.
"""

from typing import Any

from teletext.datasource.base import ProviderAdapter
from teletext.datasource.crypto.models import (
    MAX_CRYPTOS,
    CryptoBoard,
    CryptoQuote,
    to_float,
    to_int,
)


class CoinloreProvider(ProviderAdapter[CryptoBoard]):
    """Primary crypto provider: top tickers by market cap."""

    BASE_URL = "https://api.coinlore.net/api/tickers/"
    SERVICE_ID = "coinlore"
    payload_model = CryptoBoard

    async def fetch(self, category: str) -> Any:
        return await self._get_json(
            self.BASE_URL, params={"start": 0, "limit": MAX_CRYPTOS}
        )

    def parse(self, raw: Any, category: str) -> CryptoBoard:
        coins = raw.get("data") if isinstance(raw, dict) else raw
        if not isinstance(coins, list):
            raise self._malformed("Coinlore response has no ticker list")

        quotes = [
            CryptoQuote(
                id=str(coin.get("id") or ""),
                symbol=str(coin.get("symbol") or "").upper(),
                name=coin.get("name") or "",
                price=to_float(coin.get("price_usd")),
                change_24h=to_float(coin.get("percent_change_24h")),
                change_1h=to_float(coin.get("percent_change_1h")),
                change_7d=to_float(coin.get("percent_change_7d")),
                market_cap=to_float(coin.get("market_cap_usd")),
                volume_24h=to_float(coin.get("volume24")),
                rank=to_int(coin.get("rank")),
            )
            for coin in coins[:MAX_CRYPTOS]
            if isinstance(coin, dict)
        ]
        if not quotes:
            raise self._invalid("Coinlore returned no tickers")

        return CryptoBoard(cryptos=quotes)
