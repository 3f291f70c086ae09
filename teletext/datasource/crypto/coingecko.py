"""
CoinGecko API provider for cryptocurrency prices.

API Documentation: https://www.coingecko.com/en/api/documentation
Free tier: 10-30 calls/minute (demo API key optional)
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
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.rate_limiter import RateLimiter


class CoinGeckoProvider(ProviderAdapter[CryptoBoard]):
    """
    Secondary crypto provider.

    Uses the markets endpoint so rank, volume and percentage changes come
    back in one call.
    """

    BASE_URL = "https://api.coingecko.com/api/v3"
    SERVICE_ID = "coingecko"
    payload_model = CryptoBoard

    def __init__(
        self,
        fetcher: ResilientFetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        options: FetchOptions | None = None,
        api_key: str = "",
    ):
        super().__init__(fetcher, rate_limiter, options)
        self.api_key = api_key

    async def fetch(self, category: str) -> Any:
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else None
        return await self._get_json(
            f"{self.BASE_URL}/coins/markets",
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": MAX_CRYPTOS,
                "page": 1,
                "price_change_percentage": "1h,24h,7d",
            },
            headers=headers,
        )

    def parse(self, raw: Any, category: str) -> CryptoBoard:
        """Transform CoinGecko markets response to the board model."""
        if not isinstance(raw, list):
            raise self._malformed("CoinGecko markets response is not a list")

        quotes = [
            CryptoQuote(
                id=str(coin.get("id") or ""),
                symbol=str(coin.get("symbol") or "").upper(),
                name=coin.get("name") or "",
                price=to_float(coin.get("current_price")),
                change_24h=to_float(
                    coin.get("price_change_percentage_24h_in_currency")
                    or coin.get("price_change_percentage_24h")
                ),
                change_1h=to_float(coin.get("price_change_percentage_1h_in_currency")),
                change_7d=to_float(coin.get("price_change_percentage_7d_in_currency")),
                market_cap=to_float(coin.get("market_cap")),
                volume_24h=to_float(coin.get("total_volume")),
                rank=to_int(coin.get("market_cap_rank")),
            )
            for coin in raw[:MAX_CRYPTOS]
            if isinstance(coin, dict)
        ]
        if not quotes:
            raise self._invalid("CoinGecko returned no markets")

        return CryptoBoard(cryptos=quotes)
