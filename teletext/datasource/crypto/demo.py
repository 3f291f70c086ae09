"""
Demo crypto prices.
"""

from typing import Any

from teletext.datasource.base import DemoProvider
from teletext.datasource.crypto.models import CryptoBoard, CryptoQuote

DEMO_PRICES = [
    {"id": "90", "symbol": "BTC", "name": "Bitcoin", "price": 92958.04, "change_24h": -0.11, "rank": 1},
    {"id": "80", "symbol": "ETH", "name": "Ethereum", "price": 3174.54, "change_24h": 2.82, "rank": 2},
    {"id": "518", "symbol": "USDT", "name": "Tether", "price": 0.999989, "change_24h": -0.02, "rank": 3},
    {"id": "58", "symbol": "XRP", "name": "XRP", "price": 2.14, "change_24h": -1.54, "rank": 4},
    {"id": "2710", "symbol": "BNB", "name": "Binance Coin", "price": 908.47, "change_24h": 0.57, "rank": 5},
    {"id": "48543", "symbol": "SOL", "name": "Solana", "price": 142.75, "change_24h": 0.48, "rank": 6},
    {"id": "33285", "symbol": "USDC", "name": "USD Coin", "price": 0.999691, "change_24h": -0.01, "rank": 7},
]


class CryptoDemoProvider(DemoProvider[CryptoBoard]):
    payload_model = CryptoBoard

    def fixture(self, category: str) -> Any:
        return DEMO_PRICES

    def parse(self, raw: Any, category: str) -> CryptoBoard:
        return CryptoBoard(cryptos=[CryptoQuote(**coin) for coin in raw])
