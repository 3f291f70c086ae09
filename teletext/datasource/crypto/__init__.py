"""
Crypto price providers: Coinlore -> CoinGecko -> demo prices.
"""

from teletext.datasource.crypto.coingecko import CoinGeckoProvider
from teletext.datasource.crypto.coinlore import CoinloreProvider
from teletext.datasource.crypto.demo import CryptoDemoProvider
from teletext.datasource.crypto.models import CryptoBoard, CryptoQuote

__all__ = [
    "CoinGeckoProvider",
    "CoinloreProvider",
    "CryptoBoard",
    "CryptoDemoProvider",
    "CryptoQuote",
]
