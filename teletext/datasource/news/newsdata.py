"""
NewsData.io news provider.

API: https://newsdata.io/api/1/news
Requires an API key (NEWSDATA_API_KEY)
"""

from typing import Any

from teletext.datasource.base import ProviderAdapter
from teletext.datasource.news.models import (
    MAX_HEADLINES,
    NewsArticle,
    NewsPage,
    build_page,
    category_info,
    clean_text,
    parse_date,
)
from teletext.services.client import FetchOptions, ResilientFetcher
from teletext.services.rate_limiter import RateLimiter


class NewsDataProvider(ProviderAdapter[NewsPage]):
    """Secondary news provider."""

    BASE_URL = "https://newsdata.io/api/1/news"
    SERVICE_ID = "newsdata"
    payload_model = NewsPage

    def __init__(
        self,
        fetcher: ResilientFetcher | None = None,
        rate_limiter: RateLimiter | None = None,
        options: FetchOptions | None = None,
        api_key: str = "",
    ):
        super().__init__(fetcher, rate_limiter, options)
        self.api_key = api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, category: str) -> Any:
        return await self._get_json(
            self.BASE_URL,
            params={
                "apikey": self.api_key,
                "language": "en",
                "category": category_info(category).api_category,
            },
        )

    def parse(self, raw: Any, category: str) -> NewsPage:
        if not isinstance(raw, dict):
            raise self._malformed("NewsData response is not an object")

        results = raw.get("results") or []
        if not results:
            raise self._invalid("No NewsData results")

        articles = [
            NewsArticle(
                title=item.get("title") or "NO TITLE",
                description=clean_text(item.get("description")),
                source=item.get("source_id") or item.get("source_name") or "NEWS",
                pub_date=parse_date(item.get("pubDate")),
                link=item.get("link") or None,
                image_url=item.get("image_url") or None,
            )
            for item in results[:MAX_HEADLINES]
        ]

        return build_page(category, articles)
