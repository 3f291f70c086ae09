"""
RSS2JSON news provider (BBC feeds converted to JSON).

API: https://api.rss2json.com/v1/api.json
Free tier: 10,000 requests/day, no API key required
"""

from typing import Any

from teletext.datasource.base import ProviderAdapter
from teletext.datasource.news.models import (
    MAX_HEADLINES,
    NewsArticle,
    NewsPage,
    build_page,
    clean_text,
    parse_date,
)

RSS_FEEDS = {
    "top": "https://feeds.bbci.co.uk/news/rss.xml",
    "world": "https://feeds.bbci.co.uk/news/world/rss.xml",
    "technology": "https://feeds.bbci.co.uk/news/technology/rss.xml",
    "business": "https://feeds.bbci.co.uk/news/business/rss.xml",
    "sports": "https://feeds.bbci.co.uk/sport/rss.xml",
}


class Rss2JsonProvider(ProviderAdapter[NewsPage]):
    """Primary news provider."""

    BASE_URL = "https://api.rss2json.com/v1/api.json"
    SERVICE_ID = "rss2json"
    payload_model = NewsPage

    async def fetch(self, category: str) -> Any:
        feed_url = RSS_FEEDS.get(category)
        if not feed_url:
            raise self._invalid(f"No RSS feed for: {category}")

        return await self._get_json(self.BASE_URL, params={"rss_url": feed_url})

    def parse(self, raw: Any, category: str) -> NewsPage:
        if not isinstance(raw, dict) or raw.get("status") != "ok":
            raise self._malformed("RSS2JSON returned an error status")

        items = raw.get("items") or []
        if not items:
            raise self._invalid("No RSS items")

        articles = []
        for item in items[:MAX_HEADLINES]:
            enclosure = item.get("enclosure") or {}
            articles.append(
                NewsArticle(
                    title=item.get("title") or "NO TITLE",
                    description=clean_text(item.get("description")),
                    source="BBC",
                    pub_date=parse_date(item.get("pubDate")),
                    link=item.get("link") or None,
                    image_url=item.get("thumbnail") or enclosure.get("link") or None,
                )
            )

        return build_page(category, articles)
