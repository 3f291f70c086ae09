"""
News payload models and category table.
"""

from dataclasses import dataclass
from datetime import datetime

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from pydantic import BaseModel, Field

MAX_HEADLINES = 10


@dataclass(frozen=True)
class CategoryInfo:
    page: int
    label: str
    api_category: str


NEWS_CATEGORIES = {
    "top": CategoryInfo(101, "TOP STORIES", "top"),
    "world": CategoryInfo(102, "WORLD", "world"),
    "technology": CategoryInfo(103, "TECH", "technology"),
    "business": CategoryInfo(104, "BUSINESS", "business"),
    "sports": CategoryInfo(105, "SPORTS", "sports"),
}


class NewsArticle(BaseModel):
    """A single headline."""

    title: str
    description: str = ""
    source: str
    pub_date: datetime | None = None
    time_ago: str = ""
    link: str | None = None
    image_url: str | None = None


class NewsPage(BaseModel):
    """Headlines for one news category."""

    category: str
    category_label: str
    page_number: int
    articles: list[NewsArticle] = Field(default_factory=list)
    total_results: int = 0


def category_info(category: str) -> CategoryInfo:
    return NEWS_CATEGORIES.get(category, NEWS_CATEGORIES["top"])


def build_page(category: str, articles: list[NewsArticle]) -> NewsPage:
    info = category_info(category)
    return NewsPage(
        category=category,
        category_label=info.label,
        page_number=info.page,
        articles=articles,
        total_results=len(articles),
    )


def parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


def clean_text(value: str | None) -> str:
    """Strip markup and collapse whitespace."""
    if not value:
        return ""
    text = BeautifulSoup(value, "html.parser").get_text(" ")
    return " ".join(text.split())
