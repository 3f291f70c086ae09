"""
News providers: RSS2JSON (BBC) -> NewsData.io -> demo headlines.
"""

from teletext.datasource.news.demo import NewsDemoProvider
from teletext.datasource.news.models import NEWS_CATEGORIES, NewsArticle, NewsPage
from teletext.datasource.news.newsdata import NewsDataProvider
from teletext.datasource.news.rss2json import Rss2JsonProvider

__all__ = [
    "NEWS_CATEGORIES",
    "NewsArticle",
    "NewsDataProvider",
    "NewsDemoProvider",
    "NewsPage",
    "Rss2JsonProvider",
]
