"""
Demo headlines served when every news provider is unavailable.
"""

from typing import Any

from teletext.datasource.base import DemoProvider
from teletext.datasource.news.models import NewsArticle, NewsPage, build_page

DEMO_HEADLINES: dict[str, list[tuple[str, str]]] = {
    "top": [
        ("GLOBAL LEADERS MEET FOR CLIMATE SUMMIT", "2H AGO"),
        ("TECH GIANTS ANNOUNCE NEW AI INITIATIVES", "3H AGO"),
        ("MARKETS RALLY ON POSITIVE ECONOMIC DATA", "4H AGO"),
        ("SCIENTISTS MAKE BREAKTHROUGH DISCOVERY", "5H AGO"),
        ("WORLD CUP QUALIFIERS BEGIN THIS WEEK", "6H AGO"),
        ("NEW SPACE MISSION LAUNCHES SUCCESSFULLY", "7H AGO"),
        ("HEALTH EXPERTS ISSUE NEW GUIDELINES", "8H AGO"),
        ("ENTERTAINMENT AWARDS CEREMONY TONIGHT", "9H AGO"),
    ],
    "world": [
        ("UN SECURITY COUNCIL HOLDS EMERGENCY MEETING", "1H AGO"),
        ("EUROPEAN UNION ANNOUNCES NEW TRADE DEAL", "2H AGO"),
        ("ASIA PACIFIC LEADERS SUMMIT CONCLUDES", "3H AGO"),
        ("MIDDLE EAST PEACE TALKS RESUME", "4H AGO"),
        ("AFRICAN NATIONS FORM NEW ALLIANCE", "5H AGO"),
        ("LATIN AMERICA ECONOMIC FORUM OPENS", "6H AGO"),
    ],
    "technology": [
        ("NEW SMARTPHONE FEATURES REVOLUTIONARY AI", "1H AGO"),
        ("QUANTUM COMPUTING REACHES NEW MILESTONE", "2H AGO"),
        ("CYBERSECURITY EXPERTS WARN OF NEW THREAT", "3H AGO"),
        ("ELECTRIC VEHICLE SALES HIT RECORD HIGH", "4H AGO"),
        ("SOCIAL MEDIA PLATFORM LAUNCHES NEW FEATURE", "5H AGO"),
        ("ROBOTICS COMPANY UNVEILS HUMANOID ROBOT", "6H AGO"),
    ],
    "business": [
        ("STOCK MARKETS REACH ALL-TIME HIGHS", "1H AGO"),
        ("CENTRAL BANK ANNOUNCES INTEREST RATE DECISION", "2H AGO"),
        ("MAJOR MERGER CREATES INDUSTRY GIANT", "3H AGO"),
        ("STARTUP RAISES RECORD FUNDING ROUND", "4H AGO"),
        ("OIL PRICES FLUCTUATE ON SUPPLY CONCERNS", "5H AGO"),
        ("RETAIL SALES EXCEED EXPECTATIONS", "6H AGO"),
    ],
    "sports": [
        ("CHAMPIONSHIP FINAL SET FOR WEEKEND", "1H AGO"),
        ("STAR PLAYER SIGNS RECORD CONTRACT", "2H AGO"),
        ("OLYMPIC COMMITTEE ANNOUNCES HOST CITY", "3H AGO"),
        ("TENNIS GRAND SLAM ENTERS FINAL STAGES", "4H AGO"),
        ("FOOTBALL LEAGUE STANDINGS UPDATE", "5H AGO"),
        ("MOTORSPORT SEASON FINALE APPROACHES", "6H AGO"),
    ],
}


class NewsDemoProvider(DemoProvider[NewsPage]):
    payload_model = NewsPage

    def fixture(self, category: str) -> Any:
        return DEMO_HEADLINES.get(category, DEMO_HEADLINES["top"])

    def parse(self, raw: Any, category: str) -> NewsPage:
        articles = [
            NewsArticle(title=title, source="DEMO", time_ago=time_ago)
            for title, time_ago in raw
        ]
        return build_page(category, articles)
