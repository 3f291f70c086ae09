"""
Demo TV schedule.
"""

from typing import Any

from teletext.datasource.base import DemoProvider
from teletext.datasource.tv.tvmaze import TvSchedule, TvShow

DEMO_SCHEDULE = [
    ("06:00", "BBC1", "Breakfast", 180, ["News"]),
    ("09:00", "ITV", "Morning Live", 60, ["Talk Show"]),
    ("12:00", "BBC1", "Bargain Hunt", 45, ["Reality"]),
    ("13:00", "BBC1", "One O'Clock News", 30, ["News"]),
    ("18:00", "CH4", "The Simpsons", 30, ["Comedy", "Animation"]),
    ("19:30", "BBC2", "Gardeners' World", 60, ["Documentary"]),
    ("20:00", "ITV", "Champions League Live", 150, ["Sports"]),
    ("22:00", "BBC1", "News at Ten", 30, ["News"]),
]

DEMO_DATE = "1999-12-31"


class TvDemoProvider(DemoProvider[TvSchedule]):
    payload_model = TvSchedule

    def fixture(self, category: str) -> Any:
        return DEMO_SCHEDULE

    def parse(self, raw: Any, category: str) -> TvSchedule:
        shows = [
            TvShow(
                id=index,
                name=name,
                channel=channel,
                airtime=airtime,
                runtime=runtime,
                genres=list(genres),
            )
            for index, (airtime, channel, name, runtime, genres) in enumerate(raw, 1)
        ]
        return TvSchedule(
            date=DEMO_DATE,
            country=category,
            shows=shows,
            total_results=len(shows),
        )
