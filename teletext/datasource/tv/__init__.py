"""
TV listings providers: TVmaze -> demo schedule.
"""

from teletext.datasource.tv.demo import TvDemoProvider
from teletext.datasource.tv.tvmaze import TvMazeProvider, TvSchedule, TvShow

__all__ = ["TvDemoProvider", "TvMazeProvider", "TvSchedule", "TvShow"]
