"""
Geolocation providers: IP-API -> default location.
"""

from teletext.datasource.geo.demo import DEFAULT_LOCATION, GeoDemoProvider
from teletext.datasource.geo.ipapi import GeoLocation, IpApiProvider

__all__ = ["DEFAULT_LOCATION", "GeoDemoProvider", "GeoLocation", "IpApiProvider"]
