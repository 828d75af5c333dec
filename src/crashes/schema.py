"""
Column layout for the fatal crash table
"""
from typing import Dict, List

SEASON_SUMMER = "summer"
SEASON_WINTER = "winter"
SEASONS: List[str] = [SEASON_SUMMER, SEASON_WINTER]
# Inclusive month bounds of the summer season
SUMMER_MONTHS = range(5, 11)

MONTH_LABELS: List[str] = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# Canonical columns every loaded table carries
REQUIRED_COLUMNS: List[str] = ["crash_id", "crash_date", "lat", "lon"]
OPTIONAL_COLUMNS: List[str] = [
    "state_fips",
    "state_name",
    "county_fips",
    "fatalities",
    "hour",
]
DERIVED_COLUMNS: List[str] = ["year", "month", "season"]

# Source column name -> canonical name. FARS accident files first, then
# the generic spellings other extracts use.
COLUMN_ALIASES: Dict[str, str] = {
    "ST_CASE": "crash_id",
    "LATITUDE": "lat",
    "LONGITUD": "lon",
    "STATE": "state_fips",
    "STATENAME": "state_name",
    "COUNTY": "county_fips",
    "FATALS": "fatalities",
    "YEAR": "year",
    "MONTH": "month",
    "DAY": "day",
    "HOUR": "hour",
    "st_case": "crash_id",
    "id": "crash_id",
    "date": "crash_date",
    "crash_datetime": "crash_date",
    "latitude": "lat",
    "longitude": "lon",
    "longitud": "lon",
    "lng": "lon",
    "state": "state_name",
    "statename": "state_name",
    "fatals": "fatalities",
}

# Valid coordinate ranges; FARS encodes unknown positions as 77.7777,
# 88.8888, 99.9999 (lat) and 777.7777, 888.8888, 999.9999 (lon).
LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)
FARS_UNKNOWN_LAT = (77.7777, 88.8888, 99.9999)
