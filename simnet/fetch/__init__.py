"""
SIMNET Fetch System

Input adapters that sit in front of the core.

Architecture:
    - load_records / RecordLoader: delimited text -> normalized Records
    - RegionLookup: world-countries GeoJSON -> entity_id -> category
    - Loaders never raise on bad input; they return a failed LoadResult
      or an empty mapping and log why

Usage:
    from simnet.fetch import load_records, RegionLookup

    result = load_records("data.csv")
    if result.success:
        records = result.records

    regions = RegionLookup().fetch()
"""

from .base import LoadResult
from .records import RecordLoader, load_records, normalize_header, sniff_delimiter
from .regions import RegionLookup, parse_region_features

__all__ = [
    "LoadResult",
    "RecordLoader",
    "load_records",
    "normalize_header",
    "sniff_delimiter",
    "RegionLookup",
    "parse_region_features",
]
