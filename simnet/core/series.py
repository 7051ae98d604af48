"""
Series Index - per-entity chronological value series.

Groups normalized records by entity id. Within an entity, a later record for
a year already seen overwrites the earlier value (last-write-wins). Missing
years stay missing; nothing is interpolated. Sparsity is resolved later by
the graph builder.

Usage:
    from simnet.core.series import build_series_index, year_range

    index = build_series_index(records)
    first, last = year_range(index)
    frame = to_frame(index)   # rows = years, columns = entity ids
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .graph import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Series:
    """One entity's values keyed by year (read-only view)."""
    entity_id: str
    entity_name: str
    values_by_year: Mapping[int, float] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.values_by_year, MappingProxyType):
            object.__setattr__(self, "values_by_year", MappingProxyType(dict(self.values_by_year)))

    def get(self, year: int) -> Optional[float]:
        return self.values_by_year.get(year)

    @property
    def years(self) -> List[int]:
        return sorted(self.values_by_year)


def build_series_index(records: Iterable[Record]) -> Dict[str, Series]:
    """
    Build the Series Index from normalized records.

    Args:
        records: Record objects, in source order

    Returns:
        Dict entity_id -> Series, in first-seen entity order
    """
    names: Dict[str, str] = {}
    values: Dict[str, Dict[int, float]] = {}
    n_records = 0
    n_overwrites = 0

    for record in records:
        n_records += 1
        series = values.get(record.entity_id)
        if series is None:
            series = values[record.entity_id] = {}
            names[record.entity_id] = record.entity_name
        year = int(record.year)
        if year in series:
            n_overwrites += 1
        series[year] = float(record.value)

    index = {
        entity_id: Series(entity_id, names[entity_id], by_year)
        for entity_id, by_year in values.items()
    }

    if n_overwrites:
        logger.debug(f"Series index: {n_overwrites} duplicate entity-years resolved (last wins)")
    logger.info(f"Series index built: {len(index)} entities from {n_records} records")
    return index


def available_years(index: Mapping[str, Series]) -> List[int]:
    """Sorted distinct years present in any series."""
    years = set()
    for series in index.values():
        years.update(series.values_by_year)
    return sorted(years)


def year_range(index: Mapping[str, Series]) -> Optional[Tuple[int, int]]:
    """(first year, last year) over the whole dataset, or None if empty."""
    years = available_years(index)
    if not years:
        return None
    return (years[0], years[-1])


def to_frame(index: Mapping[str, Series]) -> pd.DataFrame:
    """
    Wide DataFrame: rows = years (sorted), columns = entity ids (index order).

    Missing entity-years are NaN.
    """
    if not index:
        return pd.DataFrame()
    frame = pd.DataFrame(
        {entity_id: pd.Series(dict(series.values_by_year), dtype=float)
         for entity_id, series in index.items()}
    )
    frame = frame.sort_index()
    frame.index.name = "year"
    return frame
