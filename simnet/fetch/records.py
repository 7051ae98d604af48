"""
SIMNET Record Loader

Turns a delimited text table (e.g. an Our World in Data CSV export) into
normalized Records.

Steps:
    1. Sniff the delimiter from the header line (';', tab or ',')
    2. Normalize headers (strip BOM, lowercase, alphanumerics only)
    3. Resolve entity / code / year / value columns by normalized name
    4. Keep rows with a 3-letter code, a name, a numeric year and value

Usage:
    from simnet.fetch import load_records

    result = load_records("life-expectancy.csv")
    print(result.summary())
    records = result.records
"""

import logging
import re
from io import StringIO
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from simnet.core.graph import Record

from .base import LoadResult

logger = logging.getLogger(__name__)


ENTITY_COLUMNS = ("entity", "country", "location")
CODE_COLUMNS = ("code", "iso3", "iso")
YEAR_COLUMNS = ("year",)
VALUE_COLUMNS = ("lifeexpectancy", "lifeexpectancyyears", "value")
# Fallback: any header containing all of these fragments
VALUE_FRAGMENTS = ("life", "expect")

CODE_PATTERN = r"[A-Z]{3}"


def sniff_delimiter(header: str) -> str:
    """Pick ';', tab or ',' by counting occurrences in the header line."""
    semicolons = header.count(";")
    commas = header.count(",")
    tabs = header.count("\t")
    if semicolons > commas and semicolons > tabs:
        return ";"
    if tabs > commas:
        return "\t"
    return ","


def normalize_header(name: str) -> str:
    """'\\ufeffLife expectancy (years)' -> 'lifeexpectancyyears'."""
    return re.sub(r"[^a-z0-9]", "", str(name or "").replace("\ufeff", "").lower())


def _find_column(
    columns: Sequence[str],
    normalized: Sequence[str],
    candidates: Sequence[str],
) -> Optional[str]:
    for candidate in candidates:
        if candidate in normalized:
            return columns[normalized.index(candidate)]
    return None


class RecordLoader:
    """
    Delimited-text to Record loader.

    Args:
        value_column: Explicit value column (raw or normalized name). When
            omitted, a life-expectancy style column or 'value' is used.
    """

    def __init__(self, value_column: Optional[str] = None):
        self.value_column = value_column

    def load(self, path: Union[str, Path]) -> LoadResult:
        """Load records from a file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return LoadResult.from_error(str(path), f"read error: {e}")
        return self.load_text(text, source=str(path))

    def load_text(self, text: str, source: str = "<text>") -> LoadResult:
        """Load records from the full text of a delimited table."""
        text = text.lstrip("\ufeff")
        lines = text.splitlines()
        if not lines or not lines[0].strip():
            return LoadResult.from_error(source, "empty input")

        delimiter = sniff_delimiter(lines[0])

        try:
            table = pd.read_csv(
                StringIO(text),
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error(f"Failed to parse {source}: {e}")
            return LoadResult.from_error(source, f"parse error: {e}")

        columns = [str(c).replace("\ufeff", "") for c in table.columns]
        table.columns = columns
        normalized = [normalize_header(c) for c in columns]

        entity_col = _find_column(columns, normalized, ENTITY_COLUMNS)
        code_col = _find_column(columns, normalized, CODE_COLUMNS)
        year_col = _find_column(columns, normalized, YEAR_COLUMNS)
        value_col = self._value_column(columns, normalized)

        missing = [
            label for label, col in (
                ("entity", entity_col), ("code", code_col),
                ("year", year_col), ("value", value_col),
            ) if col is None
        ]
        if missing:
            logger.error(f"{source}: missing columns {missing} in header {columns}")
            return LoadResult.from_error(source, f"missing columns: {', '.join(missing)}")

        records = self._to_records(table, entity_col, code_col, year_col, value_col)
        result = LoadResult.from_records(source, records, rows_read=len(table), delimiter=delimiter)

        if result.success:
            logger.info(result.summary())
        else:
            logger.warning(f"{source}: no usable rows out of {len(table)}")
        return result

    def _value_column(self, columns: List[str], normalized: List[str]) -> Optional[str]:
        if self.value_column is not None:
            wanted = normalize_header(self.value_column)
            return columns[normalized.index(wanted)] if wanted in normalized else None

        found = _find_column(columns, normalized, VALUE_COLUMNS)
        if found is not None:
            return found
        for col, norm in zip(columns, normalized):
            if all(fragment in norm for fragment in VALUE_FRAGMENTS):
                return col
        return None

    @staticmethod
    def _to_records(
        table: pd.DataFrame,
        entity_col: str,
        code_col: str,
        year_col: str,
        value_col: str,
    ) -> List[Record]:
        names = table[entity_col].astype(str)
        codes = table[code_col].astype(str).str.strip().str.upper()
        years = pd.to_numeric(table[year_col].astype(str).str.strip(), errors="coerce")
        values = pd.to_numeric(
            table[value_col].astype(str).str.replace(",", "", regex=False).str.strip(),
            errors="coerce",
        )

        keep = (
            codes.str.fullmatch(CODE_PATTERN)
            & (names.str.len() > 0)
            & np.isfinite(years)
            & np.isfinite(values)
        )

        return [
            Record(entity_id=code, entity_name=name, year=int(year), value=float(value))
            for name, code, year, value in zip(
                names[keep], codes[keep], years[keep], values[keep]
            )
        ]


def load_records(
    source: Union[str, Path],
    value_column: Optional[str] = None,
) -> LoadResult:
    """
    Load records from a path, or from raw text when `source` contains a newline.
    """
    loader = RecordLoader(value_column=value_column)
    if isinstance(source, str) and "\n" in source:
        return loader.load_text(source)
    return loader.load(source)
