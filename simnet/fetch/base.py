"""
SIMNET Load Result

Outcome of turning a source into normalized records.

CRITICAL RULES:
1. Loaders return a LoadResult; they do not raise on malformed input
2. Rows that cannot be normalized are dropped and counted, never patched
"""

from dataclasses import dataclass, field
from typing import List, Optional

from simnet.core.graph import Record


@dataclass
class LoadResult:
    """
    Result of a record load.

    Attributes:
        source: Path or label of what was loaded
        success: Whether any usable records came out
        records: Normalized records, in source order
        rows_read: Data rows seen in the source
        rows_kept: Rows that became records
        first_year / last_year: Year span of kept records
        delimiter: Delimiter the source was parsed with
        error: Error message if failed
    """
    source: str
    success: bool
    records: List[Record] = field(default_factory=list)
    rows_read: int = 0
    rows_kept: int = 0
    first_year: Optional[int] = None
    last_year: Optional[int] = None
    delimiter: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_records(
        cls,
        source: str,
        records: List[Record],
        rows_read: int,
        delimiter: Optional[str] = None,
    ) -> "LoadResult":
        if not records:
            return cls(
                source=source,
                success=False,
                rows_read=rows_read,
                delimiter=delimiter,
                error="No usable rows",
            )
        years = [r.year for r in records]
        return cls(
            source=source,
            success=True,
            records=records,
            rows_read=rows_read,
            rows_kept=len(records),
            first_year=min(years),
            last_year=max(years),
            delimiter=delimiter,
        )

    @classmethod
    def from_error(cls, source: str, error: str) -> "LoadResult":
        return cls(source=source, success=False, error=error)

    def summary(self) -> str:
        if not self.success:
            return f"{self.source}: FAILED ({self.error})"
        return (
            f"{self.source}: parsed rows={self.rows_kept}/{self.rows_read} "
            f"years={self.first_year}-{self.last_year}"
        )
