"""
SIMNET Correlation Graph Builder

Builds the similarity graph from the Series Index.

Measures:
- Pearson correlation between every pair of entities with a complete window
- Per-source top-K neighbours at or above a threshold

Algorithm:
    1. Clamp the window to the dataset's year range (start >= end -> InvalidWindow)
    2. Admit entities that have a value at the window end year
    3. Entities missing any year in the window stay as isolated nodes
    4. Correlate all complete entities in one vectorised pass
    5. For each source i, rank partners j > i with r >= min_r (stable), keep top-K
    6. Store one undirected edge per retained pair

Cost is O(N^2 * W) for N scored entities and window length W; the whole
pairwise step is a single centred matrix product.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from simnet.config import get_network_config
from simnet.core.graph import DEFAULT_CATEGORY, Edge, Graph, InvalidWindow, Node
from simnet.core.series import Series, to_frame, year_range


logger = logging.getLogger(__name__)

CategoryLookup = Union[Mapping[str, str], Callable[[str], Optional[str]]]

MIN_POINTS = 3


# =============================================================================
# Parameters
# =============================================================================

def normalize_top_k(top_k: Any) -> int:
    """Coerce top_k to an int >= 1 (non-numeric or non-positive -> 1)."""
    try:
        value = int(top_k)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, value)


@dataclass(frozen=True)
class NetworkParams:
    """Graph-building parameters."""
    window_start: int = 2005
    window_end: int = 2023
    top_k: int = 5
    min_r: float = 0.65

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "NetworkParams":
        """Build from network.yaml (or a given dict), falling back to defaults."""
        if config is None:
            config = get_network_config()
        defaults = cls()
        return cls(
            window_start=int(config.get("window_start", defaults.window_start)),
            window_end=int(config.get("window_end", defaults.window_end)),
            top_k=normalize_top_k(config.get("top_k", defaults.top_k)),
            min_r=float(config.get("min_r", defaults.min_r)),
        )


# =============================================================================
# Pearson correlation
# =============================================================================

def pearson(x, y, min_points: int = MIN_POINTS) -> float:
    """
    Pearson correlation of two equal-length sequences.

    Returns NaN when undefined: fewer than `min_points` values, or a zero
    variance sequence.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"Sequences differ in length: {x.shape} vs {y.shape}")
    if x.size < min_points:
        return float("nan")
    matrix = correlation_matrix(np.vstack([x, y]), min_points=min_points)
    return float(matrix[0, 1])


def correlation_matrix(values: np.ndarray, min_points: int = MIN_POINTS) -> np.ndarray:
    """
    Pairwise Pearson correlation between the rows of `values`.

    Args:
        values: Array of shape (n_series, n_points), no NaNs
        min_points: Minimum series length for a defined correlation

    Returns:
        (n_series, n_series) array; NaN where undefined, otherwise clipped to [-1, 1]
    """
    values = np.asarray(values, dtype=float)
    n, w = values.shape
    if n == 0:
        return np.empty((0, 0))
    if w < min_points:
        return np.full((n, n), np.nan)

    centered = values - values.mean(axis=1, keepdims=True)
    sum_sq = np.einsum("ij,ij->i", centered, centered)
    # Exactly constant rows: mean rounding can leave tiny non-zero residue
    constant = np.ptp(values, axis=1) == 0

    with np.errstate(divide="ignore", invalid="ignore"):
        r = (centered @ centered.T) / np.sqrt(np.outer(sum_sq, sum_sq))

    r[constant, :] = np.nan
    r[:, constant] = np.nan
    r[~np.isfinite(r)] = np.nan
    return np.clip(r, -1.0, 1.0)


# =============================================================================
# Builder
# =============================================================================

def _category_resolver(category_of: Optional[CategoryLookup], default: str) -> Callable[[str], str]:
    if category_of is None:
        return lambda entity_id: default
    if callable(category_of) and not isinstance(category_of, Mapping):
        return lambda entity_id: category_of(entity_id) or default
    return lambda entity_id: category_of.get(entity_id) or default


def select_top_k(
    r_row: np.ndarray,
    candidates: np.ndarray,
    top_k: int,
    min_r: float,
) -> List[Tuple[int, float]]:
    """
    Rank one source's partners.

    Args:
        r_row: Correlations with each candidate (NaN = undefined)
        candidates: Candidate node indices, ascending
        top_k: Number of partners to keep
        min_r: Threshold (inclusive)

    Returns:
        [(node_index, r), ...] strongest first; ties keep ascending index order
    """
    keep = np.isfinite(r_row) & (r_row >= min_r)
    kept_r = r_row[keep]
    kept_j = candidates[keep]
    order = np.argsort(-kept_r, kind="stable")[:top_k]
    return [(int(kept_j[o]), float(kept_r[o])) for o in order]


def build_graph(
    series_index: Mapping[str, Series],
    category_of: Optional[CategoryLookup],
    window_start: int,
    window_end: int,
    top_k: int,
    min_r: float,
    default_category: str = DEFAULT_CATEGORY,
    min_points: int = MIN_POINTS,
) -> Graph:
    """
    Build the similarity graph.

    Args:
        series_index: entity_id -> Series
        category_of: entity_id -> category (Mapping or callable); missing -> default
        window_start: First year of the correlation window (clamped to data)
        window_end: Last year of the window and the year node values come from
        top_k: Max edges kept per source node (coerced to >= 1)
        min_r: Minimum correlation for an edge (inclusive)

    Returns:
        Graph (empty when no entity has a value at the window end)

    Raises:
        InvalidWindow: If window_start >= window_end after clamping
    """
    years = year_range(series_index)
    if years is None:
        logger.warning("Empty dataset: no series to build a graph from")
        return Graph.empty(window_start, window_end)

    start = max(int(window_start), years[0])
    end = min(int(window_end), years[1])
    if start >= end:
        raise InvalidWindow(start, end)

    k = normalize_top_k(top_k)
    resolve = _category_resolver(category_of, default_category)

    nodes: List[Node] = []
    for entity_id, series in series_index.items():
        end_value = series.get(end)
        if end_value is None or not np.isfinite(end_value):
            continue
        nodes.append(Node(entity_id, series.entity_name, resolve(entity_id), float(end_value)))

    if not nodes:
        logger.warning(f"No entity has a value for {end}; graph is empty")
        return Graph.empty(start, end, years)

    # One slice for every node: rows = nodes, columns = window years
    frame = to_frame(series_index).reindex(
        index=range(start, end + 1),
        columns=[node.id for node in nodes],
    )
    values = frame.to_numpy(dtype=float).T
    complete = np.flatnonzero(~np.isnan(values).any(axis=1))

    r = correlation_matrix(values[complete], min_points=min_points)

    edges: List[Edge] = []
    seen = set()
    for a, i in enumerate(complete):
        partners = select_top_k(r[a, a + 1:], complete[a + 1:], k, min_r)
        for j, weight in partners:
            pair = (min(i, j), max(i, j))
            if pair in seen:
                continue
            seen.add(pair)
            edges.append(Edge(int(pair[0]), int(pair[1]), weight))

    graph = Graph(tuple(nodes), tuple(edges), start, end, years)
    logger.info(
        f"Graph built for {start}-{end}: {len(nodes)} nodes "
        f"({len(complete)} with complete windows), {len(edges)} edges "
        f"(top_k={k}, min_r={min_r})"
    )
    return graph


class CorrelationGraphBuilder:
    """
    Builder with remembered parameters.

    Usage:
        builder = CorrelationGraphBuilder(NetworkParams(window_start=2000))
        graph = builder.build(index, regions)
    """

    def __init__(
        self,
        params: Optional[NetworkParams] = None,
        default_category: str = DEFAULT_CATEGORY,
    ):
        self.params = params or NetworkParams.from_config()
        self.default_category = default_category

    def build(
        self,
        series_index: Mapping[str, Series],
        category_of: Optional[CategoryLookup] = None,
        params: Optional[NetworkParams] = None,
    ) -> Graph:
        p = params or self.params
        return build_graph(
            series_index,
            category_of,
            p.window_start,
            p.window_end,
            p.top_k,
            p.min_r,
            default_category=self.default_category,
        )
