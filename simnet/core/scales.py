"""
Render scales derived from a graph.

Pure functions the renderer uses alongside positions:
    - category -> colour (ordinal palette)
    - end value -> node radius (linear)
    - edge weight -> stroke width

RenderScales bundles all three for one graph.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from .graph import Graph

# Tableau 10 followed by ColorBrewer Set2
TABLEAU10 = [
    "#4e79a7", "#f28e2c", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
]
SET2 = [
    "#66c2a5", "#fc8d62", "#8da0cb", "#e78ac3",
    "#a6d854", "#ffd92f", "#e5c494", "#b3b3b3",
]
PALETTE = TABLEAU10 + SET2

DEFAULT_VALUE_EXTENT = (60.0, 85.0)
RADIUS_RANGE = (4.0, 14.0)


def category_colors(categories: Iterable[str], palette: Sequence[str] = PALETTE) -> Dict[str, str]:
    """Assign palette colours to categories in order, cycling when exhausted."""
    return {category: palette[i % len(palette)] for i, category in enumerate(categories)}


def value_extent(graph: Graph) -> Tuple[float, float]:
    values = [node.end_value for node in graph.nodes]
    if not values:
        return DEFAULT_VALUE_EXTENT
    return (float(min(values)), float(max(values)))


def node_radii(graph: Graph, radius_range: Tuple[float, float] = RADIUS_RANGE) -> List[float]:
    """
    Linear map of each node's end value onto `radius_range`.

    A zero-width extent maps every node to the middle of the range.
    """
    lo, hi = value_extent(graph)
    r0, r1 = radius_range
    values = np.array([node.end_value for node in graph.nodes], dtype=float)
    if hi == lo:
        return [(r0 + r1) / 2.0] * len(values)
    return list(r0 + (values - lo) / (hi - lo) * (r1 - r0))


def edge_width(weight: float) -> float:
    """Stroke width: thin base line, thicker for r above 0.6."""
    return 0.6 + max(0.0, (weight - 0.6) * 2.0)


@dataclass(frozen=True)
class RenderScales:
    """Colours, radii and stroke widths for one graph."""
    colors: Dict[str, str]
    radii: Tuple[float, ...]
    edge_widths: Tuple[float, ...]

    @classmethod
    def compute(cls, graph: Graph) -> "RenderScales":
        return cls(
            colors=category_colors(graph.categories()),
            radii=tuple(float(r) for r in node_radii(graph)),
            edge_widths=tuple(edge_width(edge.weight) for edge in graph.edges),
        )

    def color_of(self, category: str, fallback: str = "#999999") -> str:
        return self.colors.get(category, fallback)
