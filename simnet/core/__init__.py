"""
SIMNET Core - data model, Series Index and render scales.

Components:
    - Graph model: Record, Node, Edge, Graph, Viewport, InvalidWindow
    - Series Index: per-entity value-by-year series built from records
    - Scales: category colours, node radii, edge widths
"""

from .graph import (
    DEFAULT_CATEGORY,
    Edge,
    Graph,
    InvalidWindow,
    Margins,
    Node,
    Record,
    Viewport,
)

from .series import (
    Series,
    available_years,
    build_series_index,
    to_frame,
    year_range,
)

from .scales import (
    PALETTE,
    RenderScales,
    category_colors,
    edge_width,
    node_radii,
    value_extent,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "Edge",
    "Graph",
    "InvalidWindow",
    "Margins",
    "Node",
    "Record",
    "Viewport",
    "Series",
    "available_years",
    "build_series_index",
    "to_frame",
    "year_range",
    "PALETTE",
    "RenderScales",
    "category_colors",
    "edge_width",
    "node_radii",
    "value_extent",
]
