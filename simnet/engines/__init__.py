"""
SIMNET Engines Module

    - correlation: Correlation Graph Builder (Pearson, threshold, top-K)
    - layout: force-directed Layout Engine and its FrameDriver
    - forces: vectorised link / charge / center forces

Usage:
    from simnet.engines import build_graph, LayoutEngine, FrameDriver

    graph = build_graph(index, regions, 2005, 2023, top_k=5, min_r=0.65)
    engine = LayoutEngine(graph)
    FrameDriver(engine).start(on_frame=draw)
"""

from .correlation import (
    CorrelationGraphBuilder,
    NetworkParams,
    build_graph,
    correlation_matrix,
    normalize_top_k,
    pearson,
    select_top_k,
)
from .layout import (
    FrameDriver,
    LayoutConfig,
    LayoutEngine,
    LayoutSnapshot,
    LayoutState,
    NodePosition,
    default_viewport,
)

__all__ = [
    "CorrelationGraphBuilder",
    "NetworkParams",
    "build_graph",
    "correlation_matrix",
    "normalize_top_k",
    "pearson",
    "select_top_k",
    "FrameDriver",
    "LayoutConfig",
    "LayoutEngine",
    "LayoutSnapshot",
    "LayoutState",
    "NodePosition",
    "default_viewport",
]
