"""
SIMNET Session Pipeline

One live dataset, recomputed as its inputs change.

Dependency graph (input -> derived):

    records ──────> series_index ─┐
    categories ───────────────────┼──> graph ──┬──> scales
    params ───────────────────────┘            ├──> layout  <── viewport
                                               └──> overlay <── interaction

A change to an input recomputes exactly its transitive dependents, in
topological order. Graph-building failures (InvalidWindow) are
transactional: the inputs are rolled back, the previous graph and layout
keep running, and the error is re-raised to the caller. A new layout is
only created after the previous one has fully stopped.

Usage:
    session = NetworkSession(records, regions)
    session.start_layout(on_frame=draw)

    session.set_params(window_start=2010, top_k=3)
    session.dispatch(ToggleCategory("Asia"))
    session.drag_start("JPN", 420, 300)
    session.drag_end("JPN")

    session.stop()
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from simnet.control.overlay import (
    Action,
    InteractionState,
    OverlayConfig,
    OverlayView,
    PinNode,
    ResetInteraction,
    UnpinNode,
    reduce,
)
from simnet.config import get_network_config
from simnet.core.graph import DEFAULT_CATEGORY, Graph, InvalidWindow, Record, Viewport
from simnet.core.scales import RenderScales
from simnet.core.series import Series, available_years, build_series_index
from simnet.engines.correlation import MIN_POINTS, NetworkParams, build_graph, normalize_top_k
from simnet.engines.layout import FrameDriver, LayoutConfig, LayoutEngine, LayoutSnapshot, default_viewport


logger = logging.getLogger(__name__)


# Derived structure -> the inputs / structures it is computed from
DEPENDENCIES: Dict[str, tuple] = {
    "series_index": ("records",),
    "graph": ("series_index", "categories", "params"),
    "scales": ("graph",),
    "layout": ("graph", "viewport"),
    "overlay": ("graph", "interaction"),
}

# Recompute order
TOPOLOGICAL_ORDER = ("series_index", "graph", "scales", "layout", "overlay")


def dependents_of(changed: Iterable[str]) -> Set[str]:
    """Every derived structure that (transitively) depends on `changed`."""
    dirty: Set[str] = set()
    frontier = set(changed)
    while frontier:
        name = frontier.pop()
        for derived, inputs in DEPENDENCIES.items():
            if name in inputs and derived not in dirty:
                dirty.add(derived)
                frontier.add(derived)
    return dirty


class NetworkSession:
    """
    Owner of one dataset's Series Index, Graph, Layout and Overlay.

    Args:
        records: Normalized records
        categories: entity_id -> category lookup
        params: Graph parameters (defaults from network.yaml)
        viewport: Layout area (defaults from layout.yaml)
        layout_config: Force parameters (defaults from layout.yaml)
        overlay_config: Opacity rules (defaults from overlay.yaml)
        default_category: Category for unmapped entities (defaults from network.yaml)
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        categories: Optional[Mapping[str, str]] = None,
        params: Optional[NetworkParams] = None,
        viewport: Optional[Viewport] = None,
        layout_config: Optional[LayoutConfig] = None,
        overlay_config: Optional[OverlayConfig] = None,
        default_category: Optional[str] = None,
    ):
        network = get_network_config()
        self.default_params = params or NetworkParams.from_config()
        self.layout_config = layout_config or LayoutConfig.from_config()
        self.overlay_config = overlay_config or OverlayConfig.from_config()
        self.default_category = default_category or network.get("default_category", DEFAULT_CATEGORY)
        self.min_points = int(network.get("min_points", MIN_POINTS))

        self._inputs: Dict[str, Any] = {
            "records": list(records),
            "categories": dict(categories or {}),
            "params": self.default_params,
            "viewport": viewport or default_viewport(),
            "interaction": InteractionState(),
        }
        self._series_index: Dict[str, Series] = {}
        self._graph: Graph = Graph.empty()
        self._engine: Optional[LayoutEngine] = None
        self._driver: Optional[FrameDriver] = None
        self._on_frame: Optional[Callable[[LayoutSnapshot], None]] = None
        self._threaded = False
        self._overlay: Optional[OverlayView] = None
        self._scales: Optional[RenderScales] = None

        self._recompute(set(TOPOLOGICAL_ORDER))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def params(self) -> NetworkParams:
        return self._inputs["params"]

    @property
    def viewport(self) -> Viewport:
        return self._inputs["viewport"]

    @property
    def interaction(self) -> InteractionState:
        return self._inputs["interaction"]

    @property
    def series_index(self) -> Dict[str, Series]:
        return self._series_index

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def engine(self) -> Optional[LayoutEngine]:
        return self._engine

    @property
    def driver(self) -> Optional[FrameDriver]:
        return self._driver

    @property
    def years(self) -> List[int]:
        return available_years(self._series_index)

    def categories(self) -> List[str]:
        """Distinct categories in the current graph, for filter widgets."""
        return self._graph.categories()

    def overlay(self) -> OverlayView:
        """Style hints for the current graph and interaction state."""
        if self._overlay is None:
            self._overlay = OverlayView.compute(self._graph, self.interaction, self.overlay_config)
        return self._overlay

    def scales(self) -> RenderScales:
        """Colours, radii and edge widths for the current graph."""
        if self._scales is None:
            self._scales = RenderScales.compute(self._graph)
        return self._scales

    def snapshot(self) -> Optional[LayoutSnapshot]:
        return self._engine.snapshot() if self._engine is not None else None

    def status(self) -> str:
        return self._graph.summary()

    # -------------------------------------------------------------------------
    # Input changes
    # -------------------------------------------------------------------------

    def set_records(self, records: Iterable[Record]) -> Graph:
        return self._update(records=list(records))

    def set_categories(self, categories: Mapping[str, str]) -> Graph:
        return self._update(categories=dict(categories))

    def set_viewport(self, viewport: Viewport) -> Graph:
        return self._update(viewport=viewport)

    def set_params(self, **changes: Any) -> Graph:
        """
        Change graph parameters (window_start, window_end, top_k, min_r).

        A start year at or after the end year is pulled back to end - 1.

        Raises:
            InvalidWindow: if the clamped window is still degenerate; the
                previous parameters, graph and layout are kept.
        """
        params = replace(self.params, **changes)
        params = replace(params, top_k=normalize_top_k(params.top_k))
        if params.window_start >= params.window_end:
            params = replace(params, window_start=params.window_end - 1)
        return self._update(params=params)

    def dispatch(self, action: Action) -> InteractionState:
        """Apply an interaction action; pin actions are forwarded to the layout."""
        state = reduce(self.interaction, action, self.overlay_config)
        if self._engine is not None:
            if isinstance(action, PinNode):
                self._engine.pin(action.entity_id)
            elif isinstance(action, UnpinNode):
                self._engine.unpin(action.entity_id)
            elif isinstance(action, ResetInteraction):
                for entity_id in self.interaction.pinned:
                    self._engine.unpin(entity_id)
        self._update(interaction=state)
        return state

    def reset(self) -> Graph:
        """Restore default parameters and interaction state, unpinning every node."""
        self.dispatch(ResetInteraction())
        return self._update(params=self.default_params)

    # -------------------------------------------------------------------------
    # Drag gestures
    # -------------------------------------------------------------------------

    def drag_start(self, entity_id: str, x: Optional[float] = None, y: Optional[float] = None) -> None:
        """Heat the simulation and pin the node under the pointer."""
        if self._engine is None:
            return
        self._engine.reheat()
        self._engine.pin(entity_id, x, y)
        if entity_id not in self.interaction.pinned:
            self._update(interaction=reduce(self.interaction, PinNode(entity_id)))

    def drag_move(self, entity_id: str, x: float, y: float) -> None:
        if self._engine is not None:
            self._engine.pin(entity_id, x, y)

    def drag_end(self, entity_id: str) -> None:
        """Let the simulation cool; the node stays pinned where it was dropped."""
        if self._engine is not None:
            self._engine.cool()

    def release(self, entity_id: str) -> None:
        """Unpin a node (double-click)."""
        self.dispatch(UnpinNode(entity_id))

    # -------------------------------------------------------------------------
    # Layout lifecycle
    # -------------------------------------------------------------------------

    def start_layout(self, on_frame: Callable[[LayoutSnapshot], None], threaded: bool = True) -> FrameDriver:
        """
        Start driving the layout; snapshots go to `on_frame`.

        With threaded=False the caller owns the loop and calls
        session.driver.advance(now) itself.
        """
        self._on_frame = on_frame
        self._threaded = threaded
        if self._driver is None:
            self._driver = FrameDriver(self._engine)
        if threaded:
            self._driver.start(on_frame)
        return self._driver

    def stop(self) -> None:
        """Stop the layout for good (view torn down)."""
        self._stop_layout()
        self._on_frame = None

    def _stop_layout(self) -> None:
        if self._driver is not None:
            self._driver.stop()
        elif self._engine is not None:
            self._engine.stop()
        self._driver = None

    # -------------------------------------------------------------------------
    # Recompute
    # -------------------------------------------------------------------------

    def _update(self, **inputs: Any) -> Graph:
        previous = {name: self._inputs[name] for name in inputs}
        self._inputs.update(inputs)
        try:
            self._recompute(dependents_of(inputs))
        except InvalidWindow as e:
            self._inputs.update(previous)
            logger.warning(f"Rebuild rejected, keeping previous graph: {e}")
            raise
        return self._graph

    def _recompute(self, dirty: Set[str]) -> None:
        series_index = self._series_index
        graph = self._graph

        # Everything that can fail runs before anything is committed
        if "series_index" in dirty:
            series_index = build_series_index(self._inputs["records"])
        if "graph" in dirty:
            p = self._inputs["params"]
            graph = build_graph(
                series_index,
                self._inputs["categories"],
                p.window_start,
                p.window_end,
                p.top_k,
                p.min_r,
                default_category=self.default_category,
                min_points=self.min_points,
            )

        self._series_index = series_index
        self._graph = graph

        if "scales" in dirty:
            self._scales = None
        if "layout" in dirty:
            self._restart_layout()
        if "overlay" in dirty:
            self._overlay = None

    def _restart_layout(self) -> None:
        previous_positions: Dict[str, tuple] = {}
        if self._engine is not None:
            self._engine.flush()
            previous_positions = self._engine.snapshot().as_dict()

        was_running = self._driver is not None and self._on_frame is not None
        self._stop_layout()

        self._engine = LayoutEngine(
            self._graph,
            self.viewport,
            self.layout_config,
            pinned=self.interaction.pinned,
            previous_positions=previous_positions,
        )
        logger.debug(f"Layout restarted for {len(self._graph.nodes)} nodes")

        if was_running:
            self._driver = FrameDriver(self._engine)
            if self._threaded:
                self._driver.start(self._on_frame)
