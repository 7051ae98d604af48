"""
Interaction Overlay

Holds what the user has done to the view (pins, category filters, hover,
search) and derives per-node and per-edge visibility/opacity from it.

RULES:
- State is immutable; every change goes through reduce(state, action)
- Nothing here touches the Graph or the Layout Engine
- Filtering dims, it never removes: hidden nodes and edges stay in the layout

Usage:
    state = InteractionState()
    state = reduce(state, ToggleCategory("Europe"))
    state = reduce(state, SetSearchQuery("fra"))

    view = OverlayView.compute(graph, state)
    for style in view.nodes:
        print(style.id, style.visible, style.opacity)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from simnet.config import get_overlay_config
from simnet.core.graph import Edge, Graph, Node


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class OverlayConfig:
    hover_miss_factor: float = 0.2
    search_miss_factor: float = 0.25
    hidden_node_opacity: float = 0.05
    visible_edge_opacity: float = 0.6
    dimmed_edge_opacity: float = 0.05
    legend_dimmed_opacity: float = 0.35
    all_categories_label: str = "All"

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "OverlayConfig":
        if config is None:
            config = get_overlay_config()
        d = cls()
        return cls(
            hover_miss_factor=float(config.get("hover_miss_factor", d.hover_miss_factor)),
            search_miss_factor=float(config.get("search_miss_factor", d.search_miss_factor)),
            hidden_node_opacity=float(config.get("hidden_node_opacity", d.hidden_node_opacity)),
            visible_edge_opacity=float(config.get("visible_edge_opacity", d.visible_edge_opacity)),
            dimmed_edge_opacity=float(config.get("dimmed_edge_opacity", d.dimmed_edge_opacity)),
            legend_dimmed_opacity=float(config.get("legend_dimmed_opacity", d.legend_dimmed_opacity)),
            all_categories_label=str(config.get("all_categories_label", d.all_categories_label)),
        )


DEFAULT_OVERLAY = OverlayConfig()


# =============================================================================
# State and actions
# =============================================================================

@dataclass(frozen=True)
class InteractionState:
    """
    User interaction state for the session.

    active_categories None means "all categories"; it is never an empty set.
    Pins are entity ids so they survive graph rebuilds.
    """
    pinned: FrozenSet[str] = frozenset()
    category_filter: Optional[str] = None
    active_categories: Optional[FrozenSet[str]] = None
    hover_category: Optional[str] = None
    search_query: str = ""


@dataclass(frozen=True)
class ToggleCategory:
    category: str


@dataclass(frozen=True)
class ClearCategories:
    pass


@dataclass(frozen=True)
class SetCategoryFilter:
    category: Optional[str]


@dataclass(frozen=True)
class SetHoverCategory:
    category: Optional[str]


@dataclass(frozen=True)
class SetSearchQuery:
    query: str


@dataclass(frozen=True)
class PinNode:
    entity_id: str


@dataclass(frozen=True)
class UnpinNode:
    entity_id: str


@dataclass(frozen=True)
class ResetInteraction:
    pass


Action = Union[
    ToggleCategory, ClearCategories, SetCategoryFilter, SetHoverCategory,
    SetSearchQuery, PinNode, UnpinNode, ResetInteraction,
]


def toggle_category(
    active: Optional[FrozenSet[str]], category: str
) -> Optional[FrozenSet[str]]:
    """Add if absent, remove if present; an emptied set means all (None)."""
    if active is not None and category in active:
        remaining = active - {category}
        return remaining or None
    return (active or frozenset()) | {category}


def reduce(
    state: InteractionState,
    action: Action,
    config: OverlayConfig = DEFAULT_OVERLAY,
) -> InteractionState:
    """Pure transition: (state, action) -> next state."""
    if isinstance(action, ToggleCategory):
        return replace(state, active_categories=toggle_category(state.active_categories, action.category))
    if isinstance(action, ClearCategories):
        return replace(state, active_categories=None)
    if isinstance(action, SetCategoryFilter):
        category = action.category
        if category == config.all_categories_label or category == "":
            category = None
        return replace(state, category_filter=category)
    if isinstance(action, SetHoverCategory):
        return replace(state, hover_category=action.category or None)
    if isinstance(action, SetSearchQuery):
        return replace(state, search_query=action.query or "")
    if isinstance(action, PinNode):
        return replace(state, pinned=state.pinned | {action.entity_id})
    if isinstance(action, UnpinNode):
        return replace(state, pinned=state.pinned - {action.entity_id})
    if isinstance(action, ResetInteraction):
        return InteractionState()
    raise TypeError(f"Unknown interaction action: {action!r}")


# =============================================================================
# Derived predicates
# =============================================================================

def is_visible(node: Node, state: InteractionState) -> bool:
    if state.category_filter is not None and node.category != state.category_filter:
        return False
    if state.active_categories is not None and node.category not in state.active_categories:
        return False
    return True


def matches_search(node: Node, query: str) -> bool:
    """Case-insensitive substring match on name or id; blank query matches all."""
    q = query.strip().lower()
    if not q:
        return True
    return q in node.name.lower() or q in node.id.lower()


def node_opacity(
    node: Node,
    state: InteractionState,
    config: OverlayConfig = DEFAULT_OVERLAY,
) -> float:
    """Emphasis multiplier: hover and search misses compound."""
    alpha = 1.0
    if state.hover_category is not None and node.category != state.hover_category:
        alpha *= config.hover_miss_factor
    if not matches_search(node, state.search_query):
        alpha *= config.search_miss_factor
    return alpha


def node_render_opacity(
    node: Node,
    state: InteractionState,
    config: OverlayConfig = DEFAULT_OVERLAY,
) -> float:
    """Opacity to draw with: the emphasis multiplier, or near-invisible when filtered out."""
    if not is_visible(node, state):
        return config.hidden_node_opacity
    return node_opacity(node, state, config)


def edge_visible(edge: Edge, graph: Graph, state: InteractionState) -> bool:
    return (
        is_visible(graph.nodes[edge.source_index], state)
        and is_visible(graph.nodes[edge.target_index], state)
    )


def edge_opacity(
    edge: Edge,
    graph: Graph,
    state: InteractionState,
    config: OverlayConfig = DEFAULT_OVERLAY,
) -> float:
    if edge_visible(edge, graph, state):
        return config.visible_edge_opacity
    return config.dimmed_edge_opacity


def legend_opacity(
    category: str,
    state: InteractionState,
    config: OverlayConfig = DEFAULT_OVERLAY,
) -> float:
    """Legend swatch opacity: dimmed when another category is hovered or it is deselected."""
    if state.hover_category is not None and state.hover_category != category:
        return config.legend_dimmed_opacity
    if state.active_categories is not None and category not in state.active_categories:
        return config.legend_dimmed_opacity
    return 1.0


# =============================================================================
# View
# =============================================================================

@dataclass(frozen=True)
class NodeStyle:
    id: str
    visible: bool
    opacity: float
    pinned: bool


@dataclass(frozen=True)
class EdgeStyle:
    source_index: int
    target_index: int
    visible: bool
    opacity: float


@dataclass(frozen=True)
class OverlayView:
    """Style hints for one (graph, state) pair."""
    nodes: Tuple[NodeStyle, ...]
    edges: Tuple[EdgeStyle, ...]
    categories: Tuple[str, ...]
    legend: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def compute(
        cls,
        graph: Graph,
        state: InteractionState,
        config: OverlayConfig = DEFAULT_OVERLAY,
    ) -> "OverlayView":
        visible = [is_visible(node, state) for node in graph.nodes]
        nodes = tuple(
            NodeStyle(
                id=node.id,
                visible=visible[i],
                opacity=node_opacity(node, state, config) if visible[i] else config.hidden_node_opacity,
                pinned=node.id in state.pinned,
            )
            for i, node in enumerate(graph.nodes)
        )
        edges = []
        for edge in graph.edges:
            shown = visible[edge.source_index] and visible[edge.target_index]
            edges.append(EdgeStyle(
                source_index=edge.source_index,
                target_index=edge.target_index,
                visible=shown,
                opacity=config.visible_edge_opacity if shown else config.dimmed_edge_opacity,
            ))
        categories = tuple(graph.categories())
        legend = {category: legend_opacity(category, state, config) for category in categories}
        return cls(nodes, tuple(edges), categories, legend)

    def visible_ids(self) -> List[str]:
        return [style.id for style in self.nodes if style.visible]
