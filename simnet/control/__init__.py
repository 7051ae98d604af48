"""
SIMNET Control Plane

Interaction Overlay: the user's pins, filters, hover and search, reduced
immutably and turned into visibility/opacity hints.
"""

from .overlay import (
    ClearCategories,
    EdgeStyle,
    InteractionState,
    NodeStyle,
    OverlayConfig,
    OverlayView,
    PinNode,
    ResetInteraction,
    SetCategoryFilter,
    SetHoverCategory,
    SetSearchQuery,
    ToggleCategory,
    UnpinNode,
    edge_opacity,
    edge_visible,
    is_visible,
    legend_opacity,
    matches_search,
    node_opacity,
    node_render_opacity,
    reduce,
    toggle_category,
)

__all__ = [
    "ClearCategories",
    "EdgeStyle",
    "InteractionState",
    "NodeStyle",
    "OverlayConfig",
    "OverlayView",
    "PinNode",
    "ResetInteraction",
    "SetCategoryFilter",
    "SetHoverCategory",
    "SetSearchQuery",
    "ToggleCategory",
    "UnpinNode",
    "edge_opacity",
    "edge_visible",
    "is_visible",
    "legend_opacity",
    "matches_search",
    "node_opacity",
    "node_render_opacity",
    "reduce",
    "toggle_category",
]
