"""
SIMNET Data Model

Immutable records shared by every component:

    Record    - one (entity, year, value) observation from the loader
    Node      - an entity admitted into a graph
    Edge      - an undirected similarity link between two nodes
    Graph     - nodes + edges + the window they were computed over
    Viewport  - drawing area the layout is confined to

Layout state (positions, velocities, pins) is deliberately NOT stored on
Node. It lives in arrays owned by the Layout Engine and indexed by node
position, so the graph can be shared freely between components.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


DEFAULT_CATEGORY = "Other"


class InvalidWindow(ValueError):
    """Raised when the requested window is degenerate after clamping."""

    def __init__(self, window_start: int, window_end: int, message: Optional[str] = None):
        self.window_start = window_start
        self.window_end = window_end
        super().__init__(
            message or f"Invalid window: start {window_start} >= end {window_end} after clamping"
        )


@dataclass(frozen=True)
class Record:
    """Single normalized observation: one entity, one year, one value."""
    entity_id: str
    entity_name: str
    year: int
    value: float


@dataclass(frozen=True)
class Node:
    """Graph node. `end_value` is the series value at the window end year."""
    id: str
    name: str
    category: str
    end_value: float


@dataclass(frozen=True)
class Edge:
    """Undirected edge, stored with source_index < target_index."""
    source_index: int
    target_index: int
    weight: float

    def __post_init__(self):
        if self.source_index >= self.target_index:
            raise ValueError(
                f"Edge requires source_index < target_index, "
                f"got {self.source_index} -> {self.target_index}"
            )

    @property
    def pair(self) -> Tuple[int, int]:
        return (self.source_index, self.target_index)


@dataclass(frozen=True)
class Graph:
    """
    Similarity graph snapshot.

    Built wholesale by the Correlation Graph Builder. Edges carry no identity
    across rebuilds.
    """
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    window_start: Optional[int] = None
    window_end: Optional[int] = None
    years_available: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        n = len(self.nodes)
        for edge in self.edges:
            if not (0 <= edge.source_index < n and 0 <= edge.target_index < n):
                raise ValueError(f"Edge {edge.pair} references a node outside 0..{n - 1}")

    @classmethod
    def empty(
        cls,
        window_start: Optional[int] = None,
        window_end: Optional[int] = None,
        years_available: Optional[Tuple[int, int]] = None,
    ) -> "Graph":
        return cls((), (), window_start, window_end, years_available)

    @property
    def is_empty(self) -> bool:
        return len(self.nodes) == 0

    def index_of(self, entity_id: str) -> Optional[int]:
        """Position of the node with this entity id, or None."""
        for i, node in enumerate(self.nodes):
            if node.id == entity_id:
                return i
        return None

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def categories(self) -> List[str]:
        """Distinct categories present in the graph, sorted (for filter UIs)."""
        return sorted({node.category for node in self.nodes})

    def summary(self) -> str:
        """Status line: available years, node and edge counts."""
        if self.years_available:
            years = f"{self.years_available[0]}–{self.years_available[1]}"
        else:
            years = "n/a"
        return f"years={years} | countries={len(self.nodes)} | edges={len(self.edges)}"


@dataclass(frozen=True)
class Margins:
    top: float = 60.0
    right: float = 20.0
    bottom: float = 40.0
    left: float = 20.0


@dataclass(frozen=True)
class Viewport:
    """
    Drawing area for the layout.

    Nodes are clamped to [inset, width - inset] horizontally and
    [inset, height - margins.top - inset] vertically; the plot area starts
    below the top margin.
    """
    width: float = 1100.0
    height: float = 680.0
    margins: Margins = field(default_factory=Margins)
    inset: float = 10.0

    @classmethod
    def from_config(cls, config: Dict) -> "Viewport":
        margins = config.get("margins") or {}
        return cls(
            width=float(config.get("width", 1100.0)),
            height=float(config.get("height", 680.0)),
            margins=Margins(
                top=float(margins.get("top", 60.0)),
                right=float(margins.get("right", 20.0)),
                bottom=float(margins.get("bottom", 40.0)),
                left=float(margins.get("left", 20.0)),
            ),
            inset=float(config.get("inset", 10.0)),
        )

    @property
    def center(self) -> Tuple[float, float]:
        m = self.margins
        return ((self.width - m.left - m.right) / 2.0, (self.height - m.top - m.bottom) / 2.0)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(x_min, x_max, y_min, y_max) of the clamp rectangle."""
        return (
            self.inset,
            self.width - self.inset,
            self.inset,
            self.height - self.margins.top - self.inset,
        )
