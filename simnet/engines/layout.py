"""
SIMNET Layout Engine

Force-directed layout of a similarity graph as a long-lived, stateful
process.

States:
    INITIALIZING -> RUNNING <-> SETTLED -> STOPPED

    RUNNING   alpha is above alpha_min; each step moves nodes
    SETTLED   alpha decayed below alpha_min; the driver idles until reheat()
    STOPPED   terminal; steps are no-ops and the node arena is released

Ownership:
    The engine is the only writer of positions and velocities. They live in
    numpy arrays indexed by node position (the graph's Node objects are
    immutable). Pins arrive as queued commands applied at the start of the
    next step; readers get copies through snapshot().

Cadence:
    FrameDriver turns wall-clock time into physics steps and emits at most
    one snapshot per frame interval. Steps run between emissions are
    coalesced into the next snapshot, never discarded.

Usage:
    engine = LayoutEngine(graph, Viewport())
    driver = FrameDriver(engine)
    driver.start(on_frame=render)

    engine.reheat()              # drag started
    engine.pin("FRA", 300, 200)
    engine.cool()                # drag ended

    driver.stop()                # view torn down or graph rebuilt
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

import numpy as np

from simnet.config import get_layout_config
from simnet.core.graph import Graph, Viewport

from .forces import center_force, charge_force, link_force, phyllotaxis


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class LayoutConfig:
    """Force, cooling and cadence parameters."""
    link_distance: float = 40.0
    link_strength: float = 0.7
    charge_strength: float = -60.0
    charge_distance_min: float = 1.0
    center_strength: float = 1.0
    min_distance_sq: float = 1e-6

    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1.0 - 0.001 ** (1.0 / 300.0)
    alpha_target: float = 0.0
    reheat_target: float = 0.3
    velocity_decay: float = 0.4

    frame_interval: float = 1.0 / 60.0
    steps_per_second: float = 60.0
    max_steps_per_advance: int = 10

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "LayoutConfig":
        """Build from layout.yaml (or a given dict), falling back to defaults."""
        if config is None:
            config = get_layout_config()
        forces = config.get("forces") or {}
        simulation = config.get("simulation") or {}
        driver = config.get("driver") or {}
        d = cls()
        return cls(
            link_distance=float(forces.get("link_distance", d.link_distance)),
            link_strength=float(forces.get("link_strength", d.link_strength)),
            charge_strength=float(forces.get("charge_strength", d.charge_strength)),
            charge_distance_min=float(forces.get("charge_distance_min", d.charge_distance_min)),
            center_strength=float(forces.get("center_strength", d.center_strength)),
            min_distance_sq=float(forces.get("min_distance_sq", d.min_distance_sq)),
            alpha=float(simulation.get("alpha", d.alpha)),
            alpha_min=float(simulation.get("alpha_min", d.alpha_min)),
            alpha_decay=float(simulation.get("alpha_decay", d.alpha_decay)),
            alpha_target=float(simulation.get("alpha_target", d.alpha_target)),
            reheat_target=float(simulation.get("reheat_target", d.reheat_target)),
            velocity_decay=float(simulation.get("velocity_decay", d.velocity_decay)),
            frame_interval=float(driver.get("frame_interval", d.frame_interval)),
            steps_per_second=float(driver.get("steps_per_second", d.steps_per_second)),
            max_steps_per_advance=int(driver.get("max_steps_per_advance", d.max_steps_per_advance)),
        )


def default_viewport(config: Optional[Dict[str, Any]] = None) -> Viewport:
    """Viewport from layout.yaml, or the built-in 1100x680 default."""
    if config is None:
        config = get_layout_config()
    return Viewport.from_config(config.get("viewport") or {})


class LayoutState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    SETTLED = "settled"
    STOPPED = "stopped"


# =============================================================================
# Snapshots
# =============================================================================

@dataclass(frozen=True)
class NodePosition:
    id: str
    x: float
    y: float
    pinned: bool


@dataclass(frozen=True)
class LayoutSnapshot:
    """Read-only copy of every node position at one point in the run."""
    frame: int
    steps: int
    alpha: float
    ids: Tuple[str, ...]
    x: np.ndarray
    y: np.ndarray
    pinned: FrozenSet[str]

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[NodePosition]:
        for i, entity_id in enumerate(self.ids):
            yield NodePosition(entity_id, float(self.x[i]), float(self.y[i]), entity_id in self.pinned)

    def position_of(self, entity_id: str) -> Optional[Tuple[float, float]]:
        try:
            i = self.ids.index(entity_id)
        except ValueError:
            return None
        return (float(self.x[i]), float(self.y[i]))

    def as_dict(self) -> Dict[str, Tuple[float, float]]:
        return {entity_id: (float(self.x[i]), float(self.y[i])) for i, entity_id in enumerate(self.ids)}


def _frozen(values: np.ndarray) -> np.ndarray:
    copy = values.copy()
    copy.setflags(write=False)
    return copy


# =============================================================================
# Engine
# =============================================================================

class LayoutEngine:
    """
    Force simulation over one graph.

    Args:
        graph: Graph to lay out (nodes are never mutated)
        viewport: Drawing area; defaults to layout.yaml
        config: Force/cooling parameters; defaults to layout.yaml
        pinned: Entity ids to hold fixed from the first step
        previous_positions: entity_id -> (x, y) from an earlier run; used as
            starting positions and as pin positions for pinned ids
    """

    def __init__(
        self,
        graph: Graph,
        viewport: Optional[Viewport] = None,
        config: Optional[LayoutConfig] = None,
        pinned: Iterable[str] = (),
        previous_positions: Optional[Mapping[str, Tuple[float, float]]] = None,
    ):
        self.graph = graph
        self.viewport = viewport or default_viewport()
        self.config = config or LayoutConfig.from_config()

        self._lock = threading.RLock()
        self._commands: deque = deque()
        self._state = LayoutState.INITIALIZING
        self._steps = 0
        self._final: Optional[LayoutSnapshot] = None

        self._ids = tuple(node.id for node in graph.nodes)
        self._index = {entity_id: i for i, entity_id in enumerate(self._ids)}
        self._sources = np.array([e.source_index for e in graph.edges], dtype=int)
        self._targets = np.array([e.target_index for e in graph.edges], dtype=int)

        self._initialize(set(pinned), previous_positions or {})

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _initialize(self, pinned: set, previous: Mapping[str, Tuple[float, float]]) -> None:
        n = len(self._ids)
        cx, cy = self.viewport.center
        self._x, self._y = phyllotaxis(n, cx, cy)
        self._vx = np.zeros(n)
        self._vy = np.zeros(n)
        self._fx = np.full(n, np.nan)
        self._fy = np.full(n, np.nan)

        for entity_id, (px, py) in previous.items():
            i = self._index.get(entity_id)
            if i is not None:
                self._x[i], self._y[i] = float(px), float(py)

        for entity_id in pinned:
            i = self._index.get(entity_id)
            if i is not None:
                self._fx[i], self._fy[i] = self._clamp_point(self._x[i], self._y[i])

        self._alpha = self.config.alpha
        self._alpha_target = self.config.alpha_target
        self._state = LayoutState.RUNNING
        logger.debug(
            f"Layout initialized: {n} nodes, {len(self._sources)} edges, "
            f"{int(np.isfinite(self._fx).sum())} pinned"
        )

    def stop(self) -> None:
        """Halt the run for good and release the node arena. Idempotent.

        Queued pins are applied first, so the final snapshot holds them.
        """
        with self._lock:
            if self._state == LayoutState.STOPPED:
                return
            self._apply_commands()
            self._hold_pins()
            self._final = self._snapshot(frame=-1)
            self._state = LayoutState.STOPPED
            self._commands.clear()
            self._x = self._y = self._vx = self._vy = self._fx = self._fy = None
        logger.debug(f"Layout stopped after {self._steps} steps")

    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def is_stopped(self) -> bool:
        return self._state == LayoutState.STOPPED

    @property
    def is_settled(self) -> bool:
        return self._state == LayoutState.SETTLED

    # -------------------------------------------------------------------------
    # Heat
    # -------------------------------------------------------------------------

    def reheat(self, target: Optional[float] = None) -> None:
        """Raise the target energy (drag started) and wake a settled run."""
        with self._lock:
            if self.is_stopped:
                return
            self._alpha_target = self.config.reheat_target if target is None else float(target)
            if self._state == LayoutState.SETTLED:
                self._state = LayoutState.RUNNING

    def cool(self) -> None:
        """Return the target energy to baseline (drag ended)."""
        with self._lock:
            if self.is_stopped:
                return
            self._alpha_target = self.config.alpha_target

    # -------------------------------------------------------------------------
    # Pins
    # -------------------------------------------------------------------------

    def pin(self, entity_id: str, x: Optional[float] = None, y: Optional[float] = None) -> None:
        """
        Fix a node at (x, y); omitted coordinates pin it where it is.

        Applied at the start of the next step.
        """
        with self._lock:
            if not self.is_stopped:
                self._commands.append(("pin", entity_id, x, y))
                self._wake()

    def unpin(self, entity_id: str) -> None:
        """Release a node to free integration from its current position."""
        with self._lock:
            if not self.is_stopped:
                self._commands.append(("unpin", entity_id, None, None))
                self._wake()

    def _wake(self) -> None:
        # A settled run takes one more step so queued pins land
        if self._state == LayoutState.SETTLED:
            self._state = LayoutState.RUNNING

    def pinned_ids(self) -> FrozenSet[str]:
        """Ids pinned as of the last applied step."""
        with self._lock:
            if self.is_stopped:
                return self._final.pinned if self._final else frozenset()
            return frozenset(self._ids[i] for i in np.flatnonzero(np.isfinite(self._fx)))

    def flush(self) -> None:
        """Apply queued pin commands now and move pinned nodes onto their pins."""
        with self._lock:
            if self.is_stopped:
                return
            self._apply_commands()
            self._hold_pins()

    def _apply_commands(self) -> None:
        while self._commands:
            action, entity_id, x, y = self._commands.popleft()
            i = self._index.get(entity_id)
            if i is None:
                logger.debug(f"Ignoring {action} for unknown node {entity_id}")
                continue
            if action == "pin":
                px = self._x[i] if x is None else float(x)
                py = self._y[i] if y is None else float(y)
                self._fx[i], self._fy[i] = self._clamp_point(px, py)
            else:
                self._fx[i] = self._fy[i] = np.nan

    # -------------------------------------------------------------------------
    # Physics
    # -------------------------------------------------------------------------

    def step(self, n: int = 1) -> int:
        """
        Run up to `n` physics steps. Returns the number actually run.

        Steps run even when settled (explicit stepping), never when stopped.
        """
        ran = 0
        with self._lock:
            for _ in range(n):
                if self.is_stopped:
                    break
                self._apply_commands()
                self._tick()
                ran += 1
        return ran

    def _tick(self) -> None:
        cfg = self.config
        self._alpha += (self._alpha_target - self._alpha) * cfg.alpha_decay
        alpha = self._alpha

        link_force(
            self._x, self._y, self._vx, self._vy,
            self._sources, self._targets, alpha,
            distance=cfg.link_distance,
            strength=cfg.link_strength,
            min_distance_sq=cfg.min_distance_sq,
        )
        charge_force(
            self._x, self._y, self._vx, self._vy, alpha,
            strength=cfg.charge_strength,
            distance_min=cfg.charge_distance_min,
            min_distance_sq=cfg.min_distance_sq,
        )
        cx, cy = self.viewport.center
        center_force(self._x, self._y, cx, cy, strength=cfg.center_strength)

        keep = 1.0 - cfg.velocity_decay
        self._vx *= keep
        self._vy *= keep
        self._x += self._vx
        self._y += self._vy

        self._hold_pins()

        x_min, x_max, y_min, y_max = self.viewport.bounds
        np.clip(self._x, x_min, x_max, out=self._x)
        np.clip(self._y, y_min, y_max, out=self._y)

        self._steps += 1
        if self._alpha < cfg.alpha_min and self._state == LayoutState.RUNNING:
            self._state = LayoutState.SETTLED
            logger.debug(f"Layout settled after {self._steps} steps")

    def _hold_pins(self) -> None:
        fixed = np.isfinite(self._fx)
        if fixed.any():
            self._x[fixed] = self._fx[fixed]
            self._y[fixed] = self._fy[fixed]
            self._vx[fixed] = 0.0
            self._vy[fixed] = 0.0

    def _clamp_point(self, x: float, y: float) -> Tuple[float, float]:
        x_min, x_max, y_min, y_max = self.viewport.bounds
        return (min(max(float(x), x_min), x_max), min(max(float(y), y_min), y_max))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self, frame: int = 0) -> LayoutSnapshot:
        """Copy of current positions (the final positions once stopped)."""
        with self._lock:
            if self.is_stopped:
                return self._final
            return self._snapshot(frame)

    def _snapshot(self, frame: int) -> LayoutSnapshot:
        pinned = frozenset(self._ids[i] for i in np.flatnonzero(np.isfinite(self._fx)))
        return LayoutSnapshot(
            frame=frame,
            steps=self._steps,
            alpha=self._alpha,
            ids=self._ids,
            x=_frozen(self._x),
            y=_frozen(self._y),
            pinned=pinned,
        )


# =============================================================================
# Frame driver
# =============================================================================

class FrameDriver:
    """
    Cooperative scheduler for a LayoutEngine.

    advance(now) converts elapsed time into physics steps (at most
    max_steps_per_advance per call) and returns a snapshot only when at least
    frame_interval has passed since the last emitted one and something moved.

    Usage:
        driver = FrameDriver(engine)
        snap = driver.advance(now)    # manual tick, e.g. from a UI timer
        driver.start(on_frame=draw)   # or a background thread
        driver.stop()
    """

    def __init__(
        self,
        engine: LayoutEngine,
        frame_interval: Optional[float] = None,
        steps_per_second: Optional[float] = None,
        max_steps_per_advance: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        cfg = engine.config
        self.engine = engine
        self.frame_interval = cfg.frame_interval if frame_interval is None else frame_interval
        self.steps_per_second = cfg.steps_per_second if steps_per_second is None else steps_per_second
        self.max_steps_per_advance = (
            cfg.max_steps_per_advance if max_steps_per_advance is None else max_steps_per_advance
        )
        self.clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_time: Optional[float] = None
        self._last_emit: Optional[float] = None
        self._step_debt = 0.0
        self._pending = False
        self._frames = 0

    @property
    def frames_emitted(self) -> int:
        return self._frames

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set() or self.engine.is_stopped

    @property
    def thread(self) -> Optional[threading.Thread]:
        """Background loop thread, while start()ed and not stopped."""
        return self._thread

    def advance(self, now: Optional[float] = None) -> Optional[LayoutSnapshot]:
        """Run the steps owed since the last call; maybe emit one snapshot."""
        if self.is_stopped:
            return None
        now = self.clock() if now is None else now

        if self._last_time is None:
            steps = 1
        else:
            self._step_debt += max(0.0, now - self._last_time) * self.steps_per_second
            steps = int(self._step_debt)
            if steps > self.max_steps_per_advance:
                logger.debug(f"Layout behind by {steps} steps; running {self.max_steps_per_advance}")
                steps = self.max_steps_per_advance
                self._step_debt = 0.0
            else:
                self._step_debt -= steps
        self._last_time = now

        if steps and not self.engine.is_settled:
            if self.engine.step(steps):
                self._pending = True

        if not self._pending:
            return None
        if self._last_emit is not None and now - self._last_emit < self.frame_interval:
            return None

        self._pending = False
        self._last_emit = now
        self._frames += 1
        return self.engine.snapshot(frame=self._frames)

    def run(self, on_frame: Callable[[LayoutSnapshot], None]) -> None:
        """Blocking loop: advance and deliver snapshots until stop()."""
        while not self.is_stopped:
            snapshot = self.advance()
            if snapshot is not None:
                on_frame(snapshot)
            self._stop_event.wait(self.frame_interval)

    def start(self, on_frame: Callable[[LayoutSnapshot], None]) -> threading.Thread:
        """Run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("FrameDriver already running")

        def _target():
            try:
                self.run(on_frame)
            except Exception as e:
                logger.exception(f"Layout frame loop failed: {e}")
                self.stop()

        self._thread = threading.Thread(target=_target, name="simnet-layout", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        """Stop the loop and the engine. Safe to call from the frame callback."""
        self._stop_event.set()
        self.engine.stop()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
