"""
Layout Engine tests (pytest compatible)

Run with:
    pytest tests/test_layout.py -v
"""

import threading

import numpy as np
import pytest

from simnet.core.graph import Edge, Graph, Node, Viewport
from simnet.engines.forces import center_force, charge_force, link_force, phyllotaxis
from simnet.engines.layout import FrameDriver, LayoutConfig, LayoutEngine, LayoutState


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def small_graph():
    nodes = tuple(Node(f"N{i:02d}", f"Node {i}", "A" if i % 2 else "B", 70.0 + i) for i in range(8))
    edges = (
        Edge(0, 1, 0.9),
        Edge(1, 2, 0.8),
        Edge(2, 3, 0.7),
        Edge(4, 5, 0.95),
        Edge(5, 6, 0.66),
    )
    return Graph(nodes, edges, 2005, 2023, (2000, 2023))


@pytest.fixture
def config():
    return LayoutConfig()


@pytest.fixture
def viewport():
    return Viewport()


@pytest.fixture
def engine(small_graph, viewport, config):
    engine = LayoutEngine(small_graph, viewport, config)
    yield engine
    engine.stop()


def in_bounds(snapshot, viewport):
    x_min, x_max, y_min, y_max = viewport.bounds
    return (
        np.all(snapshot.x >= x_min) and np.all(snapshot.x <= x_max)
        and np.all(snapshot.y >= y_min) and np.all(snapshot.y <= y_max)
    )


# =============================================================================
# Forces
# =============================================================================

class TestForces:

    def test_phyllotaxis_is_deterministic_and_distinct(self):
        x1, y1 = phyllotaxis(20, 100, 100)
        x2, y2 = phyllotaxis(20, 100, 100)
        assert np.array_equal(x1, x2) and np.array_equal(y1, y2)
        points = set(zip(np.round(x1, 6), np.round(y1, 6)))
        assert len(points) == 20

    def test_charge_repels(self):
        x = np.array([0.0, 10.0])
        y = np.array([0.0, 0.0])
        vx = np.zeros(2)
        vy = np.zeros(2)
        charge_force(x, y, vx, vy, alpha=1.0, strength=-60.0)
        assert vx[0] < 0 < vx[1]

    def test_charge_separates_coincident_nodes(self):
        x = np.array([5.0, 5.0])
        y = np.array([5.0, 5.0])
        vx = np.zeros(2)
        vy = np.zeros(2)
        charge_force(x, y, vx, vy, alpha=1.0)
        assert np.all(np.isfinite(vx)) and np.all(np.isfinite(vy))
        assert vx[0] != vx[1]

    def test_link_pulls_long_edges_together(self):
        x = np.array([0.0, 100.0])
        y = np.array([0.0, 0.0])
        vx = np.zeros(2)
        vy = np.zeros(2)
        link_force(x, y, vx, vy, np.array([0]), np.array([1]), alpha=1.0, distance=40.0, strength=0.7)
        assert vx[0] > 0 > vx[1]

    def test_link_pushes_short_edges_apart(self):
        x = np.array([0.0, 10.0])
        y = np.array([0.0, 0.0])
        vx = np.zeros(2)
        vy = np.zeros(2)
        link_force(x, y, vx, vy, np.array([0]), np.array([1]), alpha=1.0, distance=40.0, strength=0.7)
        assert vx[0] < 0 < vx[1]

    def test_center_moves_mean(self):
        x = np.array([0.0, 10.0, 20.0])
        y = np.array([5.0, 5.0, 5.0])
        center_force(x, y, 100.0, 50.0)
        assert x.mean() == pytest.approx(100.0)
        assert y.mean() == pytest.approx(50.0)


# =============================================================================
# Engine
# =============================================================================

class TestLayoutEngine:

    def test_initial_state_running(self, engine):
        assert engine.state == LayoutState.RUNNING
        assert engine.alpha == pytest.approx(1.0)
        assert len(engine.snapshot()) == 8

    def test_deterministic(self, small_graph, viewport, config):
        a = LayoutEngine(small_graph, viewport, config)
        b = LayoutEngine(small_graph, viewport, config)
        a.step(50)
        b.step(50)
        assert np.array_equal(a.snapshot().x, b.snapshot().x)
        assert np.array_equal(a.snapshot().y, b.snapshot().y)

    def test_positions_stay_in_viewport(self, engine, viewport):
        for _ in range(30):
            engine.step(5)
            assert in_bounds(engine.snapshot(), viewport)

    def test_snapshot_is_read_only_copy(self, engine):
        snap = engine.snapshot()
        with pytest.raises(ValueError):
            snap.x[0] = 0.0
        engine.step(3)
        assert not np.array_equal(snap.x, engine.snapshot().x)

    def test_pin_holds_position_every_step(self, engine):
        engine.pin("N03", 300.0, 200.0)
        for _ in range(25):
            engine.step()
            assert engine.snapshot().position_of("N03") == (300.0, 200.0)
        assert "N03" in engine.pinned_ids()

    def test_unpin_releases_on_next_step(self, engine):
        engine.pin("N03", 300.0, 200.0)
        engine.step(10)
        engine.unpin("N03")
        engine.step()
        assert engine.snapshot().position_of("N03") != (300.0, 200.0)
        assert "N03" not in engine.pinned_ids()

    def test_flush_applies_queued_pins(self, engine):
        engine.pin("N03", 300.0, 200.0)
        steps = engine.steps
        engine.flush()
        assert engine.steps == steps
        assert engine.snapshot().position_of("N03") == (300.0, 200.0)
        assert "N03" in engine.pinned_ids()

    def test_stop_applies_queued_pins(self, engine):
        engine.pin("N03", 300.0, 200.0)
        engine.stop()
        assert engine.snapshot().position_of("N03") == (300.0, 200.0)
        assert engine.pinned_ids() == frozenset({"N03"})

    def test_pin_without_coordinates_holds_current_position(self, engine):
        engine.step(5)
        here = engine.snapshot().position_of("N01")
        engine.pin("N01")
        engine.step(5)
        assert engine.snapshot().position_of("N01") == here

    def test_pin_outside_viewport_is_clamped(self, engine, viewport):
        engine.pin("N00", -500.0, 5000.0)
        engine.step()
        x_min, _, _, y_max = viewport.bounds
        assert engine.snapshot().position_of("N00") == (x_min, y_max)

    def test_unknown_pin_is_ignored(self, engine):
        engine.pin("NOPE", 1.0, 1.0)
        assert engine.step() == 1

    def test_pinned_at_start_from_previous_positions(self, small_graph, viewport, config):
        engine = LayoutEngine(
            small_graph, viewport, config,
            pinned={"N02"},
            previous_positions={"N02": (123.0, 321.0), "N05": (50.0, 60.0)},
        )
        assert engine.snapshot().position_of("N05") == (50.0, 60.0)
        engine.step(10)
        assert engine.snapshot().position_of("N02") == (123.0, 321.0)

    def test_settles_then_reheats(self, engine):
        engine.step(400)
        assert engine.state == LayoutState.SETTLED
        engine.reheat()
        assert engine.state == LayoutState.RUNNING
        assert engine.alpha_target == pytest.approx(0.3)
        engine.step(50)
        assert engine.alpha > 0.1
        engine.cool()
        assert engine.alpha_target == 0.0

    def test_pin_wakes_settled_run(self, engine):
        engine.step(400)
        engine.pin("N04", 200.0, 150.0)
        assert engine.state == LayoutState.RUNNING

    def test_stop_is_final(self, engine):
        engine.step(5)
        last = engine.snapshot()
        engine.stop()
        assert engine.state == LayoutState.STOPPED
        assert engine.step(10) == 0
        assert np.array_equal(engine.snapshot().x, last.x)
        engine.pin("N00", 1.0, 1.0)
        engine.stop()

    def test_empty_graph(self, viewport, config):
        engine = LayoutEngine(Graph.empty(), viewport, config)
        assert engine.step(3) == 3
        assert len(engine.snapshot()) == 0


# =============================================================================
# Frame driver
# =============================================================================

class TestFrameDriver:

    def test_emits_at_most_one_snapshot_per_interval(self, engine):
        driver = FrameDriver(engine, frame_interval=0.5, steps_per_second=100, max_steps_per_advance=50)

        first = driver.advance(0.0)
        assert first is not None and first.steps == 1

        assert driver.advance(0.25) is None
        assert engine.steps == 26

        second = driver.advance(0.5)
        assert second is not None
        assert second.steps == 51
        assert second.frame == 2

    def test_steps_are_coalesced_not_dropped(self, engine):
        driver = FrameDriver(engine, frame_interval=1.0, steps_per_second=100, max_steps_per_advance=50)
        driver.advance(0.0)
        for i in range(1, 10):
            driver.advance(i * 0.01)
        snap = driver.advance(1.0)
        assert snap is not None
        assert snap.steps == engine.steps
        assert driver.frames_emitted == 2

    def test_step_cap_per_advance(self, engine):
        driver = FrameDriver(engine, frame_interval=0.0, steps_per_second=100, max_steps_per_advance=10)
        driver.advance(0.0)
        driver.advance(5.0)
        assert engine.steps == 11

    def test_settled_engine_emits_nothing(self, engine):
        engine.step(400)
        driver = FrameDriver(engine, frame_interval=0.0)
        driver.advance(0.0)
        assert driver.advance(1.0) is None

    def test_stop_halts_driver_and_engine(self, engine):
        driver = FrameDriver(engine, frame_interval=0.0)
        driver.advance(0.0)
        driver.stop()
        assert driver.is_stopped
        assert engine.is_stopped
        assert driver.advance(1.0) is None

    def test_threaded_run(self, engine):
        frames = []
        got_frames = threading.Event()

        def on_frame(snapshot):
            frames.append(snapshot)
            if len(frames) >= 3:
                got_frames.set()

        driver = FrameDriver(engine, frame_interval=0.001, steps_per_second=1000)
        thread = driver.start(on_frame)
        assert got_frames.wait(5.0)
        driver.stop()

        assert not thread.is_alive()
        assert engine.is_stopped
        assert [f.frame for f in frames[:3]] == [1, 2, 3]

    def test_config_from_dict(self):
        cfg = LayoutConfig.from_config({"forces": {"link_distance": 55}, "driver": {"steps_per_second": 30}})
        assert cfg.link_distance == 55.0
        assert cfg.steps_per_second == 30.0
        assert cfg.charge_strength == -60.0
