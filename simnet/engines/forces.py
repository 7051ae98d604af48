"""
Force functions for the layout simulation.

Each force reads positions and adds to velocities in place (the centre force
translates positions directly). All forces are vectorised over the node
arena; there is no per-node Python loop.

Forces:
    - link: spring along each edge toward a rest length
    - charge: pairwise many-body repulsion (brute force, O(N^2))
    - center: translate the node cloud so its mean sits on the centre point
"""

import numpy as np


def link_force(
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    sources: np.ndarray,
    targets: np.ndarray,
    alpha: float,
    distance: float = 40.0,
    strength: float = 0.7,
    min_distance_sq: float = 1e-6,
) -> None:
    """
    Pull (or push) each edge's endpoints toward `distance` apart.

    The correction is split between the endpoints by degree, so hubs move
    less than leaves.
    """
    if sources.size == 0:
        return

    n = x.size
    count = np.bincount(sources, minlength=n) + np.bincount(targets, minlength=n)
    bias = count[sources] / (count[sources] + count[targets])

    dx = x[targets] + vx[targets] - x[sources] - vx[sources]
    dy = y[targets] + vy[targets] - y[sources] - vy[sources]
    length = np.sqrt(np.maximum(dx * dx + dy * dy, min_distance_sq))
    scale = (length - distance) / length * alpha * strength
    dx *= scale
    dy *= scale

    np.add.at(vx, targets, -dx * bias)
    np.add.at(vy, targets, -dy * bias)
    np.add.at(vx, sources, dx * (1.0 - bias))
    np.add.at(vy, sources, dy * (1.0 - bias))


def charge_force(
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    alpha: float,
    strength: float = -60.0,
    distance_min: float = 1.0,
    min_distance_sq: float = 1e-6,
) -> None:
    """
    Many-body force between every pair of nodes (negative strength repels).

    Below `distance_min` the falloff is softened to avoid blow-ups; exactly
    coincident nodes are separated along a fixed index-dependent direction.
    """
    n = x.size
    if n < 2:
        return

    dx = x[None, :] - x[:, None]
    dy = y[None, :] - y[:, None]
    dist_sq = dx * dx + dy * dy

    coincident = dist_sq < min_distance_sq
    np.fill_diagonal(coincident, False)
    if coincident.any():
        rows, cols = np.nonzero(coincident)
        offset = np.sign(cols - rows) * np.sqrt(min_distance_sq)
        dx[rows, cols] = offset
        dy[rows, cols] = offset
        dist_sq[rows, cols] = 2.0 * min_distance_sq

    min_sq = distance_min * distance_min
    dist_sq = np.where(dist_sq < min_sq, np.sqrt(min_sq * dist_sq), dist_sq)
    np.fill_diagonal(dist_sq, np.inf)

    weight = strength * alpha / dist_sq
    vx += (dx * weight).sum(axis=1)
    vy += (dy * weight).sum(axis=1)


def center_force(
    x: np.ndarray,
    y: np.ndarray,
    cx: float,
    cy: float,
    strength: float = 1.0,
) -> None:
    """Shift all nodes so their mean moves toward (cx, cy)."""
    if x.size == 0:
        return
    x -= (x.mean() - cx) * strength
    y -= (y.mean() - cy) * strength


def phyllotaxis(n: int, cx: float = 0.0, cy: float = 0.0, radius: float = 10.0):
    """Deterministic sunflower seeding: node i at radius*sqrt(0.5+i), golden angle."""
    i = np.arange(n, dtype=float)
    r = radius * np.sqrt(0.5 + i)
    angle = i * np.pi * (3.0 - np.sqrt(5.0))
    return cx + r * np.cos(angle), cy + r * np.sin(angle)
