"""Force-directed bubble layout.

``step_layout`` is the pure integrator: it takes a node list and returns a
new one. ``ForceLayout`` owns the node table between frames, reseeds only the
categories that enter or leave, and handles drag and click gestures.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

logger = logging.getLogger("vconlens")


@dataclass
class LayoutParams:
    base_radius: float = 40.0
    per_item_radius: float = 12.0
    padding: float = 8.0
    charge_strength: float = -200.0
    center_strength: float = 0.1
    collide_strength: float = 0.9
    collide_iterations: int = 3
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    alpha_decay: float = 0.0228
    drag_alpha_target: float = 0.3
    reheat_alpha: float = 0.3
    click_threshold: float = 4.0


@dataclass
class LayoutNode:
    category: str
    count: int
    radius: float
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None
    is_dragging: bool = False
    mood: str = "none"

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


def node_radius(count: int, params: LayoutParams) -> float:
    return params.base_radius + count * params.per_item_radius


def _jitter_coincident(
    pos: np.ndarray, rng: np.random.Generator
) -> np.ndarray:
    delta = pos[None, :, :] - pos[:, None, :]
    dist2 = np.sum(delta**2, axis=-1)
    np.fill_diagonal(dist2, np.inf)
    stacked = np.argwhere(np.triu(dist2 < 1e-12))
    for _i, j in stacked:
        pos[j] += rng.uniform(-1e-3, 1e-3, size=2)
    return pos


def step_layout(
    nodes: List[LayoutNode],
    center: Tuple[float, float],
    alpha: float,
    params: LayoutParams,
    rng: Optional[np.random.Generator] = None,
) -> List[LayoutNode]:
    if not nodes:
        return []
    rng = rng or np.random.default_rng()

    pos = np.array([[n.x, n.y] for n in nodes], dtype=float)
    vel = np.array([[n.vx, n.vy] for n in nodes], dtype=float)
    radii = np.array([n.radius for n in nodes], dtype=float)
    pinned = np.array([n.is_pinned for n in nodes], dtype=bool)
    if pinned.any():
        pos[pinned] = [[n.fx, n.fy] for n in nodes if n.is_pinned]
    pos = _jitter_coincident(pos, rng)

    # Charge: delta[i, j] points from i to j; negative strength pushes apart.
    delta = pos[None, :, :] - pos[:, None, :]
    dist2 = np.sum(delta**2, axis=-1)
    np.fill_diagonal(dist2, np.inf)
    dist2 = np.maximum(dist2, 1.0)
    vel += np.sum(delta * (params.charge_strength * alpha / dist2)[..., None], axis=1)

    # Centering: proportional pull, never a hard clamp.
    vel += (np.asarray(center, dtype=float) - pos) * params.center_strength * alpha
    vel[pinned] = 0.0

    # Collision: mass-weighted by r^2, pinned nodes are immovable obstacles.
    reach = radii[:, None] + radii[None, :] + params.padding
    r2 = radii**2
    share = r2[None, :] / (r2[:, None] + r2[None, :])
    share = np.where(pinned[:, None], 0.0, np.where(pinned[None, :], 1.0, share))
    for _ in range(max(0, params.collide_iterations)):
        ahead = pos + vel
        apart = ahead[:, None, :] - ahead[None, :, :]
        dist = np.sqrt(np.sum(apart**2, axis=-1))
        np.fill_diagonal(dist, np.inf)
        overlap = dist < reach
        if not overlap.any():
            break
        safe = np.where(overlap, np.maximum(dist, 1e-6), 1.0)
        push = np.where(overlap, (reach - dist) / safe * params.collide_strength, 0.0)
        vel += np.sum(apart * (push * share)[..., None], axis=1)

    free = ~pinned
    vel[free] *= 1.0 - params.velocity_decay
    pos[free] += vel[free]

    return [
        replace(node, x=float(p[0]), y=float(p[1]), vx=float(v[0]), vy=float(v[1]))
        for node, p, v in zip(nodes, pos, vel)
    ]


class ForceLayout:
    """Mutable node table plus simulation heat, driven one tick at a time."""

    def __init__(
        self,
        width: float,
        height: float,
        params: Optional[LayoutParams] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.params = params or LayoutParams()
        self.width = float(width)
        self.height = float(height)
        self.alpha = 1.0
        self.alpha_target = 0.0
        self._nodes: Dict[str, LayoutNode] = {}
        self._rng = np.random.default_rng(seed)
        self._press: Optional[Tuple[str, float, float]] = None
        self._moved = False

    @property
    def center(self) -> Tuple[float, float]:
        return (self.width / 2, self.height / 2)

    @property
    def nodes(self) -> List[LayoutNode]:
        return list(self._nodes.values())

    def node(self, category: str) -> Optional[LayoutNode]:
        return self._nodes.get(category)

    @property
    def running(self) -> bool:
        if any(n.is_dragging for n in self._nodes.values()):
            return True
        return bool(self._nodes) and (
            self.alpha >= self.params.alpha_min or self.alpha_target > 0
        )

    def reheat(self, alpha: Optional[float] = None) -> None:
        self.alpha = max(self.alpha, self.params.reheat_alpha if alpha is None else alpha)

    def _seed_position(self, radius: float) -> Tuple[float, float]:
        cx, cy = self.center
        extent = 0.0
        for node in self._nodes.values():
            extent = max(extent, math.hypot(node.x - cx, node.y - cy) + node.radius)
        distance = extent + radius + self.params.padding if self._nodes else 0.0
        angle = float(self._rng.uniform(0.0, 2 * math.pi))
        return cx + distance * math.cos(angle), cy + distance * math.sin(angle)

    def sync(self, counts: Mapping[str, Tuple[int, str]]) -> bool:
        """Match the node table to ``{category: (count, mood)}``.

        Persisting nodes keep position and velocity; only the delta is
        seeded or discarded. Returns True when membership changed.
        """
        removed = [c for c in self._nodes if c not in counts]
        for category in removed:
            del self._nodes[category]
            if self._press and self._press[0] == category:
                self._press = None

        added = []
        for category, (count, mood) in counts.items():
            radius = node_radius(count, self.params)
            existing = self._nodes.get(category)
            if existing is not None:
                existing.count = count
                existing.radius = radius
                existing.mood = mood
                continue
            x, y = self._seed_position(radius)
            self._nodes[category] = LayoutNode(
                category=category, count=count, radius=radius, x=x, y=y, mood=mood
            )
            added.append(category)

        changed = bool(added or removed)
        if changed:
            logger.debug("Layout membership: +%s -%s", added, removed)
            self.reheat()
        return changed

    def resize(self, width: float, height: float) -> None:
        if (width, height) == (self.width, self.height):
            return
        self.width = float(width)
        self.height = float(height)
        self.reheat()

    def tick(self) -> List[LayoutNode]:
        self.alpha += (self.alpha_target - self.alpha) * self.params.alpha_decay
        stepped = step_layout(self.nodes, self.center, self.alpha, self.params, self._rng)
        self._nodes = {n.category: n for n in stepped}
        return stepped

    def settle(self, max_ticks: int = 1000) -> int:
        ticks = 0
        while self.running and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks

    def node_at(self, x: float, y: float) -> Optional[LayoutNode]:
        # Later nodes draw on top, so search from the end.
        for node in reversed(self.nodes):
            if math.hypot(node.x - x, node.y - y) <= node.radius:
                return node
        return None

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        node = self.node_at(x, y)
        if node is None:
            return None
        self._press = (node.category, x, y)
        self._moved = False
        node.is_dragging = True
        node.fx, node.fy = node.x, node.y
        self.alpha_target = self.params.drag_alpha_target
        return node.category

    def pointer_move(self, x: float, y: float) -> None:
        if self._press is None:
            return
        category, x0, y0 = self._press
        node = self._nodes.get(category)
        if node is None:
            return
        if math.hypot(x - x0, y - y0) > self.params.click_threshold:
            self._moved = True
        node.fx, node.fy = x, y

    def pointer_up(self, x: float, y: float) -> Optional[str]:
        """End a gesture; returns the category when it was a click."""
        if self._press is None:
            return None
        category, x0, y0 = self._press
        moved = self._moved or math.hypot(x - x0, y - y0) > self.params.click_threshold
        self._press = None
        self._moved = False
        self.alpha_target = 0.0
        node = self._nodes.get(category)
        if node is not None:
            node.is_dragging = False
            node.fx = node.fy = None
        return None if moved else category
