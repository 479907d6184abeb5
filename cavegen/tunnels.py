"""Tunnel routing between connected chambers.

Every graph edge is routed with A* over an implicit lattice anchored at
the source chamber. Step costs grow with a geological resistance field so
tunnels bend around hard strata. The raw lattice path is smoothed with a
centripetal Catmull-Rom spline and receives a noise driven radius
profile.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .chambers import Chamber, ChamberNetwork
from .noise import gradient_noise3, hash3
from .vector import Vector3, stack_vectors

if TYPE_CHECKING:
    from .src.generation.settings import GenerationSettings

LOGGER = logging.getLogger(__name__)

RadiusCurve = Callable[[float], float]

_NEIGHBOUR_OFFSETS = tuple(
    offset for offset in itertools.product((-1, 0, 1), repeat=3) if offset != (0, 0, 0)
)
_NEIGHBOUR_ARRAY = np.array(_NEIGHBOUR_OFFSETS, dtype=np.float64)
_NEIGHBOUR_STEPS = np.linalg.norm(_NEIGHBOUR_ARRAY, axis=1)


@dataclass(frozen=True)
class GeologicalResistance:
    """Non-negative cost multiplier combining strata, rock hardness and noise."""

    stratification_frequency: float
    rock_hardness: float
    scale: float
    noise_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    seed: int = 0

    @classmethod
    def from_settings(cls, settings: GenerationSettings, seed: int) -> "GeologicalResistance":
        return cls(
            stratification_frequency=settings.stratification_frequency,
            rock_hardness=settings.rock_hardness,
            scale=settings.geological_resistance,
            noise_offset=tuple(settings.noise_offset),
            seed=int(seed),
        )

    def evaluate_many(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        layers = np.sin(points[:, 1] * self.stratification_frequency) * 0.5 + 0.5
        sample = points * 0.1 + np.asarray(self.noise_offset, dtype=np.float64)
        noise = gradient_noise3(self.seed, sample[:, 0], sample[:, 1], sample[:, 2])
        noise = np.clip(noise * 0.5 + 0.5, 0.0, 1.0)
        return (layers * self.rock_hardness + noise) * self.scale

    def evaluate(self, point: Vector3) -> float:
        return float(self.evaluate_many(point.to_array())[0])


@dataclass(frozen=True)
class TunnelPath:
    source: int
    target: int
    points: Tuple[Vector3, ...]
    radii: Tuple[float, ...]
    used_fallback: bool = False

    def __post_init__(self) -> None:
        if len(self.points) < 2:
            raise ValueError("tunnel path needs at least two points")
        if len(self.points) != len(self.radii):
            raise ValueError("tunnel path needs one radius per point")

    def length(self) -> float:
        return sum(a.distance_to(b) for a, b in zip(self.points, self.points[1:]))

    def segment_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return segment starts, ends, start radii and end radii as arrays."""

        points = stack_vectors(self.points)
        radii = np.asarray(self.radii, dtype=np.float64)
        return points[:-1], points[1:], radii[:-1], radii[1:]


def _constant_curve(_: float) -> float:
    return 1.0


def _centripetal_point(p0, p1, p2, p3, t: float, alpha: float = 0.5) -> np.ndarray:
    # Barry-Goldman pyramid with knot spacing |p_i+1 - p_i|^alpha.
    def knot(previous: float, a: np.ndarray, b: np.ndarray) -> float:
        return previous + max(float(np.linalg.norm(b - a)) ** alpha, 1e-6)

    t0 = 0.0
    t1 = knot(t0, p0, p1)
    t2 = knot(t1, p1, p2)
    t3 = knot(t2, p2, p3)
    u = t1 + (t2 - t1) * t
    a1 = (t1 - u) / (t1 - t0) * p0 + (u - t0) / (t1 - t0) * p1
    a2 = (t2 - u) / (t2 - t1) * p1 + (u - t1) / (t2 - t1) * p2
    a3 = (t3 - u) / (t3 - t2) * p2 + (u - t2) / (t3 - t2) * p3
    b1 = (t2 - u) / (t2 - t0) * a1 + (u - t0) / (t2 - t0) * a2
    b2 = (t3 - u) / (t3 - t1) * a2 + (u - t1) / (t3 - t1) * a3
    return (t2 - u) / (t2 - t1) * b1 + (u - t1) / (t2 - t1) * b2


class TunnelRouter:
    """Routes, smooths and profiles tunnels between chamber pairs."""

    def __init__(
        self,
        settings: GenerationSettings,
        seed: int,
        radius_curve: Optional[RadiusCurve] = None,
        resistance: Optional[GeologicalResistance] = None,
    ) -> None:
        self.settings = settings.validate()
        self.seed = int(seed)
        self.radius_curve = radius_curve or _constant_curve
        self.resistance = resistance or GeologicalResistance.from_settings(settings, self.seed)

    def route(
        self,
        start: Chamber,
        end: Chamber,
        resistance: Optional[GeologicalResistance] = None,
    ) -> TunnelPath:
        field = resistance or self.resistance
        raw, used_fallback = self.find_path(start.center, end.center, field)
        points = raw if used_fallback else self.smooth_path(raw)
        radii = self.radius_profile(points, start.index, end.index)
        if used_fallback:
            LOGGER.warning(
                "A* exhausted %d steps between chambers %d and %d, using a straight tunnel",
                self.settings.max_pathfinding_steps,
                start.index,
                end.index,
            )
        return TunnelPath(
            source=start.index,
            target=end.index,
            points=tuple(points),
            radii=tuple(radii),
            used_fallback=used_fallback,
        )

    def find_path(
        self,
        start: Vector3,
        goal: Vector3,
        resistance: GeologicalResistance,
    ) -> Tuple[List[Vector3], bool]:
        """Return the raw lattice path and whether the straight fallback was used."""

        spacing = self.settings.node_spacing
        origin = start.to_array()
        target = goal.to_array()
        start_key = (0, 0, 0)
        costs: Dict[Tuple[int, int, int], float] = {start_key: 0.0}
        parents: Dict[Tuple[int, int, int], Tuple[int, int, int]] = {}
        resistance_cache: Dict[Tuple[int, int, int], float] = {}
        closed = set()
        counter = itertools.count()
        start_h = float(np.linalg.norm(target - origin))
        open_heap = [(start_h, start_h, next(counter), start_key)]
        steps = 0

        while open_heap and steps < self.settings.max_pathfinding_steps:
            _, h, _, key = heapq.heappop(open_heap)
            if key in closed:
                continue
            closed.add(key)
            steps += 1
            if h <= spacing:
                return self._reconstruct(parents, key, start, goal, origin, spacing), False

            base = np.asarray(key, dtype=np.float64)
            neighbour_keys = [
                (key[0] + dx, key[1] + dy, key[2] + dz) for dx, dy, dz in _NEIGHBOUR_OFFSETS
            ]
            positions = origin + (base + _NEIGHBOUR_ARRAY) * spacing
            missing = [i for i, nk in enumerate(neighbour_keys) if nk not in resistance_cache]
            if missing:
                values = resistance.evaluate_many(positions[missing])
                for i, value in zip(missing, values):
                    resistance_cache[neighbour_keys[i]] = float(value)
            distances = np.linalg.norm(target - positions, axis=1)

            for i, neighbour in enumerate(neighbour_keys):
                if neighbour in closed:
                    continue
                step_cost = _NEIGHBOUR_STEPS[i] * spacing * (1.0 + resistance_cache[neighbour])
                tentative = costs[key] + float(step_cost)
                if tentative < costs.get(neighbour, math.inf):
                    costs[neighbour] = tentative
                    parents[neighbour] = key
                    neighbour_h = float(distances[i])
                    heapq.heappush(
                        open_heap, (tentative + neighbour_h, neighbour_h, next(counter), neighbour)
                    )

        return [start, goal], True

    @staticmethod
    def _reconstruct(parents, key, start, goal, origin, spacing) -> List[Vector3]:
        keys = [key]
        while keys[-1] in parents:
            keys.append(parents[keys[-1]])
        keys.reverse()
        points = [start]
        for node in keys[1:]:
            points.append(Vector3.from_iter(origin + np.asarray(node, dtype=np.float64) * spacing))
        # The search stops within one spacing of the goal, so pin the exact centre.
        if len(points) > 1 and points[-1].distance_to(goal) < 1e-9:
            points[-1] = goal
        else:
            points.append(goal)
        return points

    def smooth_path(self, raw: Sequence[Vector3]) -> List[Vector3]:
        """Centripetal Catmull-Rom through ``raw`` blended toward straight segments."""

        if len(raw) < 3:
            return list(raw)
        spacing = self.settings.node_spacing
        curvature = self.settings.tunnel_curvature
        points = [p.to_array() for p in raw]
        count = len(points)
        smoothed = [raw[0]]
        for i in range(count - 1):
            p1 = points[i]
            p2 = points[i + 1]
            # Reflect the neighbours at the ends so the spline keeps its direction.
            p0 = points[i - 1] if i > 0 else 2.0 * p1 - p2
            p3 = points[i + 2] if i + 2 < count else 2.0 * p2 - p1
            subdivisions = max(1, math.ceil(float(np.linalg.norm(p2 - p1)) / spacing))
            for step in range(1, subdivisions):
                t = step / subdivisions
                linear = p1 + (p2 - p1) * t
                spline = _centripetal_point(p0, p1, p2, p3, t)
                smoothed.append(Vector3.from_iter(linear + (spline - linear) * curvature))
            smoothed.append(raw[i + 1])
        return smoothed

    def radius_profile(self, points: Sequence[Vector3], source: int, target: int) -> List[float]:
        settings = self.settings
        arc = [0.0]
        for a, b in zip(points, points[1:]):
            arc.append(arc[-1] + a.distance_to(b))
        total = arc[-1]
        noise_seed = int(hash3(self.seed, source, target, 0))
        samples = np.asarray(arc, dtype=np.float64) * settings.tunnel_frequency
        noise = gradient_noise3(noise_seed, samples, 0.5, 0.5)
        noise = np.clip(noise * 0.5 + 0.5, 0.0, 1.0)
        radii = []
        last = len(points) - 1
        for i, value in enumerate(noise):
            t = arc[i] / total if total > 0.0 else (i / last if last else 0.0)
            base = settings.tunnel_min_radius + (settings.tunnel_max_radius - settings.tunnel_min_radius) * float(value)
            radius = base * self.radius_curve(t)
            radii.append(min(settings.tunnel_max_radius, max(settings.tunnel_min_radius, radius)))
        return radii


def route_network(
    network: ChamberNetwork,
    router: TunnelRouter,
    max_workers: Optional[int] = None,
) -> List[TunnelPath]:
    """Route every edge of ``network``; results follow the edge order."""

    chambers = network.chambers

    def route_edge(edge: Tuple[int, int]) -> TunnelPath:
        return router.route(chambers[edge[0]], chambers[edge[1]])

    if max_workers and max_workers > 1 and len(network.edges) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            paths = list(pool.map(route_edge, network.edges))
    else:
        paths = [route_edge(edge) for edge in network.edges]
    fallbacks = sum(1 for path in paths if path.used_fallback)
    LOGGER.info("Routed %d tunnels (%d straight fallbacks)", len(paths), fallbacks)
    return paths
