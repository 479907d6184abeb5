"""Chamber placement and the connectivity graph between chambers.

Chamber centres are spread with seeded Poisson-disk sampling so no two
chambers are closer than twice the largest chamber radius. Each chamber
then links to its nearest neighbours inside the allowed tunnel length
band, producing the undirected graph the tunnel router walks.
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from .vector import Vector3

if TYPE_CHECKING:
    from .src.generation.settings import GenerationSettings

LOGGER = logging.getLogger(__name__)

POISSON_ATTEMPTS = 30


@dataclass(frozen=True)
class Bounds:
    """Axis aligned box chambers are placed in."""

    minimum: Vector3
    maximum: Vector3

    @classmethod
    def from_tuples(cls, minimum: Sequence[float], maximum: Sequence[float]) -> "Bounds":
        return cls(Vector3.from_iter(minimum), Vector3.from_iter(maximum))

    @property
    def size(self) -> Vector3:
        return self.maximum - self.minimum

    def is_empty(self) -> bool:
        size = self.size
        return size.x <= 0.0 or size.y <= 0.0 or size.z <= 0.0

    def contains(self, point: Vector3) -> bool:
        return (
            self.minimum.x <= point.x <= self.maximum.x
            and self.minimum.y <= point.y <= self.maximum.y
            and self.minimum.z <= point.z <= self.maximum.z
        )


@dataclass(frozen=True)
class Chamber:
    index: int
    center: Vector3
    radius: float
    connections: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ChamberNetwork:
    """Immutable chamber list plus the deduplicated undirected edge list."""

    chambers: Tuple[Chamber, ...]
    edges: Tuple[Tuple[int, int], ...]
    min_distance: float

    @classmethod
    def generate(
        cls,
        bounds: Bounds,
        count: int,
        settings: GenerationSettings,
        seed: int,
    ) -> "ChamberNetwork":
        chambers = generate_chambers(bounds, count, settings, seed)
        return cls(
            chambers=tuple(chambers),
            edges=tuple(sorted({(min(i, j), max(i, j)) for c in chambers for i, j in _pairs(c)})),
            min_distance=2.0 * settings.chamber_max_radius,
        )

    @classmethod
    def empty(cls) -> "ChamberNetwork":
        return cls(chambers=(), edges=(), min_distance=0.0)

    def __len__(self) -> int:
        return len(self.chambers)


def _pairs(chamber: Chamber):
    return ((chamber.index, other) for other in chamber.connections)


def _annulus_offset(rng: random.Random, min_distance: float) -> Vector3:
    radius = rng.uniform(min_distance, 2.0 * min_distance)
    cos_theta = rng.uniform(-1.0, 1.0)
    phi = rng.uniform(0.0, 2.0 * math.pi)
    sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    return Vector3(
        radius * sin_theta * math.cos(phi),
        radius * cos_theta,
        radius * sin_theta * math.sin(phi),
    )


def poisson_disk_sample(
    bounds: Bounds,
    min_distance: float,
    count: int,
    rng: random.Random,
    attempts: int = POISSON_ATTEMPTS,
) -> List[Vector3]:
    """Place up to ``count`` points with pairwise spacing of at least ``min_distance``.

    Sampling stops early when every active point has failed ``attempts``
    times, so fewer points than requested is a normal result.
    """

    if count <= 0:
        return []
    if min_distance <= 0.0:
        raise ValueError("min_distance must be positive")
    cell = min_distance / math.sqrt(3.0)
    origin = bounds.minimum
    grid: Dict[Tuple[int, int, int], int] = {}
    points: List[Vector3] = []
    active: List[int] = []

    def cell_of(point: Vector3) -> Tuple[int, int, int]:
        return (
            int(math.floor((point.x - origin.x) / cell)),
            int(math.floor((point.y - origin.y) / cell)),
            int(math.floor((point.z - origin.z) / cell)),
        )

    def far_enough(candidate: Vector3) -> bool:
        cx, cy, cz = cell_of(candidate)
        for dx in range(-2, 3):
            for dy in range(-2, 3):
                for dz in range(-2, 3):
                    index = grid.get((cx + dx, cy + dy, cz + dz))
                    if index is not None and points[index].distance_to(candidate) < min_distance:
                        return False
        return True

    def accept(point: Vector3) -> None:
        grid[cell_of(point)] = len(points)
        active.append(len(points))
        points.append(point)

    size = bounds.size
    # Keep the seed point away from the floor and ceiling of the region.
    accept(
        Vector3(
            rng.uniform(bounds.minimum.x, bounds.maximum.x),
            bounds.minimum.y + size.y * rng.uniform(0.2, 0.8),
            rng.uniform(bounds.minimum.z, bounds.maximum.z),
        )
    )
    while active and len(points) < count:
        slot = rng.randrange(len(active))
        anchor = points[active[slot]]
        for _ in range(attempts):
            candidate = anchor + _annulus_offset(rng, min_distance)
            if bounds.contains(candidate) and far_enough(candidate):
                accept(candidate)
                break
        else:
            active.pop(slot)
    return points


def connect_chambers(
    centers: Sequence[Vector3],
    connections_per_chamber: int,
    min_length: float,
    max_length: float,
) -> List[Tuple[int, int]]:
    """Link every centre to its nearest neighbours inside the length band.

    Edges are undirected and reported once as ``(low, high)`` index
    pairs in discovery order.
    """

    edges: List[Tuple[int, int]] = []
    seen = set()
    for i, center in enumerate(centers):
        candidates = []
        for j, other in enumerate(centers):
            if i == j:
                continue
            distance = center.distance_to(other)
            if min_length <= distance <= max_length:
                candidates.append((distance, j))
        candidates.sort()
        for _, j in candidates[:connections_per_chamber]:
            key = (min(i, j), max(i, j))
            if key in seen:
                continue
            seen.add(key)
            edges.append(key)
    return edges


def generate_chambers(
    bounds: Bounds,
    count: int,
    settings: GenerationSettings,
    seed: int,
) -> List[Chamber]:
    """Place chambers and wire their connectivity in one deterministic pass."""

    settings.validate()
    if bounds.is_empty():
        raise ValueError("chamber bounds must have a positive extent on every axis")
    if count < 0:
        raise ValueError("chamber count must be >= 0")

    rng = random.Random(seed)
    min_distance = 2.0 * settings.chamber_max_radius
    centers = poisson_disk_sample(bounds, min_distance, count, rng)
    radii = [rng.uniform(settings.chamber_min_radius, settings.chamber_max_radius) for _ in centers]
    edges = connect_chambers(
        centers,
        settings.tunnel_connections_per_chamber,
        settings.min_tunnel_length,
        settings.max_tunnel_length,
    )

    adjacency: Dict[int, List[int]] = {index: [] for index in range(len(centers))}
    for a, b in edges:
        adjacency[a].append(b)
        adjacency[b].append(a)

    if len(centers) < count:
        LOGGER.info("Poisson sampling stalled: placed %d of %d chambers", len(centers), count)
    LOGGER.info("Generated %d chambers with %d connections", len(centers), len(edges))
    return [
        Chamber(index=index, center=center, radius=radius, connections=tuple(sorted(adjacency[index])))
        for index, (center, radius) in enumerate(zip(centers, radii))
    ]
