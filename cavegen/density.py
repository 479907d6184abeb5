"""Per-chunk density evaluation.

Density follows the convention ``1 = solid, 0 = air`` with the surface at
:data:`ISO_LEVEL`. Every grid point is a pure function of its world
position, the settings and the read-only chamber/tunnel snapshots, so a
chunk is evaluated one Z slice at a time and slices may run on a thread
pool.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import numpy as np

from .chambers import Chamber, ChamberNetwork
from .noise import gradient_noise3
from .noise_layers import NoiseLayerStack
from .sdf import chamber_normalized_distance, smoothstep, tunnel_normalized_distance
from .tunnels import TunnelPath
from .vector import Vector3

if TYPE_CHECKING:
    from .src.generation.settings import GenerationSettings

LOGGER = logging.getLogger(__name__)

ISO_LEVEL = 0.5
SURFACE_BLEND_DISTANCE = 10.0
CAVE_EDGE_BAND = 0.1
CHAMBER_WALL_ROUGHNESS = 0.1
EROSION_FREQUENCY = 0.05


def validate_chunk_request(chunk_size: int, voxel_size: float) -> None:
    if int(chunk_size) != chunk_size or chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    if not voxel_size > 0.0:
        raise ValueError("voxel_size must be positive")


@dataclass(frozen=True)
class DensityGrid:
    """Boundary inclusive ``(N+1)^3`` samples stored as ``values[z, y, x]``.

    The C-order flattening of ``values`` matches the index
    ``x + y*(N+1) + z*(N+1)^2``.
    """

    values: np.ndarray
    origin: Tuple[float, float, float]
    chunk_size: int
    voxel_size: float

    def __post_init__(self) -> None:
        samples = self.chunk_size + 1
        if self.values.shape != (samples, samples, samples):
            raise ValueError(f"density grid must have shape {(samples,) * 3}, got {self.values.shape}")
        self.values.flags.writeable = False

    @property
    def samples_per_axis(self) -> int:
        return self.chunk_size + 1

    def index(self, x: int, y: int, z: int) -> int:
        samples = self.samples_per_axis
        return x + y * samples + z * samples * samples

    def value(self, x: int, y: int, z: int) -> float:
        return float(self.values[z, y, x])

    def position(self, x: int, y: int, z: int) -> Vector3:
        return Vector3(
            self.origin[0] + x * self.voxel_size,
            self.origin[1] + y * self.voxel_size,
            self.origin[2] + z * self.voxel_size,
        )

    def flat(self) -> np.ndarray:
        return self.values.ravel()

    def to_bytes(self) -> bytes:
        return self.values.astype("<f4").tobytes()

    @classmethod
    def from_bytes(
        cls,
        payload: bytes,
        origin: Sequence[float],
        chunk_size: int,
        voxel_size: float,
    ) -> "DensityGrid":
        validate_chunk_request(chunk_size, voxel_size)
        samples = chunk_size + 1
        flat = np.frombuffer(payload, dtype="<f4")
        if flat.size != samples ** 3:
            raise ValueError(f"expected {samples ** 3} density samples, got {flat.size}")
        values = flat.astype(np.float32).reshape(samples, samples, samples)
        return cls(values=values, origin=tuple(float(c) for c in origin), chunk_size=chunk_size, voxel_size=voxel_size)


class DensityFieldEvaluator:
    """Combines chamber, tunnel, strata, erosion and noise signals into density."""

    def __init__(
        self,
        settings: GenerationSettings,
        chambers: Sequence[Chamber] = (),
        paths: Sequence[TunnelPath] = (),
        layers: Optional[NoiseLayerStack] = None,
        noise_seed: Optional[int] = None,
    ) -> None:
        self.settings = settings.validate()
        self.chambers = tuple(chambers)
        self.paths = tuple(paths)
        self.layers = layers if layers is not None else NoiseLayerStack(seed=settings.seed)
        self.noise_seed = settings.seed if noise_seed is None else int(noise_seed)

    def evaluate(
        self,
        chunk_origin: Sequence[float],
        chunk_size: int,
        voxel_size: float,
        max_workers: Optional[int] = None,
    ) -> DensityGrid:
        validate_chunk_request(chunk_size, voxel_size)
        origin = tuple(float(c) for c in chunk_origin)
        samples = int(chunk_size) + 1
        offsets = np.arange(samples, dtype=np.float64) * voxel_size
        xs = origin[0] + offsets
        ys = origin[1] + offsets
        zs = origin[2] + offsets
        grid_y, grid_x = np.meshgrid(ys, xs, indexing="ij")
        values = np.empty((samples, samples, samples), dtype=np.float64)

        def evaluate_slice(k: int) -> None:
            points = np.column_stack(
                (grid_x.ravel(), grid_y.ravel(), np.full(samples * samples, zs[k]))
            )
            values[k] = self.evaluate_points(points).reshape(samples, samples)

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                list(pool.map(evaluate_slice, range(samples)))
        else:
            for k in range(samples):
                evaluate_slice(k)

        LOGGER.debug("Evaluated density chunk at %s (%d^3 samples)", origin, samples)
        return DensityGrid(
            values=values.astype(np.float32),
            origin=origin,
            chunk_size=int(chunk_size),
            voxel_size=float(voxel_size),
        )

    def evaluate_points(self, points: np.ndarray) -> np.ndarray:
        """Density for an ``(n, 3)`` array of world positions."""

        settings = self.settings
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        density = np.ones(points.shape[0], dtype=np.float64)
        inside = (points[:, 1] >= settings.min_cave_height) & (points[:, 1] <= settings.max_cave_height)
        if not inside.any():
            return density

        p = points[inside]
        px, py, pz = p[:, 0], p[:, 1], p[:, 2]
        surface = 1.0 - np.clip((py - settings.surface_transition_height) / SURFACE_BLEND_DISTANCE, 0.0, 1.0)

        chamber_term = np.ones(p.shape[0], dtype=np.float64)
        if self.chambers:
            normalized = chamber_normalized_distance(
                p, self.chambers, settings.chamber_vertical_scale, settings.chamber_floor_flatness
            )
            freq = settings.chamber_frequency
            roughness = gradient_noise3(self.noise_seed + 31, px * freq, py * freq, pz * freq)
            chamber_term = smoothstep(-CAVE_EDGE_BAND, CAVE_EDGE_BAND, normalized + roughness * CHAMBER_WALL_ROUGHNESS)

        tunnel_term = np.ones(p.shape[0], dtype=np.float64)
        if self.paths:
            normalized = tunnel_normalized_distance(
                p, self.paths, p.min(axis=0), p.max(axis=0), CAVE_EDGE_BAND
            )
            tunnel_term = smoothstep(-CAVE_EDGE_BAND, CAVE_EDGE_BAND, normalized)

        cave = np.minimum(chamber_term, tunnel_term)
        cave = cave + settings.stratification_strength * np.sin(py * settings.stratification_frequency)
        if not self.layers.is_empty:
            cave = cave + self.layers.evaluate_xyz(px, py, pz)

        offset = settings.noise_offset
        span = max(settings.max_cave_height - settings.min_cave_height, 1e-6)
        height_factor = np.clip((settings.max_cave_height - py) / span, 0.0, 1.0)
        erosion_noise = gradient_noise3(
            self.noise_seed + 17,
            (px + offset[0]) * EROSION_FREQUENCY,
            (py + offset[1]) * EROSION_FREQUENCY,
            (pz + offset[2]) * EROSION_FREQUENCY,
        )
        erosion_noise = np.clip(erosion_noise * 0.5 + 0.5, 0.0, 1.0)
        erosion = settings.erosion_strength * height_factor * (1.0 - settings.rock_hardness) * erosion_noise

        density[inside] = np.clip(cave * surface - erosion, 0.0, 1.0)
        return density

    def density_at(self, position: Sequence[float]) -> float:
        return float(self.evaluate_points(np.asarray(tuple(position), dtype=np.float64))[0])


def evaluate_density(
    chunk_origin: Sequence[float],
    chunk_size: int,
    voxel_size: float,
    settings: GenerationSettings,
    network: Optional[ChamberNetwork] = None,
    paths: Sequence[TunnelPath] = (),
    layers: Optional[NoiseLayerStack] = None,
) -> DensityGrid:
    """One-shot density evaluation; a missing network means a pure noise field."""

    validate_chunk_request(chunk_size, voxel_size)
    chambers = network.chambers if network is not None else ()
    evaluator = DensityFieldEvaluator(settings, chambers=chambers, paths=paths, layers=layers)
    return evaluator.evaluate(chunk_origin, chunk_size, voxel_size)
