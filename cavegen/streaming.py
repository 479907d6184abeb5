"""Chunk coordinates and the streaming work queue."""
from __future__ import annotations

import itertools
import math
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Deque, Dict, Sequence, Tuple

from .geometry import ChunkGeometry

if TYPE_CHECKING:
    from .cave_generator import CaveGenerator

ChunkCoord = Tuple[int, int, int]


def world_to_chunk(position: Sequence[float], chunk_size: int, voxel_size: float) -> ChunkCoord:
    extent = chunk_size * voxel_size
    return tuple(int(math.floor(component / extent)) for component in position)


def chunk_origin(coord: ChunkCoord, chunk_size: int, voxel_size: float) -> Tuple[float, float, float]:
    extent = chunk_size * voxel_size
    return tuple(float(component * extent) for component in coord)


def lod_step(lod: int) -> int:
    if lod < 0:
        raise ValueError("lod must be >= 0")
    return 1 << int(lod)


def lod_for_distance(distance: float, thresholds: Sequence[float]) -> int:
    return sum(1 for threshold in thresholds if distance > threshold)


@dataclass
class ChunkStreamer:
    """Keeps a cube of chunks around a focus chunk loaded.

    :meth:`update` only schedules work; :meth:`process` generates queued
    chunks nearest first within a caller supplied budget.
    """

    generator: CaveGenerator
    radius: int = 1
    loaded: Dict[ChunkCoord, ChunkGeometry] = field(default_factory=dict)
    pending: Deque[Tuple[ChunkCoord, int]] = field(default_factory=deque)

    def desired_chunks(self, focus: ChunkCoord) -> Dict[ChunkCoord, int]:
        thresholds = self.generator.world.lod_distances
        desired = {}
        for offset in itertools.product(range(-self.radius, self.radius + 1), repeat=3):
            coord = tuple(f + o for f, o in zip(focus, offset))
            distance = max(abs(o) for o in offset)
            desired[coord] = lod_for_distance(distance, thresholds)
        return desired

    def update(self, focus: ChunkCoord) -> None:
        desired = self.desired_chunks(focus)
        for coord, chunk in [item for item in self.loaded.items() if desired.get(item[0]) != item[1].lod]:
            del self.loaded[coord]
            if coord in desired:
                # Same density, new resolution: only the stale mesh goes.
                self.generator.forget_chunk(coord, lod=chunk.lod)
            else:
                self.generator.forget_chunk(coord)
        missing = [(coord, lod) for coord, lod in desired.items() if coord not in self.loaded]
        missing.sort(key=lambda item: (sum((c - f) ** 2 for c, f in zip(item[0], focus)), item[0]))
        self.pending = deque(missing)

    def process(self, budget: int | None = None) -> int:
        processed = 0
        while self.pending and (budget is None or processed < budget):
            coord, lod = self.pending.popleft()
            self.loaded[coord] = self.generator.generate_chunk(coord, lod)
            processed += 1
        return processed

    def band_summary(self) -> str:
        keys = sorted(self.loaded.keys())
        return "\n".join(self.loaded[k].summary() for k in keys)
