"""Data structures describing extracted cave geometry."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .density import DensityGrid


def _frozen(array: np.ndarray, dtype, columns: int) -> np.ndarray:
    result = np.ascontiguousarray(array, dtype=dtype).reshape(-1, columns)
    result.flags.writeable = False
    return result


@dataclass(frozen=True)
class Mesh:
    """Triangle mesh with per-vertex normals and UVs.

    ``triangles`` holds vertex index triples wound counter-clockwise when
    seen from the air side of the surface.
    """

    vertices: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    triangles: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertices", _frozen(self.vertices, np.float64, 3))
        object.__setattr__(self, "normals", _frozen(self.normals, np.float64, 3))
        object.__setattr__(self, "uvs", _frozen(self.uvs, np.float64, 2))
        object.__setattr__(self, "triangles", _frozen(self.triangles, np.int64, 3))
        count = self.vertices.shape[0]
        if self.normals.shape[0] != count or self.uvs.shape[0] != count:
            raise ValueError("mesh normals and uvs must match the vertex count")

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(
            vertices=np.zeros((0, 3)),
            normals=np.zeros((0, 3)),
            uvs=np.zeros((0, 2)),
            triangles=np.zeros((0, 3), dtype=np.int64),
        )

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0])

    def is_empty(self) -> bool:
        return self.triangle_count == 0

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        if self.vertex_count == 0:
            return np.zeros(3), np.zeros(3)
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def face_normals(self) -> np.ndarray:
        v0 = self.vertices[self.triangles[:, 0]]
        v1 = self.vertices[self.triangles[:, 1]]
        v2 = self.vertices[self.triangles[:, 2]]
        return np.cross(v1 - v0, v2 - v0)

    def open_edges(self) -> int:
        """Count undirected edges not shared by exactly two triangles."""

        edges = Counter()
        for a, b, c in self.triangles.tolist():
            for u, v in ((a, b), (b, c), (c, a)):
                edges[(min(u, v), max(u, v))] += 1
        return sum(1 for count in edges.values() if count != 2)


@dataclass(frozen=True)
class ChunkGeometry:
    """Density grid and mesh generated for one chunk at one LOD."""

    coord: Tuple[int, int, int]
    lod: int
    density: DensityGrid
    mesh: Mesh

    def summary(self) -> str:
        return (
            f"Chunk {self.coord} lod={self.lod}: "
            f"vertices={self.mesh.vertex_count}, triangles={self.mesh.triangle_count}, "
            f"density range=({float(self.density.values.min()):.2f}, {float(self.density.values.max()):.2f})"
        )
