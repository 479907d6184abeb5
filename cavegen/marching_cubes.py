"""Marching cubes surface extraction from a density grid."""
from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import numpy as np

from .density import ISO_LEVEL, DensityGrid
from .geometry import Mesh
from .mc_tables import CORNER_OFFSETS, EDGE_CORNERS, EDGE_TABLE, triangles_for

LOGGER = logging.getLogger(__name__)

UV_PROJECTIONS = ("planar", "triplanar")

LatticeEdge = Tuple[Tuple[int, int, int], Tuple[int, int, int]]


class MarchingCubesExtractor:
    """Converts density grids into triangle meshes.

    With ``weld_vertices`` every crossed lattice edge yields one shared
    vertex and normals are area weighted averages of the adjacent faces.
    Without it each triangle owns its three vertices and carries a flat
    face normal.
    """

    def __init__(
        self,
        weld_vertices: bool = True,
        uv_projection: str = "triplanar",
        uv_scale: float = 0.1,
        epsilon: float = 1e-5,
    ) -> None:
        if uv_projection not in UV_PROJECTIONS:
            raise ValueError(f"uv_projection must be one of {UV_PROJECTIONS}")
        if epsilon <= 0.0:
            raise ValueError("epsilon must be positive")
        self.weld_vertices = weld_vertices
        self.uv_projection = uv_projection
        self.uv_scale = float(uv_scale)
        self.epsilon = float(epsilon)

    def extract(self, grid: DensityGrid, iso_level: float = ISO_LEVEL, lod_step: int = 1) -> Mesh:
        if lod_step < 1 or lod_step & (lod_step - 1):
            raise ValueError("lod_step must be a positive power of two")
        if grid.chunk_size % lod_step:
            raise ValueError("lod_step must divide the chunk size")

        values = np.asarray(grid.values, dtype=np.float64)[::lod_step, ::lod_step, ::lod_step]
        cells = values.shape[0] - 1
        config = np.zeros((cells, cells, cells), dtype=np.int32)
        below = values < iso_level
        for corner, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
            config |= below[dz : dz + cells, dy : dy + cells, dx : dx + cells].astype(np.int32) << corner
        active = np.nonzero((config != 0) & (config != 255))

        origin = np.asarray(grid.origin, dtype=np.float64)
        positions: List[np.ndarray] = []
        triangles: List[Tuple[int, int, int]] = []
        shared: Dict[LatticeEdge, int] = {}

        for k, j, i in zip(*active):
            k, j, i = int(k), int(j), int(i)
            cube = int(config[k, j, i])
            crossed = EDGE_TABLE[cube]
            edges = triangles_for(cube)
            points: Dict[int, np.ndarray] = {}
            keys: Dict[int, LatticeEdge] = {}
            for edge in range(12):
                if not crossed & (1 << edge):
                    continue
                a, b = EDGE_CORNERS[edge]
                lattice_a = (i + CORNER_OFFSETS[a][0], j + CORNER_OFFSETS[a][1], k + CORNER_OFFSETS[a][2])
                lattice_b = (i + CORNER_OFFSETS[b][0], j + CORNER_OFFSETS[b][1], k + CORNER_OFFSETS[b][2])
                # Interpolate from the lower lattice corner so neighbouring cubes agree.
                if lattice_b < lattice_a:
                    lattice_a, lattice_b = lattice_b, lattice_a
                keys[edge] = (lattice_a, lattice_b)
                if self.weld_vertices and keys[edge] in shared:
                    continue
                points[edge] = self._interpolate(
                    iso_level,
                    origin + np.asarray(lattice_a, dtype=np.float64) * lod_step * grid.voxel_size,
                    origin + np.asarray(lattice_b, dtype=np.float64) * lod_step * grid.voxel_size,
                    values[lattice_a[2], lattice_a[1], lattice_a[0]],
                    values[lattice_b[2], lattice_b[1], lattice_b[0]],
                )
            for start in range(0, len(edges), 3):
                corner_ids = []
                for edge in edges[start : start + 3]:
                    if self.weld_vertices:
                        key = keys[edge]
                        if key not in shared:
                            shared[key] = len(positions)
                            positions.append(points[edge])
                        corner_ids.append(shared[key])
                    else:
                        corner_ids.append(len(positions))
                        positions.append(points[edge])
                triangles.append(tuple(corner_ids))

        if not triangles:
            return Mesh.empty()

        vertices = np.asarray(positions, dtype=np.float64)
        faces = np.asarray(triangles, dtype=np.int64)
        normals = self._normals(vertices, faces)
        LOGGER.debug(
            "Extracted %d triangles from %d active cubes (lod step %d)",
            len(faces),
            len(active[0]),
            lod_step,
        )
        return Mesh(vertices=vertices, normals=normals, uvs=self._uvs(vertices, normals), triangles=faces)

    def _interpolate(self, iso_level, point_a, point_b, value_a, value_b) -> np.ndarray:
        if abs(iso_level - value_a) < self.epsilon:
            return point_a
        if abs(iso_level - value_b) < self.epsilon:
            return point_b
        if abs(value_b - value_a) < self.epsilon:
            return point_a
        mu = (iso_level - value_a) / (value_b - value_a)
        return point_a + mu * (point_b - point_a)

    def _normals(self, vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
        v0 = vertices[faces[:, 0]]
        face_normals = np.cross(vertices[faces[:, 1]] - v0, vertices[faces[:, 2]] - v0)
        if self.weld_vertices:
            normals = np.zeros_like(vertices)
            for corner in range(3):
                np.add.at(normals, faces[:, corner], face_normals)
        else:
            # Unwelded vertices are laid out three per face in order.
            normals = np.repeat(face_normals, 3, axis=0)
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        return normals / np.maximum(lengths, 1e-12)

    def _uvs(self, vertices: np.ndarray, normals: np.ndarray) -> np.ndarray:
        scale = self.uv_scale
        if self.uv_projection == "planar":
            return vertices[:, [0, 2]] * scale
        dominant = np.argmax(np.abs(normals), axis=1)
        uvs = np.empty((vertices.shape[0], 2), dtype=np.float64)
        uvs[:] = vertices[:, [0, 2]]
        uvs[dominant == 0] = vertices[dominant == 0][:, [2, 1]]
        uvs[dominant == 2] = vertices[dominant == 2][:, [0, 1]]
        return uvs * scale


def extract_mesh(grid: DensityGrid, iso_level: float = ISO_LEVEL, lod_step: int = 1) -> Mesh:
    return MarchingCubesExtractor().extract(grid, iso_level=iso_level, lod_step=lod_step)
