"""Debug exports for density grids and extracted meshes."""
from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import Iterable, List, Sequence

import numpy as np

from ...density import ISO_LEVEL, DensityGrid
from ...geometry import Mesh


# //1.- Describe density statistics for one horizontal slice of a grid.
@dataclass(frozen=True)
class DensitySliceStats:
    y_index: int
    world_y: float
    min_density: float
    max_density: float
    air_fraction: float
    transitions: int


# //2.- Count solid/air flips between neighbouring samples along X and Z.
def _count_transitions(layer: np.ndarray, iso_level: float) -> int:
    solid = layer >= iso_level
    along_x = np.count_nonzero(solid[:, 1:] != solid[:, :-1])
    along_z = np.count_nonzero(solid[1:, :] != solid[:-1, :])
    return int(along_x + along_z)


# //3.- Summarize every Y slice so surface bands are easy to spot.
def summarize_density(grid: DensityGrid, iso_level: float = ISO_LEVEL) -> List[DensitySliceStats]:
    stats: List[DensitySliceStats] = []
    for y_index in range(grid.samples_per_axis):
        layer = np.asarray(grid.values[:, y_index, :], dtype=np.float64)
        stats.append(
            DensitySliceStats(
                y_index=y_index,
                world_y=grid.origin[1] + y_index * grid.voxel_size,
                min_density=float(layer.min()),
                max_density=float(layer.max()),
                air_fraction=float(np.count_nonzero(layer < iso_level)) / layer.size,
                transitions=_count_transitions(layer, iso_level),
            )
        )
    return stats


# //4.- Export one Y slice of density values as CSV rows of world x, z and density.
def export_density_slice_csv(grid: DensityGrid, y_index: int, filepath: str) -> None:
    if not 0 <= y_index < grid.samples_per_axis:
        raise ValueError("y_index is outside the density grid")
    with open(filepath, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["x", "z", "density"])
        for z_index in range(grid.samples_per_axis):
            for x_index in range(grid.samples_per_axis):
                position = grid.position(x_index, y_index, z_index)
                writer.writerow(
                    [
                        f"{position.x:.6f}",
                        f"{position.z:.6f}",
                        f"{grid.value(x_index, y_index, z_index):.6f}",
                    ]
                )


# //5.- Export slice statistics as CSV for quick plotting.
def export_density_stats_csv(stats: Iterable[DensitySliceStats], filepath: str) -> None:
    with open(filepath, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["y_index", "world_y", "min_density", "max_density", "air_fraction", "transitions"])
        for entry in stats:
            writer.writerow(
                [
                    entry.y_index,
                    f"{entry.world_y:.6f}",
                    f"{entry.min_density:.6f}",
                    f"{entry.max_density:.6f}",
                    f"{entry.air_fraction:.6f}",
                    entry.transitions,
                ]
            )


# //6.- Write a Wavefront OBJ so meshes can be inspected in external viewers.
def export_mesh_obj(meshes: Mesh | Sequence[Mesh], filepath: str) -> None:
    if isinstance(meshes, Mesh):
        meshes = [meshes]
    offset = 1
    with open(filepath, "w", encoding="utf-8") as handle:
        for mesh in meshes:
            for x, y, z in mesh.vertices:
                handle.write(f"v {x:.6f} {y:.6f} {z:.6f}\n")
            for u, v in mesh.uvs:
                handle.write(f"vt {u:.6f} {v:.6f}\n")
            for x, y, z in mesh.normals:
                handle.write(f"vn {x:.6f} {y:.6f} {z:.6f}\n")
            for a, b, c in mesh.triangles + offset:
                handle.write(f"f {a}/{a}/{a} {b}/{b}/{b} {c}/{c}/{c}\n")
            offset += mesh.vertex_count
