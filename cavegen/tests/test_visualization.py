"""Tests for density summaries and debug exports."""
from __future__ import annotations

import csv

import numpy as np
import pytest

from cavegen.density import DensityGrid
from cavegen.marching_cubes import extract_mesh
from cavegen.src.generation import (
    export_density_slice_csv,
    export_density_stats_csv,
    export_mesh_obj,
    summarize_density,
)


def _pocket_grid() -> DensityGrid:
    samples = 9
    axis = np.arange(samples, dtype=np.float64)
    z, y, x = np.meshgrid(axis, axis, axis, indexing="ij")
    distance = np.sqrt((x - 4.0) ** 2 + (y - 4.0) ** 2 + (z - 4.0) ** 2)
    values = np.clip(0.5 + (distance - 2.6) / 4.0, 0.0, 1.0)
    return DensityGrid(values=values.astype(np.float32), origin=(0.0, 10.0, 0.0), chunk_size=8, voxel_size=1.0)


# //1.- Slice statistics locate the air pocket.
def test_summarize_density_finds_pocket():
    stats = summarize_density(_pocket_grid())
    assert len(stats) == 9
    assert stats[0].air_fraction == 0.0
    assert stats[0].transitions == 0
    assert stats[0].world_y == pytest.approx(10.0)
    middle = stats[4]
    assert middle.air_fraction > 0.0
    assert middle.transitions > 0
    assert middle.min_density < 0.5 < middle.max_density


# //2.- CSV exports write one row per sample or slice plus a header.
def test_density_csv_exports(tmp_path):
    grid = _pocket_grid()
    slice_path = tmp_path / "slice.csv"
    stats_path = tmp_path / "stats.csv"
    export_density_slice_csv(grid, 4, str(slice_path))
    export_density_stats_csv(summarize_density(grid), str(stats_path))

    with slice_path.open("r", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["x", "z", "density"]
    assert len(rows) == 1 + 9 * 9
    assert float(rows[1 + 4 * 9 + 4][2]) == pytest.approx(grid.value(4, 4, 4), abs=1e-6)

    with stats_path.open("r", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[0][0] == "y_index"
    assert len(rows) == 1 + 9

    with pytest.raises(ValueError):
        export_density_slice_csv(grid, 9, str(slice_path))


# //3.- OBJ export concatenates meshes with offset face indices.
def test_export_mesh_obj(tmp_path):
    mesh = extract_mesh(_pocket_grid())
    assert mesh.triangle_count > 0
    output_path = tmp_path / "cave.obj"
    export_mesh_obj([mesh, mesh], str(output_path))
    lines = output_path.read_text(encoding="utf-8").splitlines()
    vertices = [line for line in lines if line.startswith("v ")]
    faces = [line for line in lines if line.startswith("f ")]
    assert len(vertices) == 2 * mesh.vertex_count
    assert len([line for line in lines if line.startswith("vn ")]) == 2 * mesh.vertex_count
    assert len(faces) == 2 * mesh.triangle_count
    indices = [int(token.split("/")[0]) for line in faces for token in line.split()[1:]]
    assert min(indices) == 1
    assert max(indices) == 2 * mesh.vertex_count
