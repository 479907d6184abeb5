"""Tests for chunk coordinates, the cave generator and chunk streaming."""
from __future__ import annotations

import pytest

from cavegen.cave_generator import CaveGenerator
from cavegen.src.generation import GenerationSettings, WorldSettings
from cavegen.streaming import ChunkStreamer, chunk_origin, lod_for_distance, lod_step, world_to_chunk

SETTINGS = GenerationSettings(
    chamber_min_radius=3.0,
    chamber_max_radius=4.0,
    tunnel_min_radius=1.0,
    tunnel_max_radius=2.0,
    min_tunnel_length=8.0,
    max_tunnel_length=30.0,
    tunnel_connections_per_chamber=2,
    max_pathfinding_steps=400,
    seed=7,
)
WORLD = WorldSettings(
    region_min=(0.0, 0.0, 0.0),
    region_max=(40.0, 16.0, 40.0),
    chamber_count=4,
    chunk_size=8,
    voxel_size=1.0,
    lod_distances=(0.5, 2.0),
)


@pytest.fixture
def generator() -> CaveGenerator:
    return CaveGenerator(SETTINGS, WORLD)


# //1.- World positions map onto chunk coordinates with floor semantics.
def test_chunk_coordinate_helpers():
    assert world_to_chunk((-0.5, 31.9, 32.0), 32, 1.0) == (-1, 0, 1)
    assert world_to_chunk((10.0, -10.0, 0.0), 16, 0.25) == (2, -3, 0)
    assert chunk_origin((1, -2, 0), 32, 0.5) == (16.0, -32.0, 0.0)


def test_lod_helpers():
    assert lod_step(0) == 1
    assert lod_step(3) == 8
    with pytest.raises(ValueError):
        lod_step(-1)
    assert lod_for_distance(0.0, (2.0, 3.0)) == 0
    assert lod_for_distance(2.5, (2.0, 3.0)) == 1
    assert lod_for_distance(4.0, (2.0, 3.0)) == 2


# //2.- The network and tunnels are built once and shared by all chunks.
def test_generator_builds_network_lazily(generator):
    network = generator.network
    assert 1 <= len(network) <= WORLD.chamber_count
    assert generator.network is network
    paths = generator.paths
    assert len(paths) == len(network.edges)
    for path, (a, b) in zip(paths, network.edges):
        assert path.points[0] == network.chambers[a].center
        assert path.points[-1] == network.chambers[b].center


def test_generated_chunks_are_cached(generator):
    chunk = generator.generate_chunk((0, 0, 0))
    assert generator.generate_chunk((0, 0, 0)) is chunk
    assert generator.density_for((0, 0, 0)) is chunk.density
    coarse = generator.generate_chunk((0, 0, 0), lod=1)
    assert coarse.density is chunk.density
    assert coarse.lod == 1
    generator.forget_chunk((0, 0, 0))
    regenerated = generator.generate_chunk((0, 0, 0))
    assert regenerated is not chunk
    assert regenerated.density.to_bytes() == chunk.density.to_bytes()


def test_generation_is_reproducible():
    first = CaveGenerator(SETTINGS, WORLD)
    second = CaveGenerator(SETTINGS, WORLD, max_workers=2)
    assert first.network == second.network
    assert first.paths == second.paths
    coord = (1, 0, 1)
    assert first.density_for(coord).to_bytes() == second.density_for(coord).to_bytes()


# //3.- Chamber interiors mesh into closed geometry inside their chunk.
def test_chunk_around_chamber_has_geometry(generator):
    chamber = generator.network.chambers[0]
    coord = world_to_chunk(chamber.center, WORLD.chunk_size, WORLD.voxel_size)
    chunk = generator.generate_chunk(coord)
    assert chunk.mesh.triangle_count > 0
    assert "triangles=" in chunk.summary()


# //4.- Streaming schedules the focus first and keeps LOD bands consistent.
def test_streamer_loads_band_nearest_first(generator):
    streamer = ChunkStreamer(generator, radius=1)
    streamer.update((0, 0, 0))
    assert len(streamer.pending) == 27
    assert streamer.pending[0] == ((0, 0, 0), 0)
    assert streamer.process(budget=5) == 5
    assert len(streamer.loaded) == 5
    assert streamer.process() == 22
    assert not streamer.pending
    for coord, chunk in streamer.loaded.items():
        assert chunk.coord == coord
        assert chunk.lod == (0 if coord == (0, 0, 0) else 1)
    assert len(streamer.band_summary().splitlines()) == 27


def test_streamer_moves_with_focus(generator):
    streamer = ChunkStreamer(generator, radius=1)
    streamer.update((0, 0, 0))
    streamer.process()
    streamer.update((1, 0, 0))
    # Chunks leaving the band or changing LOD are dropped; the rest are kept.
    assert len(streamer.loaded) == 16
    assert len(streamer.pending) == 11
    assert streamer.pending[0] == ((1, 0, 0), 0)
    streamer.process()
    desired = streamer.desired_chunks((1, 0, 0))
    assert {coord: chunk.lod for coord, chunk in streamer.loaded.items()} == desired


# //5.- Changing a chunk's LOD evicts the old mesh but keeps its density.
def test_forget_single_lod_keeps_density(generator):
    fine = generator.generate_chunk((0, 0, 0))
    coarse = generator.generate_chunk((0, 0, 0), lod=1)
    generator.forget_chunk((0, 0, 0), lod=0)
    assert generator.generate_chunk((0, 0, 0), lod=1) is coarse
    rebuilt = generator.generate_chunk((0, 0, 0))
    assert rebuilt is not fine
    assert rebuilt.density is fine.density


def test_streamer_evicts_meshes_at_old_lod(generator):
    streamer = ChunkStreamer(generator, radius=1)
    streamer.update((0, 0, 0))
    streamer.process()
    centre = streamer.loaded[(0, 0, 0)]
    neighbour = streamer.loaded[(1, 0, 0)]
    assert (centre.lod, neighbour.lod) == (0, 1)
    streamer.update((1, 0, 0))
    assert generator.generate_chunk((0, 0, 0), lod=0) is not centre
    assert generator.generate_chunk((1, 0, 0), lod=1) is not neighbour
    assert generator.density_for((0, 0, 0)) is centre.density
