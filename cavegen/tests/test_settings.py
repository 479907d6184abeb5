"""Tests for configuration loading and seed management."""
from __future__ import annotations

import json
from dataclasses import replace

import pytest

from cavegen.src.generation import (
    GenerationSeeds,
    GenerationSettings,
    WorldSettings,
    load_generation_config,
    load_generation_settings,
    load_world_settings,
)


# //1.- Ensure configuration loader parses bundled JSON files correctly.
def test_load_generation_settings_uses_defaults():
    settings = load_generation_settings()
    assert settings.chamber_min_radius == 8.0
    assert settings.chamber_max_radius == 20.0
    assert settings.tunnel_connections_per_chamber == 3
    assert settings.max_pathfinding_steps == 1000
    assert settings.seed == 42
    assert settings.noise_offset == (0.0, 0.0, 0.0)
    assert settings.min_cave_height < settings.max_cave_height


def test_load_world_settings_uses_defaults():
    world = load_world_settings()
    assert world.chunk_size == 32
    assert world.voxel_size == 1.0
    assert world.chamber_count == 50
    assert world.region_min == (-500.0, -50.0, -500.0)
    assert world.lod_distances == (2.0, 3.0)


# //2.- Missing files fall back to dataclass defaults.
def test_missing_configuration_falls_back_to_defaults(tmp_path):
    assert load_generation_settings(str(tmp_path)) == GenerationSettings()
    assert load_world_settings(str(tmp_path)) == WorldSettings()


# //3.- Overrides from a custom directory are merged across sections.
def test_custom_configuration_directory(tmp_path):
    (tmp_path / "chambers.json").write_text(json.dumps({"chamber_min_radius": 3, "chamber_max_radius": 5}))
    (tmp_path / "world.json").write_text(json.dumps({"seed": 9, "chunk_size": 16, "noise_offset": [1, 2, 3]}))
    settings = load_generation_settings(str(tmp_path))
    world = load_world_settings(str(tmp_path))
    assert settings.chamber_min_radius == 3.0
    assert settings.chamber_max_radius == 5.0
    assert settings.seed == 9
    assert settings.noise_offset == (1.0, 2.0, 3.0)
    assert world.chunk_size == 16


def test_unknown_setting_key_raises(tmp_path):
    (tmp_path / "tunnels.json").write_text(json.dumps({"tunnel_wiggle": 2}))
    with pytest.raises(ValueError, match="tunnel_wiggle"):
        load_generation_settings(str(tmp_path))


# //4.- Precondition violations are rejected before generation.
@pytest.mark.parametrize(
    "overrides",
    [
        {"chamber_min_radius": 30.0},
        {"chamber_min_radius": 0.0},
        {"tunnel_min_radius": 5.0},
        {"tunnel_curvature": 1.5},
        {"tunnel_connections_per_chamber": -1},
        {"min_tunnel_length": 200.0},
        {"node_spacing": 0.0},
        {"max_pathfinding_steps": 0},
        {"geological_resistance": -0.1},
        {"rock_hardness": 2.0},
    ],
)
def test_validate_rejects_invalid_settings(overrides):
    with pytest.raises(ValueError):
        replace(GenerationSettings(), **overrides).validate()


def test_inverted_cave_band_is_allowed():
    settings = GenerationSettings(min_cave_height=0.0, max_cave_height=-1.0)
    assert settings.validate() is settings


def test_world_settings_validation():
    with pytest.raises(ValueError):
        WorldSettings(region_min=(0.0, 0.0, 0.0), region_max=(10.0, 0.0, 10.0)).validate()
    with pytest.raises(ValueError):
        WorldSettings(lod_distances=(3.0, 2.0)).validate()


# //5.- Environment variables override the configured seeds.
def test_seeds_from_environment(monkeypatch):
    monkeypatch.setenv("CAVEGEN_SEED", "7")
    monkeypatch.setenv("CAVEGEN_NOISE_SEED", "3")
    seeds = GenerationSeeds.from_environment()
    derived = GenerationSeeds.from_world_seed(7)
    assert seeds.chamber_seed == 7
    assert seeds.tunnel_seed == derived.tunnel_seed
    assert seeds.noise_seed == 3


def test_seed_mapping_and_generators():
    assert load_generation_config({}) == GenerationSeeds.from_world_seed(42)
    seeds = load_generation_config({"seed": 5, "tunnel_seed": 11})
    assert seeds.chamber_seed == 5
    assert seeds.tunnel_seed == 11
    first = seeds.create_generators()
    second = seeds.create_generators()
    assert first["chambers"].random() == second["chambers"].random()
    assert first["tunnels"].random() == second["tunnels"].random()
