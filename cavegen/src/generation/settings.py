"""Structured loader for cave generation settings."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from typing import Tuple


# //1.- Capture every knob that shapes chambers, tunnels and the density field.
@dataclass(frozen=True)
class GenerationSettings:
    chamber_frequency: float = 0.02
    chamber_min_radius: float = 8.0
    chamber_max_radius: float = 20.0
    chamber_floor_flatness: float = 0.7
    chamber_vertical_scale: float = 0.6
    tunnel_min_radius: float = 2.0
    tunnel_max_radius: float = 4.0
    tunnel_curvature: float = 0.3
    tunnel_frequency: float = 0.05
    tunnel_connections_per_chamber: int = 3
    min_tunnel_length: float = 20.0
    max_tunnel_length: float = 100.0
    node_spacing: float = 2.0
    max_pathfinding_steps: int = 1000
    geological_resistance: float = 0.5
    stratification_strength: float = 0.15
    stratification_frequency: float = 0.1
    erosion_strength: float = 0.3
    rock_hardness: float = 0.5
    seed: int = 42
    noise_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    min_cave_height: float = -50.0
    max_cave_height: float = 50.0
    surface_transition_height: float = 40.0

    # //2.- Reject precondition violations before any generation work starts.
    def validate(self) -> "GenerationSettings":
        if self.chamber_min_radius <= 0:
            raise ValueError("chamber_min_radius must be positive")
        if self.chamber_min_radius > self.chamber_max_radius:
            raise ValueError("chamber_min_radius must be <= chamber_max_radius")
        if self.chamber_vertical_scale <= 0:
            raise ValueError("chamber_vertical_scale must be positive")
        if self.chamber_floor_flatness < 0:
            raise ValueError("chamber_floor_flatness must be >= 0")
        if self.tunnel_min_radius <= 0:
            raise ValueError("tunnel_min_radius must be positive")
        if self.tunnel_min_radius > self.tunnel_max_radius:
            raise ValueError("tunnel_min_radius must be <= tunnel_max_radius")
        if not 0.0 <= self.tunnel_curvature <= 1.0:
            raise ValueError("tunnel_curvature must be within [0, 1]")
        if self.tunnel_connections_per_chamber < 0:
            raise ValueError("tunnel_connections_per_chamber must be >= 0")
        if self.min_tunnel_length < 0 or self.min_tunnel_length > self.max_tunnel_length:
            raise ValueError("min_tunnel_length must be within [0, max_tunnel_length]")
        if self.node_spacing <= 0:
            raise ValueError("node_spacing must be positive")
        if self.max_pathfinding_steps < 1:
            raise ValueError("max_pathfinding_steps must be >= 1")
        if self.geological_resistance < 0:
            raise ValueError("geological_resistance must be >= 0")
        if not 0.0 <= self.rock_hardness <= 1.0:
            raise ValueError("rock_hardness must be within [0, 1]")
        if len(self.noise_offset) != 3:
            raise ValueError("noise_offset must have three components")
        return self


# //3.- Describe the region a network covers and how it is cut into chunks.
@dataclass(frozen=True)
class WorldSettings:
    region_min: Tuple[float, float, float] = (-500.0, -50.0, -500.0)
    region_max: Tuple[float, float, float] = (500.0, 50.0, 500.0)
    chamber_count: int = 50
    chunk_size: int = 32
    voxel_size: float = 1.0
    lod_distances: Tuple[float, ...] = (2.0, 3.0)

    def validate(self) -> "WorldSettings":
        if any(hi <= lo for lo, hi in zip(self.region_min, self.region_max)):
            raise ValueError("world region must have a positive extent on every axis")
        if self.chamber_count < 0:
            raise ValueError("chamber_count must be >= 0")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.voxel_size <= 0:
            raise ValueError("voxel_size must be positive")
        if list(self.lod_distances) != sorted(self.lod_distances):
            raise ValueError("lod_distances must be ascending")
        return self


# //4.- Resolve repository default configuration directory lazily.
def _default_config_directory() -> str:
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
    return os.path.join(base_dir, "config")


# //5.- Load a single JSON configuration file and coerce to dictionary.
def _read_json_config(path: str) -> dict:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


# //6.- Coerce a payload onto dataclass fields, keeping defaults for missing keys.
def _coerce_fields(cls, payload: dict) -> dict:
    known = {field.name: field for field in fields(cls)}
    values = {}
    for key, raw in payload.items():
        if key not in known:
            raise ValueError(f"Unknown setting '{key}' for {cls.__name__}")
        default = known[key].default
        if isinstance(default, tuple):
            values[key] = tuple(float(component) for component in raw)
        elif isinstance(default, int) and not isinstance(default, bool):
            values[key] = int(raw)
        else:
            values[key] = float(raw)
    return values


# //7.- Merge the chamber, tunnel and geology sections plus world seed into settings.
def load_generation_settings(config_dir: str | None = None) -> GenerationSettings:
    directory = config_dir or _default_config_directory()
    payload: dict = {}
    for name in ("chambers.json", "tunnels.json", "geology.json"):
        payload.update(_read_json_config(os.path.join(directory, name)))
    world = _read_json_config(os.path.join(directory, "world.json"))
    for key in ("seed", "noise_offset"):
        if key in world:
            payload[key] = world[key]
    settings = GenerationSettings(**_coerce_fields(GenerationSettings, payload))
    return settings.validate()


# //8.- Parse region and chunking parameters from the world section.
def load_world_settings(config_dir: str | None = None) -> WorldSettings:
    directory = config_dir or _default_config_directory()
    payload = {
        key: value
        for key, value in _read_json_config(os.path.join(directory, "world.json")).items()
        if key not in ("seed", "noise_offset")
    }
    world = WorldSettings(**_coerce_fields(WorldSettings, payload))
    return world.validate()
