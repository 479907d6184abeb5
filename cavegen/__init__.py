"""Procedural cave network generator.

Chambers are scattered with Poisson-disk sampling, linked by tunnels
routed through a geological resistance field, carved into per-chunk
density grids and meshed with marching cubes.
"""

from .vector import Vector3
from .noise import cellular_noise3, composite_cavern3, gradient_noise3, noise3, ridged_noise3, value_noise3
from .noise_layers import BlendMode, HeightWindow, NoiseKind, NoiseLayer, NoiseLayerStack
from .presets import build_preset_stack, load_noise_presets
from .chambers import Bounds, Chamber, ChamberNetwork, generate_chambers
from .tunnels import GeologicalResistance, TunnelPath, TunnelRouter, route_network
from .density import ISO_LEVEL, DensityFieldEvaluator, DensityGrid, evaluate_density
from .geometry import ChunkGeometry, Mesh
from .marching_cubes import MarchingCubesExtractor, extract_mesh
from .streaming import ChunkStreamer, chunk_origin, lod_for_distance, lod_step, world_to_chunk
from .cave_generator import CaveGenerator

__all__ = [
    "Vector3",
    "cellular_noise3",
    "composite_cavern3",
    "gradient_noise3",
    "noise3",
    "ridged_noise3",
    "value_noise3",
    "BlendMode",
    "HeightWindow",
    "NoiseKind",
    "NoiseLayer",
    "NoiseLayerStack",
    "build_preset_stack",
    "load_noise_presets",
    "Bounds",
    "Chamber",
    "ChamberNetwork",
    "generate_chambers",
    "GeologicalResistance",
    "TunnelPath",
    "TunnelRouter",
    "route_network",
    "ISO_LEVEL",
    "DensityFieldEvaluator",
    "DensityGrid",
    "evaluate_density",
    "ChunkGeometry",
    "Mesh",
    "MarchingCubesExtractor",
    "extract_mesh",
    "ChunkStreamer",
    "chunk_origin",
    "lod_for_distance",
    "lod_step",
    "world_to_chunk",
    "CaveGenerator",
]
