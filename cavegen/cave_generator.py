"""High-level cave generation entry point."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from .chambers import Bounds, ChamberNetwork
from .density import DensityFieldEvaluator, DensityGrid
from .geometry import ChunkGeometry
from .marching_cubes import MarchingCubesExtractor
from .noise_layers import NoiseLayerStack
from .src.generation.config import GenerationSeeds
from .src.generation.settings import GenerationSettings, WorldSettings
from .streaming import ChunkCoord, chunk_origin, lod_step
from .tunnels import GeologicalResistance, RadiusCurve, TunnelPath, TunnelRouter, route_network

LOGGER = logging.getLogger(__name__)


class CaveGenerator:
    """Builds the chamber network once and generates chunks on demand.

    The network and tunnel set are immutable snapshots shared by every
    chunk request; density grids are cached per chunk and meshes per
    chunk and LOD.
    """

    def __init__(
        self,
        settings: GenerationSettings,
        world: WorldSettings,
        layers: Optional[NoiseLayerStack] = None,
        radius_curve: Optional[RadiusCurve] = None,
        max_workers: Optional[int] = None,
        extractor: Optional[MarchingCubesExtractor] = None,
    ) -> None:
        self.settings = settings.validate()
        self.world = world.validate()
        self.seeds = GenerationSeeds.from_world_seed(settings.seed)
        self.layers = layers
        self.radius_curve = radius_curve
        self.max_workers = max_workers
        self.extractor = extractor or MarchingCubesExtractor()
        self._network: Optional[ChamberNetwork] = None
        self._paths: Optional[Tuple[TunnelPath, ...]] = None
        self._evaluator: Optional[DensityFieldEvaluator] = None
        self._densities: Dict[ChunkCoord, DensityGrid] = {}
        self._chunks: Dict[Tuple[ChunkCoord, int], ChunkGeometry] = {}

    @property
    def network(self) -> ChamberNetwork:
        if self._network is None:
            bounds = Bounds.from_tuples(self.world.region_min, self.world.region_max)
            self._network = ChamberNetwork.generate(
                bounds, self.world.chamber_count, self.settings, self.seeds.chamber_seed
            )
        return self._network

    @property
    def paths(self) -> Tuple[TunnelPath, ...]:
        if self._paths is None:
            router = TunnelRouter(
                self.settings,
                self.seeds.tunnel_seed,
                radius_curve=self.radius_curve,
                resistance=GeologicalResistance.from_settings(self.settings, self.seeds.noise_seed),
            )
            self._paths = tuple(route_network(self.network, router, max_workers=self.max_workers))
        return self._paths

    @property
    def evaluator(self) -> DensityFieldEvaluator:
        if self._evaluator is None:
            self._evaluator = DensityFieldEvaluator(
                self.settings,
                chambers=self.network.chambers,
                paths=self.paths,
                layers=self.layers,
                noise_seed=self.seeds.noise_seed,
            )
        return self._evaluator

    def density_for(self, coord: ChunkCoord) -> DensityGrid:
        coord = tuple(int(c) for c in coord)
        grid = self._densities.get(coord)
        if grid is None:
            origin = chunk_origin(coord, self.world.chunk_size, self.world.voxel_size)
            grid = self.evaluator.evaluate(
                origin, self.world.chunk_size, self.world.voxel_size, max_workers=self.max_workers
            )
            self._densities[coord] = grid
        return grid

    def generate_chunk(self, coord: ChunkCoord, lod: int = 0) -> ChunkGeometry:
        coord = tuple(int(c) for c in coord)
        key = (coord, int(lod))
        cached = self._chunks.get(key)
        if cached is not None:
            return cached
        grid = self.density_for(coord)
        mesh = self.extractor.extract(grid, lod_step=lod_step(lod))
        chunk = ChunkGeometry(coord=coord, lod=int(lod), density=grid, mesh=mesh)
        self._chunks[key] = chunk
        LOGGER.debug("Generated chunk %s at lod %d with %d triangles", coord, lod, mesh.triangle_count)
        return chunk

    def forget_chunk(self, coord: ChunkCoord, lod: Optional[int] = None) -> None:
        """Drop cached data for ``coord``; with ``lod`` only that mesh goes."""

        coord = tuple(int(c) for c in coord)
        if lod is not None:
            self._chunks.pop((coord, int(lod)), None)
            return
        self._densities.pop(coord, None)
        for key in [key for key in self._chunks if key[0] == coord]:
            del self._chunks[key]
