"""Small demonstration harness for the cave generator."""
from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from typing import Optional, Sequence

from .cave_generator import CaveGenerator
from .presets import build_preset_stack
from .src.generation import (
    GenerationSeeds,
    collect_network_metrics,
    export_mesh_obj,
    load_generation_settings,
    load_world_settings,
)
from .streaming import ChunkStreamer, world_to_chunk

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a band of cave chunks around a chamber")
    parser.add_argument("--seed", type=int, default=None, help="World seed (defaults to config or CAVEGEN_SEED)")
    parser.add_argument("--radius", type=int, default=1, help="Chunk radius streamed around the focus chamber")
    parser.add_argument("--chambers", type=int, default=None, help="Override the configured chamber count")
    parser.add_argument("--preset", default=None, help="Noise preset layered on top of the network")
    parser.add_argument("--config-dir", default=None, help="Directory holding the JSON configuration")
    parser.add_argument("--obj", default=None, help="Write the streamed meshes to this OBJ file")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = load_generation_settings(args.config_dir)
    world = load_world_settings(args.config_dir)
    seed = args.seed
    if seed is None and os.getenv("CAVEGEN_SEED") is not None:
        seed = GenerationSeeds.from_environment().chamber_seed
    if seed is not None:
        settings = replace(settings, seed=seed)
    if args.chambers is not None:
        world = replace(world, chamber_count=args.chambers)

    layers = build_preset_stack(args.preset, seed=settings.seed) if args.preset else None
    generator = CaveGenerator(settings, world, layers=layers)
    metrics = collect_network_metrics(generator.network.chambers, generator.paths, settings)
    LOGGER.info(
        "Network: %d chambers, %d tunnels, %d straight fallbacks",
        metrics.chamber_count,
        metrics.tunnel_count,
        metrics.fallback_count,
    )

    chambers = generator.network.chambers
    focus_point = chambers[0].center if chambers else (0.0, 0.0, 0.0)
    focus = world_to_chunk(focus_point, world.chunk_size, world.voxel_size)
    streamer = ChunkStreamer(generator, radius=args.radius)
    streamer.update(focus)
    streamer.process()
    print(streamer.band_summary())

    if args.obj:
        export_mesh_obj([chunk.mesh for chunk in streamer.loaded.values()], args.obj)
        LOGGER.info("Wrote %d chunk meshes to %s", len(streamer.loaded), args.obj)


if __name__ == "__main__":
    main()
