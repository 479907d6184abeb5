"""Configuration helpers for deterministic cave generation."""
from __future__ import annotations

import os
import random
from dataclasses import dataclass
from typing import Dict, Optional

# //1.- Define dataclass to encapsulate generation seeds for reproducibility.
@dataclass(frozen=True)
class GenerationSeeds:
    """Seeds driving the stochastic parts of cave generation."""

    chamber_seed: int = 42
    tunnel_seed: int = 42
    noise_seed: int = 42

    # //2.- Derive decorrelated subsystem seeds from a single world seed.
    @classmethod
    def from_world_seed(cls, seed: int) -> "GenerationSeeds":
        seed = int(seed)
        return cls(
            chamber_seed=seed,
            tunnel_seed=(seed * 1103515245 + 12345) & 0x7FFFFFFF,
            noise_seed=(seed * 22695477 + 1) & 0x7FFFFFFF,
        )

    # //3.- Provide helper to mutate seeds from mapping when available.
    @classmethod
    def from_mapping(cls, payload: Optional[Dict[str, int]] = None) -> "GenerationSeeds":
        payload = payload or {}
        base = cls.from_world_seed(int(payload.get("seed", 42)))
        return cls(
            chamber_seed=int(payload.get("chamber_seed", base.chamber_seed)),
            tunnel_seed=int(payload.get("tunnel_seed", base.tunnel_seed)),
            noise_seed=int(payload.get("noise_seed", base.noise_seed)),
        )

    # //4.- Allow overriding seeds through environment variables for integration tests.
    @classmethod
    def from_environment(cls, prefix: str = "CAVEGEN") -> "GenerationSeeds":
        mapping: Dict[str, int] = {}
        for key in ("seed", "chamber_seed", "tunnel_seed", "noise_seed"):
            value = os.getenv(f"{prefix}_{key.upper()}")
            if value is not None:
                mapping[key] = int(value)
        return cls.from_mapping(mapping)

    # //5.- Utility returning seeded RNG objects for each subsystem.
    def create_generators(self) -> Dict[str, random.Random]:
        return {
            "chambers": random.Random(self.chamber_seed),
            "tunnels": random.Random(self.tunnel_seed),
        }


# //6.- Provide canonical configuration accessor used across modules.
def load_generation_config(
    mapping: Optional[Dict[str, int]] = None,
    *,
    env_prefix: str = "CAVEGEN",
) -> GenerationSeeds:
    if mapping is not None:
        return GenerationSeeds.from_mapping(mapping)
    return GenerationSeeds.from_environment(prefix=env_prefix)
