"""Named noise layer stacks bundled as JSON configuration."""
from __future__ import annotations

import json
import os
from typing import Dict, Tuple

from .noise_layers import NoiseLayer, NoiseLayerStack


def _default_presets_path() -> str:
    return os.path.join(os.path.dirname(__file__), "config", "noise_presets.json")


def load_noise_presets(path: str | None = None) -> Dict[str, Tuple[NoiseLayer, ...]]:
    """Parse every preset in ``path`` into a tuple of layers keyed by name."""

    with open(path or _default_presets_path(), "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return {
        str(name): tuple(NoiseLayer.from_mapping(entry) for entry in layers)
        for name, layers in payload.items()
    }


def build_preset_stack(name: str, seed: int = 0, path: str | None = None) -> NoiseLayerStack:
    presets = load_noise_presets(path)
    if name not in presets:
        raise ValueError(f"Unknown noise preset '{name}', expected one of: {', '.join(sorted(presets))}")
    return NoiseLayerStack.from_layers(presets[name], seed=seed)
