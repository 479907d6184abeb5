"""Composable noise layers folded into a single scalar field."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Mapping, Sequence, Tuple

import numpy as np

from .noise import (
    Kernel,
    cellular_noise3,
    composite_cavern3,
    fractal3,
    gradient_noise3,
    ridged_noise3,
    value_noise3,
)


# //1.- Enumerate the noise primitives a layer can sample.
class NoiseKind(Enum):
    VALUE = auto()
    GRADIENT = auto()
    CELLULAR = auto()
    RIDGED = auto()
    COMPOSITE_CAVERN = auto()


# //2.- Enumerate the ways a layer folds into the running stack value.
class BlendMode(Enum):
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    MIN = auto()
    MAX = auto()
    OVERRIDE = auto()


def _parse_enum(enum_type, name: str):
    key = str(name).strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return enum_type[key]
    except KeyError:
        options = ", ".join(member.name.lower() for member in enum_type)
        raise ValueError(f"Unknown {enum_type.__name__} '{name}', expected one of: {options}") from None


# //3.- Pick the kernel for a noise kind with an explicit match over the closed set.
def _kernel_for(kind: NoiseKind) -> Kernel:
    if kind is NoiseKind.VALUE:
        return value_noise3
    if kind is NoiseKind.GRADIENT:
        return gradient_noise3
    if kind is NoiseKind.CELLULAR:
        return cellular_noise3
    if kind is NoiseKind.RIDGED:
        return ridged_noise3
    if kind is NoiseKind.COMPOSITE_CAVERN:
        return composite_cavern3
    raise ValueError(f"Unsupported noise kind: {kind!r}")


# //4.- Fold a layer output into the accumulated value according to its blend mode.
def _blend(mode: BlendMode, current: np.ndarray, value: np.ndarray) -> np.ndarray:
    if mode is BlendMode.ADD:
        return current + value
    if mode is BlendMode.SUBTRACT:
        return current - value
    if mode is BlendMode.MULTIPLY:
        return current * value
    if mode is BlendMode.MIN:
        return np.minimum(current, value)
    if mode is BlendMode.MAX:
        return np.maximum(current, value)
    if mode is BlendMode.OVERRIDE:
        return np.array(value, dtype=np.float64, copy=True)
    raise ValueError(f"Unsupported blend mode: {mode!r}")


# //5.- Restrict a layer to a vertical band shaped by a piecewise-linear falloff curve.
@dataclass(frozen=True)
class HeightWindow:
    min_height: float
    max_height: float
    falloff: Tuple[Tuple[float, float], ...] = ((0.0, 1.0), (1.0, 1.0))

    def __post_init__(self) -> None:
        if self.max_height <= self.min_height:
            raise ValueError("height window max_height must be greater than min_height")
        if not self.falloff:
            raise ValueError("height window falloff needs at least one key")
        times = [key[0] for key in self.falloff]
        if times != sorted(times):
            raise ValueError("height window falloff keys must be sorted by time")

    def multiplier(self, y) -> np.ndarray:
        span = self.max_height - self.min_height
        t = np.clip((np.asarray(y, dtype=np.float64) - self.min_height) / span, 0.0, 1.0)
        times = [float(key[0]) for key in self.falloff]
        values = [float(key[1]) for key in self.falloff]
        return np.interp(t, times, values)

    @classmethod
    def from_mapping(cls, payload: Mapping) -> "HeightWindow":
        keys = payload.get("falloff", ((0.0, 1.0), (1.0, 1.0)))
        return cls(
            min_height=float(payload["min_height"]),
            max_height=float(payload["max_height"]),
            falloff=tuple((float(t), float(v)) for t, v in keys),
        )


# //6.- Describe one layer of the stack with its sampling and shaping parameters.
@dataclass(frozen=True)
class NoiseLayer:
    kind: NoiseKind = NoiseKind.GRADIENT
    blend: BlendMode = BlendMode.ADD
    name: str = "layer"
    enabled: bool = True
    frequency: float = 0.02
    amplitude: float = 1.0
    octaves: int = 4
    persistence: float = 0.5
    lacunarity: float = 2.0
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    vertical_squash: float = 0.5
    density_bias: float = 0.0
    power: float = 1.0
    height_window: HeightWindow | None = None

    def __post_init__(self) -> None:
        if self.frequency <= 0.0:
            raise ValueError("layer frequency must be positive")
        if self.octaves < 1:
            raise ValueError("layer octaves must be >= 1")
        if self.lacunarity <= 0.0:
            raise ValueError("layer lacunarity must be positive")
        if len(self.offset) != 3:
            raise ValueError("layer offset must have three components")

    # //7.- Evaluate the layer transform for broadcastable coordinate arrays.
    def evaluate_xyz(self, seed: int, x, y, z) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        squash = max(0.01, self.vertical_squash)
        sample_x = x + self.offset[0]
        sample_y = y / squash + self.offset[1]
        sample_z = z + self.offset[2]
        value = fractal3(
            _kernel_for(self.kind),
            seed,
            sample_x,
            sample_y,
            sample_z,
            frequency=self.frequency,
            octaves=self.octaves,
            persistence=self.persistence,
            lacunarity=self.lacunarity,
        )
        if self.power != 1.0:
            value = np.sign(value) * np.abs(value) ** self.power
        value = value + self.density_bias
        if self.height_window is not None:
            value = value * self.height_window.multiplier(y)
        return value * self.amplitude

    @classmethod
    def from_mapping(cls, payload: Mapping) -> "NoiseLayer":
        window = payload.get("height_window")
        return cls(
            kind=_parse_enum(NoiseKind, payload.get("kind", "gradient")),
            blend=_parse_enum(BlendMode, payload.get("blend", "add")),
            name=str(payload.get("name", "layer")),
            enabled=bool(payload.get("enabled", True)),
            frequency=float(payload.get("frequency", 0.02)),
            amplitude=float(payload.get("amplitude", 1.0)),
            octaves=int(payload.get("octaves", 4)),
            persistence=float(payload.get("persistence", 0.5)),
            lacunarity=float(payload.get("lacunarity", 2.0)),
            offset=tuple(float(c) for c in payload.get("offset", (0.0, 0.0, 0.0))),
            vertical_squash=float(payload.get("vertical_squash", 0.5)),
            density_bias=float(payload.get("density_bias", 0.0)),
            power=float(payload.get("power", 1.0)),
            height_window=HeightWindow.from_mapping(window) if window else None,
        )


# //8.- Ordered stack of layers folded left to right into a single scalar.
@dataclass(frozen=True)
class NoiseLayerStack:
    layers: Tuple[NoiseLayer, ...] = field(default_factory=tuple)
    seed: int = 0

    @classmethod
    def from_layers(cls, layers: Sequence[NoiseLayer], seed: int = 0) -> "NoiseLayerStack":
        return cls(layers=tuple(layers), seed=int(seed))

    @property
    def is_empty(self) -> bool:
        return not any(layer.enabled for layer in self.layers)

    def evaluate_xyz(self, x, y, z) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        result = np.zeros(np.broadcast(x, y, z).shape, dtype=np.float64)
        for layer in self.layers:
            if not layer.enabled:
                continue
            result = _blend(layer.blend, result, layer.evaluate_xyz(self.seed, x, y, z))
        return result

    def evaluate(self, position: Sequence[float]) -> float:
        px, py, pz = position
        return float(self.evaluate_xyz(px, py, pz))
