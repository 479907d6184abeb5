"""Lightweight 3D vector math utilities.

Chamber centres, tunnel control points and region bounds are all stored
as :class:`Vector3` so every deterministic step of network generation is
easy to audit. Bulk work (density evaluation, meshing) converts to numpy
arrays through :meth:`Vector3.to_array` and :func:`stack_vectors`.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, Sequence

import numpy as np


@dataclass(frozen=True)
class Vector3:
    """Immutable 3D vector with a handful of math helpers."""

    x: float
    y: float
    z: float

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> "Vector3":
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vector3":
        return Vector3(self.x / scalar, self.y / scalar, self.z / scalar)

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def distance_to(self, other: "Vector3") -> float:
        return (self - other).length()

    def normalized(self) -> "Vector3":
        length = self.length()
        if length == 0.0:
            raise ValueError("Cannot normalize zero-length vector")
        return self / length

    def lerp(self, other: "Vector3", t: float) -> "Vector3":
        return self * (1.0 - t) + other * t

    def __iter__(self):
        return iter((self.x, self.y, self.z))

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array((self.x, self.y, self.z), dtype=np.float64)

    @staticmethod
    def zero() -> "Vector3":
        return Vector3(0.0, 0.0, 0.0)

    @staticmethod
    def from_iter(values: Iterable[float]) -> "Vector3":
        x, y, z = values
        return Vector3(float(x), float(y), float(z))


def stack_vectors(vectors: Sequence[Vector3]) -> np.ndarray:
    """Return an ``(n, 3)`` float64 array, ``(0, 3)`` for an empty input."""

    if not vectors:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([v.as_tuple() for v in vectors], dtype=np.float64)
