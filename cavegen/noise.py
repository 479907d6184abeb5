"""Deterministic noise kernels shared by every density source.

All kernels accept scalars or numpy arrays (broadcast together) and
return numpy arrays of the broadcast shape. They are pure functions of
seed and position, so a chunk can be evaluated slice by slice from any
number of threads.
"""
from __future__ import annotations

import itertools
from typing import Callable

import numpy as np

_MASK32 = 0xFFFFFFFF

Kernel = Callable[[int, np.ndarray, np.ndarray, np.ndarray], np.ndarray]


# -- Hash helpers ---------------------------------------------------------

def hash3(seed: int, x, y, z) -> np.ndarray:
    """32-bit integer hash of a lattice coordinate, stored as int64."""

    x = np.asarray(x, dtype=np.int64)
    y = np.asarray(y, dtype=np.int64)
    z = np.asarray(z, dtype=np.int64)
    value = (int(seed) & _MASK32) ^ (x * 374761393) ^ (y * 668265263) ^ (z * 2147483647)
    value = value & _MASK32
    value = ((value ^ (value >> 13)) * 1274126177) & _MASK32
    value = value ^ (value >> 16)
    return value & _MASK32


def _byte_unit(h: np.ndarray, shift: int) -> np.ndarray:
    return ((h >> shift) & 0xFF) / 255.0


def _gradient(seed: int, x, y, z) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    h = hash3(seed, x, y, z)
    # Use the low bytes to generate a normalized gradient vector.
    hx = _byte_unit(h, 0) * 2.0 - 1.0
    hy = _byte_unit(h, 8) * 2.0 - 1.0
    hz = _byte_unit(h, 16) * 2.0 - 1.0
    length = np.sqrt(hx * hx + hy * hy + hz * hz)
    length = np.where(length > 0.0, length, 1.0)
    return hx / length, hy / length, hz / length


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(a, b, t):
    return a + (b - a) * t


def _split(x, y, z):
    x, y, z = np.broadcast_arrays(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    xi = np.floor(x)
    yi = np.floor(y)
    zi = np.floor(z)
    return (
        (xi.astype(np.int64), yi.astype(np.int64), zi.astype(np.int64)),
        (x - xi, y - yi, z - zi),
    )


def _trilinear(corners, u, v, w):
    x1 = _lerp(corners[(0, 0, 0)], corners[(1, 0, 0)], u)
    x2 = _lerp(corners[(0, 1, 0)], corners[(1, 1, 0)], u)
    x3 = _lerp(corners[(0, 0, 1)], corners[(1, 0, 1)], u)
    x4 = _lerp(corners[(0, 1, 1)], corners[(1, 1, 1)], u)
    return _lerp(_lerp(x1, x2, v), _lerp(x3, x4, v), w)


# -- Noise evaluators -----------------------------------------------------

def value_noise3(seed: int, x, y, z) -> np.ndarray:
    """Smoothly interpolated lattice values in ``[-1, 1]``."""

    (xi, yi, zi), (xf, yf, zf) = _split(x, y, z)
    corners = {}
    for dx, dy, dz in itertools.product((0, 1), repeat=3):
        h = hash3(seed, xi + dx, yi + dy, zi + dz)
        corners[(dx, dy, dz)] = h / float(_MASK32) * 2.0 - 1.0
    return _trilinear(corners, _fade(xf), _fade(yf), _fade(zf))


def gradient_noise3(seed: int, x, y, z) -> np.ndarray:
    """Classic Perlin-style gradient noise in 3D."""

    (xi, yi, zi), (xf, yf, zf) = _split(x, y, z)
    corners = {}
    for dx, dy, dz in itertools.product((0, 1), repeat=3):
        gx, gy, gz = _gradient(seed, xi + dx, yi + dy, zi + dz)
        corners[(dx, dy, dz)] = (xf - dx) * gx + (yf - dy) * gy + (zf - dz) * gz
    return _trilinear(corners, _fade(xf), _fade(yf), _fade(zf))


def cellular_noise3(seed: int, x, y, z) -> np.ndarray:
    """Worley noise: ``1 - distance`` to the nearest feature point, in ``[0, 1]``."""

    (xi, yi, zi), (xf, yf, zf) = _split(x, y, z)
    nearest = np.ones_like(xf)
    for dx, dy, dz in itertools.product((-1, 0, 1), repeat=3):
        h = hash3(seed, xi + dx, yi + dy, zi + dz)
        # Feature points stay inside the middle half of their cell.
        fx = dx + _byte_unit(h, 0) * 0.5 + 0.25 - xf
        fy = dy + _byte_unit(h, 8) * 0.5 + 0.25 - yf
        fz = dz + _byte_unit(h, 16) * 0.5 + 0.25 - zf
        nearest = np.minimum(nearest, np.sqrt(fx * fx + fy * fy + fz * fz))
    return 1.0 - nearest


def ridged_noise3(seed: int, x, y, z) -> np.ndarray:
    """Sharp creases where gradient noise crosses zero, in ``[0, 1]``."""

    ridge = 1.0 - np.abs(gradient_noise3(seed, x, y, z))
    return ridge * ridge


def composite_cavern3(seed: int, x, y, z) -> np.ndarray:
    """Large rounded voids built from two cellular scales, in ``[-1, 1]``."""

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    z = np.asarray(z, dtype=np.float64)
    coarse = cellular_noise3(seed, x * 0.5, y * 0.5, z * 0.5)
    fine = cellular_noise3(seed + 1, x * 1.5, y * 1.5, z * 1.5)
    cavern = (coarse * fine) ** 2
    detail = gradient_noise3(seed + 2, x, y, z) * 0.5 + 0.5
    return np.clip(cavern + detail * 0.1, 0.0, 1.0) * 2.0 - 1.0


def fractal3(
    kernel: Kernel,
    seed: int,
    x,
    y,
    z,
    *,
    frequency: float,
    octaves: int,
    persistence: float,
    lacunarity: float,
) -> np.ndarray:
    """Sum ``octaves`` rounds of ``kernel`` normalised by the amplitude total."""

    if octaves < 1:
        raise ValueError("octaves must be >= 1")
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    z = np.asarray(z, dtype=np.float64)
    total = np.zeros(np.broadcast(x, y, z).shape, dtype=np.float64)
    amplitude = 1.0
    current = float(frequency)
    max_value = 0.0
    for octave in range(octaves):
        total = total + kernel(seed + octave * 1013, x * current, y * current, z * current) * amplitude
        max_value += amplitude
        amplitude *= persistence
        current *= lacunarity
    if max_value <= 0.0:
        return total
    return total / max_value


def noise3(seed: int, x: float, y: float, z: float) -> float:
    """Scalar convenience wrapper around :func:`gradient_noise3`."""

    return float(gradient_noise3(seed, x, y, z))
