"""Distance utilities for chambers and tunnels."""
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .chambers import Chamber
from .tunnels import TunnelPath
from .vector import Vector3

FAR = 1.0e9


def distance_to_segment(point: Vector3, a: Vector3, b: Vector3) -> float:
    ab = b - a
    ap = point - a
    ab_len_sq = ab.dot(ab)
    if ab_len_sq == 0.0:
        return ap.length()
    t = max(0.0, min(1.0, ap.dot(ab) / ab_len_sq))
    closest = a + ab * t
    return (point - closest).length()


def segment_distances(points: np.ndarray, a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Distance from each of ``points`` to segment ``ab`` plus the clamped parameter."""

    ab = b - a
    ap = points - a
    ab_len_sq = float(np.dot(ab, ab))
    if ab_len_sq == 0.0:
        t = np.zeros(points.shape[0], dtype=np.float64)
    else:
        # Explicit per-axis sums keep results identical for any batch shape.
        t = np.clip((ap[:, 0] * ab[0] + ap[:, 1] * ab[1] + ap[:, 2] * ab[2]) / ab_len_sq, 0.0, 1.0)
    delta = points - (a + t[:, None] * ab)
    return np.sqrt(delta[:, 0] ** 2 + delta[:, 1] ** 2 + delta[:, 2] ** 2), t


def smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def chamber_normalized_distance(
    points: np.ndarray,
    chambers: Sequence[Chamber],
    vertical_scale: float,
    floor_flatness: float,
) -> np.ndarray:
    """``(distance + floor adjustment) / radius - 1`` against the nearest chamber.

    Nearest is judged with the vertically scaled metric; the floor
    adjustment stretches the metric below the centre so cavity floors
    flatten out.
    """

    result = np.full(points.shape[0], FAR, dtype=np.float64)
    nearest = np.full(points.shape[0], np.inf, dtype=np.float64)
    for chamber in chambers:
        offset = points - chamber.center.to_array()
        scaled_y = offset[:, 1] / vertical_scale
        distance = np.sqrt(offset[:, 0] ** 2 + scaled_y ** 2 + offset[:, 2] ** 2)
        floor = floor_flatness * np.maximum(0.0, -scaled_y)
        normalized = (distance + floor) / chamber.radius - 1.0
        closer = distance < nearest
        nearest = np.where(closer, distance, nearest)
        result = np.where(closer, normalized, result)
    return result


def tunnel_normalized_distance(
    points: np.ndarray,
    paths: Sequence[TunnelPath],
    region_min: np.ndarray,
    region_max: np.ndarray,
    band: float,
) -> np.ndarray:
    """Minimum of ``distance / local radius - 1`` over every tunnel segment.

    Segments whose radius-inflated box cannot reach ``[region_min,
    region_max]`` within ``band`` are skipped; their contribution would
    saturate the smooth step anyway.
    """

    result = np.full(points.shape[0], FAR, dtype=np.float64)
    for path in paths:
        starts, ends, start_radii, end_radii = path.segment_arrays()
        reach = np.maximum(start_radii, end_radii) * (1.0 + band)
        lower = np.minimum(starts, ends) - reach[:, None]
        upper = np.maximum(starts, ends) + reach[:, None]
        overlaps = np.all((lower <= region_max) & (upper >= region_min), axis=1)
        for index in np.nonzero(overlaps)[0]:
            distance, t = segment_distances(points, starts[index], ends[index])
            radius = start_radii[index] + (end_radii[index] - start_radii[index]) * t
            result = np.minimum(result, distance / radius - 1.0)
    return result
