"""Tests for chamber and tunnel distance helpers."""
from __future__ import annotations

import numpy as np
import pytest

from cavegen.chambers import Chamber
from cavegen.sdf import (
    FAR,
    chamber_normalized_distance,
    distance_to_segment,
    segment_distances,
    smoothstep,
    tunnel_normalized_distance,
)
from cavegen.tunnels import TunnelPath
from cavegen.vector import Vector3


# //1.- Vectorised segment distances agree with the scalar helper.
def test_segment_distances_match_scalar_helper():
    a = Vector3(1.0, -2.0, 0.5)
    b = Vector3(6.0, 3.0, -1.5)
    points = np.random.default_rng(4).uniform(-10.0, 10.0, size=(64, 3))
    distances, t = segment_distances(points, a.to_array(), b.to_array())
    expected = [distance_to_segment(Vector3.from_iter(p), a, b) for p in points]
    np.testing.assert_allclose(distances, expected)
    assert ((t >= 0.0) & (t <= 1.0)).all()


def test_degenerate_segment_is_point_distance():
    point = Vector3(3.0, 4.0, 0.0)
    assert distance_to_segment(point, Vector3.zero(), Vector3.zero()) == pytest.approx(5.0)
    distances, t = segment_distances(np.array([[3.0, 4.0, 0.0]]), np.zeros(3), np.zeros(3))
    assert distances[0] == pytest.approx(5.0)
    assert t[0] == 0.0


def test_smoothstep_edges():
    values = smoothstep(-0.1, 0.1, np.array([-1.0, -0.1, 0.0, 0.1, 1.0]))
    np.testing.assert_allclose(values, [0.0, 0.0, 0.5, 1.0, 1.0])


# //2.- Chamber distances are squashed vertically with a flatter floor.
def test_chamber_distance_flattens_floor():
    chamber = Chamber(index=0, center=Vector3(0.0, 0.0, 0.0), radius=4.0)
    points = np.array([[0.0, 0.0, 0.0], [4.0, 0.0, 0.0], [0.0, 2.0, 0.0], [0.0, -2.0, 0.0]])
    normalized = chamber_normalized_distance(points, [chamber], vertical_scale=0.5, floor_flatness=0.5)
    assert normalized[0] == pytest.approx(-1.0)
    assert normalized[1] == pytest.approx(0.0)
    assert normalized[2] == pytest.approx(0.0)
    assert normalized[3] == pytest.approx(0.5)
    assert (chamber_normalized_distance(points, [], 0.5, 0.5) == FAR).all()


# //3.- Tunnel distances use the interpolated local radius.
def test_tunnel_distance_interpolates_radius():
    path = TunnelPath(
        source=0,
        target=1,
        points=(Vector3(0.0, 0.0, 0.0), Vector3(10.0, 0.0, 0.0)),
        radii=(1.0, 3.0),
    )
    points = np.array([[5.0, 2.0, 0.0], [0.0, 1.0, 0.0], [5.0, 50.0, 0.0]])
    normalized = tunnel_normalized_distance(points, [path], np.array([0.0, 0.0, 0.0]), np.array([5.0, 2.0, 0.0]), 0.1)
    assert normalized[0] == pytest.approx(0.0)
    assert normalized[1] == pytest.approx(0.0)
    far = tunnel_normalized_distance(points[2:], [path], points[2], points[2], 0.1)
    assert far[0] == FAR
