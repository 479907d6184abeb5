"""Metrics export for verifying generated cave network statistics."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from statistics import mean
from typing import Sequence

from ...chambers import Chamber
from ...tunnels import TunnelPath
from .settings import GenerationSettings


# //1.- Encapsulate per-tunnel metrics derived from routed paths.
@dataclass(frozen=True)
class TunnelMetrics:
    source: int
    target: int
    point_count: int
    length: float
    min_radius: float
    max_radius: float
    used_fallback: bool


# //2.- Aggregate statistics for a network plus compliance summary.
@dataclass(frozen=True)
class NetworkMetrics:
    chamber_count: int
    tunnel_count: int
    min_chamber_spacing: float
    mean_tunnel_length: float
    fallback_count: int
    meets_spacing: bool
    meets_chamber_radius_bounds: bool
    meets_tunnel_radius_bounds: bool
    tunnels: Sequence[TunnelMetrics]


# //3.- Compute metrics for a single routed tunnel.
def _compute_tunnel_metrics(path: TunnelPath) -> TunnelMetrics:
    return TunnelMetrics(
        source=path.source,
        target=path.target,
        point_count=len(path.points),
        length=path.length(),
        min_radius=min(path.radii),
        max_radius=max(path.radii),
        used_fallback=path.used_fallback,
    )


# //4.- Find the closest pair of chamber centres, infinity for fewer than two chambers.
def _min_spacing(chambers: Sequence[Chamber]) -> float:
    spacing = math.inf
    for i, chamber in enumerate(chambers):
        for other in chambers[i + 1 :]:
            spacing = min(spacing, chamber.center.distance_to(other.center))
    return spacing


# //5.- Evaluate the network against the configured invariants.
def collect_network_metrics(
    chambers: Sequence[Chamber],
    paths: Sequence[TunnelPath],
    settings: GenerationSettings,
    *,
    tolerance: float = 1e-6,
) -> NetworkMetrics:
    tunnels = [_compute_tunnel_metrics(path) for path in paths]
    spacing = _min_spacing(chambers)
    return NetworkMetrics(
        chamber_count=len(chambers),
        tunnel_count=len(tunnels),
        min_chamber_spacing=spacing,
        mean_tunnel_length=mean(t.length for t in tunnels) if tunnels else 0.0,
        fallback_count=sum(1 for t in tunnels if t.used_fallback),
        meets_spacing=spacing >= 2.0 * settings.chamber_max_radius - tolerance,
        meets_chamber_radius_bounds=all(
            settings.chamber_min_radius <= c.radius <= settings.chamber_max_radius for c in chambers
        ),
        meets_tunnel_radius_bounds=all(
            settings.tunnel_min_radius - tolerance <= t.min_radius
            and t.max_radius <= settings.tunnel_max_radius + tolerance
            for t in tunnels
        ),
        tunnels=tuple(tunnels),
    )


# //6.- Export metrics summary to JSON for CI validation or dashboards.
def export_network_metrics(
    summary: NetworkMetrics,
    *,
    filepath: str,
) -> None:
    payload = {
        "chamber_count": summary.chamber_count,
        "tunnel_count": summary.tunnel_count,
        "min_chamber_spacing": summary.min_chamber_spacing if math.isfinite(summary.min_chamber_spacing) else None,
        "mean_tunnel_length": summary.mean_tunnel_length,
        "fallback_count": summary.fallback_count,
        "meets_spacing": summary.meets_spacing,
        "meets_chamber_radius_bounds": summary.meets_chamber_radius_bounds,
        "meets_tunnel_radius_bounds": summary.meets_tunnel_radius_bounds,
        "tunnels": [
            {
                "source": tunnel.source,
                "target": tunnel.target,
                "point_count": tunnel.point_count,
                "length": tunnel.length,
                "min_radius": tunnel.min_radius,
                "max_radius": tunnel.max_radius,
                "used_fallback": tunnel.used_fallback,
            }
            for tunnel in summary.tunnels
        ],
    }
    with open(filepath, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
