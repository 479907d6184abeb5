"""Tests validating network metrics collection and export."""
from __future__ import annotations

import json
from dataclasses import replace

from cavegen.cave_generator import CaveGenerator
from cavegen.src.generation import (
    GenerationSettings,
    WorldSettings,
    collect_network_metrics,
    export_network_metrics,
)

SETTINGS = GenerationSettings(
    chamber_min_radius=4.0,
    chamber_max_radius=6.0,
    tunnel_min_radius=1.0,
    tunnel_max_radius=2.5,
    min_tunnel_length=12.0,
    max_tunnel_length=40.0,
    max_pathfinding_steps=300,
)
WORLD = WorldSettings(region_min=(0.0, 0.0, 0.0), region_max=(80.0, 30.0, 80.0), chamber_count=6)


# //1.- Metrics collection should produce compliant summaries across seeds.
def test_collect_network_metrics_and_export(tmp_path):
    for seed in (3, 4, 5):
        generator = CaveGenerator(replace(SETTINGS, seed=seed), WORLD)
        summary = collect_network_metrics(generator.network.chambers, generator.paths, generator.settings)
        assert summary.chamber_count == len(generator.network)
        assert summary.tunnel_count == len(generator.network.edges)
        assert summary.meets_spacing
        assert summary.meets_chamber_radius_bounds
        assert summary.meets_tunnel_radius_bounds
        assert 0 <= summary.fallback_count <= summary.tunnel_count

    output_path = tmp_path / "metrics.json"
    export_network_metrics(summary, filepath=str(output_path))
    with output_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    assert payload["meets_spacing"] is True
    assert payload["chamber_count"] == summary.chamber_count
    assert len(payload["tunnels"]) == summary.tunnel_count


# //2.- Empty networks export a null spacing instead of infinity.
def test_empty_network_metrics(tmp_path):
    summary = collect_network_metrics((), (), SETTINGS)
    assert summary.chamber_count == 0
    assert summary.mean_tunnel_length == 0.0
    assert summary.meets_spacing
    output_path = tmp_path / "empty.json"
    export_network_metrics(summary, filepath=str(output_path))
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["min_chamber_spacing"] is None
    assert payload["tunnels"] == []
