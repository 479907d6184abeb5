"""Configuration, metrics and debug exports for cave generation."""
from .config import GenerationSeeds, load_generation_config
from .settings import GenerationSettings, WorldSettings, load_generation_settings, load_world_settings
from .metrics import NetworkMetrics, TunnelMetrics, collect_network_metrics, export_network_metrics
from .visualization import (
    DensitySliceStats,
    export_density_slice_csv,
    export_density_stats_csv,
    export_mesh_obj,
    summarize_density,
)

__all__ = [
    "GenerationSeeds",
    "load_generation_config",
    "GenerationSettings",
    "WorldSettings",
    "load_generation_settings",
    "load_world_settings",
    "NetworkMetrics",
    "TunnelMetrics",
    "collect_network_metrics",
    "export_network_metrics",
    "DensitySliceStats",
    "export_density_slice_csv",
    "export_density_stats_csv",
    "export_mesh_obj",
    "summarize_density",
]
