"""
Pack Tuner Utilities Package

This package contains shared raster helpers and configuration management.
"""

__version__ = "0.1.0"

# Import main utility functions for easy access
from .config_utils import (
    PackTunerConfig,
    create_sample_config,
    load_config,
    setup_logging,
)
from .image_utils import (
    apply_edge_padding,
    average_deviation,
    generate_tiled_normals,
    luminance,
    overlay_blend,
    stretch_contrast,
)

__all__ = [
    "apply_edge_padding",
    "average_deviation",
    "generate_tiled_normals",
    "luminance",
    "overlay_blend",
    "stretch_contrast",
    "PackTunerConfig",
    "create_sample_config",
    "load_config",
    "setup_logging",
]
