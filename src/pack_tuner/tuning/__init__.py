"""
Pack Tuning Engine

Transforms that tune Minecraft Bedrock PBR resource packs in place: fog
density, emissivity, normal intensity, detail injection, roughness balance
and material grain.
"""

from .emissivity import tune_emissivity
from .fog import tune_fog
from .lazify import lazify_pack
from .material_grain import NoisePatternCache, add_material_grain
from .models import PackInfo, TuningParameters
from .normals import tune_normal_intensity
from .orchestrator import TuningPlan, TuningReport, tune_packs
from .pixel_buffer import PixelBuffer
from .roughness import tune_roughness
from .texture_sets import TextureChannel, retrieve_files, retrieve_pairs

__all__ = [
    "PackInfo",
    "TuningParameters",
    "TuningPlan",
    "TuningReport",
    "tune_packs",
    "tune_fog",
    "tune_emissivity",
    "tune_normal_intensity",
    "lazify_pack",
    "tune_roughness",
    "add_material_grain",
    "NoisePatternCache",
    "PixelBuffer",
    "TextureChannel",
    "retrieve_files",
    "retrieve_pairs",
]
