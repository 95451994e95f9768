"""
Lazify: Detail Injection from Color Maps

Derives fine surface detail from a texture's color map and mixes it into the
heightmap or normal map of the same texture set. Transparent areas of the
color map are edge-padded first so they do not skew the luminance range.
"""

import logging
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import UnidentifiedImageError

from ..utils.image_utils import (
    apply_edge_padding,
    average_deviation,
    generate_tiled_normals,
    luminance,
    overlay_blend,
    stretch_contrast,
)
from .models import PackInfo
from .pixel_buffer import PixelBuffer
from .texture_sets import TextureChannel, retrieve_pairs

LINEAR_BLEND_WEIGHT = 0.33
OVERLAY_BLEND_WEIGHT = 0.67


def lazify_pack(pack: PackInfo, alpha: int) -> list[Path]:
    """
    Inject color-derived detail into a pack's heightmaps and normal maps.

    Args:
        pack: Pack to process
        alpha: Detail opacity, 0-255

    Returns:
        Texture files that were rewritten
    """
    if pack.path is None or not Path(pack.path).is_dir():
        return []

    heightmap_pairs = retrieve_pairs(pack.path, TextureChannel.COLOR, TextureChannel.HEIGHTMAP)
    normal_pairs = retrieve_pairs(pack.path, TextureChannel.COLOR, TextureChannel.NORMAL)

    if not heightmap_pairs and not normal_pairs:
        logging.warning(f"{pack.name}: no texture sets with color and heightmap/normal found.")
        return []

    written = []
    for kind, pairs in (("heightmap", heightmap_pairs), ("normal map", normal_pairs)):
        for color_file, target_file in pairs:
            if target_file is None:
                logging.debug(f"{pack.name}: {kind} not found for {color_file.name}; skipped.")
                continue

            try:
                target = PixelBuffer.load(target_file)
                color = PixelBuffer.load(color_file)

                if (color.width, color.height) != (target.width, target.height):
                    logging.debug(
                        f"{pack.name}: dimension mismatch between {kind} and colormap "
                        f"for {target_file.name}; skipped."
                    )
                    continue

                detail = color_detail_map(color.pixels)
                if kind == "heightmap":
                    changed = blend_heightmap(target, detail, alpha)
                else:
                    changed = blend_normal_map(target, detail, alpha)

                if changed:
                    target.save()
                    written.append(target_file)
                    logging.debug(f"{pack.name}: updated {kind} in {target_file.name}.")
                else:
                    logging.debug(f"{pack.name}: no {kind} changes in {target_file.name}.")
            except (OSError, ValueError, UnidentifiedImageError) as e:
                logging.debug(f"{pack.name}: error processing {target_file.name}: {e}")

    return written


def color_detail_map(color_rgba: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Edge-pad, convert to luminance and stretch to the full range."""
    padded = apply_edge_padding(color_rgba)
    return stretch_contrast(luminance(padded))


def blend_heightmap(heightmap: PixelBuffer, detail: NDArray[np.uint8], alpha: int) -> bool:
    """
    Alpha-blend the detail map over the heightmap's grey value in place.

    Returns:
        True when any pixel changed
    """
    original = heightmap.red.astype(np.int32)
    blended = (alpha * detail.astype(np.int32) + (255 - alpha) * original) // 255
    final = np.clip(blended, 0, 255).astype(np.uint8)

    changed = final != heightmap.red
    if not changed.any():
        return False

    for channel in range(3):
        heightmap.pixels[changed, channel] = final[changed]
    return True


def blend_normal_map(normal_map: PixelBuffer, detail: NDArray[np.uint8], alpha: int) -> bool:
    """
    Combine normals generated from the detail map with an existing normal map.

    The generated normals are faded toward neutral by `alpha`, mixed in with
    33% linear and 67% overlay blending, and the result is rescaled so its
    average strength matches the original normal map. B and alpha are kept.

    Returns:
        True when any pixel changed
    """
    generated_r, generated_g = generate_tiled_normals(detail)

    original_r = normal_map.red.astype(np.float64)
    original_g = normal_map.green.astype(np.float64)
    original_intensity = average_deviation(normal_map.red, normal_map.green)

    blended = []
    for original, generated in ((original_r, generated_r), (original_g, generated_g)):
        faded = (alpha * generated.astype(np.float64) + (255 - alpha) * 128) / 255.0
        linear = (original + faded) / 2.0
        overlay = overlay_blend(original, faded)
        mixed = LINEAR_BLEND_WEIGHT * linear + OVERLAY_BLEND_WEIGHT * overlay
        blended.append(np.clip(mixed, 0, 255).astype(np.uint8))

    blended_intensity = average_deviation(blended[0], blended[1])
    if original_intensity > 0 and blended_intensity > 0:
        intensity_ratio = original_intensity / blended_intensity
    else:
        intensity_ratio = 1.0

    final_r, final_g = (
        np.clip(128 + (b.astype(np.float64) - 128) * intensity_ratio, 0, 255).astype(np.uint8)
        for b in blended
    )

    changed = (final_r != normal_map.red) | (final_g != normal_map.green)
    if not changed.any():
        return False

    normal_map.pixels[changed, 0] = final_r[changed]
    normal_map.pixels[changed, 1] = final_g[changed]
    return True
