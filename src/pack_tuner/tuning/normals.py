"""
Normal Map and Heightmap Intensity

Strengthens or flattens normal maps and heightmaps by a percentage. Strengthening
never clips: when the requested intensity would push a channel past its range,
the whole image is compressed by one global ratio so relative contrast holds.
"""

import logging
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import UnidentifiedImageError

from .models import PackInfo
from .pixel_buffer import PixelBuffer
from .texture_sets import TEXTURE_EXTENSIONS, TextureChannel, retrieve_files


def tune_normal_intensity(pack: PackInfo, intensity: int) -> list[Path]:
    """
    Scale normal map and heightmap strength of a pack.

    Heightmaps are processed first, then normal maps.

    Args:
        pack: Pack to process
        intensity: Strength in percent, 100 leaves textures unchanged

    Returns:
        Texture files that were rewritten
    """
    if pack.path is None or not Path(pack.path).is_dir():
        return []

    normal_files = retrieve_files(pack.path, TextureChannel.NORMAL)
    heightmap_files = retrieve_files(pack.path, TextureChannel.HEIGHTMAP)

    if not normal_files and not heightmap_files:
        logging.warning(f"{pack.name}: no normal or heightmap texture files found from texture sets.")
        return []

    factor = intensity / 100.0
    written = []

    for texture_file in heightmap_files:
        try:
            buffer = PixelBuffer.load(texture_file)
            gray = scale_heightmap_contrast(buffer.red, factor)
            if gray is None or np.array_equal(gray, buffer.red):
                continue

            changed = gray != buffer.red
            buffer.pixels[changed, 0] = gray[changed]
            buffer.pixels[changed, 1] = gray[changed]
            buffer.pixels[changed, 2] = gray[changed]
            buffer.save()
            written.append(texture_file)
        except (OSError, ValueError, UnidentifiedImageError) as e:
            logging.debug(f"{pack.name}: error processing heightmap {texture_file.name}: {e}")

    for texture_file in resolve_real_normal_maps(normal_files):
        try:
            buffer = PixelBuffer.load(texture_file)
            scaled = scale_normal_intensity(buffer.red, buffer.green, factor)
            if scaled is None:
                continue

            red, green = scaled
            if np.array_equal(red, buffer.red) and np.array_equal(green, buffer.green):
                continue

            buffer.pixels[:, :, 0] = red
            buffer.pixels[:, :, 1] = green
            buffer.save()
            written.append(texture_file)
        except (OSError, ValueError, UnidentifiedImageError) as e:
            logging.debug(f"{pack.name}: error processing {texture_file.name}: {e}")

    return written


def resolve_real_normal_maps(normal_files: list[Path]) -> list[Path]:
    """
    Swap in `<name>_normal` siblings where they exist.

    Some blocks name their texture set layer after the block and keep the
    actual normal map next to it with a `_normal` suffix.
    """
    files: list[Path] = []
    for normal_file in normal_files:
        sibling = None
        for ext in TEXTURE_EXTENSIONS:
            candidate = normal_file.with_name(f"{normal_file.stem}_normal{ext}")
            if candidate.is_file():
                sibling = candidate
                break

        if sibling is None:
            files.append(normal_file)
        elif sibling not in files:
            files.append(sibling)

    return files


def scale_normal_intensity(
    red: NDArray[np.uint8], green: NDArray[np.uint8], factor: float
) -> tuple[NDArray[np.uint8], NDArray[np.uint8]] | None:
    """
    Scale R/G deviation from neutral 128 by `factor`.

    Reductions interpolate toward 128. Increases find the largest deviation
    the image would reach and, past 127, compress every pixel by the same ratio.

    Returns:
        (red, green), or None for a flat normal map that cannot be strengthened
    """
    r = red.astype(np.float64) - 128.0
    g = green.astype(np.float64) - 128.0

    if factor <= 1.0:
        new_r = 128.0 + r * factor
        new_g = 128.0 + g * factor
    else:
        max_deviation = float(np.max(np.maximum(np.abs(r * factor), np.abs(g * factor))))
        if max_deviation == 0:
            return None

        compression_ratio = 127.0 / max_deviation if max_deviation > 127.0 else 1.0
        new_r = 128.0 + r * factor * compression_ratio
        new_g = 128.0 + g * factor * compression_ratio

    return (
        np.clip(np.round(new_r), 0, 255).astype(np.uint8),
        np.clip(np.round(new_g), 0, 255).astype(np.uint8),
    )


def scale_heightmap_contrast(gray: NDArray[np.uint8], factor: float) -> NDArray[np.uint8] | None:
    """
    Stretch or flatten a heightmap around the middle of the 0-255 range.

    The span between darkest and brightest grey is scaled by `factor`,
    compressed if it would exceed 255, and re-centred on 127.5.

    Returns:
        New grey values, or None for a flat heightmap
    """
    min_gray = int(gray.min())
    max_gray = int(gray.max())
    current_span = float(max_gray - min_gray)
    if current_span == 0:
        return None

    ideal_span = current_span * factor
    actual_span = min(ideal_span, 255.0)
    # Zero intensity flattens everything to the centre
    compression_ratio = actual_span / ideal_span if ideal_span > 0 else 1.0

    current_center = (min_gray + max_gray) / 2.0
    deviation = gray.astype(np.float64) - current_center
    new_gray = 127.5 + deviation * factor * compression_ratio

    return np.clip(np.round(new_gray), 0, 255).astype(np.uint8)
