"""
Emissivity Tuning

Scales the emissive (green) channel of MER textures. The part of the
multiplier that fits under 255 is applied fully; whatever is left over is
dampened heavily so bright emitters brighten a little instead of clipping.
"""

import logging
import math
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import UnidentifiedImageError

from .models import PackInfo
from .pixel_buffer import PixelBuffer
from .texture_sets import TextureChannel, retrieve_files

# How far the excess multiplier is kept from 1.0: 0.1 moves it 90% of the way back
EMISSIVE_EXCESS_INTENSITY_DAMPEN = 0.1


def tune_emissivity(
    pack: PackInfo, multiplier: float, add_ambient_light: bool = False
) -> list[Path]:
    """
    Apply the emissivity multiplier and optional ambient light to a pack's MER textures.

    Args:
        pack: Pack to process
        multiplier: Emissive multiplier, 1.0 leaves existing emission alone
        add_ambient_light: Add a flat emissive floor to every pixel

    Returns:
        Texture files that were rewritten
    """
    if pack.path is None or not Path(pack.path).is_dir():
        return []

    files = retrieve_files(pack.path, TextureChannel.MER)
    if not files:
        logging.info(f"{pack.name}: no MER texture files found from texture sets.")
        return []

    written = []
    for texture_file in files:
        try:
            buffer = PixelBuffer.load(texture_file)
            original = buffer.green.copy()

            green = scale_emissive(original, multiplier)
            if add_ambient_light:
                green = add_ambient(green, multiplier)

            if np.array_equal(green, original):
                continue

            buffer.pixels[:, :, 1] = green
            buffer.save()
            written.append(texture_file)
        except (OSError, ValueError, UnidentifiedImageError) as e:
            logging.error(f"{pack.name}: error processing {texture_file.name}: {e}")

    return written


def scale_emissive(green: NDArray[np.uint8], multiplier: float) -> NDArray[np.uint8]:
    """
    Multiply non-zero emissive values without clipping the brightest one.

    Values below 127.5 round up and values at or above it round down.

    Args:
        green: Emissive channel
        multiplier: User multiplier

    Returns:
        New emissive channel; zero pixels stay zero
    """
    if multiplier == 1.0:
        return green.copy()

    max_green = int(green.max()) if green.size else 0
    if max_green == 0:
        return green.copy()

    effective_mult = min(multiplier, 255.0 / max_green)
    excess = max(0.0, multiplier - effective_mult)
    dampened_excess = 1.0 + (excess - 1.0) * EMISSIVE_EXCESS_INTENSITY_DAMPEN

    original = green.astype(np.float64)
    scaled = original * effective_mult
    if excess > 0:
        scaled += original * (dampened_excess - 1.0)

    rounded = np.where(scaled < 127.5, np.ceil(scaled), np.floor(scaled))
    result = np.clip(rounded, 0, 255).astype(np.uint8)

    return np.where(green == 0, green, result)


def add_ambient(green: NDArray[np.uint8], multiplier: float) -> NDArray[np.uint8]:
    """Raise every emissive value by ceil(multiplier) + 1, saturating at 255."""
    ambient_amount = math.ceil(multiplier) + 1
    raised = green.astype(np.int32) + ambient_amount
    return np.clip(raised, 0, 255).astype(np.uint8)
