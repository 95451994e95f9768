"""
Roughness and Metalness Balance

Shifts the roughness (blue) channel of MER textures along a power curve and
moves metalness (red) the opposite way. Emission (green) is never touched.

Roughening boosts smooth pixels most; smoothing takes most from rough and
metallic pixels.
"""

import logging
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import UnidentifiedImageError

from .models import PackInfo
from .pixel_buffer import PixelBuffer
from .texture_sets import TextureChannel, retrieve_files

METALNESS_MODIFICATION_FRACTION = 0.33
METALNESS_INFLUENCE_ON_ROUGHNESS_REDUCTION = 0.33
BASE_POWER = 2.2
IMPACT_MULTIPLIER = 2.4
HIGH_CONTROL_SCALING = 8.0


def tune_roughness(pack: PackInfo, control_value: int) -> list[Path]:
    """
    Apply a signed roughness control to a pack's MER textures.

    Args:
        pack: Pack to process
        control_value: Positive roughens, negative smooths, 0 does nothing

    Returns:
        Texture files that were rewritten
    """
    if pack.path is None or not Path(pack.path).is_dir():
        return []

    files = retrieve_files(pack.path, TextureChannel.MER)
    if not files:
        logging.info(f"{pack.name}: no MER texture files found from texture sets.")
        return []

    if control_value == 0:
        return []

    written = []
    for texture_file in files:
        try:
            buffer = PixelBuffer.load(texture_file)
            metalness, roughness = adjust_roughness(buffer.red, buffer.blue, control_value)

            if np.array_equal(metalness, buffer.red) and np.array_equal(roughness, buffer.blue):
                continue

            buffer.pixels[:, :, 0] = metalness
            buffer.pixels[:, :, 2] = roughness
            buffer.save()
            written.append(texture_file)
        except (OSError, ValueError, UnidentifiedImageError) as e:
            logging.error(f"{pack.name}: error processing {texture_file.name}: {e}")

    return written


def roughness_boost(roughness: NDArray[np.float64], strength: int) -> NDArray[np.float64]:
    """Boost the roughening curve gives each pixel; largest for smooth pixels."""
    normalized = roughness / 255.0
    curve_aggression = BASE_POWER + (strength / 25.0) * 1.5
    max_boost = strength * IMPACT_MULTIPLIER + (strength / 12.0) * HIGH_CONTROL_SCALING
    return max_boost * (1.0 - normalized**curve_aggression)


def adjust_roughness(
    metalness: NDArray[np.uint8], roughness: NDArray[np.uint8], control_value: int
) -> tuple[NDArray[np.uint8], NDArray[np.uint8]]:
    """
    Compute new (metalness, roughness) channels for a control value.

    Args:
        metalness: Red channel of a MER texture
        roughness: Blue channel of a MER texture
        control_value: Signed strength

    Returns:
        (metalness, roughness), clamped to 0-255
    """
    strength = abs(control_value)
    rough = roughness.astype(np.float64)
    metal = metalness.astype(np.float64)
    has_metal = metalness > 0

    if control_value > 0:
        boost = roughness_boost(rough, strength)
        new_rough = np.clip(np.floor(rough + boost), 0, 255)

        metal_reduction = (new_rough - rough) * METALNESS_MODIFICATION_FRACTION
        new_metal = np.clip(np.floor(metal - metal_reduction), 0, 255)
    else:
        metalness_influence = np.where(has_metal, metal / 255.0, 0.0)

        curve_aggression = BASE_POWER + (strength / 5.0) * 1.5
        factor = (rough / 255.0) ** curve_aggression
        max_reduction = strength * IMPACT_MULTIPLIER + (strength / 5.0) * HIGH_CONTROL_SCALING

        base_reduction = max_reduction * factor
        metalness_bonus = (
            max_reduction * metalness_influence * METALNESS_INFLUENCE_ON_ROUGHNESS_REDUCTION
        )
        new_rough = np.clip(np.ceil(rough - (base_reduction + metalness_bonus)), 0, 255)

        # Metalness gains what roughness would have gained at the same positive strength
        hypothetical_boost = roughness_boost(rough, strength)
        new_metal = np.clip(
            np.ceil(metal + hypothetical_boost * METALNESS_MODIFICATION_FRACTION), 0, 255
        )

    new_metal = np.where(has_metal, new_metal, metal)
    return new_metal.astype(np.uint8), new_rough.astype(np.uint8)
