"""
Material Grain

Adds fine per-pixel noise, mixed with a dithered checkerboard, to MER
textures. State variants of one block (`_on`/`_off`, `_lit`/`_unlit`, ...)
and every frame of a flipbook share the same noise so they dither identically.

A channel whose noise would leave 0-255 keeps its original value instead of
being clamped.
"""

import logging
from collections import defaultdict
from pathlib import Path
from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray
from PIL import UnidentifiedImageError

from .models import PackInfo
from .pixel_buffer import PixelBuffer
from .texture_sets import TextureChannel, retrieve_files

CHECKERBOARD_INTENSITY = 0.2
CHECKERBOARD_NOISE_AMOUNT = 0.2
GREEN_EFFECTIVENESS = 0.2

VARIANT_SUFFIXES = frozenset(
    {
        "on",
        "off",
        "active",
        "inactive",
        "dormant",
        "bloom",
        "ejecting",
        "lit",
        "unlit",
        "powered",
        "crafting",
    }
)


class NoisePattern(NamedTuple):
    red: NDArray[np.int32]
    green: NDArray[np.int32]
    blue: NDArray[np.int32]
    checkerboard: NDArray[np.int32]


class NoisePatternCache:
    """
    Noise grids shared between textures of one grain pass.

    Keyed by base filename and frame size; a grid is generated once and
    returned unchanged for every later request with the same key.
    """

    def __init__(self, noise_offset: int, rng: np.random.Generator) -> None:
        self.noise_offset = noise_offset
        self.rng = rng
        self._patterns: dict[tuple[str, int, int], NoisePattern] = {}

    def __len__(self) -> int:
        return len(self._patterns)

    def get(self, base_name: str, width: int, frame_height: int) -> NoisePattern:
        key = (base_name, width, frame_height)
        if key not in self._patterns:
            self._patterns[key] = generate_noise_pattern(
                width, frame_height, self.noise_offset, self.rng
            )
        return self._patterns[key]


def add_material_grain(pack: PackInfo, noise_offset: int, seed: int | None = None) -> list[Path]:
    """
    Add material grain to a pack's MER textures.

    Args:
        pack: Pack to process
        noise_offset: Maximum per-channel offset, 0 does nothing
        seed: Seed for reproducible noise

    Returns:
        Texture files that were rewritten
    """
    if pack.path is None or not Path(pack.path).is_dir():
        return []

    files = retrieve_files(pack.path, TextureChannel.MER)
    if not files:
        logging.info(f"{pack.name}: no MER(S) texture files found from texture sets.")
        return []

    if noise_offset <= 0:
        return []

    cache = NoisePatternCache(noise_offset, np.random.default_rng(seed))

    groups: dict[str, list[Path]] = defaultdict(list)
    for texture_file in files:
        groups[base_filename(texture_file)].append(texture_file)

    written = []
    for base_name, variant_files in groups.items():
        for texture_file in variant_files:
            try:
                buffer = PixelBuffer.load(texture_file)
                if buffer.width == 0:
                    continue

                frame_height = flipbook_frame_height(buffer.width, buffer.height)
                pattern = cache.get(base_name, buffer.width, frame_height)

                if apply_grain(buffer, pattern, noise_offset, frame_height):
                    buffer.save()
                    written.append(texture_file)
            except (OSError, ValueError, UnidentifiedImageError) as e:
                logging.error(f"{pack.name}: error processing {texture_file.name}: {e}")

    return written


def base_filename(path: Path) -> str:
    """Filename stem with every variant suffix part removed."""
    parts = path.stem.split("_")
    return "_".join(part for part in parts if part.lower() not in VARIANT_SUFFIXES)


def flipbook_frame_height(width: int, height: int) -> int:
    """
    Height of one animation frame.

    Textures whose height is an exact multiple (at least 2) of their width are
    flipbooks of square frames; anything else is a single frame.
    """
    if width > 0 and height >= width * 2 and height % width == 0:
        return width
    return height


def generate_noise_pattern(
    width: int, frame_height: int, noise_offset: int, rng: np.random.Generator
) -> NoisePattern:
    """
    Draw per-pixel offsets for one frame.

    R/G/B offsets are uniform in [-noise_offset, noise_offset]. The
    checkerboard alternates 0/255 with a small jitter of its own.
    """
    shape = (frame_height, width)

    red = rng.integers(-noise_offset, noise_offset + 1, size=shape, dtype=np.int32)
    green = rng.integers(-noise_offset, noise_offset + 1, size=shape, dtype=np.int32)
    blue = rng.integers(-noise_offset, noise_offset + 1, size=shape, dtype=np.int32)

    jitter_limit = int(noise_offset * CHECKERBOARD_NOISE_AMOUNT)
    jitter = rng.integers(-jitter_limit, jitter_limit + 1, size=shape, dtype=np.int32)
    ys, xs = np.indices(shape)
    checkerboard = np.clip(((xs + ys) % 2) * 255 + jitter, 0, 255).astype(np.int32)

    return NoisePattern(red, green, blue, checkerboard)


def noise_effectiveness(values: NDArray[np.uint8]) -> NDArray[np.float64]:
    """Full strength at 128, fading to 0% at 0 and to 33% at 255."""
    v = values.astype(np.float64)
    below = v / 128.0
    above = 1.0 - (v - 128.0) * 0.67 / 127.0
    return np.where(v < 128, below, np.where(v == 128, 1.0, above))


def apply_grain(
    buffer: PixelBuffer, pattern: NoisePattern, noise_offset: int, frame_height: int
) -> bool:
    """
    Add the noise pattern to every frame of the buffer in place.

    Returns:
        True when any pixel changed
    """
    frame_count = buffer.height // frame_height

    checker_value = (pattern.checkerboard - 127.5) * (noise_offset / 127.5)
    checker_part = checker_value * CHECKERBOARD_INTENSITY
    noise_weight = 1.0 - CHECKERBOARD_INTENSITY

    changed_any = False
    for frame in range(frame_count):
        rows = slice(frame * frame_height, (frame + 1) * frame_height)
        frame_pixels = buffer.pixels[rows]

        for channel, noise, weight in (
            (0, pattern.red, 1.0),
            (1, pattern.green, GREEN_EFFECTIVENESS),
            (2, pattern.blue, 1.0),
        ):
            original = frame_pixels[:, :, channel]
            final_noise = noise * noise_weight + checker_part
            effectiveness = noise_effectiveness(original) * weight

            offset = np.round(final_noise * effectiveness).astype(np.int32)
            candidate = original.astype(np.int32) + offset
            clipped = (candidate < 0) | (candidate > 255)
            result = np.where(clipped, original, candidate).astype(np.uint8)

            if not np.array_equal(result, original):
                changed_any = True
                frame_pixels[:, :, channel] = result

    return changed_any
