"""
Image Processing Utilities for Pack Tuning

This module contains functions for:
- Edge-padding transparent pixels before analysing a color map
- Luminance extraction and contrast stretching
- Seamless normal map synthesis from a height field
- Blend modes used when compositing normal detail

All functions work on numpy arrays in (height, width[, channels]) layout.
"""

import cv2
import numpy as np
from numpy.typing import NDArray


def apply_edge_padding(rgba: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """
    Fill fully transparent pixels with the colour of their nearest opaque neighbour.

    Each pass fills every transparent pixel that touches a pixel which was
    opaque at the start of the pass, checking left, right, up, then down.
    Filled pixels become opaque and seed the next pass. Passes stop when
    nothing changes, with width * height passes as a hard cap.

    Args:
        rgba: (height, width, 4) uint8 array

    Returns:
        New padded array; the input is not modified
    """
    result = rgba.copy()
    height, width = result.shape[:2]
    opaque = result[:, :, 3] > 0
    ys, xs = np.indices(opaque.shape)

    for _ in range(width * height):
        filled = np.zeros_like(opaque)
        source_y = np.zeros(opaque.shape, dtype=np.intp)
        source_x = np.zeros(opaque.shape, dtype=np.intp)

        # Later assignments only touch pixels still unfilled, so earlier
        # directions take priority
        for dy, dx in ((0, -1), (0, 1), (-1, 0), (1, 0)):
            neighbour = np.zeros_like(opaque)
            if dx == -1:
                neighbour[:, 1:] = opaque[:, :-1]
            elif dx == 1:
                neighbour[:, :-1] = opaque[:, 1:]
            elif dy == -1:
                neighbour[1:, :] = opaque[:-1, :]
            else:
                neighbour[:-1, :] = opaque[1:, :]

            take = neighbour & ~opaque & ~filled
            source_y[take] = ys[take] + dy
            source_x[take] = xs[take] + dx
            filled |= take

        if not filled.any():
            break

        result[filled, :3] = result[source_y[filled], source_x[filled], :3]
        result[filled, 3] = 255
        opaque = opaque | filled

    return result


def luminance(rgba: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Rec. 601 luma, truncated to 8 bits."""
    rgb = rgba[:, :, :3].astype(np.float64)
    grey = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return np.clip(grey, 0, 255).astype(np.uint8)


def stretch_contrast(grey: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """
    Stretch a greyscale map to the full 0-255 range using its own min/max.

    A flat map has no range to stretch and becomes a constant 128.
    """
    low = int(grey.min())
    high = int(grey.max())
    value_range = high - low

    if value_range == 0:
        return np.full_like(grey, 128)

    normalized = (grey.astype(np.float64) - low) / value_range
    return (normalized * 255).astype(np.uint8)


def generate_tiled_normals(
    height_map: NDArray[np.uint8],
) -> tuple[NDArray[np.uint8], NDArray[np.uint8]]:
    """
    Derive normal map R/G channels from a height map that repeats.

    The map is tiled 3x3 so the Sobel kernel sees the wrapped neighbours at
    every edge, then the centre tile is cropped back out.

    Args:
        height_map: (height, width) uint8 height field

    Returns:
        (red, green) uint8 arrays, DirectX-style tangent space
    """
    height, width = height_map.shape
    tiled = np.tile(height_map.astype(np.float64), (3, 3))

    grad_x = cv2.Sobel(tiled, cv2.CV_64F, 1, 0, ksize=3)
    grad_y = cv2.Sobel(tiled, cv2.CV_64F, 0, 1, ksize=3)

    grad_x = grad_x[height : 2 * height, width : 2 * width]
    grad_y = grad_y[height : 2 * height, width : 2 * width]

    normal_x = grad_x / (8.0 * 255.0)
    normal_y = -grad_y / (8.0 * 255.0)

    red = np.clip((normal_x * 0.5 + 0.5) * 255, 0, 255).astype(np.uint8)
    green = np.clip((normal_y * 0.5 + 0.5) * 255, 0, 255).astype(np.uint8)

    return red, green


def overlay_blend(base: NDArray[np.float64], blend: NDArray[np.float64]) -> NDArray[np.float64]:
    """Photoshop-style overlay of `blend` onto `base`, both in 0-255."""
    multiply = 2.0 * base * blend / 255.0
    screen = 255.0 - 2.0 * (255.0 - base) * (255.0 - blend) / 255.0
    return np.where(base < 128, multiply, screen)


def average_deviation(red: NDArray[np.generic], green: NDArray[np.generic]) -> float:
    """Mean of (|R - 128| + |G - 128|) / 2, a rough normal map strength."""
    dev_r = np.abs(red.astype(np.float64) - 128)
    dev_g = np.abs(green.astype(np.float64) - 128)
    return float(np.mean((dev_r + dev_g) / 2.0))
