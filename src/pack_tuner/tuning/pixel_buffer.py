"""
Pixel Buffer for PBR Texture Files

This module handles:
- Decoding TGA/PNG/JPEG textures into a single RGBA8 layout
- Writing textures back as uncompressed 32-bit TGA

Every tuner loads a fresh buffer per file, mutates the array and writes it
back to the path it came from.
"""

import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import Image

# TGA header: id length, colour map type, image type 2 (uncompressed true-colour),
# colour map spec, origin, size, 32 bits per pixel, 8 alpha bits, bottom-left origin
_TGA_HEADER = "<BBBHHBHHHHBB"


@dataclass
class PixelBuffer:
    """
    A decoded texture held as a (height, width, 4) uint8 array.

    Channel order is R, G, B, A. Width and height never change once loaded.
    """

    pixels: NDArray[np.uint8]
    path: Path | None = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def red(self) -> NDArray[np.uint8]:
        return self.pixels[:, :, 0]

    @property
    def green(self) -> NDArray[np.uint8]:
        return self.pixels[:, :, 1]

    @property
    def blue(self) -> NDArray[np.uint8]:
        return self.pixels[:, :, 2]

    @property
    def alpha(self) -> NDArray[np.uint8]:
        return self.pixels[:, :, 3]

    @classmethod
    def load(cls, path: str | Path) -> "PixelBuffer":
        """
        Decode an image file into RGBA8.

        Greyscale images are replicated to RGB with opaque alpha. 16-bit
        greyscale images keep their high byte.

        Args:
            path: Image file to read

        Returns:
            PixelBuffer owning the decoded pixels
        """
        path = Path(path)
        with Image.open(path) as image:
            image.load()
            if image.mode in ("I", "I;16", "I;16B", "I;16L"):
                wide = np.array(image, dtype=np.uint32) >> 8
                gray = np.clip(wide, 0, 255).astype(np.uint8)
                rgba = np.dstack([gray, gray, gray, np.full_like(gray, 255)])
            else:
                rgba = np.array(image.convert("RGBA"), dtype=np.uint8)

        return cls(pixels=np.ascontiguousarray(rgba), path=path)

    def encode_tga(self) -> bytes:
        """
        Encode the buffer as an uncompressed 32-bit TGA.

        Rows are stored bottom-up in BGRA order, so the output is byte-for-byte
        deterministic for a given pixel array.
        """
        header = struct.pack(
            _TGA_HEADER,
            0,
            0,
            2,
            0,
            0,
            0,
            0,
            0,
            self.width,
            self.height,
            32,
            8,
        )
        body = self.pixels[::-1, :, [2, 1, 0, 3]]
        return header + np.ascontiguousarray(body).tobytes()

    def save(self, path: str | Path | None = None) -> Path:
        """
        Write the buffer as TGA, in place by default.

        The file keeps its original name even when it was a PNG or JPEG.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("PixelBuffer has no path to save to")

        target.write_bytes(self.encode_tga())
        return target
