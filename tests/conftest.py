import json
from pathlib import Path
from typing import Any

import numpy as np
import pytest
from PIL import Image

from pack_tuner.tuning import PackInfo


def write_texture(path: Path, pixels: np.ndarray) -> Path:
    """Save an (h, w, 4) or (h, w) uint8 array with PIL, format from the extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    array = np.asarray(pixels, dtype=np.uint8)
    if array.ndim == 2:
        Image.fromarray(array, "L").save(path)
    elif path.suffix.lower() in (".jpg", ".jpeg"):
        Image.fromarray(array[:, :, :3], "RGB").save(path)
    else:
        Image.fromarray(array, "RGBA").save(path)
    return path


def write_texture_set(folder: Path, name: str, **channels: Any) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    descriptor = folder / f"{name}.texture_set.json"
    descriptor.write_text(
        json.dumps({"format_version": "1.16.100", "minecraft:texture_set": channels})
    )
    return descriptor


def rgba(red: Any, green: Any, blue: Any, alpha: Any = 255, shape: tuple[int, int] = (1, 1)) -> np.ndarray:
    """Build an RGBA array from per-channel scalars or arrays."""
    channels = [np.broadcast_to(np.asarray(c, dtype=np.uint8), shape) for c in (red, green, blue, alpha)]
    return np.stack(channels, axis=-1).copy()


@pytest.fixture
def pack(tmp_path: Path) -> PackInfo:
    root = tmp_path / "test_pack"
    root.mkdir()
    return PackInfo(name="Test Pack", path=root)
