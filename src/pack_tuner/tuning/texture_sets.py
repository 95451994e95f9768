"""
Texture Set Resolution

Bedrock PBR packs describe each block/item with a `*.texture_set.json`
descriptor that names its color, MER, normal and heightmap layers. This module
walks a pack, reads those descriptors and resolves the layer names to files.

Resolution is best effort: unreadable descriptors and missing files are
skipped without raising.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

TEXTURE_EXTENSIONS = (".tga", ".png", ".jpg", ".jpeg")
TEXTURE_SET_PATTERN = "*.texture_set.json"


class TextureChannel(Enum):
    """Semantic texture layers a texture set can reference."""

    COLOR = "color"
    MER = "metalness_emissive_roughness"
    NORMAL = "normal"
    HEIGHTMAP = "heightmap"


def _channel_name(texture_set: dict[str, Any], channel: TextureChannel) -> str | None:
    """Return the base filename a descriptor assigns to a channel."""
    match channel:
        case TextureChannel.COLOR:
            name = texture_set.get("color")
        case TextureChannel.MER:
            name = texture_set.get("metalness_emissive_roughness") or texture_set.get(
                "metalness_emissive_roughness_subsurface"
            )
        case TextureChannel.NORMAL:
            name = texture_set.get("normal")
        case TextureChannel.HEIGHTMAP:
            name = texture_set.get("heightmap")

    # Channels may hold inline colour values instead of a filename
    if isinstance(name, str) and name:
        return name
    return None


def find_texture_file(folder: Path, texture_name: str) -> Path | None:
    """
    Find a texture by base name, trying extensions in priority order.

    Each extension is tried with exact case first, then with a
    case-insensitive scan of the folder.

    Args:
        folder: Directory the descriptor lives in
        texture_name: Base filename without extension

    Returns:
        Path to the first match, or None
    """
    for ext in TEXTURE_EXTENSIONS:
        target = folder / f"{texture_name}{ext}"
        if target.is_file():
            return target

        wanted = target.name.lower()
        try:
            for candidate in sorted(folder.iterdir()):
                if candidate.name.lower() == wanted and candidate.is_file():
                    return candidate
        except OSError:
            continue

    return None


def _iter_texture_sets(root: Path) -> list[tuple[Path, dict[str, Any]]]:
    """Collect (folder, texture_set) for every readable descriptor under root."""
    found = []
    for descriptor in sorted(root.rglob(TEXTURE_SET_PATTERN)):
        try:
            data = json.loads(descriptor.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError):
            continue

        texture_set = data.get("minecraft:texture_set") if isinstance(data, dict) else None
        if isinstance(texture_set, dict):
            found.append((descriptor.parent, texture_set))

    return found


def retrieve_files(root: str | Path | None, channel: TextureChannel) -> list[Path]:
    """
    List the files texture sets under `root` reference for one channel.

    Args:
        root: Pack folder to search recursively
        channel: Channel to resolve

    Returns:
        Unique file paths (compared case-insensitively), in discovery order
    """
    if not root or not Path(root).is_dir():
        return []

    files: list[Path] = []
    seen: set[str] = set()

    for folder, texture_set in _iter_texture_sets(Path(root)):
        name = _channel_name(texture_set, channel)
        if name is None:
            continue

        found = find_texture_file(folder, name)
        if found is None:
            logging.debug(f"{channel.value} texture '{name}' not found in {folder}")
            continue

        key = str(found).lower()
        if key not in seen:
            seen.add(key)
            files.append(found)

    return files


def retrieve_pairs(
    root: str | Path | None, primary: TextureChannel, secondary: TextureChannel
) -> list[tuple[Path, Path | None]]:
    """
    Pair two channels of the same texture set.

    Used to associate a color map with its heightmap or normal map. A pair is
    only produced when the primary resolves; the secondary may be None.

    Args:
        root: Pack folder to search recursively
        primary: Channel that must resolve
        secondary: Channel that is resolved when present

    Returns:
        List of (primary_path, secondary_path_or_None)
    """
    if not root or not Path(root).is_dir():
        return []

    pairs: list[tuple[Path, Path | None]] = []

    for folder, texture_set in _iter_texture_sets(Path(root)):
        primary_name = _channel_name(texture_set, primary)
        if primary_name is None:
            continue

        primary_path = find_texture_file(folder, primary_name)
        if primary_path is None:
            continue

        secondary_name = _channel_name(texture_set, secondary)
        secondary_path = (
            find_texture_file(folder, secondary_name) if secondary_name else None
        )
        pairs.append((primary_path, secondary_path))

    return pairs
