"""
Volumetric Fog Tuning

Rewrites `fogs/*.json` documents of a pack:
- Air and weather `max_density` are scaled, keeping both within [0, 1]
- Air scattering follows the density change, dampened
- Water scattering and absorption follow in a separate, lighter pass

RGB coefficient triples are never clamped per channel; a triple that would
exceed 1.0 is divided by its own maximum so its hue is kept.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from .models import PackInfo

MIN_VALUE_THRESHOLD = 0.00000001
DECIMAL_PRECISION = 6
NEAR_ZERO_DENSITY = 0.0001

# Replace height-based density falloff with uniform density
FOG_UNIFORM_HEIGHT = False

# A JSON string literal, or a number in scientific notation outside of one.
# Strings are consumed whole so nothing inside them is rewritten.
_STRING_OR_SCIENTIFIC = re.compile(
    r'"(?:[^"\\]|\\.)*"|(?P<number>-?\d+(?:\.\d+)?[eE][+-]?\d+)'
)


def tune_fog(pack: PackInfo, fog_multiplier: float, water_only: bool = False) -> list[Path]:
    """
    Apply a fog multiplier to every fog document of a pack.

    Args:
        pack: Pack to process
        fog_multiplier: Density multiplier, 1.0 leaves documents untouched
        water_only: Run the water coefficient pass instead of the air pass

    Returns:
        Fog files that were rewritten
    """
    if fog_multiplier == 1.0 or pack.path is None or not Path(pack.path).is_dir():
        return []

    fog_dirs = find_fog_directories(Path(pack.path))
    if not fog_dirs:
        if not water_only:
            logging.info(f"{pack.name}: does not contain fog files.")
        return []

    written = []
    for fog_file in (f for d in fog_dirs for f in sorted(d.glob("*.json"))):
        try:
            if _tune_fog_file(fog_file, fog_multiplier, water_only):
                written.append(fog_file)
        except (OSError, ValueError) as e:
            logging.debug(f"{pack.name}: error processing {fog_file.name}: {e}")

    return written


def find_fog_directories(root: Path) -> list[Path]:
    """All directories named `fogs` (any case) beneath root."""
    return sorted(
        d for d in root.rglob("*") if d.is_dir() and d.name.lower() == "fogs"
    )


def _tune_fog_file(fog_file: Path, fog_multiplier: float, water_only: bool) -> bool:
    document = json.loads(fog_file.read_text(encoding="utf-8-sig"))
    if not isinstance(document, dict):
        return False

    volumetric = _select(document, "minecraft:fog_settings", "volumetric")
    if not isinstance(volumetric, dict):
        return False

    if water_only:
        modified = process_water_coefficients(volumetric, fog_multiplier)
    else:
        modified = process_air_density_and_scattering(volumetric, fog_multiplier)

    if modified:
        fog_file.write_text(dump_fog_document(document), encoding="utf-8")

    return modified


def process_air_density_and_scattering(volumetric: dict[str, Any], fog_multiplier: float) -> bool:
    """
    Scale air/weather density and air scattering in place.

    Returns:
        True when the document changed
    """
    density = volumetric.get("density")
    if not isinstance(density, dict):
        return False

    air = density.get("air") if isinstance(density.get("air"), dict) else None
    weather = density.get("weather") if isinstance(density.get("weather"), dict) else None

    modified = False
    read_densities: list[float] = []
    final_densities: dict[str, float] = {"air": 0.0, "weather": 0.0}
    scaled: list[tuple[str, dict[str, Any], float]] = []

    for name, section in (("air", air), ("weather", weather)):
        if section is None:
            continue

        current = numeric_value(section.get("max_density"))
        if current is None:
            continue

        read_densities.append(current)
        if abs(current) < NEAR_ZERO_DENSITY:
            new_density = near_zero_density(current, fog_multiplier)
            final_densities[name] = new_density
            if abs(new_density - current) >= MIN_VALUE_THRESHOLD:
                section["max_density"] = clamp_and_round(new_density)
                modified = True
        else:
            multiplied = current * fog_multiplier
            scaled.append((name, section, multiplied))
            final_densities[name] = multiplied

    # Proportional scaling keeps the air/weather ratio when either exceeds 1.0
    if scaled:
        highest = max(multiplied for _, _, multiplied in scaled)
        scale_factor = 1.0 / highest if highest > 1.0 else 1.0

        for name, section, multiplied in scaled:
            final_value = multiplied * scale_factor
            section["max_density"] = clamp_and_round(final_value)
            final_densities[name] = final_value
            modified = True

    positive = [min(d, 1.0) for d in final_densities.values() if d > 0]
    if positive:
        avg_density = sum(positive) / len(positive)
    elif read_densities:
        avg_density = sum(read_densities) / len(read_densities)
    else:
        avg_density = 0.0
    proximity_to_max = min(avg_density, 1.0)

    if proximity_to_max > 0.0:
        overage = fog_multiplier - 1.0
        scattering_multiplier = 1.0 + overage * 0.25 * proximity_to_max

        scattering = _select(volumetric, "media_coefficients", "air", "scattering")
        if isinstance(scattering, list) and len(scattering) >= 3:
            modified |= scale_rgb_array(scattering, scattering_multiplier)

    modified |= make_density_uniform(air)
    modified |= make_density_uniform(weather)

    return modified


def process_water_coefficients(volumetric: dict[str, Any], fog_multiplier: float) -> bool:
    """
    Scale water scattering and absorption in place.

    The effect is strongest when the air is clear and never drops below a
    quarter of its full strength.
    """
    densities = []
    for section in ("air", "weather"):
        value = numeric_value(_select(volumetric, "density", section, "max_density"))
        if value is not None and value > 0:
            densities.append(min(value, 1.0))

    avg_density = sum(densities) / len(densities) if densities else 0.5
    proximity_to_min = 1.0 - avg_density

    overage = fog_multiplier - 1.0
    water_multiplier = 1.0 + overage * 0.1 * max(proximity_to_min, 0.25)

    water = _select(volumetric, "media_coefficients", "water")
    if not isinstance(water, dict):
        return False

    modified = False
    for key in ("scattering", "absorption"):
        values = water.get(key)
        if isinstance(values, list) and len(values) >= 3:
            modified |= scale_rgb_array(values, water_multiplier)

    return modified


def scale_rgb_array(rgb: list[Any], multiplier: float) -> bool:
    """
    Multiply the first three entries of a coefficient array in place.

    If the largest result exceeds 1.0 the whole triple is divided by it.
    An entry that is not numeric leaves the array untouched.
    """
    values = []
    for entry in rgb[:3]:
        value = numeric_value(entry)
        if value is None:
            return False
        values.append(value * multiplier)

    highest = max(values)
    if highest > 1.0:
        values = [v / highest for v in values]

    for i, value in enumerate(values):
        rgb[i] = clamp_and_round(value)

    return True


def make_density_uniform(section: dict[str, Any] | None) -> bool:
    if section is None or not FOG_UNIFORM_HEIGHT:
        return False

    has_height_fields = "max_density_height" in section or "zero_density_height" in section
    if has_height_fields and section.get("uniform") is not True:
        section.pop("max_density_height", None)
        section.pop("zero_density_height", None)
        section["uniform"] = True
        return True

    return False


def near_zero_density(current: float, fog_multiplier: float) -> float:
    """
    New density for a value too small to scale meaningfully.

    Multipliers up to 1.0 become the density itself, larger ones a tenth of it.
    """
    if abs(current) < NEAR_ZERO_DENSITY:
        if fog_multiplier <= 1.0:
            return _clamp(fog_multiplier, 0.0, 1.0)
        return _clamp(fog_multiplier / 10.0, 0.0, 1.0)

    return _clamp(current * fog_multiplier, 0.0, 1.0)


def clamp_and_round(value: float) -> float:
    rounded = round(_clamp(value, 0.0, 1.0), DECIMAL_PRECISION)
    if abs(rounded) < MIN_VALUE_THRESHOLD:
        return 0.0
    return rounded


def numeric_value(token: Any) -> float | None:
    """Read a non-negative JSON number, or a string holding a number."""
    if isinstance(token, bool):
        return None
    if isinstance(token, (int, float)):
        return float(token) if token >= 0 else None
    if isinstance(token, str):
        try:
            return float(token)
        except ValueError:
            return None
    return None


def dump_fog_document(document: dict[str, Any]) -> str:
    """Serialize with 2-space indentation and no scientific notation."""
    return remove_scientific_notation(json.dumps(document, indent=2, ensure_ascii=False))


def remove_scientific_notation(json_text: str) -> str:
    """Rewrite numbers like 1e-05 as fixed-point, leaving strings alone."""

    def _fixed_point(match: re.Match[str]) -> str:
        number = match.group("number")
        if number is None:
            return match.group(0)

        value = float(number)
        if abs(value) < MIN_VALUE_THRESHOLD:
            return "0.0"

        rounded = round(value, DECIMAL_PRECISION)
        if abs(rounded) < MIN_VALUE_THRESHOLD:
            return "0.0"

        return f"{rounded:.{DECIMAL_PRECISION}f}".rstrip("0").rstrip(".")

    return _STRING_OR_SCIENTIFIC.sub(_fixed_point, json_text)


def _select(node: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))
