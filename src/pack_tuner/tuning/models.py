"""Shared inputs of a tuning pass."""

from dataclasses import dataclass, fields
from pathlib import Path


@dataclass(frozen=True)
class PackInfo:
    """A resource pack selected for tuning."""

    name: str
    path: Path | None
    enabled: bool = True


@dataclass(frozen=True)
class TuningParameters:
    """
    The parameter vector of one tuning pass.

    Every field defaults to the value that leaves packs untouched; a
    transform only runs when its parameter differs from that default.
    """

    fog_multiplier: float = 1.0
    emissivity_multiplier: float = 1.0
    add_ambient_light: bool = False
    normal_intensity: int = 100
    lazify_alpha: int = 0
    roughness_control: int = 0
    material_noise_offset: int = 0

    def changed(self) -> dict[str, object]:
        """Return the fields that differ from their defaults."""
        defaults = TuningParameters()
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) != getattr(defaults, f.name)
        }
