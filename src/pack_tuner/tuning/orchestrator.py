"""
Tuning Orchestrator

Runs the enabled transforms over every selected pack. A transform only runs
when its parameter differs from the default; the whole batch is one
synchronous unit of work.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .emissivity import tune_emissivity
from .fog import tune_fog
from .lazify import lazify_pack
from .material_grain import add_material_grain
from .models import PackInfo, TuningParameters
from .normals import tune_normal_intensity
from .roughness import tune_roughness


@dataclass
class TuningPlan:
    """
    Per-transform parameters of one pass; None means the transform is skipped.
    """

    fog_multiplier: float | None = None
    emissivity: tuple[float, bool] | None = None
    lazify_alpha: int | None = None
    normal_intensity: int | None = None
    roughness_control: int | None = None
    material_noise_offset: int | None = None

    @classmethod
    def from_parameters(cls, params: TuningParameters) -> "TuningPlan":
        changed = params.changed()

        emissivity = None
        if "emissivity_multiplier" in changed or "add_ambient_light" in changed:
            emissivity = (params.emissivity_multiplier, params.add_ambient_light)

        return cls(
            fog_multiplier=changed.get("fog_multiplier"),  # type: ignore[arg-type]
            emissivity=emissivity,
            lazify_alpha=changed.get("lazify_alpha"),  # type: ignore[arg-type]
            normal_intensity=changed.get("normal_intensity"),  # type: ignore[arg-type]
            roughness_control=changed.get("roughness_control"),  # type: ignore[arg-type]
            material_noise_offset=changed.get("material_noise_offset"),  # type: ignore[arg-type]
        )

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.fog_multiplier,
                self.emissivity,
                self.lazify_alpha,
                self.normal_intensity,
                self.roughness_control,
                self.material_noise_offset,
            )
        )


@dataclass
class TuningReport:
    """Files written by each transform during a pass."""

    packs: list[str] = field(default_factory=list)
    written: dict[str, list[Path]] = field(default_factory=dict)

    def record(self, transform: str, files: list[Path]) -> None:
        self.written.setdefault(transform, []).extend(files)

    @property
    def total_files(self) -> int:
        return sum(len(files) for files in self.written.values())


def normalize_pack_path(path: str | Path | None) -> str:
    if not path:
        return ""
    return os.path.normcase(os.path.abspath(path)).rstrip("\\/").lower()


def select_packs(packs: list[PackInfo]) -> list[PackInfo]:
    """
    Keep enabled packs with a path, dropping repeats of the same folder.
    """
    selected: list[PackInfo] = []
    seen: set[str] = set()

    for pack in packs:
        if not pack.enabled or not pack.path:
            continue

        key = normalize_pack_path(pack.path)
        if key in seen:
            logging.warning(f"{pack.name} was selected twice, but will only be processed once!")
            continue

        seen.add(key)
        selected.append(pack)

    return selected


def tune_packs(
    packs: list[PackInfo], params: TuningParameters, seed: int | None = None
) -> TuningReport:
    """
    Apply every changed parameter to every selected pack.

    Args:
        packs: Candidate packs; disabled ones are ignored
        params: Parameter vector
        seed: Seed for material grain noise

    Returns:
        TuningReport listing rewritten files per transform
    """
    selected = select_packs(packs)
    plan = TuningPlan.from_parameters(params)
    report = TuningReport(packs=[p.name for p in selected])

    if plan.is_empty():
        logging.info("All options are at their defaults; nothing to tune.")
        return report

    logging.info(
        f"Tuning selected {'package' if len(selected) == 1 else 'packages'}..."
    )

    if plan.fog_multiplier is not None:
        for pack in selected:
            air = tune_fog(pack, plan.fog_multiplier)
            water = tune_fog(pack, plan.fog_multiplier, water_only=True)
            # One entry per file even when both passes rewrote it
            report.record("fog", list(dict.fromkeys(air + water)))

    if plan.emissivity is not None:
        multiplier, add_ambient_light = plan.emissivity
        for pack in selected:
            report.record("emissivity", tune_emissivity(pack, multiplier, add_ambient_light))

    if plan.lazify_alpha is not None:
        for pack in selected:
            report.record("lazify", lazify_pack(pack, plan.lazify_alpha))

    if plan.normal_intensity is not None:
        for pack in selected:
            report.record("normal_intensity", tune_normal_intensity(pack, plan.normal_intensity))

    if plan.roughness_control is not None:
        for pack in selected:
            report.record("roughness", tune_roughness(pack, plan.roughness_control))

    if plan.material_noise_offset is not None:
        for pack in selected:
            report.record(
                "material_grain", add_material_grain(pack, plan.material_noise_offset, seed)
            )

    logging.info(f"Tuning finished, {report.total_files} file(s) written.")
    return report
