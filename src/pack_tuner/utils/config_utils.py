"""
Configuration and Environment Management Utilities

This module handles:
- Loading and validating tuning configuration
- Environment variable management
- Pack list resolution
- Logging setup
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..tuning.models import PackInfo, TuningParameters


@dataclass
class PackTunerConfig:
    """
    Configuration class for Pack Tuner.

    Holds the tuning parameter vector, the packs to tune and server settings.
    """

    # Tuning parameters
    fog_multiplier: float = 1.0
    emissivity_multiplier: float = 1.0
    add_ambient_light: bool = False
    normal_intensity: int = 100
    lazify_alpha: int = 0
    roughness_control: int = 0
    material_noise_offset: int = 0
    noise_seed: int | None = None

    # Packs
    packs: list[PackInfo] = field(default_factory=list)

    # API settings
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    debug_mode: bool = False

    def to_parameters(self) -> TuningParameters:
        from ..tuning.models import TuningParameters

        return TuningParameters(
            fog_multiplier=self.fog_multiplier,
            emissivity_multiplier=self.emissivity_multiplier,
            add_ambient_light=self.add_ambient_light,
            normal_intensity=self.normal_intensity,
            lazify_alpha=self.lazify_alpha,
            roughness_control=self.roughness_control,
            material_noise_offset=self.material_noise_offset,
        )


def load_config(config_path: str | Path | None = None) -> PackTunerConfig:
    """
    Load configuration from environment variables and optional config file.

    Priority order:
    1. Environment variables (highest priority)
    2. Config file (if provided)
    3. Default values (lowest priority)

    Args:
        config_path: Optional path to JSON config file

    Returns:
        PackTunerConfig object with all settings
    """
    config_dict = _get_default_config()

    if config_path:
        file_config = _load_config_file(config_path)
        config_dict.update(file_config)

    env_config = _load_env_config()
    config_dict.update(env_config)

    config_dict["packs"] = _parse_packs(config_dict.get("packs", []))

    known = PackTunerConfig.__dataclass_fields__
    unknown = sorted(set(config_dict) - set(known))
    if unknown:
        logging.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

    config = PackTunerConfig(**{k: v for k, v in config_dict.items() if k in known})
    _validate_config(config)

    return config


def setup_logging(debug: bool = False, log_file: str | Path | None = None) -> None:
    """
    Set up logging for the application.

    Args:
        debug: Enable debug-level logging
        log_file: Optional file to mirror log output to
    """
    level = logging.DEBUG if debug else logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Suppress some noisy loggers
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _get_default_config() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "fog_multiplier": 1.0,
        "emissivity_multiplier": 1.0,
        "add_ambient_light": False,
        "normal_intensity": 100,
        "lazify_alpha": 0,
        "roughness_control": 0,
        "material_noise_offset": 0,
        "noise_seed": None,
        "packs": [],
        "api_host": "127.0.0.1",
        "api_port": 8000,
        "debug_mode": False,
    }


def _load_config_file(config_path: str | Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    try:
        with open(config_path) as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            else:
                logging.error(
                    f"Config file {config_path} does not contain a JSON object"
                )
                return {}
    except FileNotFoundError:
        logging.warning(f"Config file not found: {config_path}")
        return {}
    except json.JSONDecodeError as e:
        logging.error(f"Invalid JSON in config file {config_path}: {e}")
        return {}


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_pack_paths(value: str) -> list[dict[str, Any]]:
    """PT_PACK_PATHS holds folders separated by os.pathsep."""
    return [
        {"name": Path(p).name, "path": p, "enabled": True}
        for p in value.split(os.pathsep)
        if p.strip()
    ]


def _load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config = {}

    env_mapping = {
        "PT_FOG_MULTIPLIER": ("fog_multiplier", float),
        "PT_EMISSIVITY_MULTIPLIER": ("emissivity_multiplier", float),
        "PT_ADD_AMBIENT_LIGHT": ("add_ambient_light", _parse_bool),
        "PT_NORMAL_INTENSITY": ("normal_intensity", int),
        "PT_LAZIFY_ALPHA": ("lazify_alpha", int),
        "PT_ROUGHNESS_CONTROL": ("roughness_control", int),
        "PT_MATERIAL_NOISE_OFFSET": ("material_noise_offset", int),
        "PT_NOISE_SEED": ("noise_seed", int),
        "PT_PACK_PATHS": ("packs", _parse_pack_paths),
        "PT_API_HOST": "api_host",
        "PT_API_PORT": ("api_port", int),
        "PT_DEBUG": ("debug_mode", _parse_bool),
    }

    for env_var, config_key in env_mapping.items():
        value = os.getenv(env_var)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                try:
                    config[key] = converter(value)
                except (ValueError, TypeError):
                    logging.warning(f"Invalid value for {env_var}: {value}")
            else:
                config[config_key] = value

    return config


def _parse_packs(entries: Any) -> list[PackInfo]:
    """Turn config file pack entries (dicts or plain paths) into PackInfo."""
    from ..tuning.models import PackInfo

    if not isinstance(entries, list):
        raise ValueError(f"Invalid packs entry: {entries!r}")

    packs = []
    for entry in entries:
        if isinstance(entry, PackInfo):
            packs.append(entry)
        elif isinstance(entry, str):
            packs.append(PackInfo(name=Path(entry).name, path=Path(entry)))
        elif isinstance(entry, dict) and entry.get("path"):
            path = Path(entry["path"])
            packs.append(
                PackInfo(
                    name=str(entry.get("name") or path.name),
                    path=path,
                    enabled=bool(entry.get("enabled", True)),
                )
            )
        else:
            raise ValueError(f"Invalid pack entry: {entry!r}")

    return packs


def _validate_config(config: PackTunerConfig) -> None:
    """Validate configuration values."""
    if config.fog_multiplier < 0:
        raise ValueError(f"Invalid fog multiplier: {config.fog_multiplier}")

    if config.emissivity_multiplier < 0:
        raise ValueError(f"Invalid emissivity multiplier: {config.emissivity_multiplier}")

    if config.normal_intensity < 0:
        raise ValueError(f"Invalid normal intensity: {config.normal_intensity}")

    if not 0 <= config.lazify_alpha <= 255:
        raise ValueError(f"Invalid lazify alpha: {config.lazify_alpha}")

    if not -100 <= config.roughness_control <= 100:
        raise ValueError(f"Invalid roughness control: {config.roughness_control}")

    if not 0 <= config.material_noise_offset <= 255:
        raise ValueError(f"Invalid material noise offset: {config.material_noise_offset}")

    # Validate API settings
    if not 1 <= config.api_port <= 65535:
        raise ValueError(f"Invalid API port: {config.api_port}")


def create_sample_config(config_path: str | Path = "pack_tuner.json") -> Path:
    """Write a sample configuration file for reference."""
    sample_config = _get_default_config()
    sample_config.update(
        {
            "fog_multiplier": 1.5,
            "roughness_control": 20,
            "packs": [{"name": "Vanilla RTX", "path": "./packs/vanilla_rtx", "enabled": True}],
        }
    )

    config_path = Path(config_path)
    with open(config_path, "w") as f:
        json.dump(sample_config, f, indent=2)

    logging.info(f"Sample configuration written to {config_path}")
    return config_path
