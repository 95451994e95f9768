import os
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from pack_tuner.tuning import PackInfo, TuningParameters, tune_packs
from pack_tuner.utils.config_utils import load_config, setup_logging

CONFIG = load_config(os.getenv("PT_CONFIG"))

app = FastAPI(title="Pack Tuner API", version="0.1.0")


class PackModel(BaseModel):
    name: str
    path: str
    enabled: bool = True


class ParametersModel(BaseModel):
    fog_multiplier: float = Field(1.0, ge=0)
    emissivity_multiplier: float = Field(1.0, ge=0)
    add_ambient_light: bool = False
    normal_intensity: int = Field(100, ge=0)
    lazify_alpha: int = Field(0, ge=0, le=255)
    roughness_control: int = Field(0, ge=-100, le=100)
    material_noise_offset: int = Field(0, ge=0, le=255)


class TuneRequest(BaseModel):
    packs: list[PackModel] = []
    parameters: ParametersModel | None = None
    seed: int | None = None


def _parameters(req: TuneRequest) -> TuningParameters:
    if req.parameters is None:
        return CONFIG.to_parameters()
    return TuningParameters(**req.parameters.model_dump())


@app.get("/health")  # type: ignore[misc]
def health() -> dict[str, Any]:
    return {
        "ok": True,
        "ts": time.time(),
        "packs": [str(p.path) for p in CONFIG.packs],
    }


@app.post("/tune")  # type: ignore[misc]
def tune(req: TuneRequest) -> dict[str, Any]:
    if req.packs:
        packs = [PackInfo(name=p.name, path=Path(p.path), enabled=p.enabled) for p in req.packs]
    else:
        packs = list(CONFIG.packs)

    if not packs:
        raise HTTPException(status_code=400, detail="No packs to tune")

    missing = [p.name for p in packs if p.enabled and not Path(str(p.path)).is_dir()]
    if missing:
        raise HTTPException(status_code=404, detail=f"Pack folder not found: {', '.join(missing)}")

    seed = req.seed if req.seed is not None else CONFIG.noise_seed
    report = tune_packs(packs, _parameters(req), seed=seed)

    return {
        "ok": True,
        "packs": report.packs,
        "written": {
            transform: [str(f) for f in files] for transform, files in report.written.items()
        },
        "total_files": report.total_files,
    }


if __name__ == "__main__":
    import uvicorn

    setup_logging(CONFIG.debug_mode)
    uvicorn.run(app, host=CONFIG.api_host, port=CONFIG.api_port)
