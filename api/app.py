from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from nutricalc.catalog import merge_catalogs, resolve_selection
from nutricalc.core import calculate, recipe_targets
from nutricalc.data_io import load_substances, substances_from_records
from nutricalc.ec import DEFAULT_EC_STRATEGY, EC_STRATEGIES
from nutricalc.metrics import npk_summary
from nutricalc.solver import solve_weights
from nutricalc.targets import list_presets, preset
from nutricalc.units import to_liters


app = FastAPI(title="Nutricalc API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


SUBSTANCES = load_substances()


class SubstanceEntry(BaseModel):
    id: str
    weight: float = Field(default=0.0, ge=0)


class CustomSubstancePayload(BaseModel):
    id: str
    name: str
    formula: Optional[str] = None
    elements: Dict[str, float] = Field(default_factory=dict)


class CalculateRequest(BaseModel):
    solution_volume: float = Field(default=1.0, gt=0)
    volume_unit: str = "liters"
    target_profile: Optional[str] = None
    targets: Optional[Dict[str, float]] = None
    substances: List[SubstanceEntry] = Field(default_factory=list)
    custom_substances: List[CustomSubstancePayload] = Field(default_factory=list)
    ec_strategy: str = DEFAULT_EC_STRATEGY


class SolveRequest(BaseModel):
    solution_volume: float = Field(default=1.0, gt=0)
    volume_unit: str = "liters"
    target_profile: Optional[str] = None
    targets: Optional[Dict[str, float]] = None
    substances_allowed: List[str] = Field(default_factory=list)
    fixed_weights: Dict[str, float] = Field(default_factory=dict)
    custom_substances: List[CustomSubstancePayload] = Field(default_factory=list)
    relative_weighting: bool = True


class CalculationResponse(BaseModel):
    substances: List[Dict[str, Any]]
    elements: List[Dict[str, Any]]
    ec_value: str
    ec_strategy: str
    solution_volume: float
    volume_unit: str
    liters: float
    ec_details: Dict[str, Any]
    npk_metrics: Dict[str, Any]


def _catalog(custom: List[CustomSubstancePayload]) -> dict:
    records = [entry.model_dump() for entry in custom]
    try:
        custom_subs = substances_from_records(records, custom=True)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return merge_catalogs(SUBSTANCES.values(), custom_subs)


def _targets(target_profile: Optional[str], targets: Optional[Dict[str, float]]) -> Dict[str, float]:
    recipe = {"target_profile": target_profile, "targets": targets}
    try:
        return recipe_targets(recipe)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Target preset not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/substances")
def substances() -> List[dict]:
    return [sub.to_dict() for sub in SUBSTANCES.values()]


@app.get("/ec-strategies")
def ec_strategies() -> dict:
    return {"strategies": sorted(EC_STRATEGIES), "default": DEFAULT_EC_STRATEGY}


@app.get("/targets")
def target_presets() -> List[str]:
    return list_presets()


@app.get("/targets/{preset_name}")
def target_preset(preset_name: str) -> Dict[str, float]:
    try:
        return preset(preset_name)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Target preset not found") from exc


@app.post("/calculate", response_model=CalculationResponse)
def calculate_solution(payload: CalculateRequest) -> CalculationResponse:
    catalog = _catalog(payload.custom_substances)
    selected = resolve_selection([entry.model_dump() for entry in payload.substances], catalog)
    targets = _targets(payload.target_profile, payload.targets)

    try:
        result = calculate(
            selected,
            targets,
            payload.solution_volume,
            volume_unit=payload.volume_unit,
            strategy=payload.ec_strategy,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return CalculationResponse(**result.to_dict(), npk_metrics=npk_summary(result.elements))


@app.post("/solve")
def solve(payload: SolveRequest) -> dict:
    catalog = _catalog(payload.custom_substances)
    missing = [sid for sid in payload.substances_allowed if sid not in catalog]
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown substances: {', '.join(missing)}")
    targets = _targets(payload.target_profile, payload.targets)

    try:
        liters = to_liters(payload.solution_volume, payload.volume_unit)
        result = solve_weights(
            [catalog[sid] for sid in payload.substances_allowed],
            targets,
            liters,
            fixed=payload.fixed_weights,
            relative_weighting=payload.relative_weighting,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return result.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
