from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from .catalog import (
    InvalidInput,
    SelectedSubstance,
    Substance,
    check_liters,
    finite_or_zero,
    merge_catalogs,
    resolve_selection,
)
from .data_io import load_recipe, load_substances, substances_from_records
from .ec import get_ec_strategy
from .labels import AMMONIUM_N, GENERIC_N, NITRATE_N
from .metrics import npk_summary
from .targets import merge_targets, preset
from .units import oxide_equivalent, to_liters


_LOGGER = logging.getLogger(__name__)


class InvalidArgument(TypeError):
    """A required argument is missing or of the wrong shape."""


@dataclass(frozen=True)
class ElementResult:
    element: str
    target: float
    actual: float
    difference: float
    oxide: str | None = None
    oxide_actual: float | None = None

    def to_dict(self) -> dict:
        data = {
            "element": self.element,
            "target": self.target,
            "actual": self.actual,
            "difference": self.difference,
        }
        if self.oxide is not None:
            data["oxide"] = {"label": self.oxide, "actual": self.oxide_actual}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ElementResult":
        oxide = data.get("oxide") or {}
        return cls(
            element=str(data["element"]),
            target=float(data["target"]),
            actual=float(data["actual"]),
            difference=float(data["difference"]),
            oxide=oxide.get("label"),
            oxide_actual=oxide.get("actual"),
        )


@dataclass(frozen=True)
class SubstanceResult:
    name: str
    weight: float
    volume_per_liter: float

    def to_dict(self) -> dict:
        return {"name": self.name, "weight": self.weight, "volume_per_liter": self.volume_per_liter}


@dataclass(frozen=True)
class CalcResult:
    substances: List[SubstanceResult]
    elements: List[ElementResult]
    ec_value: str
    ec_strategy: str
    solution_volume: float
    volume_unit: str
    liters: float
    ec_details: Dict[str, object] = field(default_factory=dict)

    def element(self, label: str) -> ElementResult:
        for res in self.elements:
            if res.element == label:
                return res
        raise KeyError(label)

    def to_dict(self) -> dict:
        return {
            "substances": [s.to_dict() for s in self.substances],
            "elements": [e.to_dict() for e in self.elements],
            "ec_value": self.ec_value,
            "ec_strategy": self.ec_strategy,
            "solution_volume": self.solution_volume,
            "volume_unit": self.volume_unit,
            "liters": self.liters,
            "ec_details": self.ec_details,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "CalcResult":
        return cls(
            substances=[
                SubstanceResult(
                    name=str(s["name"]),
                    weight=float(s["weight"]),
                    volume_per_liter=float(s["volume_per_liter"]),
                )
                for s in data.get("substances") or []
            ],
            elements=[ElementResult.from_dict(e) for e in data.get("elements") or []],
            ec_value=str(data["ec_value"]),
            ec_strategy=str(data["ec_strategy"]),
            solution_volume=float(data["solution_volume"]),
            volume_unit=str(data["volume_unit"]),
            liters=float(data["liters"]),
            ec_details=dict(data.get("ec_details") or {}),
        )


def match_target(label: str, targets: Mapping[str, float]) -> str | None:
    if label in targets:
        return label
    if label == GENERIC_N:
        # bare "N" is credited to the nitrate form first
        for candidate in (NITRATE_N, AMMONIUM_N):
            if candidate in targets:
                return candidate
    return None


def compute_concentrations(
    selected: Sequence[SelectedSubstance],
    targets: Mapping[str, float],
    liters: float,
) -> List[ElementResult]:
    if selected is None or targets is None:
        raise InvalidArgument("selected substances and targets are required")
    liters = check_liters(liters)

    actual: Dict[str, float] = {label: 0.0 for label in targets}
    for entry in selected:
        weight = finite_or_zero(entry.weight)
        if weight <= 0:
            continue
        for label, pct in entry.elements.items():
            matched = match_target(label, targets)
            if matched is None:
                _LOGGER.debug("Contribution of '%s' from '%s' is not tracked", label, entry.name)
                continue
            actual[matched] += weight * (finite_or_zero(pct) / 100.0) * 1000.0 / liters

    results: List[ElementResult] = []
    for label, target in targets.items():
        value = actual.get(label, 0.0)
        target = float(target)
        results.append(ElementResult(element=label, target=target, actual=value, difference=value - target))
    return results


def attach_oxides(results: Sequence[ElementResult]) -> List[ElementResult]:
    out: List[ElementResult] = []
    for res in results:
        converted = oxide_equivalent(res.element, res.actual) if res.target else None
        if converted is None:
            out.append(res)
            continue
        oxide, value = converted
        out.append(
            ElementResult(
                element=res.element,
                target=res.target,
                actual=res.actual,
                difference=res.difference,
                oxide=oxide,
                oxide_actual=value,
            )
        )
    return out


def substance_results(selected: Sequence[SelectedSubstance], liters: float) -> List[SubstanceResult]:
    results: List[SubstanceResult] = []
    for entry in selected:
        weight = finite_or_zero(entry.weight)
        results.append(SubstanceResult(name=entry.name, weight=weight, volume_per_liter=weight / liters))
    return results


def calculate(
    selected: Sequence[SelectedSubstance],
    targets: Mapping[str, float],
    solution_volume: float,
    volume_unit: str = "liters",
    strategy: object = None,
) -> CalcResult:
    if selected is None or targets is None:
        raise InvalidArgument("selected substances and targets are required")
    try:
        liters = to_liters(check_liters(solution_volume), volume_unit)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc
    ec_strategy = get_ec_strategy(strategy)

    elements = attach_oxides(compute_concentrations(selected, targets, liters))
    ec = ec_strategy.estimate(selected, elements, liters)

    return CalcResult(
        substances=substance_results(selected, liters),
        elements=elements,
        ec_value=f"{ec:.3f}",
        ec_strategy=ec_strategy.name,
        solution_volume=float(solution_volume),
        volume_unit=volume_unit,
        liters=liters,
        ec_details=ec_strategy.details(selected, elements, liters),
    )


def recipe_catalog(recipe: dict, base: Mapping[str, Substance] | None = None) -> Dict[str, Substance]:
    catalog = base if base is not None else load_substances()
    custom = substances_from_records(recipe.get("custom_substances") or [], custom=True)
    return merge_catalogs(catalog.values(), custom)


def recipe_targets(recipe: dict) -> Dict[str, float]:
    profile_name = recipe.get("target_profile")
    base = preset(profile_name) if profile_name else {}
    targets = merge_targets(base, recipe.get("targets"))
    if not targets:
        targets = preset("default")
    return targets


def compute_recipe(recipe: dict, substances: Mapping[str, Substance] | None = None) -> CalcResult:
    catalog = recipe_catalog(recipe, substances)
    selected = resolve_selection(recipe.get("substances") or [], catalog)
    unit = str(recipe.get("volume_unit") or "liters")
    volume = recipe.get("solution_volume", recipe.get("liters"))
    try:
        check_liters(volume)
    except InvalidInput:
        _LOGGER.warning("Invalid solution volume %r in recipe; using 1 L", volume)
        volume, unit = 1.0, "liters"
    return calculate(
        selected,
        recipe_targets(recipe),
        volume,
        volume_unit=unit,
        strategy=recipe.get("ec_strategy"),
    )


def run_recipe(recipe_path: Path, strategy: str | None = None) -> dict:
    recipe = load_recipe(recipe_path)
    if strategy:
        recipe["ec_strategy"] = strategy
    result = compute_recipe(recipe)
    data = result.to_dict()
    data["npk_metrics"] = npk_summary(result.elements)
    return data
