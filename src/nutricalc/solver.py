from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from .catalog import SelectedSubstance, Substance, finite_or_zero
from .core import compute_concentrations, recipe_catalog, recipe_targets
from .data_io import load_recipe
from .units import to_liters


@dataclass
class SolveResult:
    liters: float
    substances: List[Dict[str, object]]
    objective_elements: List[str]
    targets: Dict[str, float]
    achieved: Dict[str, float]
    errors: Dict[str, float]
    errors_percent: Dict[str, float]

    def to_dict(self) -> dict:
        return {
            "liters": self.liters,
            "substances": self.substances,
            "objective_elements": self.objective_elements,
            "targets_ppm": self.targets,
            "achieved_ppm": self.achieved,
            "errors_ppm": self.errors,
            "errors_percent": self.errors_percent,
        }


def _nnls(
    contrib: np.ndarray,
    target: np.ndarray,
    *,
    grams_tol: float = 1e-10,
    max_rounds: int = 500,
) -> np.ndarray:
    """Lawson-Hanson active set: grams >= 0 minimising ||contrib @ grams - target||."""
    n_subs = contrib.shape[1]
    grams = np.zeros(n_subs)
    in_use = np.zeros(n_subs, dtype=bool)

    for _ in range(max_rounds):
        gradient = contrib.T @ (target - contrib @ grams)
        gradient[in_use] = -np.inf
        if not np.any(gradient > grams_tol):
            break
        in_use[int(np.argmax(gradient))] = True

        while in_use.any():
            trial = np.zeros(n_subs)
            trial[in_use], *_ = np.linalg.lstsq(contrib[:, in_use], target, rcond=None)
            if np.all(trial[in_use] > grams_tol):
                grams = trial
                break
            # step back towards the last feasible point until a substance drops to 0 g
            blocked = in_use & (trial <= grams_tol)
            step = np.min(grams[blocked] / (grams[blocked] - trial[blocked]))
            grams = grams + step * (trial - grams)
            in_use &= grams > grams_tol
    return grams


def _objective_keys(targets: Mapping[str, float]) -> List[str]:
    return [key for key, val in targets.items() if val > 0]


def _build_matrix(substances: Sequence[Substance], targets: Mapping[str, float], keys: List[str], liters: float) -> np.ndarray:
    # ppm per gram of each substance, using the same label matching as the calculator
    matrix = np.zeros((len(keys), len(substances)))
    for col, sub in enumerate(substances):
        one_gram = [SelectedSubstance(substance=sub, weight=1.0)]
        for res in compute_concentrations(one_gram, targets, liters):
            if res.element in keys:
                matrix[keys.index(res.element), col] = res.actual
    return matrix


def _build_row_scales(keys: List[str], targets: Mapping[str, float], *, eps_ppm: float = 1.0) -> np.ndarray:
    return np.array([max(abs(float(targets.get(key, 0.0))), eps_ppm) for key in keys])


def _solve_weights(
    A: np.ndarray,
    b: np.ndarray,
    fixed: np.ndarray,
    variable_mask: np.ndarray,
    *,
    scales: np.ndarray | None = None,
) -> np.ndarray:
    if A.size == 0:
        return np.array([])
    if fixed.size:
        b = b - A @ fixed
    b = np.maximum(b, 0.0)
    A_var = A[:, variable_mask]
    if A_var.size == 0:
        return np.zeros(int(variable_mask.sum()))
    if scales is None:
        return _nnls(A_var, b)
    w = 1.0 / scales
    return _nnls(A_var * w[:, None], b * w)


def _max_abs_percent_error(keys: List[str], targets: Mapping[str, float], achieved: Mapping[str, float]) -> float:
    max_error = 0.0
    for key in keys:
        target = float(targets.get(key, 0.0))
        if target == 0:
            continue
        max_error = max(max_error, abs((float(achieved.get(key, 0.0)) - target) / target * 100.0))
    return max_error


def solve_weights(
    substances: Sequence[Substance],
    targets: Mapping[str, float],
    liters: float,
    *,
    fixed: Mapping[str, float] | None = None,
    relative_weighting: bool = True,
) -> SolveResult:
    """Non-negative grams per substance that best reach ``targets`` in ``liters``.

    ``fixed`` pins grams for substance ids; the remaining weights are solved
    by NNLS. With ``relative_weighting`` each element row is scaled by its
    target so small trace targets are not drowned by macro nutrients; the
    unweighted solution is kept instead when it is strictly better.
    """
    if not substances:
        raise ValueError("At least one substance is required")
    keys = _objective_keys(targets)
    if not keys:
        raise ValueError("No solvable targets defined (all targets are 0)")

    # a pinned weight of 0 leaves the substance free for the solver
    fixed = {str(k): finite_or_zero(v) for k, v in (fixed or {}).items() if finite_or_zero(v) > 0}
    fixed_weights = np.array([fixed.get(sub.id, 0.0) for sub in substances], dtype=float)
    variable_mask = np.array([sub.id not in fixed for sub in substances], dtype=bool)

    A = _build_matrix(substances, targets, keys, liters)
    b = np.array([float(targets[key]) for key in keys], dtype=float)

    def full_weights(solved: np.ndarray) -> np.ndarray:
        combined = fixed_weights.copy()
        combined[variable_mask] += solved
        return combined

    def achieved_for(weights: np.ndarray) -> Dict[str, float]:
        selected = [SelectedSubstance(substance=sub, weight=float(w)) for sub, w in zip(substances, weights)]
        return {res.element: res.actual for res in compute_concentrations(selected, targets, liters)}

    x_full = full_weights(_solve_weights(A, b, fixed_weights, variable_mask))
    achieved = achieved_for(x_full)
    if relative_weighting:
        scales = _build_row_scales(keys, targets)
        x_weighted = full_weights(_solve_weights(A, b, fixed_weights, variable_mask, scales=scales))
        achieved_weighted = achieved_for(x_weighted)
        if _max_abs_percent_error(keys, targets, achieved_weighted) <= _max_abs_percent_error(keys, targets, achieved):
            x_full, achieved = x_weighted, achieved_weighted

    errors: Dict[str, float] = {}
    errors_percent: Dict[str, float] = {}
    for key in keys:
        target = float(targets[key])
        value = achieved.get(key, 0.0)
        errors[key] = value - target
        errors_percent[key] = (value - target) / target * 100.0

    return SolveResult(
        liters=liters,
        substances=[
            {"id": sub.id, "name": sub.name, "weight": float(w)}
            for sub, w in zip(substances, x_full)
            if w > 0
        ],
        objective_elements=keys,
        targets=dict(targets),
        achieved=achieved,
        errors=errors,
        errors_percent=errors_percent,
    )


def solve_recipe_data(recipe: dict, substances: Mapping[str, Substance] | None = None) -> SolveResult:
    catalog = recipe_catalog(recipe, substances)
    allowed_ids = [str(sid) for sid in recipe.get("substances_allowed") or []]
    if not allowed_ids:
        raise ValueError("substances_allowed must list at least one substance")
    allowed = []
    for sid in allowed_ids:
        if sid not in catalog:
            raise KeyError(f"Unknown substance in substances_allowed: '{sid}'")
        allowed.append(catalog[sid])

    liters = to_liters(float(recipe.get("solution_volume") or 1.0), str(recipe.get("volume_unit") or "liters"))
    solver_config = recipe.get("solver_config") or {}
    return solve_weights(
        allowed,
        recipe_targets(recipe),
        liters,
        fixed=recipe.get("fixed_weights"),
        relative_weighting=bool(solver_config.get("relative_weighting", True)),
    )


def solve_recipe(recipe_path: Path) -> SolveResult:
    return solve_recipe_data(load_recipe(recipe_path))
