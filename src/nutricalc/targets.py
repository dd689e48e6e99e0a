from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Mapping

from .data_io import load_target_profile_data, repo_root
from .labels import validate_label


PRESETS_DIR = repo_root() / "data" / "targets"


def list_presets(presets_dir: Path | None = None) -> List[str]:
    directory = presets_dir or PRESETS_DIR
    if not directory.exists():
        return []
    return sorted(path.stem for path in directory.glob("*.yml"))


def _check_target(element: str, value: object) -> float:
    try:
        target = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid target for {element}: {value!r}") from exc
    if not math.isfinite(target) or target < 0:
        raise ValueError(f"Target for {element} must be a finite number >= 0 (got {value!r})")
    return target


def make_profile(targets: Mapping[str, object]) -> Dict[str, float]:
    """Validated copy of ``targets``; insertion order is kept."""
    profile: Dict[str, float] = {}
    for raw_label, value in (targets or {}).items():
        label = validate_label(raw_label)
        profile[label] = _check_target(label, value)
    return profile


@lru_cache(maxsize=None)
def _load_preset(name: str) -> tuple:
    path = PRESETS_DIR / f"{name}.yml"
    if name not in list_presets() or not path.exists():
        raise KeyError(f"Unknown target preset: '{name}'")
    data = load_target_profile_data(path)
    return tuple(make_profile(data["targets_ppm"]).items())


def preset(name: str = "default") -> Dict[str, float]:
    # fresh dict per call so callers may edit it
    return dict(_load_preset(str(name).strip().lower()))


def set_target(profile: Mapping[str, float], element: str, value: object) -> Dict[str, float]:
    label = validate_label(element)
    updated = dict(profile)
    updated[label] = _check_target(label, value)
    return updated


def cleared(profile: Mapping[str, float]) -> Dict[str, float]:
    return {label: 0.0 for label in profile}


def merge_targets(base: Mapping[str, float], overrides: Mapping[str, object] | None) -> Dict[str, float]:
    merged = dict(base)
    for label, value in make_profile(overrides or {}).items():
        merged[label] = value
    return merged
