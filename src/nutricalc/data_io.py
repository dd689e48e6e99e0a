from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List

import yaml

from .catalog import Substance, make_substance


_LOGGER = logging.getLogger(__name__)


def repo_root() -> Path:
    # this file lives in .../src/nutricalc/data_io.py
    return Path(__file__).resolve().parents[2]


def _read_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data


def substances_from_records(records: Iterable[dict], *, custom: bool = False) -> List[Substance]:
    substances: List[Substance] = []
    for row in records or []:
        sid = str(row.get("id") or "").strip()
        if not sid:
            _LOGGER.warning("Skipping substance without id: %r", row.get("name"))
            continue
        substances.append(
            make_substance(
                sid,
                str(row.get("name") or sid),
                row.get("elements") or {},
                row.get("formula"),
                custom=custom or bool(row.get("custom", False)),
            )
        )
    return substances


def load_substances(path: Path | None = None) -> Dict[str, Substance]:
    if path is None:
        path = repo_root() / "data" / "substances.yml"
    data = _read_yaml(path)
    return {sub.id: sub for sub in substances_from_records(data.get("substances") or [])}


def load_target_profile_data(path: Path) -> dict:
    data = _read_yaml(path)
    targets = data.get("targets_ppm") or {}
    return {
        "name": data.get("name") or path.stem,
        # yaml keeps mapping order, which is the output order of a calculation
        "targets_ppm": {str(k): float(v) for k, v in targets.items()},
    }


def save_target_profile(path: Path, name: str, targets_ppm: Dict[str, float]) -> None:
    payload = {
        "name": name,
        "targets_ppm": {str(k): float(v) for k, v in targets_ppm.items()},
    }
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)


def load_recipe(path: Path) -> dict:
    return _read_yaml(path)


def save_recipe(path: Path, data: dict) -> None:
    payload = dict(data)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)
