from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping

from .labels import validate_label


_LOGGER = logging.getLogger(__name__)


def _to_finite(value: object) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def finite_or_zero(value: object) -> float:
    number = _to_finite(value)
    return 0.0 if number is None else number


class InvalidInput(ValueError):
    """A caller-supplied value is outside its domain (e.g. volume <= 0)."""


def check_liters(liters: object) -> float:
    try:
        value = float(liters)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Solution volume must be a number (got {liters!r})") from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"Solution volume must be > 0 (got {liters!r})")
    return value


@dataclass(frozen=True)
class Substance:
    id: str
    name: str
    # mass percent (0-100) per element label, e.g. {"Ca": 19.0}
    elements: Mapping[str, float] = field(default_factory=dict)
    formula: str | None = None
    custom: bool = False

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "elements": dict(self.elements)}
        if self.formula:
            data["formula"] = self.formula
        if self.custom:
            data["custom"] = True
        return data


@dataclass(frozen=True)
class SelectedSubstance:
    substance: Substance
    weight: float = 0.0

    @property
    def id(self) -> str:
        return self.substance.id

    @property
    def name(self) -> str:
        return self.substance.name

    @property
    def elements(self) -> Mapping[str, float]:
        return self.substance.elements


def make_substance(
    id: str,
    name: str,
    elements: Mapping[str, object],
    formula: str | None = None,
    *,
    custom: bool = False,
    strict: bool = False,
) -> Substance:
    """Build a substance, dropping percentages that are not finite numbers.

    With ``strict`` unknown element labels raise ``ValueError`` instead of
    being kept as custom labels.
    """
    sid = str(id or "").strip()
    if not sid:
        raise ValueError("Substance id is required")
    comp: Dict[str, float] = {}
    for raw_label, raw_pct in (elements or {}).items():
        try:
            label = validate_label(raw_label, strict=strict)
        except ValueError:
            if strict:
                raise
            _LOGGER.warning("Ignoring empty element label in '%s'", sid)
            continue
        pct = _to_finite(raw_pct)
        if pct is None:
            _LOGGER.warning("Ignoring malformed percentage %r for '%s' in '%s'", raw_pct, label, sid)
            continue
        comp[label] = pct
    return Substance(
        id=sid,
        name=str(name or sid).strip(),
        elements=comp,
        formula=(str(formula).strip() or None) if formula else None,
        custom=custom,
    )


def merge_catalogs(base: Iterable[Substance], custom: Iterable[Substance] = ()) -> Dict[str, Substance]:
    """Return a fresh id -> substance mapping with custom entries layered on top."""
    merged: Dict[str, Substance] = {}
    for sub in list(base) + list(custom):
        merged[sub.id] = sub
    return merged


def add_substance(selection: List[SelectedSubstance], substance: Substance) -> List[SelectedSubstance]:
    if any(entry.id == substance.id for entry in selection):
        return list(selection)
    return [*selection, SelectedSubstance(substance=substance, weight=0.0)]


def update_weight(selection: List[SelectedSubstance], substance_id: str, weight: object) -> List[SelectedSubstance]:
    try:
        value = float(weight)
    except (TypeError, ValueError):
        return list(selection)
    if not math.isfinite(value):
        return list(selection)
    if value < 0:
        raise ValueError(f"Weight must be >= 0 (got {value})")
    return [replace(entry, weight=value) if entry.id == substance_id else entry for entry in selection]


def remove_substance(selection: List[SelectedSubstance], substance_id: str) -> List[SelectedSubstance]:
    return [entry for entry in selection if entry.id != substance_id]


def delete_custom_substance(
    custom: List[Substance],
    substance_id: str,
    selection: Iterable[SelectedSubstance] = (),
) -> List[Substance]:
    if any(entry.id == substance_id for entry in selection):
        raise ValueError(f"Substance '{substance_id}' is still selected and cannot be deleted")
    return [sub for sub in custom if sub.id != substance_id]


def resolve_selection(
    entries: Iterable[Mapping[str, object]],
    catalog: Mapping[str, Substance],
) -> List[SelectedSubstance]:
    """Turn ``[{id, weight}]`` entries into selected substances.

    Unknown ids are skipped with a warning; duplicates keep the first entry.
    """
    selected: List[SelectedSubstance] = []
    seen: set[str] = set()
    for entry in entries:
        sid = str(entry.get("id") or "").strip()
        if sid not in catalog:
            _LOGGER.warning("Unknown substance '%s' skipped", sid)
            continue
        if sid in seen:
            continue
        seen.add(sid)
        weight = _to_finite(entry.get("weight"))
        selected.append(SelectedSubstance(substance=catalog[sid], weight=max(weight or 0.0, 0.0)))
    return selected
