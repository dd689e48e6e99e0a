from __future__ import annotations

from typing import Dict, List


NITRATE_N = "N (NO3-)"
AMMONIUM_N = "N (NH4+)"
GENERIC_N = "N"

KNOWN_LABELS: List[str] = [
    # nitrogen forms are tracked separately, never summed
    NITRATE_N,
    AMMONIUM_N,
    GENERIC_N,
    # macro / oxide forms
    "P", "P₂O₅",
    "K", "K₂O",
    "Mg", "Ca", "S",
    # trace elements
    "Fe", "Mn", "Zn", "B", "Cu", "Mo",
    "Si", "SiO₂",
    "Na", "Cl",
]

_ASCII_ALIASES: Dict[str, str] = {
    "P2O5": "P₂O₅",
    "K2O": "K₂O",
    "SiO2": "SiO₂",
    "N (NO3)": NITRATE_N,
    "N (NH4)": AMMONIUM_N,
}

_DISPLAY_GROUPS: Dict[str, str] = {
    "N": "primary",
    "P": "primary",
    "P₂O₅": "primary",
    "K": "primary",
    "K₂O": "primary",
    "Mg": "secondary",
    "Ca": "secondary",
    "S": "secondary",
}


def normalize_label(label: object) -> str:
    text = " ".join(str(label).split())
    return _ASCII_ALIASES.get(text, text)


def is_known_label(label: str) -> bool:
    return normalize_label(label) in KNOWN_LABELS


def base_element(label: str) -> str:
    """Token before the first space, e.g. ``"N (NO3-)" -> "N"``."""
    text = normalize_label(label)
    return text.split(" ", 1)[0] if text else text


def display_group(label: str) -> str:
    """Colour group used by presentation layers: primary, secondary or trace."""
    label = normalize_label(label)
    return _DISPLAY_GROUPS.get(label) or _DISPLAY_GROUPS.get(base_element(label)) or "trace"


def validate_label(label: object, *, strict: bool = False) -> str:
    text = normalize_label(label)
    if not text:
        raise ValueError("Element label must not be empty")
    if strict and text not in KNOWN_LABELS:
        raise ValueError(f"Unknown element label: '{text}'")
    return text
