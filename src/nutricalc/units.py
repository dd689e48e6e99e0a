from __future__ import annotations

from typing import Dict, Tuple


P_TO_P2O5 = 2.2914
K_TO_K2O = 1.2046
SI_TO_SIO2 = 2.1392
LITERS_PER_GALLON = 3.78541

# element label -> (oxide label, factor element -> oxide)
OXIDE_FORMS: Dict[str, Tuple[str, float]] = {
    "P": ("P₂O₅", P_TO_P2O5),
    "K": ("K₂O", K_TO_K2O),
    "Si": ("SiO₂", SI_TO_SIO2),
}

_VOLUME_UNITS: Dict[str, float] = {
    "l": 1.0,
    "liter": 1.0,
    "liters": 1.0,
    "litre": 1.0,
    "litres": 1.0,
    "gal": LITERS_PER_GALLON,
    "gallon": LITERS_PER_GALLON,
    "gallons": LITERS_PER_GALLON,
}


def p_to_p2o5(p: float) -> float:
    return p * P_TO_P2O5


def p2o5_to_p(p2o5: float) -> float:
    return p2o5 / P_TO_P2O5


def k_to_k2o(k: float) -> float:
    return k * K_TO_K2O


def k2o_to_k(k2o: float) -> float:
    return k2o / K_TO_K2O


def si_to_sio2(si: float) -> float:
    return si * SI_TO_SIO2


def sio2_to_si(sio2: float) -> float:
    return sio2 / SI_TO_SIO2


def gallons_to_liters(gallons: float) -> float:
    return gallons * LITERS_PER_GALLON


def liters_to_gallons(liters: float) -> float:
    return liters / LITERS_PER_GALLON


def to_liters(value: float, unit: str = "liters") -> float:
    key = str(unit or "liters").strip().lower()
    if key not in _VOLUME_UNITS:
        raise ValueError(f"Unsupported volume unit: {unit}")
    return float(value) * _VOLUME_UNITS[key]


def oxide_equivalent(element: str, mg_l: float) -> Tuple[str, float] | None:
    # returns (oxide label, mg/L oxide) for P, K and Si
    if element not in OXIDE_FORMS:
        return None
    oxide, factor = OXIDE_FORMS[element]
    return oxide, mg_l * factor
