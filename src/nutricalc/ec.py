from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple

from .catalog import SelectedSubstance, check_liters, finite_or_zero


_LOGGER = logging.getLogger(__name__)


# mS/cm per ppm: ion molar conductivity / (atomic weight * 1000)
EMPIRICAL_EC_FACTORS: Dict[str, float] = {
    "N (NO3-)": 0.0051,
    "N (NH4+)": 0.0053,
    "P": 0.0011,
    "K": 0.0019,
    "Mg": 0.0044,
    "Ca": 0.0030,
    "S": 0.0050,
    "Fe": 0.0019,
    "Mn": 0.0019,
    "Zn": 0.0016,
    "B": 0.0030,
    "Cu": 0.0017,
    "Mo": 0.0008,
    "Si": 0.0005,
    "Na": 0.0022,
    "Cl": 0.0022,
}
DEFAULT_EC_FACTOR = 0.001

# Limiting molar conductivities at 25 °C (S·cm²/mol), HydroBuddy values
ION_CONDUCTIVITY: Dict[str, float] = {
    "NH4+": 73.5,
    "K+": 73.5,
    "Ca2+": 119.0,
    "Mg2+": 106.0,
    "Fe2+": 108.0,
    "Mn2+": 107.0,
    "Zn2+": 105.6,
    "Cu2+": 108.0,
    "Na+": 50.1,
    "H+": 349.8,
    "NO3-": 71.5,
    "H2PO4-": 33.0,
    "HPO4^2-": 57.0,
    "SO4^2-": 160.0,
    "Cl-": 76.3,
    "HCO3-": 44.5,
    "BO3-": 32.0,
    "MoO4^2-": 74.5,
    "OH-": 198.0,
}


@dataclass(frozen=True)
class IonShare:
    ion: str
    ratio: float
    molar_mass: float


def _shares(*items: Tuple[str, float, float]) -> Tuple[IonShare, ...]:
    return tuple(IonShare(ion=ion, ratio=ratio, molar_mass=mm) for ion, ratio, mm in items)


# Salts whose dissociation is known; keyed by substance name
SUBSTANCE_IONS: Dict[str, Tuple[IonShare, ...]] = {
    "Ammonium Chloride": _shares(("NH4+", 1, 18.04), ("Cl-", 1, 35.45)),
    "Ammonium Dibasic Phosphate": _shares(("NH4+", 2, 18.04), ("HPO4^2-", 1, 96.0)),
    "Ammonium Monobasic Phosphate": _shares(("NH4+", 1, 18.04), ("H2PO4-", 1, 97.0)),
    "Ammonium Sulfate": _shares(("NH4+", 2, 18.04), ("SO4^2-", 1, 96.06)),
    "Boric Acid": _shares(("H+", 1, 1.01), ("BO3-", 1, 58.8)),
    "Calcium Carbonate": _shares(("Ca2+", 1, 40.08), ("HCO3-", 1, 61.0)),
    "Calcium Monobasic Phosphate": _shares(("Ca2+", 1, 40.08), ("H2PO4-", 2, 97.0)),
    "Calcium Nitrate (ag grade)": _shares(("Ca2+", 1, 40.08), ("NO3-", 2, 62.0)),
    "Calcium Sulfate (Dihydrate)": _shares(("Ca2+", 1, 40.08), ("SO4^2-", 1, 96.06)),
    "Copper Sulfate (pentahydrate)": _shares(("Cu2+", 1, 63.55), ("SO4^2-", 1, 96.06)),
    "Iron II Sulfate (Heptahydrate)": _shares(("Fe2+", 1, 55.85), ("SO4^2-", 1, 96.06)),
    "Magnesium Sulfate (Heptahydrate)": _shares(("Mg2+", 1, 24.31), ("SO4^2-", 1, 96.06)),
    "Potassium Chloride": _shares(("K+", 1, 39.1), ("Cl-", 1, 35.45)),
    "Potassium Dibasic Phosphate": _shares(("K+", 2, 39.1), ("HPO4^2-", 1, 96.0)),
    "Copper EDTA": _shares(("Cu2+", 0.13, 63.55)),
    "Iron DTPA": _shares(("Fe2+", 0.11, 55.85)),
    "Iron EDDHA": _shares(("Fe2+", 0.06, 55.85)),
    "Iron EDTA": _shares(("Fe2+", 0.13, 55.85)),
    "Mn EDTA": _shares(("Mn2+", 0.13, 54.94)),
}

# element label -> [(ion, stoichiometric factor)]
ELEMENT_IONS: Dict[str, List[Tuple[str, float]]] = {
    "N (NO3-)": [("NO3-", 1)],
    "N (NH4+)": [("NH4+", 1)],
    "P": [("H2PO4-", 1)],
    "K": [("K+", 1)],
    "Mg": [("Mg2+", 1)],
    "Ca": [("Ca2+", 1)],
    "S": [("SO4^2-", 1)],
    "Fe": [("Fe2+", 1)],
    "Mn": [("Mn2+", 1)],
    "Zn": [("Zn2+", 1)],
    "Cu": [("Cu2+", 1)],
    "B": [("BO3-", 1)],
    "Mo": [("MoO4^2-", 1)],
    "Si": [],
    "Na": [("Na+", 1)],
    "Cl": [("Cl-", 1)],
}

# g/mol of the element carried by each label
ELEMENT_WEIGHTS: Dict[str, float] = {
    "N (NO3-)": 14.0,
    "N (NH4+)": 14.0,
    "P": 30.97,
    "K": 39.10,
    "Mg": 24.31,
    "Ca": 40.08,
    "S": 32.06,
    "Fe": 55.85,
    "Mn": 54.94,
    "Zn": 65.38,
    "B": 10.81,
    "Cu": 63.55,
    "Si": 28.09,
    "Mo": 95.94,
    "Na": 22.99,
    "Cl": 35.45,
}

ION_CHARGES: Dict[str, int] = {
    "NH4+": 1,
    "K+": 1,
    "Ca2+": 2,
    "Mg2+": 2,
    "Fe2+": 2,
    "Mn2+": 2,
    "Zn2+": 2,
    "Cu2+": 2,
    "Na+": 1,
    "H+": 1,
    "NO3-": -1,
    "H2PO4-": -1,
    "HPO4^2-": -2,
    "SO4^2-": -2,
    "Cl-": -1,
    "HCO3-": -1,
    "BO3-": -1,
    "MoO4^2-": -2,
    "OH-": -1,
}


def _element_weight_pairs(results: Iterable[object]) -> Iterable[Tuple[str, float]]:
    for res in results:
        if isinstance(res, Mapping):
            yield str(res["element"]), float(res.get("actual") or 0.0)
        else:
            yield str(res.element), float(res.actual)


def empirical_contributions(element_results: Iterable[object]) -> Dict[str, float]:
    contributions: Dict[str, float] = {}
    for element, actual in _element_weight_pairs(element_results):
        if not actual > 0:
            continue
        factor = EMPIRICAL_EC_FACTORS.get(element)
        if factor is None:
            _LOGGER.warning("No EC factor for '%s'; using default %s", element, DEFAULT_EC_FACTOR)
            factor = DEFAULT_EC_FACTOR
        contributions[element] = contributions.get(element, 0.0) + actual * factor
    return contributions


def estimate_ec_empirical(element_results: Iterable[object]) -> float:
    return sum(empirical_contributions(element_results).values())


def ion_concentrations(selected: Sequence[SelectedSubstance], liters: float) -> Dict[str, float]:
    """mmol/L per ion for the dissolved substances."""
    liters = check_liters(liters)
    ions: Dict[str, float] = {}

    def add(ion: str, mmol_l: float) -> None:
        ions[ion] = ions.get(ion, 0.0) + mmol_l

    for entry in selected:
        weight = finite_or_zero(entry.weight)
        if not weight > 0:
            continue
        shares = SUBSTANCE_IONS.get(entry.name)
        if shares:
            for share in shares:
                add(share.ion, (weight * share.ratio / share.molar_mass) / liters * 1000.0)
            continue
        for element, pct in entry.elements.items():
            if element not in ELEMENT_IONS or element not in ELEMENT_WEIGHTS:
                _LOGGER.debug("No ion mapping for '%s' in '%s'", element, entry.name)
                continue
            pct = finite_or_zero(pct)
            if not pct:
                continue
            g_element = weight * pct / 100.0
            mmol_l = (g_element / ELEMENT_WEIGHTS[element]) / liters * 1000.0
            for ion, factor in ELEMENT_IONS[element]:
                add(ion, mmol_l * factor)
    return ions


def ionic_contributions(ions_mmol_per_l: Mapping[str, float]) -> Dict[str, float]:
    contributions: Dict[str, float] = {}
    for ion, mmol_l in ions_mmol_per_l.items():
        conductivity = ION_CONDUCTIVITY.get(ion)
        if conductivity is None:
            _LOGGER.debug("No molar conductivity for ion '%s'", ion)
            continue
        contributions[ion] = conductivity * (mmol_l / 1000.0)
    return contributions


def estimate_ec_ionic(selected: Sequence[SelectedSubstance], liters: float) -> float:
    return sum(ionic_contributions(ion_concentrations(selected, liters)).values())


def ion_balance(ions_mmol_per_l: Mapping[str, float]) -> Dict[str, float]:
    cations = 0.0
    anions = 0.0
    for ion, mmol_l in ions_mmol_per_l.items():
        meq = mmol_l * ION_CHARGES.get(ion, 0)
        if meq > 0:
            cations += meq
        else:
            anions -= meq
    denom = cations + anions
    err_signed = 0.0 if denom == 0 else (cations - anions) / denom * 100.0
    return {
        "cations_meq_per_l": cations,
        "anions_meq_per_l": anions,
        "error_percent_signed": err_signed,
        "error_percent_abs": abs(err_signed),
    }


class EcStrategy(Protocol):
    name: str

    def estimate(self, selected: Sequence[SelectedSubstance], element_results: Sequence[object], liters: float) -> float:
        ...

    def details(self, selected: Sequence[SelectedSubstance], element_results: Sequence[object], liters: float) -> dict:
        ...


@dataclass(frozen=True)
class EmpiricalWeighting:
    name: str = "empirical"

    def estimate(self, selected, element_results, liters) -> float:
        return estimate_ec_empirical(element_results)

    def details(self, selected, element_results, liters) -> dict:
        return {"contrib_mS_per_cm": empirical_contributions(element_results)}


@dataclass(frozen=True)
class IonicConductivity:
    name: str = "ionic"

    def estimate(self, selected, element_results, liters) -> float:
        return estimate_ec_ionic(selected, liters)

    def details(self, selected, element_results, liters) -> dict:
        ions = ion_concentrations(selected, liters)
        return {
            "ions_mmol_per_l": ions,
            "contrib_mS_per_cm": ionic_contributions(ions),
            "ion_balance": ion_balance(ions),
        }


EC_STRATEGIES: Dict[str, EcStrategy] = {
    "empirical": EmpiricalWeighting(),
    "ionic": IonicConductivity(),
}
DEFAULT_EC_STRATEGY = "ionic"


def get_ec_strategy(name: str | EcStrategy | None = None) -> EcStrategy:
    if name is None:
        return EC_STRATEGIES[DEFAULT_EC_STRATEGY]
    if not isinstance(name, str):
        return name
    key = name.strip().lower()
    if key not in EC_STRATEGIES:
        raise ValueError(f"Unknown EC strategy '{name}'. Allowed: {', '.join(sorted(EC_STRATEGIES))}.")
    return EC_STRATEGIES[key]
