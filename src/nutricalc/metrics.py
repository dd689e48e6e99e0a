from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Iterable, Mapping

from .labels import base_element
from .units import k_to_k2o, p_to_p2o5

if TYPE_CHECKING:
    from .core import ElementResult


def round0(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_difference(value: float) -> str:
    rounded = round2(value) or 0.0
    sign = "+" if rounded > 0 else ""
    return f"{sign}{rounded:.2f}"


def _actuals(results: Iterable[ElementResult | Mapping[str, object]]) -> dict[str, float]:
    actuals: dict[str, float] = {}
    for res in results:
        if isinstance(res, Mapping):
            label, actual = str(res["element"]), float(res.get("actual") or 0.0)
        else:
            label, actual = res.element, float(res.actual)
        actuals[label] = actuals.get(label, 0.0) + actual
    return actuals


def npk_summary(results: Iterable[ElementResult | Mapping[str, object]]) -> dict[str, str | dict[str, float]]:
    actuals = _actuals(results)

    # every nitrogen form counts towards N total
    n_total = sum(value for label, value in actuals.items() if base_element(label) == "N")
    p2o5 = actuals.get("P₂O₅", 0.0) + p_to_p2o5(actuals.get("P", 0.0))
    k2o = actuals.get("K₂O", 0.0) + k_to_k2o(actuals.get("K", 0.0))

    total_npk = n_total + p2o5 + k2o
    if total_npk <= 0.0:
        npk_pct = "0-0-0"
    else:
        n_pct = round0(n_total / total_npk * 100.0)
        p_pct = round0(p2o5 / total_npk * 100.0)
        k_pct = round0(k2o / total_npk * 100.0)
        npk_pct = f"{n_pct}-{p_pct}-{k_pct}"

    if p2o5 <= 0.0:
        npk_p_norm = "0-3-0"
    else:
        npk_p_norm = f"{round0(n_total / p2o5 * 3.0)}-3-{round0(k2o / p2o5 * 3.0)}"

    return {
        "npk_pct": npk_pct,
        "npk_p_norm": npk_p_norm,
        "npk_values": {
            "n_total": n_total,
            "p2o5": p2o5,
            "k2o": k2o,
            "total_npk": total_npk,
        },
    }
