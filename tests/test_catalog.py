import logging
import math
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from nutricalc.catalog import (
    SelectedSubstance,
    add_substance,
    delete_custom_substance,
    make_substance,
    merge_catalogs,
    remove_substance,
    resolve_selection,
    update_weight,
)
from nutricalc.data_io import load_substances
from nutricalc.labels import base_element, display_group, normalize_label, validate_label


def test_base_catalog_loads() -> None:
    catalog = load_substances()
    assert len(catalog) == 24
    ca = catalog["calcium-nitrate-ag-grade"]
    assert ca.name == "Calcium Nitrate (ag grade)"
    assert ca.elements == {"Ca": 19.0, "N (NO3-)": 15.5}
    assert not ca.custom


def test_make_substance_drops_malformed_percentages(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="nutricalc.catalog"):
        sub = make_substance("x", "X", {"Ca": 10, "Mg": math.inf, "S": "lots", "K2O": "30"})

    assert sub.elements == {"Ca": 10.0, "K₂O": 30.0}
    assert "lots" in caplog.text


def test_make_substance_strict_labels() -> None:
    with pytest.raises(ValueError):
        make_substance("x", "X", {"Unobtainium": 1.0}, strict=True)
    assert make_substance("x", "X", {"Unobtainium": 1.0}).elements == {"Unobtainium": 1.0}
    with pytest.raises(ValueError):
        make_substance("", "X", {})


def test_custom_entries_shadow_base() -> None:
    base = [make_substance("a", "A", {"Ca": 1.0}), make_substance("b", "B", {"Mg": 1.0})]
    custom = [make_substance("a", "My A", {"Ca": 2.0}, custom=True)]
    merged = merge_catalogs(base, custom)

    assert merged["a"].name == "My A"
    assert merged["a"].custom
    assert merged["b"].name == "B"


def test_selection_editing() -> None:
    a = make_substance("a", "A", {"Ca": 1.0})
    b = make_substance("b", "B", {"Mg": 1.0})

    selection = add_substance([], a)
    selection = add_substance(selection, a)
    selection = add_substance(selection, b)
    assert [entry.id for entry in selection] == ["a", "b"]
    assert all(entry.weight == 0.0 for entry in selection)

    selection = update_weight(selection, "a", "2.5")
    assert selection[0].weight == 2.5
    assert update_weight(selection, "a", "abc") == selection
    assert update_weight(selection, "a", math.nan) == selection
    with pytest.raises(ValueError):
        update_weight(selection, "a", -1)

    selection = remove_substance(selection, "a")
    assert [entry.id for entry in selection] == ["b"]


def test_delete_custom_substance() -> None:
    mine = make_substance("mine", "Mine", {"K": 10.0}, custom=True)
    selection = [SelectedSubstance(mine, 1.0)]

    with pytest.raises(ValueError):
        delete_custom_substance([mine], "mine", selection)
    assert delete_custom_substance([mine], "mine") == []


def test_resolve_selection(caplog) -> None:
    catalog = load_substances()
    entries = [
        {"id": "potassium-chloride", "weight": 1.5},
        {"id": "potassium-chloride", "weight": 9.0},
        {"id": "does-not-exist", "weight": 1.0},
        {"id": "boric-acid", "weight": -3},
        {"id": "iron-edta", "weight": None},
    ]
    with caplog.at_level(logging.WARNING, logger="nutricalc.catalog"):
        selected = resolve_selection(entries, catalog)

    assert [(entry.id, entry.weight) for entry in selected] == [
        ("potassium-chloride", 1.5),
        ("boric-acid", 0.0),
        ("iron-edta", 0.0),
    ]
    assert "does-not-exist" in caplog.text


def test_labels() -> None:
    assert normalize_label("P2O5") == "P₂O₅"
    assert normalize_label("  N   (NO3)") == "N (NO3-)"
    assert base_element("N (NH4+)") == "N"
    assert display_group("N (NO3-)") == "primary"
    assert display_group("Ca") == "secondary"
    assert display_group("Zn") == "trace"
    assert validate_label("Mo", strict=True) == "Mo"
    with pytest.raises(ValueError):
        validate_label("   ")


def test_empty_element_label_is_skipped(tmp_path: Path, caplog) -> None:
    path = tmp_path / "substances.yml"
    path.write_text(
        "substances:\n"
        "  - id: odd\n"
        "    name: Odd Salt\n"
        "    elements: {\"\": 5, K: 40}\n"
        "  - id: fine\n"
        "    name: Fine Salt\n"
        "    elements: {Ca: 20}\n",
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING, logger="nutricalc.catalog"):
        catalog = load_substances(path)

    assert catalog["odd"].elements == {"K": 40.0}
    assert catalog["fine"].elements == {"Ca": 20.0}
    assert "odd" in caplog.text
    with pytest.raises(ValueError):
        make_substance("odd", "Odd", {"": 5}, strict=True)
