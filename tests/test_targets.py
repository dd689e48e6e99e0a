import math
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from nutricalc.data_io import load_target_profile_data, save_target_profile
from nutricalc.targets import cleared, list_presets, make_profile, merge_targets, preset, set_target


TRACKED = [
    "N (NO3-)", "N (NH4+)", "P", "K", "Mg", "Ca", "S", "Fe",
    "Mn", "Zn", "B", "Cu", "Si", "Mo", "Na", "Cl",
]


def test_presets_available() -> None:
    assert {"default", "vegetative", "bloom", "reset"} <= set(list_presets())


def test_preset_keeps_file_order() -> None:
    for name in ("default", "vegetative", "bloom", "reset"):
        assert list(preset(name)) == TRACKED


def test_reset_preset_is_all_zero() -> None:
    assert set(preset("reset").values()) == {0.0}


def test_preset_returns_fresh_copy() -> None:
    profile = preset("default")
    profile["Ca"] = -1.0
    assert preset("default")["Ca"] >= 0.0


def test_unknown_preset() -> None:
    with pytest.raises(KeyError):
        preset("winter")
    with pytest.raises(KeyError):
        preset("../targets/default")


def test_set_target() -> None:
    profile = {"Ca": 100.0, "Mg": 40.0}
    updated = set_target(profile, "Mg", "55")

    assert updated == {"Ca": 100.0, "Mg": 55.0}
    assert profile["Mg"] == 40.0
    for bad in (-1, math.nan, "abc"):
        with pytest.raises(ValueError):
            set_target(profile, "Mg", bad)


def test_cleared_and_merge() -> None:
    profile = {"Ca": 100.0, "Mg": 40.0}
    assert cleared(profile) == {"Ca": 0.0, "Mg": 0.0}
    merged = merge_targets(profile, {"Mg": 10, "Zn": 0.3})
    assert list(merged) == ["Ca", "Mg", "Zn"]
    assert merged["Mg"] == 10.0


def test_make_profile_rejects_negative() -> None:
    with pytest.raises(ValueError):
        make_profile({"Ca": -5})


def test_target_profile_file_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "mine.yml"
    save_target_profile(path, "mine", {"K₂O": 120.0, "Ca": 80})
    data = load_target_profile_data(path)

    assert data["name"] == "mine"
    assert list(data["targets_ppm"].items()) == [("K₂O", 120.0), ("Ca", 80.0)]
