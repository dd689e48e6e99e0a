import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from nutricalc.units import (
    gallons_to_liters,
    k2o_to_k,
    k_to_k2o,
    liters_to_gallons,
    oxide_equivalent,
    p2o5_to_p,
    p_to_p2o5,
    si_to_sio2,
    sio2_to_si,
    to_liters,
)


class UnitConversionTests(unittest.TestCase):
    def test_oxide_round_trips(self) -> None:
        for value in (0.0, 1.0, 42.5, 1234.5678):
            self.assertAlmostEqual(p_to_p2o5(p2o5_to_p(value)), value, places=9)
            self.assertAlmostEqual(k_to_k2o(k2o_to_k(value)), value, places=9)
            self.assertAlmostEqual(si_to_sio2(sio2_to_si(value)), value, places=9)

    def test_oxide_factors(self) -> None:
        self.assertAlmostEqual(p_to_p2o5(1.0), 2.2914)
        self.assertAlmostEqual(k_to_k2o(1.0), 1.2046)
        self.assertAlmostEqual(si_to_sio2(1.0), 2.1392)

    def test_gallons(self) -> None:
        self.assertAlmostEqual(gallons_to_liters(1.0), 3.78541)
        self.assertAlmostEqual(liters_to_gallons(3.78541), 1.0)

    def test_to_liters(self) -> None:
        self.assertEqual(to_liters(5, "liters"), 5.0)
        self.assertEqual(to_liters(5, " L "), 5.0)
        self.assertAlmostEqual(to_liters(2, "gal"), 7.57082)
        with self.assertRaises(ValueError):
            to_liters(1, "cups")

    def test_oxide_equivalent(self) -> None:
        label, value = oxide_equivalent("K", 100.0)
        self.assertEqual(label, "K₂O")
        self.assertAlmostEqual(value, 120.46)
        self.assertIsNone(oxide_equivalent("Ca", 100.0))


if __name__ == "__main__":
    unittest.main()
