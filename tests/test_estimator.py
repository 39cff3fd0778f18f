"""
Testy szacowania rachunku.
"""

import pytest

from app.services.billing.estimator import estimate_bill
from app.services.billing.types import Slab, TariffConfig


TARIFF = TariffConfig(
    slabs=(Slab(limit=50, rate=4.0), Slab(limit=100, rate=5.0), Slab(limit=99999, rate=6.0)),
    vat_rate=0.05,
    demand_charge=100.0,
    meter_rent=50.0,
    bkash_charge=10.0
)


class TestEstimateBill:
    """Testy estimate_bill."""

    def test_components(self):
        estimate = estimate_bill(120, TARIFF, include_bkash_fee=True)

        assert estimate['units'] == 120
        assert estimate['energy_cost'] == pytest.approx(570.0)
        assert estimate['demand_charge'] == 100.0
        assert estimate['meter_rent'] == 50.0
        assert estimate['vat'] == pytest.approx(36.0)
        assert estimate['late_fee'] == 0.0
        assert estimate['bkash_fee'] == 10.0
        assert estimate['total'] == pytest.approx(766.0)

    def test_slab_lines(self):
        estimate = estimate_bill(120, TARIFF)

        assert [line['units'] for line in estimate['slabs']] == [50, 50, 20]
        assert [line['cost'] for line in estimate['slabs']] == [200.0, 250.0, 120.0]

    def test_late_fee(self):
        estimate = estimate_bill(120, TARIFF, include_late_fee=True)

        assert estimate['late_fee'] == estimate['vat']
        assert estimate['total'] == pytest.approx(720.0 + 2 * 36.0)

    def test_total_is_sum_of_components(self):
        estimate = estimate_bill(437.5, TARIFF, include_late_fee=True, include_bkash_fee=True)

        components = (
            estimate['energy_cost'] + estimate['demand_charge'] + estimate['meter_rent']
            + estimate['vat'] + estimate['late_fee'] + estimate['bkash_fee']
        )
        assert estimate['total'] == pytest.approx(components)

    def test_negative_units(self):
        estimate = estimate_bill(-10, TARIFF)

        assert estimate['units'] == 0.0
        assert estimate['slabs'] == []
        assert estimate['energy_cost'] == 0.0
        assert estimate['total'] == pytest.approx(157.5)
