"""
Szacowanie rachunku dla pojedynczej wartości zużycia.
"""

from typing import Any, Dict

from app.services.billing.calculator import allocate_bill
from app.services.billing.tariff import calculate_energy_cost, calculate_slab_breakdown
from app.services.billing.types import BillConfig, MeterReading, TariffConfig, to_dict


def estimate_bill(
    units: float,
    tariff: TariffConfig,
    include_late_fee: bool = False,
    include_bkash_fee: bool = False
) -> Dict[str, Any]:
    """
    Szacuje rachunek dostawcy dla zużycia `units`.

    Używa tych samych zasad co podział rachunku (licznik główny z tym zużyciem
    i bez podliczników), więc 'total' równa się total_collection podziału.

    Args:
        units: Zużycie (wartości ujemne liczą się jako 0)
        tariff: Taryfa
        include_late_fee: Dolicz opłatę za zwłokę
        include_bkash_fee: Dolicz opłatę bKash

    Returns:
        Słownik z pozycjami progów i wszystkimi składnikami rachunku:
        {
            'units': float,
            'slabs': [{'start', 'end', 'units', 'rate', 'cost', 'is_overflow'}],
            'energy_cost': float,
            'demand_charge': float,
            'meter_rent': float,
            'vat': float,
            'late_fee': float,
            'bkash_fee': float,
            'total': float
        }
    """
    units = max(0.0, units)
    config = BillConfig(
        month="",
        date_generated="",
        include_late_fee=include_late_fee,
        include_bkash_fee=include_bkash_fee
    )
    result = allocate_bill(config, MeterReading(id="estimate", current=units), [], tariff)
    breakdown = calculate_slab_breakdown(units, tariff.slabs)

    return {
        'units': units,
        'slabs': [to_dict(line) for line in breakdown],
        'energy_cost': calculate_energy_cost(units, tariff.slabs),
        'demand_charge': tariff.demand_charge,
        'meter_rent': tariff.meter_rent,
        'vat': result.vat_total,
        'late_fee': result.late_fee,
        'bkash_fee': tariff.bkash_charge if include_bkash_fee else 0.0,
        'total': result.total_collection
    }
