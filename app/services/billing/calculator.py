"""
Podział rachunku licznika głównego między podliczniki.

Rachunek dostawcy liczony jest tylko z licznika głównego:
- koszt energii z tabeli progów
- opłaty stałe (opłata mocowa + opłata za licznik)
- VAT od energii i opłat stałych
- opłata za zwłokę (równa całemu VAT) i opłata bKash, jeśli włączone

Podział między podliczniki:
- pula stała (opłaty stałe, ich VAT, opłata bKash, opłata za zwłokę) - po równo
- pula energii (koszt energii + pozostały VAT) - według zużycia, stawką
  wyliczoną z sumy zużycia podliczników

Wyliczona stawka pochłania straty (licznik główny a suma podliczników),
więc udziały zawsze sumują się do rachunku dostawcy.
"""

from typing import Sequence

from app.services.billing.tariff import calculate_energy_cost, consumption
from app.services.billing.types import (
    BillCalculationResult,
    BillConfig,
    MeterReading,
    TariffConfig,
    UserCalculation,
)


def allocate_bill(
    config: BillConfig,
    main_meter: MeterReading,
    sub_meters: Sequence[MeterReading],
    tariff: TariffConfig
) -> BillCalculationResult:
    """
    Oblicza rachunek i jego podział między podliczniki.

    Nie rzuca wyjątków: brak danych (brak progów, podliczników, zerowe zużycie)
    daje zerowe kwoty zamiast błędów. Dane wejściowe nie są modyfikowane.

    Args:
        config: Flagi okresu (opłata za zwłokę, opłata bKash)
        main_meter: Odczyt licznika głównego
        sub_meters: Odczyty podliczników, jeden na najemcę
        tariff: Taryfa dla okresu

    Returns:
        BillCalculationResult; suma total_payable równa total_collection,
        gdy co najmniej jeden podlicznik ma zużycie
    """
    # 1. Rachunek dostawcy z licznika głównego
    main_units = consumption(main_meter)
    energy_cost_base = calculate_energy_cost(main_units, tariff.slabs)
    fixed_base = tariff.demand_charge + tariff.meter_rent
    taxable_base = energy_cost_base + fixed_base
    vat_total = taxable_base * tariff.vat_rate
    # Opłata za zwłokę to kopia kwoty VAT, nie osobna stawka
    late_fee = vat_total if config.include_late_fee else 0.0
    bkash_fee = tariff.bkash_charge if config.include_bkash_fee else 0.0

    total_collection = taxable_base + vat_total + late_fee + bkash_fee

    # 2. Podział VAT: część od opłat stałych / część od energii
    vat_fixed = fixed_base * tariff.vat_rate
    vat_distributed = vat_total - vat_fixed

    # 3. Zużycie podliczników
    total_submeter_units = sum(consumption(meter) for meter in sub_meters)

    # 4. Pula stała - po równo na licznik
    fixed_shared_pool = fixed_base + vat_fixed + bkash_fee + late_fee
    fixed_cost_per_user = fixed_shared_pool / len(sub_meters) if sub_meters else 0.0

    # 5. Pula energii - wyliczona stawka za kWh podlicznika
    energy_shared_pool = energy_cost_base + vat_distributed
    calculated_rate = energy_shared_pool / total_submeter_units if total_submeter_units > 0 else 0.0

    user_calculations = []
    for meter in sub_meters:
        units = consumption(meter)
        user_energy_cost = units * calculated_rate
        user_calculations.append(UserCalculation(
            id=meter.id,
            name=meter.name,
            units_used=units,
            energy_cost=user_energy_cost,
            fixed_cost=fixed_cost_per_user,
            total_payable=user_energy_cost + fixed_cost_per_user,
            previous=meter.previous,
            current=meter.current
        ))

    return BillCalculationResult(
        vat_fixed=vat_fixed,
        vat_distributed=vat_distributed,
        vat_total=vat_total,
        late_fee=late_fee,
        calculated_rate=calculated_rate,
        total_units=total_submeter_units,
        user_calculations=tuple(user_calculations),
        total_collection=total_collection
    )


def system_loss_units(main_meter: MeterReading, sub_meters: Sequence[MeterReading]) -> float:
    """
    Różnica między zużyciem licznika głównego a podliczników.

    Dodatnia - straty (licznik główny pokazał więcej), ujemna - nadwyżka.
    """
    return consumption(main_meter) - sum(consumption(meter) for meter in sub_meters)
