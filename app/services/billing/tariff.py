"""
Koszt energii według progów (taryfa progowa).

Struktura progów:
- próg i obejmuje zużycie od limitu poprzedniego progu (0 dla pierwszego)
  do własnego limitu, rozliczane według jego stawki
- zużycie powyżej ostatniego limitu rozliczane jest stawką ostatniego progu

Progi muszą być posortowane rosnąco według limitu - nic tu ich nie sortuje.
Bez zaokrągleń - kwoty są zaokrąglane tylko do wyświetlenia.
"""

from typing import List, Sequence

from app.services.billing.types import MeterReading, Slab, SlabCharge


def consumption(meter: MeterReading) -> float:
    """
    Zużycie licznika w okresie.

    Ujemna różnica (bieżący odczyt niższy od poprzedniego) liczy się jako 0.
    """
    return max(0.0, meter.current - meter.previous)


def calculate_energy_cost(units: float, slabs: Sequence[Slab]) -> float:
    """
    Oblicza koszt energii dla `units` według tabeli progów.

    Args:
        units: Zużycie (nieujemne)
        slabs: Progi rosnąco według limitu, mogą być puste

    Returns:
        Koszt energii; 0 gdy nie ma progów
    """
    remaining_units = units
    energy_cost = 0.0
    previous_limit = 0.0

    for slab in slabs:
        slab_size = slab.limit - previous_limit
        units_in_slab = min(remaining_units, slab_size)

        if units_in_slab > 0:
            energy_cost += units_in_slab * slab.rate
            remaining_units -= units_in_slab
        previous_limit = slab.limit
        if remaining_units <= 0:
            break

    # Powyżej ostatniego limitu - ostatnia stawka
    if remaining_units > 0 and slabs:
        energy_cost += remaining_units * slabs[-1].rate

    return energy_cost


def calculate_slab_breakdown(units: float, slabs: Sequence[Slab]) -> List[SlabCharge]:
    """
    Dzieli `units` na pozycje według progów.

    Przechodzi progi dokładnie jak calculate_energy_cost, więc koszty pozycji
    sumują się do kosztu energii. Zużycie powyżej ostatniego limitu trafia
    do osobnej pozycji oznaczonej is_overflow.

    Args:
        units: Zużycie (nieujemne)
        slabs: Progi rosnąco według limitu

    Returns:
        Lista SlabCharge dla progów z naliczonym zużyciem
    """
    lines = []
    remaining_units = units
    previous_limit = 0.0

    for slab in slabs:
        units_in_slab = min(remaining_units, slab.limit - previous_limit)
        if units_in_slab > 0:
            lines.append(SlabCharge(
                start=previous_limit,
                end=slab.limit,
                units=units_in_slab,
                rate=slab.rate,
                cost=units_in_slab * slab.rate
            ))
            remaining_units -= units_in_slab
        previous_limit = slab.limit
        if remaining_units <= 0:
            break

    if remaining_units > 0 and slabs:
        last_rate = slabs[-1].rate
        lines.append(SlabCharge(
            start=previous_limit,
            end=None,
            units=remaining_units,
            rate=last_rate,
            cost=remaining_units * last_rate,
            is_overflow=True
        ))

    return lines
