"""
Statystyki trendów na podstawie historii rachunków.

Każdy zapisany rachunek jest przeliczany z podaną taryfą, aby uzyskać zużycie
i koszt każdego najemcy; koszty są zaokrąglane do pełnych jednostek waluty,
tak jak są pokazywane najemcom.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Sequence

from app.models.billing import SavedBill
from app.services.billing.calculator import allocate_bill
from app.services.billing.history import bill_snapshot
from app.services.billing.types import TariffConfig


def round_half_up(value: float) -> int:
    """Zaokrągla do liczby całkowitej, połówki w górę (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def _sort_key(bill: SavedBill):
    return (bill.date_generated, bill.saved_at or datetime.min)


def build_trends(bills: Sequence[SavedBill], tariff: TariffConfig) -> Dict[str, Any]:
    """
    Buduje dane wykresu i statystyki dla zapisanych rachunków.

    Punkty wykresu są od najstarszego rachunku. Lista 'users' jest budowana
    od najnowszego rachunku - najpierw najemcy z ostatniego okresu, potem
    najemcy, którzy występują tylko we wcześniejszych rachunkach.

    Args:
        bills: Zapisane rachunki (dowolna kolejność)
        tariff: Taryfa użyta do przeliczenia rachunków

    Returns:
        {
            'points': [
                {
                    'name': 'Jan',                 # pierwsze trzy litery miesiąca
                    'full_month': 'January 2025',
                    'amount': float,               # zapisane total_bill_payable
                    'date': '2025-01-31',
                    'users': {name: {'units': float, 'cost': int}},
                    'month_total': int             # suma zaokrąglonych kosztów
                }
            ],
            'users': [nazwy od najnowszego rachunku],
            'user_totals': {name: int},
            'stats': {'avg': float, 'max': float, 'total': float, 'trend': float}
        }
    """
    sorted_bills = sorted(bills, key=_sort_key)

    points = []
    bill_costs: List[List[tuple]] = []
    for bill in sorted_bills:
        config, main_meter, meters = bill_snapshot(bill)
        result = allocate_bill(config, main_meter, meters, tariff)

        point_users = {}
        costs = []
        month_total = 0
        for calc in result.user_calculations:
            rounded_total = round_half_up(calc.total_payable)
            costs.append((calc.name, rounded_total))
            point_users[calc.name] = {'units': calc.units_used, 'cost': rounded_total}
            month_total += rounded_total

        points.append({
            'name': config.month[:3],
            'full_month': config.month,
            'amount': config.total_bill_payable,
            'date': config.date_generated,
            'users': point_users,
            'month_total': month_total
        })
        bill_costs.append(costs)

    users: List[str] = []
    user_totals: Dict[str, int] = {}
    for costs in reversed(bill_costs):
        for name, cost in costs:
            if name not in user_totals:
                users.append(name)
                user_totals[name] = 0
            user_totals[name] += cost

    return {
        'points': points,
        'users': users,
        'user_totals': user_totals,
        'stats': _stats(sorted_bills)
    }


def _stats(sorted_bills: Sequence[SavedBill]) -> Dict[str, float]:
    if not sorted_bills:
        return {'avg': 0.0, 'max': 0.0, 'total': 0.0, 'trend': 0.0}

    amounts = [bill.total_bill_payable or 0.0 for bill in sorted_bills]
    total = sum(amounts)

    # Zmiana procentowa między dwoma ostatnimi rachunkami
    trend = 0.0
    if len(amounts) >= 2 and amounts[-2] != 0:
        trend = (amounts[-1] - amounts[-2]) / amounts[-2] * 100

    return {
        'avg': total / len(amounts),
        'max': max(amounts),
        'total': total,
        'trend': trend
    }
