"""
Rekordy wartości używane w obliczeniach rachunku.

Wszystkie rekordy są niezmienne: obliczenie dostaje pełną kopię danych
wejściowych i zwraca nowy wynik, nie trzyma referencji między wywołaniami.
Funkcje konwersji do i ze słowników służą szkicowi, historii, warstwie HTTP
oraz synchronizacji z Google Sheets.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class MeterReading:
    """Jeden licznik (główny lub podlicznik) w okresie rozliczeniowym."""
    id: str
    name: str = ""
    meter_no: str = ""
    previous: float = 0.0
    current: float = 0.0

    def rolled_over(self) -> "MeterReading":
        """Odczyt na następny okres: bieżąca wartość staje się poprzednią."""
        return replace(self, previous=self.current)


@dataclass(frozen=True)
class Slab:
    """Próg cenowy do `limit` kWh rozliczany stawką `rate` za kWh."""
    limit: float
    rate: float


@dataclass(frozen=True)
class TariffConfig:
    """Taryfa: tabela progów (rosnąco według limitu), stawka VAT i opłaty stałe."""
    slabs: Tuple[Slab, ...] = ()
    vat_rate: float = 0.0
    demand_charge: float = 0.0
    meter_rent: float = 0.0
    bkash_charge: float = 0.0


@dataclass(frozen=True)
class BillConfig:
    """
    Flagi i metadane okresu.

    total_bill_payable jest zapisywane tylko przy zapisie rachunku do historii,
    obliczenia go nie czytają.
    """
    month: str
    date_generated: str  # 'YYYY-MM-DD'
    include_late_fee: bool = False
    include_bkash_fee: bool = False
    total_bill_payable: float = 0.0


@dataclass(frozen=True)
class UserCalculation:
    """Obliczony udział jednego podlicznika."""
    id: str
    name: str
    units_used: float
    energy_cost: float
    fixed_cost: float
    total_payable: float
    previous: float
    current: float


@dataclass(frozen=True)
class BillCalculationResult:
    """Uzgodniony podział rachunku licznika głównego między podliczniki."""
    vat_fixed: float
    vat_distributed: float
    vat_total: float
    late_fee: float
    calculated_rate: float
    total_units: float
    user_calculations: Tuple[UserCalculation, ...] = field(default_factory=tuple)
    total_collection: float = 0.0


@dataclass(frozen=True)
class SlabCharge:
    """Pojedyncza pozycja rozbicia na progi."""
    start: float
    end: Optional[float]  # None dla pozycji powyżej ostatniego progu
    units: float
    rate: float
    cost: float
    is_overflow: bool = False


# ============================================
# FUNKCJE KONWERSJI
# ============================================

def meter_from_dict(data: Dict[str, Any]) -> MeterReading:
    """Tworzy MeterReading ze słownika (brakujące odczyty - 0)."""
    return MeterReading(
        id=str(data.get("id", "")),
        name=str(data.get("name") or ""),
        meter_no=str(data.get("meter_no") or ""),
        previous=float(data.get("previous") or 0.0),
        current=float(data.get("current") or 0.0),
    )


def meters_from_dicts(rows: Sequence[Dict[str, Any]]) -> List[MeterReading]:
    return [meter_from_dict(row) for row in rows]


def slabs_from_dicts(rows: Sequence[Dict[str, Any]]) -> Tuple[Slab, ...]:
    """Konwertuje zapisane progi, zachowując podaną kolejność."""
    return tuple(Slab(limit=float(row["limit"]), rate=float(row["rate"])) for row in rows)


def slabs_to_dicts(slabs: Sequence[Slab]) -> List[Dict[str, float]]:
    return [{"limit": slab.limit, "rate": slab.rate} for slab in slabs]


def tariff_from_dict(data: Dict[str, Any]) -> TariffConfig:
    return TariffConfig(
        slabs=slabs_from_dicts(data.get("slabs") or []),
        vat_rate=float(data.get("vat_rate") or 0.0),
        demand_charge=float(data.get("demand_charge") or 0.0),
        meter_rent=float(data.get("meter_rent") or 0.0),
        bkash_charge=float(data.get("bkash_charge") or 0.0),
    )


def tariff_to_dict(tariff: TariffConfig) -> Dict[str, Any]:
    return {
        "slabs": slabs_to_dicts(tariff.slabs),
        "vat_rate": tariff.vat_rate,
        "demand_charge": tariff.demand_charge,
        "meter_rent": tariff.meter_rent,
        "bkash_charge": tariff.bkash_charge,
    }


def config_from_dict(data: Dict[str, Any]) -> BillConfig:
    return BillConfig(
        month=str(data.get("month") or ""),
        date_generated=str(data.get("date_generated") or ""),
        include_late_fee=_as_bool(data.get("include_late_fee", False)),
        include_bkash_fee=_as_bool(data.get("include_bkash_fee", False)),
        total_bill_payable=float(data.get("total_bill_payable") or 0.0),
    )


def to_dict(record: Any) -> Dict[str, Any]:
    """Serializuje dowolny z powyższych rekordów (krotki stają się listami)."""
    return _listify(asdict(record))


def _as_bool(value: Any) -> bool:
    # Arkusze zwracają wartości logiczne jako 'TRUE' / 'FALSE'
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _listify(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _listify(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_listify(item) for item in value]
    return value
