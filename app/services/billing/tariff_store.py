"""
Wersjonowany magazyn taryf.
Każdy zapis dodaje nową wersję, aktywna jest wersja o najwyższym numerze.
"""

from typing import List

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.config import settings
from app.models.billing import TariffVersion
from app.services.billing.types import TariffConfig, slabs_from_dicts, slabs_to_dicts


def default_tariff() -> TariffConfig:
    """Taryfa z ustawień, używana dopóki nie zostanie zapisana pierwsza wersja."""
    return TariffConfig(
        slabs=slabs_from_dicts(settings.default_slabs),
        vat_rate=settings.default_vat_rate,
        demand_charge=settings.default_demand_charge,
        meter_rent=settings.default_meter_rent,
        bkash_charge=settings.default_bkash_charge
    )


def validate_tariff(tariff: TariffConfig) -> List[str]:
    """
    Sprawdza taryfę przed zapisem.

    Obliczenia zakładają kolejność progów - nieposortowane progi są odrzucane tutaj.

    Returns:
        Lista komunikatów błędów (pusta jeśli taryfa jest poprawna)
    """
    errors = []

    if not tariff.slabs:
        errors.append("Wymagany jest co najmniej jeden próg")

    previous_limit = 0.0
    for index, slab in enumerate(tariff.slabs, 1):
        if slab.limit <= previous_limit:
            errors.append(
                f"Próg {index}: limit {slab.limit} musi być większy niż {previous_limit}"
            )
        if slab.rate < 0:
            errors.append(f"Próg {index}: stawka nie może być ujemna ({slab.rate})")
        previous_limit = max(previous_limit, slab.limit)

    if not 0 <= tariff.vat_rate <= 1:
        errors.append(f"Stawka VAT musi być w zakresie od 0 do 1 ({tariff.vat_rate})")

    for field_name in ("demand_charge", "meter_rent", "bkash_charge"):
        value = getattr(tariff, field_name)
        if value < 0:
            errors.append(f"{field_name} nie może być ujemne ({value})")

    return errors


def tariff_from_version(version: TariffVersion) -> TariffConfig:
    return TariffConfig(
        slabs=slabs_from_dicts(version.slabs),
        vat_rate=version.vat_rate,
        demand_charge=version.demand_charge,
        meter_rent=version.meter_rent,
        bkash_charge=version.bkash_charge
    )


class TariffStore:
    """Odczyt i zapis wersji taryf."""

    def get_active_version(self, db: Session) -> TariffVersion:
        return db.query(TariffVersion).order_by(desc(TariffVersion.version)).first()

    def get_active(self, db: Session) -> TariffConfig:
        """
        Zwraca aktywną taryfę.

        Args:
            db: Sesja bazy danych

        Returns:
            Najwyższa zapisana wersja lub domyślna taryfa z ustawień
        """
        version = self.get_active_version(db)
        if not version:
            return default_tariff()
        return tariff_from_version(version)

    def save(self, db: Session, tariff: TariffConfig) -> TariffVersion:
        """
        Sprawdza i zapisuje taryfę jako nową wersję.

        Raises:
            ValueError: Jeśli taryfa jest niepoprawna
        """
        errors = validate_tariff(tariff)
        if errors:
            raise ValueError("; ".join(errors))

        last_version = db.query(func.max(TariffVersion.version)).scalar() or 0

        version = TariffVersion(
            version=last_version + 1,
            slabs=slabs_to_dicts(tariff.slabs),
            vat_rate=tariff.vat_rate,
            demand_charge=tariff.demand_charge,
            meter_rent=tariff.meter_rent,
            bkash_charge=tariff.bkash_charge
        )
        db.add(version)
        db.commit()
        db.refresh(version)

        print(f"[OK] Zapisano wersję taryfy {version.version}")
        return version

    def list_versions(self, db: Session) -> List[TariffVersion]:
        """Wszystkie wersje, od najnowszej."""
        return db.query(TariffVersion).order_by(desc(TariffVersion.version)).all()
