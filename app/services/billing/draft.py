"""
Working draft of the current billing period.

The draft holds the bill config, the main meter and the sub-meters being
entered. Each change is an explicit operation on a known field; the
calculation always runs on a full snapshot of the draft.
"""

import time
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.models.billing import BillDraft
from app.services.billing.calculator import allocate_bill
from app.services.billing.tariff_store import TariffStore
from app.services.billing.types import (
    BillCalculationResult,
    BillConfig,
    MeterReading,
    config_from_dict,
    meter_from_dict,
    meters_from_dicts,
    to_dict,
)


@dataclass(frozen=True)
class Draft:
    """Snapshot of the draft."""
    config: BillConfig
    main_meter: MeterReading
    meters: List[MeterReading]
    updated_at: Optional[datetime] = None


def default_draft(today: Optional[date] = None) -> Draft:
    """Empty draft for the current month."""
    today = today or date.today()
    return Draft(
        config=BillConfig(month=today.strftime("%B %Y"), date_generated=today.isoformat()),
        main_meter=MeterReading(id="main", name="Main Meter"),
        meters=[]
    )


def _new_meter_id(existing: Sequence[MeterReading]) -> str:
    """Timestamp based id, unique within the draft."""
    taken = {meter.id for meter in existing}
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


class DraftManager:
    """Reading and editing the draft."""

    def __init__(self, tariff_store: Optional[TariffStore] = None):
        self.tariff_store = tariff_store or TariffStore()

    def _get_row(self, db: Session) -> Optional[BillDraft]:
        return db.query(BillDraft).order_by(BillDraft.id).first()

    def get_draft(self, db: Session) -> Draft:
        """
        Returns the stored draft.

        Args:
            db: Database session

        Returns:
            Stored draft or a fresh default one if nothing was saved yet
        """
        row = self._get_row(db)
        if not row:
            return default_draft()

        return Draft(
            config=config_from_dict(row.config),
            main_meter=meter_from_dict(row.main_meter),
            meters=meters_from_dicts(row.meters),
            updated_at=row.updated_at
        )

    def save_draft(
        self,
        db: Session,
        config: BillConfig,
        main_meter: MeterReading,
        meters: Sequence[MeterReading]
    ) -> Draft:
        """Overwrites the draft."""
        row = self._get_row(db)
        if not row:
            row = BillDraft()
            db.add(row)

        row.config = to_dict(config)
        row.main_meter = to_dict(main_meter)
        row.meters = [to_dict(meter) for meter in meters]
        row.updated_at = datetime.now()
        db.commit()

        return Draft(config=config, main_meter=main_meter, meters=list(meters), updated_at=row.updated_at)

    def update_config(
        self,
        db: Session,
        month: Optional[str] = None,
        date_generated: Optional[str] = None,
        include_late_fee: Optional[bool] = None,
        include_bkash_fee: Optional[bool] = None
    ) -> Draft:
        """Updates the given bill config fields (None - unchanged)."""
        draft = self.get_draft(db)
        config = draft.config

        if month is not None:
            config = replace(config, month=month)
        if date_generated is not None:
            config = replace(config, date_generated=date_generated)
        if include_late_fee is not None:
            config = replace(config, include_late_fee=include_late_fee)
        if include_bkash_fee is not None:
            config = replace(config, include_bkash_fee=include_bkash_fee)

        return self.save_draft(db, config, draft.main_meter, draft.meters)

    def update_main_meter(
        self,
        db: Session,
        name: Optional[str] = None,
        meter_no: Optional[str] = None,
        previous: Optional[float] = None,
        current: Optional[float] = None
    ) -> Draft:
        """Updates the given main meter fields (None - unchanged)."""
        draft = self.get_draft(db)
        main_meter = _updated_meter(draft.main_meter, name, meter_no, previous, current)
        return self.save_draft(db, draft.config, main_meter, draft.meters)

    def add_meter(self, db: Session, name: str = "", meter_no: Optional[str] = None) -> MeterReading:
        """
        Adds a sub-meter with zero readings.

        Args:
            db: Database session
            name: Tenant name
            meter_no: Meter number (defaults to the position of the meter)

        Returns:
            The new meter
        """
        draft = self.get_draft(db)
        meter = MeterReading(
            id=_new_meter_id(draft.meters),
            name=name,
            meter_no=meter_no if meter_no is not None else str(len(draft.meters) + 1)
        )
        self.save_draft(db, draft.config, draft.main_meter, draft.meters + [meter])
        return meter

    def update_meter(
        self,
        db: Session,
        meter_id: str,
        name: Optional[str] = None,
        meter_no: Optional[str] = None,
        previous: Optional[float] = None,
        current: Optional[float] = None
    ) -> MeterReading:
        """
        Updates the given sub-meter fields (None - unchanged).

        Raises:
            ValueError: If there is no meter with this id
        """
        draft = self.get_draft(db)
        meters = list(draft.meters)

        for index, meter in enumerate(meters):
            if meter.id == meter_id:
                meters[index] = _updated_meter(meter, name, meter_no, previous, current)
                self.save_draft(db, draft.config, draft.main_meter, meters)
                return meters[index]

        raise ValueError(f"No meter with id {meter_id} in the draft")

    def remove_meter(self, db: Session, meter_id: str) -> Draft:
        """
        Removes a sub-meter.

        Raises:
            ValueError: If there is no meter with this id
        """
        draft = self.get_draft(db)
        meters = [meter for meter in draft.meters if meter.id != meter_id]
        if len(meters) == len(draft.meters):
            raise ValueError(f"No meter with id {meter_id} in the draft")
        return self.save_draft(db, draft.config, draft.main_meter, meters)

    def calculate(self, db: Session) -> BillCalculationResult:
        """Calculates the draft with the active tariff."""
        draft = self.get_draft(db)
        tariff = self.tariff_store.get_active(db)
        return allocate_bill(draft.config, draft.main_meter, draft.meters, tariff)


def _updated_meter(
    meter: MeterReading,
    name: Optional[str],
    meter_no: Optional[str],
    previous: Optional[float],
    current: Optional[float]
) -> MeterReading:
    changes = {}
    if name is not None:
        changes["name"] = name
    if meter_no is not None:
        changes["meter_no"] = meter_no
    if previous is not None:
        changes["previous"] = float(previous)
    if current is not None:
        changes["current"] = float(current)
    return replace(meter, **changes)
