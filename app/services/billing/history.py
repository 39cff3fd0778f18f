"""
Bill history.

A saved bill keeps the whole (config, main meter, sub-meters) triple, so it
can be replayed through the calculation, loaded back into the draft or used
as the start of the next period.
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.billing import SavedBill, SavedBillMeter
from app.services.billing.calculator import allocate_bill
from app.services.billing.draft import Draft, DraftManager
from app.services.billing.types import (
    BillCalculationResult,
    BillConfig,
    MeterReading,
    TariffConfig,
)


def bill_config(bill: SavedBill) -> BillConfig:
    return BillConfig(
        month=bill.month,
        date_generated=bill.date_generated,
        include_late_fee=bool(bill.include_late_fee),
        include_bkash_fee=bool(bill.include_bkash_fee),
        total_bill_payable=bill.total_bill_payable or 0.0
    )


def bill_main_meter(bill: SavedBill) -> MeterReading:
    return MeterReading(
        id=bill.main_meter_id,
        name=bill.main_meter_name or "",
        meter_no=bill.main_meter_no or "",
        previous=bill.main_previous or 0.0,
        current=bill.main_current or 0.0
    )


def bill_meters(bill: SavedBill) -> List[MeterReading]:
    return [
        MeterReading(
            id=meter.meter_id,
            name=meter.name or "",
            meter_no=meter.meter_no or "",
            previous=meter.previous or 0.0,
            current=meter.current or 0.0
        )
        for meter in bill.meters
    ]


def bill_snapshot(bill: SavedBill) -> Tuple[BillConfig, MeterReading, List[MeterReading]]:
    """Stored triple of a bill."""
    return bill_config(bill), bill_main_meter(bill), bill_meters(bill)


class BillHistoryManager:
    """Saving, listing and replaying bills."""

    def __init__(self, draft_manager: Optional[DraftManager] = None):
        self.draft_manager = draft_manager or DraftManager()

    def save_bill(
        self,
        db: Session,
        config: BillConfig,
        main_meter: MeterReading,
        meters: Sequence[MeterReading],
        tariff: TariffConfig,
        saved_at: Optional[datetime] = None
    ) -> SavedBill:
        """
        Calculates the bill and stores it in history.

        total_bill_payable of the stored config is set to the calculated
        total collection.

        Args:
            db: Database session
            config: Bill config
            main_meter: Main meter reading
            meters: Sub-meter readings
            tariff: Tariff used for the calculation
            saved_at: Save time (defaults to now)

        Returns:
            Stored bill
        """
        result = allocate_bill(config, main_meter, meters, tariff)
        config = replace(config, total_bill_payable=result.total_collection)

        bill = self.restore_bill(db, config, main_meter, meters, saved_at or datetime.now())
        print(f"[OK] Bill for {bill.month} saved to history (ID: {bill.id}, total: {bill.total_bill_payable:.2f})")
        return bill

    def restore_bill(
        self,
        db: Session,
        config: BillConfig,
        main_meter: MeterReading,
        meters: Sequence[MeterReading],
        saved_at: datetime
    ) -> SavedBill:
        """
        Stores a bill as given, total_bill_payable is not recalculated.

        Used for bills coming from the spreadsheet.
        """
        bill = SavedBill(
            saved_at=saved_at,
            month=config.month,
            date_generated=config.date_generated,
            include_late_fee=config.include_late_fee,
            include_bkash_fee=config.include_bkash_fee,
            total_bill_payable=config.total_bill_payable,
            main_meter_id=main_meter.id,
            main_meter_name=main_meter.name,
            main_meter_no=main_meter.meter_no,
            main_previous=main_meter.previous,
            main_current=main_meter.current
        )
        for position, meter in enumerate(meters):
            bill.meters.append(SavedBillMeter(
                position=position,
                meter_id=meter.id,
                name=meter.name,
                meter_no=meter.meter_no,
                previous=meter.previous,
                current=meter.current
            ))

        db.add(bill)
        db.commit()
        db.refresh(bill)
        return bill

    def clear(self, db: Session) -> int:
        """Deletes all bills, returns the number of deleted bills."""
        bills = db.query(SavedBill).all()
        for bill in bills:
            db.delete(bill)
        db.commit()
        return len(bills)

    def list_bills(self, db: Session) -> List[SavedBill]:
        """Bills sorted by generation date, then save time (newest first)."""
        return db.query(SavedBill).order_by(
            desc(SavedBill.date_generated),
            desc(SavedBill.saved_at)
        ).all()

    def get_bill(self, db: Session, bill_id: int) -> SavedBill:
        """
        Raises:
            ValueError: If the bill does not exist
        """
        bill = db.query(SavedBill).filter(SavedBill.id == bill_id).first()
        if not bill:
            raise ValueError(f"Bill {bill_id} not found")
        return bill

    def delete_bill(self, db: Session, bill_id: int) -> None:
        bill = self.get_bill(db, bill_id)
        db.delete(bill)
        db.commit()
        print(f"[INFO] Bill {bill_id} deleted from history")

    def replay(self, db: Session, bill_id: int, tariff: TariffConfig) -> BillCalculationResult:
        """Recalculates a stored bill with the given tariff."""
        config, main_meter, meters = bill_snapshot(self.get_bill(db, bill_id))
        return allocate_bill(config, main_meter, meters, tariff)

    def load_into_draft(self, db: Session, bill_id: int) -> Draft:
        """Replaces the draft with the stored bill."""
        config, main_meter, meters = bill_snapshot(self.get_bill(db, bill_id))
        return self.draft_manager.save_draft(db, config, main_meter, meters)

    def start_next_period(
        self,
        db: Session,
        bill_id: int,
        month: str,
        date_generated: str
    ) -> Draft:
        """
        Starts the next period from a stored bill.

        Every meter rolls over (previous := current), flags are kept and
        total_bill_payable is reset.
        """
        config, main_meter, meters = bill_snapshot(self.get_bill(db, bill_id))
        next_config = replace(
            config,
            month=month,
            date_generated=date_generated,
            total_bill_payable=0.0
        )
        return self.draft_manager.save_draft(
            db,
            next_config,
            main_meter.rolled_over(),
            [meter.rolled_over() for meter in meters]
        )
