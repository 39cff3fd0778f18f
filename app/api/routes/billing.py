"""
API endpoints for bill calculation and the current period draft.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel

from app.core.database import get_db
from app.services.billing.bill_generator import generate_bill_pdf
from app.services.billing.calculator import allocate_bill, system_loss_units
from app.services.billing.draft import Draft, DraftManager
from app.services.billing.estimator import estimate_bill
from app.services.billing.tariff_store import TariffStore, validate_tariff
from app.services.billing.types import (
    BillCalculationResult,
    BillConfig,
    MeterReading,
    Slab,
    TariffConfig,
    to_dict,
)

router = APIRouter(prefix="/api/billing", tags=["billing"])


class SlabIn(BaseModel):
    """Single slab of a tariff."""
    limit: float
    rate: float


class TariffIn(BaseModel):
    """Model for a tariff."""
    slabs: List[SlabIn]
    vat_rate: float
    demand_charge: float = 0.0
    meter_rent: float = 0.0
    bkash_charge: float = 0.0

    def to_tariff(self) -> TariffConfig:
        return TariffConfig(
            slabs=tuple(Slab(limit=slab.limit, rate=slab.rate) for slab in self.slabs),
            vat_rate=self.vat_rate,
            demand_charge=self.demand_charge,
            meter_rent=self.meter_rent,
            bkash_charge=self.bkash_charge
        )


class MeterReadingIn(BaseModel):
    """Model for a meter reading."""
    id: str
    name: str = ""
    meter_no: str = ""
    previous: float = 0.0
    current: float = 0.0

    def to_meter(self) -> MeterReading:
        return MeterReading(
            id=self.id,
            name=self.name,
            meter_no=self.meter_no,
            previous=self.previous,
            current=self.current
        )


class BillConfigIn(BaseModel):
    """Model for bill config."""
    month: str
    date_generated: str  # Format: 'YYYY-MM-DD'
    include_late_fee: bool = False
    include_bkash_fee: bool = False

    def to_config(self) -> BillConfig:
        return BillConfig(
            month=self.month,
            date_generated=self.date_generated,
            include_late_fee=self.include_late_fee,
            include_bkash_fee=self.include_bkash_fee
        )


class CalculationRequest(BaseModel):
    """Full input of a calculation. Without a tariff the active tariff is used."""
    config: BillConfigIn
    main_meter: MeterReadingIn
    meters: List[MeterReadingIn] = []
    tariff: Optional[TariffIn] = None


class EstimateRequest(BaseModel):
    units: float
    include_late_fee: bool = False
    include_bkash_fee: bool = False
    tariff: Optional[TariffIn] = None


class ConfigUpdate(BaseModel):
    """Partial bill config update (None - unchanged)."""
    month: Optional[str] = None
    date_generated: Optional[str] = None
    include_late_fee: Optional[bool] = None
    include_bkash_fee: Optional[bool] = None


class MeterUpdate(BaseModel):
    """Partial meter update (None - unchanged)."""
    name: Optional[str] = None
    meter_no: Optional[str] = None
    previous: Optional[float] = None
    current: Optional[float] = None


class MeterCreate(BaseModel):
    name: str = ""
    meter_no: Optional[str] = None


class DraftIn(BaseModel):
    config: BillConfigIn
    main_meter: MeterReadingIn
    meters: List[MeterReadingIn] = []


def calculation_response(
    result: BillCalculationResult,
    main_meter: MeterReading,
    meters: List[MeterReading]
) -> dict:
    """Calculation result with main meter consumption and system loss."""
    data = to_dict(result)
    data["main_units"] = max(0.0, main_meter.current - main_meter.previous)
    data["system_loss_units"] = system_loss_units(main_meter, meters)
    return data


def draft_response(draft: Draft) -> dict:
    return {
        "config": to_dict(draft.config),
        "main_meter": to_dict(draft.main_meter),
        "meters": [to_dict(meter) for meter in draft.meters],
        "updated_at": draft.updated_at.isoformat() if draft.updated_at else None
    }


def request_tariff(tariff: Optional[TariffIn], db: Session) -> TariffConfig:
    """Tariff given in the request (validated, 400 if invalid) or the active one."""
    if tariff is None:
        return TariffStore().get_active(db)

    config = tariff.to_tariff()
    errors = validate_tariff(config)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    return config


@router.post("/calculate")
def calculate(request: CalculationRequest, db: Session = Depends(get_db)):
    """Calculates the bill split for the given readings."""
    tariff = request_tariff(request.tariff, db)
    main_meter = request.main_meter.to_meter()
    meters = [meter.to_meter() for meter in request.meters]

    result = allocate_bill(request.config.to_config(), main_meter, meters, tariff)
    return calculation_response(result, main_meter, meters)


@router.post("/estimate")
def estimate(request: EstimateRequest, db: Session = Depends(get_db)):
    """Estimates the provider bill for a consumption figure."""
    tariff = request_tariff(request.tariff, db)
    return estimate_bill(
        request.units,
        tariff,
        include_late_fee=request.include_late_fee,
        include_bkash_fee=request.include_bkash_fee
    )


# ========== DRAFT ==========

@router.get("/draft")
def get_draft(db: Session = Depends(get_db)):
    """Gets the current period draft."""
    return draft_response(DraftManager().get_draft(db))


@router.put("/draft")
def save_draft(draft: DraftIn, db: Session = Depends(get_db)):
    """Overwrites the current period draft."""
    saved = DraftManager().save_draft(
        db,
        draft.config.to_config(),
        draft.main_meter.to_meter(),
        [meter.to_meter() for meter in draft.meters]
    )
    return draft_response(saved)


@router.patch("/draft/config")
def update_draft_config(update: ConfigUpdate, db: Session = Depends(get_db)):
    """Updates bill config fields of the draft."""
    draft = DraftManager().update_config(
        db,
        month=update.month,
        date_generated=update.date_generated,
        include_late_fee=update.include_late_fee,
        include_bkash_fee=update.include_bkash_fee
    )
    return draft_response(draft)


@router.put("/draft/main-meter")
def update_draft_main_meter(update: MeterUpdate, db: Session = Depends(get_db)):
    """Updates the main meter of the draft."""
    draft = DraftManager().update_main_meter(
        db,
        name=update.name,
        meter_no=update.meter_no,
        previous=update.previous,
        current=update.current
    )
    return draft_response(draft)


@router.post("/draft/meters")
def add_draft_meter(meter: MeterCreate, db: Session = Depends(get_db)):
    """Adds a sub-meter to the draft."""
    return to_dict(DraftManager().add_meter(db, name=meter.name, meter_no=meter.meter_no))


@router.put("/draft/meters/{meter_id}")
def update_draft_meter(meter_id: str, update: MeterUpdate, db: Session = Depends(get_db)):
    """Updates a sub-meter of the draft."""
    try:
        meter = DraftManager().update_meter(
            db,
            meter_id,
            name=update.name,
            meter_no=update.meter_no,
            previous=update.previous,
            current=update.current
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_dict(meter)


@router.delete("/draft/meters/{meter_id}")
def delete_draft_meter(meter_id: str, db: Session = Depends(get_db)):
    """Removes a sub-meter from the draft."""
    try:
        draft = DraftManager().remove_meter(db, meter_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return draft_response(draft)


@router.get("/draft/calculation")
def get_draft_calculation(db: Session = Depends(get_db)):
    """Calculates the draft with the active tariff."""
    manager = DraftManager()
    draft = manager.get_draft(db)
    result = manager.calculate(db)
    return calculation_response(result, draft.main_meter, draft.meters)


@router.get("/draft/report")
def get_draft_report(db: Session = Depends(get_db)):
    """Generates the PDF report of the draft."""
    manager = DraftManager()
    draft = manager.get_draft(db)
    tariff = manager.tariff_store.get_active(db)
    result = allocate_bill(draft.config, draft.main_meter, draft.meters, tariff)

    try:
        pdf_path = generate_bill_pdf(draft.config, draft.main_meter, result, tariff)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating PDF: {str(e)}")

    return FileResponse(pdf_path, media_type="application/pdf", filename=Path(pdf_path).name)
