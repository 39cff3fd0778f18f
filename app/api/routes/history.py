"""
API endpoints for bill history.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import Optional
from pathlib import Path
from pydantic import BaseModel

from app.api.routes.billing import DraftIn, calculation_response, draft_response
from app.core.database import get_db
from app.integrations.google_sheets import push_if_configured
from app.models.billing import SavedBill
from app.services.billing.bill_generator import generate_bill_pdf
from app.services.billing.draft import DraftManager
from app.services.billing.history import BillHistoryManager, bill_snapshot
from app.services.billing.tariff_store import TariffStore
from app.services.billing.trends import build_trends
from app.services.billing.types import to_dict

router = APIRouter(prefix="/api/history", tags=["history"])


class NextPeriodRequest(BaseModel):
    month: str
    date_generated: str  # Format: 'YYYY-MM-DD'


def bill_response(bill: SavedBill) -> dict:
    config, main_meter, meters = bill_snapshot(bill)
    return {
        "id": bill.id,
        "saved_at": bill.saved_at.isoformat() if bill.saved_at else None,
        "config": to_dict(config),
        "main_meter": to_dict(main_meter),
        "meters": [to_dict(meter) for meter in meters]
    }


def _get_bill_or_404(manager: BillHistoryManager, db: Session, bill_id: int) -> SavedBill:
    try:
        return manager.get_bill(db, bill_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/")
def list_bills(db: Session = Depends(get_db)):
    """Gets stored bills, newest first."""
    return [bill_response(bill) for bill in BillHistoryManager().list_bills(db)]


@router.post("/")
def save_bill(draft: Optional[DraftIn] = None, db: Session = Depends(get_db)):
    """
    Saves a bill to history with the active tariff.
    Without a body the current draft is saved. When Google Sheets is
    configured the bill is also appended to the History sheet.
    """
    draft_manager = DraftManager()
    manager = BillHistoryManager(draft_manager)
    tariff = TariffStore().get_active(db)

    if draft is None:
        current = draft_manager.get_draft(db)
        config, main_meter, meters = current.config, current.main_meter, current.meters
    else:
        config = draft.config.to_config()
        main_meter = draft.main_meter.to_meter()
        meters = [meter.to_meter() for meter in draft.meters]

    bill = manager.save_bill(db, config, main_meter, meters, tariff)
    push_if_configured(lambda sync: sync.push_bill(bill), f"bill {bill.month}")
    return bill_response(bill)


@router.get("/trends")
def get_trends(db: Session = Depends(get_db)):
    """Trend data and statistics over all stored bills."""
    bills = BillHistoryManager().list_bills(db)
    return build_trends(bills, TariffStore().get_active(db))


@router.get("/{bill_id}")
def get_bill(bill_id: int, db: Session = Depends(get_db)):
    """Gets a stored bill."""
    return bill_response(_get_bill_or_404(BillHistoryManager(), db, bill_id))


@router.delete("/{bill_id}")
def delete_bill(bill_id: int, db: Session = Depends(get_db)):
    """Deletes a stored bill."""
    try:
        BillHistoryManager().delete_bill(db, bill_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": f"Bill {bill_id} deleted"}


@router.get("/{bill_id}/calculation")
def get_bill_calculation(bill_id: int, db: Session = Depends(get_db)):
    """Recalculates a stored bill with the active tariff."""
    manager = BillHistoryManager()
    bill = _get_bill_or_404(manager, db, bill_id)
    _, main_meter, meters = bill_snapshot(bill)
    result = manager.replay(db, bill_id, TariffStore().get_active(db))
    return calculation_response(result, main_meter, meters)


@router.post("/{bill_id}/load")
def load_bill(bill_id: int, db: Session = Depends(get_db)):
    """Loads a stored bill into the draft."""
    try:
        draft = BillHistoryManager().load_into_draft(db, bill_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return draft_response(draft)


@router.post("/{bill_id}/next-period")
def start_next_period(bill_id: int, request: NextPeriodRequest, db: Session = Depends(get_db)):
    """Starts the next period draft from a stored bill (previous := current)."""
    try:
        draft = BillHistoryManager().start_next_period(
            db, bill_id, request.month, request.date_generated
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return draft_response(draft)


@router.get("/{bill_id}/report")
def get_bill_report(bill_id: int, db: Session = Depends(get_db)):
    """Generates the PDF report of a stored bill."""
    manager = BillHistoryManager()
    bill = _get_bill_or_404(manager, db, bill_id)
    config, main_meter, _ = bill_snapshot(bill)
    tariff = TariffStore().get_active(db)
    result = manager.replay(db, bill_id, tariff)

    try:
        pdf_path = generate_bill_pdf(config, main_meter, result, tariff, bill_id=bill.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating PDF: {str(e)}")

    return FileResponse(pdf_path, media_type="application/pdf", filename=Path(pdf_path).name)
