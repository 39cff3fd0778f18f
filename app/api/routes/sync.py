"""
API endpoints for Google Sheets synchronisation.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.integrations.google_sheets import create_sync_from_settings

router = APIRouter(prefix="/api/sync", tags=["sync"])


def _get_sync():
    try:
        return create_sync_from_settings()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/push")
def push(db: Session = Depends(get_db)):
    """Overwrites the spreadsheet with local data."""
    sync = _get_sync()
    try:
        result = sync.push_all(db)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Push failed: {str(e)}")
    return {"message": "Spreadsheet overwritten with local data", **result}


@router.post("/pull")
def pull(db: Session = Depends(get_db)):
    """Overwrites local data with spreadsheet data."""
    sync = _get_sync()
    try:
        result = sync.pull_all(db)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Pull failed: {str(e)}")
    return {"message": "Local data overwritten with spreadsheet data", **result}
