"""
API endpoints for tariff settings and tenants.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel

from app.api.routes.billing import TariffIn
from app.core.database import get_db
from app.integrations.google_sheets import push_if_configured
from app.models.billing import Tenant, TariffVersion
from app.services.billing.tariff_store import TariffStore
from app.services.billing.tenants import TenantManager
from app.services.billing.types import tariff_to_dict

router = APIRouter(prefix="/api/settings", tags=["settings"])


class TenantCreate(BaseModel):
    name: str
    meter_no: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class TenantUpdate(BaseModel):
    name: Optional[str] = None
    meter_no: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


def tenant_response(tenant: Tenant) -> dict:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "meter_no": tenant.meter_no,
        "phone": tenant.phone,
        "email": tenant.email
    }


def version_response(version: TariffVersion) -> dict:
    return {
        "version": version.version,
        "created_at": version.created_at.isoformat() if version.created_at else None,
        "slabs": version.slabs,
        "vat_rate": version.vat_rate,
        "demand_charge": version.demand_charge,
        "meter_rent": version.meter_rent,
        "bkash_charge": version.bkash_charge
    }


# ========== TARIFF ==========

@router.get("/tariff")
def get_tariff(db: Session = Depends(get_db)):
    """Gets the active tariff (version 0 - default from settings)."""
    store = TariffStore()
    version = store.get_active_version(db)
    data = tariff_to_dict(store.get_active(db))
    data["version"] = version.version if version else 0
    return data


@router.put("/tariff")
def save_tariff(tariff: TariffIn, db: Session = Depends(get_db)):
    """Saves the tariff as a new version and sends it to Google Sheets if configured."""
    try:
        version = TariffStore().save(db, tariff.to_tariff())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    push_if_configured(lambda sync: sync.push_tariff(db), f"tariff version {version.version}")
    return version_response(version)


@router.get("/tariff/versions")
def list_tariff_versions(db: Session = Depends(get_db)):
    """Gets all tariff versions, newest first."""
    return [version_response(version) for version in TariffStore().list_versions(db)]


# ========== TENANTS ==========

@router.get("/tenants")
def list_tenants(db: Session = Depends(get_db)):
    return [tenant_response(tenant) for tenant in TenantManager().list_tenants(db)]


@router.post("/tenants")
def create_tenant(tenant: TenantCreate, db: Session = Depends(get_db)):
    """Adds a tenant."""
    try:
        created = TenantManager().create_tenant(
            db,
            tenant.name,
            meter_no=tenant.meter_no,
            phone=tenant.phone,
            email=tenant.email
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    push_if_configured(lambda sync: sync.push_tenants(db), "tenants")
    return tenant_response(created)


@router.put("/tenants/{tenant_id}")
def update_tenant(tenant_id: int, tenant: TenantUpdate, db: Session = Depends(get_db)):
    """Updates a tenant."""
    manager = TenantManager()
    try:
        manager.get_tenant(db, tenant_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        updated = manager.update_tenant(
            db,
            tenant_id,
            name=tenant.name,
            meter_no=tenant.meter_no,
            phone=tenant.phone,
            email=tenant.email
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    push_if_configured(lambda sync: sync.push_tenants(db), "tenants")
    return tenant_response(updated)


@router.delete("/tenants/{tenant_id}")
def delete_tenant(tenant_id: int, db: Session = Depends(get_db)):
    """Deletes a tenant."""
    try:
        TenantManager().delete_tenant(db, tenant_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    push_if_configured(lambda sync: sync.push_tenants(db), "tenants")
    return {"message": f"Tenant {tenant_id} deleted"}
