"""
Zarządzanie najemcami.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.billing import Tenant


class TenantManager:
    """Operacje CRUD na najemcach."""

    def list_tenants(self, db: Session) -> List[Tenant]:
        return db.query(Tenant).order_by(Tenant.name).all()

    def get_tenant(self, db: Session, tenant_id: int) -> Tenant:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            raise ValueError(f"Najemca {tenant_id} nie został znaleziony")
        return tenant

    def create_tenant(
        self,
        db: Session,
        name: str,
        meter_no: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None
    ) -> Tenant:
        """
        Dodaje najemcę.

        Raises:
            ValueError: Jeśli nazwa jest pusta lub już zajęta
        """
        name = name.strip()
        if not name:
            raise ValueError("Nazwa najemcy nie może być pusta")

        existing = db.query(Tenant).filter(Tenant.name == name).first()
        if existing:
            raise ValueError(f"Najemca '{name}' już istnieje")

        tenant = Tenant(name=name, meter_no=meter_no, phone=phone, email=email)
        db.add(tenant)
        db.commit()
        db.refresh(tenant)
        return tenant

    def update_tenant(
        self,
        db: Session,
        tenant_id: int,
        name: Optional[str] = None,
        meter_no: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None
    ) -> Tenant:
        """Aktualizuje podane pola (None - bez zmian)."""
        tenant = self.get_tenant(db, tenant_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Nazwa najemcy nie może być pusta")
            duplicate = db.query(Tenant).filter(Tenant.name == name, Tenant.id != tenant_id).first()
            if duplicate:
                raise ValueError(f"Najemca '{name}' już istnieje")
            tenant.name = name
        if meter_no is not None:
            tenant.meter_no = meter_no
        if phone is not None:
            tenant.phone = phone
        if email is not None:
            tenant.email = email

        db.commit()
        db.refresh(tenant)
        return tenant

    def delete_tenant(self, db: Session, tenant_id: int) -> None:
        tenant = self.get_tenant(db, tenant_id)
        db.delete(tenant)
        db.commit()

    def replace_all(self, db: Session, tenants: List[dict]) -> List[Tenant]:
        """
        Zastępuje wszystkich najemców (używane przy pobieraniu z arkusza).

        Wiersze bez nazwy są pomijane.
        """
        db.query(Tenant).delete()
        seen = set()
        for row in tenants:
            name = str(row.get("name") or "").strip()
            if not name or name in seen:
                continue
            seen.add(name)
            db.add(Tenant(
                name=name,
                meter_no=str(row.get("meter_no") or "") or None,
                phone=str(row.get("phone") or "") or None,
                email=str(row.get("email") or "") or None
            ))
        db.commit()
        return self.list_tenants(db)
