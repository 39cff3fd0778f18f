"""
Testy zarządzania najemcami.
"""

import pytest

from app.services.billing.tenants import TenantManager


class TestTenantManager:
    """Testy TenantManager."""

    def test_create_and_list_sorted(self, db):
        manager = TenantManager()
        manager.create_tenant(db, "  Zofia ", meter_no="2")
        manager.create_tenant(db, "Adam", phone="555-0101")

        tenants = manager.list_tenants(db)

        assert [tenant.name for tenant in tenants] == ["Adam", "Zofia"]
        assert tenants[1].meter_no == "2"

    def test_empty_name(self, db):
        with pytest.raises(ValueError, match="nie może być pusta"):
            TenantManager().create_tenant(db, "   ")

    def test_duplicate_name(self, db):
        manager = TenantManager()
        manager.create_tenant(db, "Adam")
        with pytest.raises(ValueError, match="już istnieje"):
            manager.create_tenant(db, "Adam")

    def test_update(self, db):
        manager = TenantManager()
        tenant = manager.create_tenant(db, "Adam", meter_no="1")

        updated = manager.update_tenant(db, tenant.id, name="Adam K", email="adam@example.com")

        assert updated.name == "Adam K"
        assert updated.meter_no == "1"
        assert updated.email == "adam@example.com"

    def test_update_to_taken_name(self, db):
        manager = TenantManager()
        manager.create_tenant(db, "Adam")
        other = manager.create_tenant(db, "Ewa")
        with pytest.raises(ValueError, match="już istnieje"):
            manager.update_tenant(db, other.id, name="Adam")

    def test_get_missing(self, db):
        with pytest.raises(ValueError, match="Najemca 9 nie został znaleziony"):
            TenantManager().get_tenant(db, 9)

    def test_delete(self, db):
        manager = TenantManager()
        tenant = manager.create_tenant(db, "Adam")
        manager.delete_tenant(db, tenant.id)
        assert manager.list_tenants(db) == []

    def test_replace_all_skips_empty_and_duplicates(self, db):
        manager = TenantManager()
        manager.create_tenant(db, "Old tenant")

        tenants = manager.replace_all(db, [
            {"name": "Ewa", "meter_no": 3, "phone": "", "email": ""},
            {"name": "", "meter_no": "4"},
            {"name": "Ewa", "meter_no": "5"},
            {"name": "Adam"},
        ])

        assert [tenant.name for tenant in tenants] == ["Adam", "Ewa"]
        assert tenants[1].meter_no == "3"
        assert tenants[1].phone is None
