"""
Modele bazy danych - eksport wszystkich modeli.
"""

from app.models.billing import Tenant, TariffVersion, SavedBill, SavedBillMeter, BillDraft

__all__ = [
    "Tenant",
    "TariffVersion",
    "SavedBill",
    "SavedBillMeter",
    "BillDraft"
]
