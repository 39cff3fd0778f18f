"""
SQLAlchemy models for electricity bill splitting.
Defines tables: tenants, tariff_versions, saved_bills, saved_bill_meters, bill_drafts.
"""

from datetime import datetime

from sqlalchemy import Column, String, Float, Boolean, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base


class Tenant(Base):
    """Tenants sharing the installation."""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    meter_no = Column(String(50), nullable=True)  # Sub-meter number assigned to the tenant
    phone = Column(String(30), nullable=True)
    email = Column(String(200), nullable=True)  # Email address for sending bills


class TariffVersion(Base):
    """
    Versioned tariff configuration.

    Every save appends a new version; the active tariff is the highest version.
    Slabs are stored as a JSON list of {"limit": float, "rate": float},
    ascending by limit.
    """
    __tablename__ = "tariff_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, unique=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    slabs = Column(JSON, nullable=False)
    vat_rate = Column(Float, nullable=False)  # e.g. 0.05 for 5%
    demand_charge = Column(Float, nullable=False)
    meter_rent = Column(Float, nullable=False)
    bkash_charge = Column(Float, nullable=False)


class SavedBill(Base):
    """
    Bill saved to history.

    Stores the full (config, main meter, sub-meters) triple so the bill can be
    replayed through the calculation later.
    """
    __tablename__ = "saved_bills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    saved_at = Column(DateTime, nullable=False, default=datetime.now)

    # Bill config
    month = Column(String(30), nullable=False)  # e.g. 'January 2025'
    date_generated = Column(String(10), nullable=False)  # Format: 'YYYY-MM-DD'
    include_late_fee = Column(Boolean, nullable=False, default=False)
    include_bkash_fee = Column(Boolean, nullable=False, default=False)
    total_bill_payable = Column(Float, nullable=False, default=0.0)  # Written at save time

    # ============================================
    # MAIN METER
    # ============================================
    main_meter_id = Column(String(50), nullable=False)
    main_meter_name = Column(String(100), nullable=False, default="")
    main_meter_no = Column(String(50), nullable=False, default="")
    main_previous = Column(Float, nullable=False, default=0.0)
    main_current = Column(Float, nullable=False, default=0.0)

    meters = relationship(
        "SavedBillMeter",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="SavedBillMeter.position"
    )


class SavedBillMeter(Base):
    """Sub-meter reading stored with a history bill."""
    __tablename__ = "saved_bill_meters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey('saved_bills.id'), nullable=False)
    position = Column(Integer, nullable=False)  # Order of the meter in the bill

    meter_id = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False, default="")
    meter_no = Column(String(50), nullable=False, default="")
    previous = Column(Float, nullable=False, default=0.0)
    current = Column(Float, nullable=False, default=0.0)

    bill = relationship("SavedBill", back_populates="meters")


class BillDraft(Base):
    """
    Working copy of the current billing period (single row).

    config, main_meter and meters hold the serialised BillConfig and
    MeterReading records.
    """
    __tablename__ = "bill_drafts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    config = Column(JSON, nullable=False)
    main_meter = Column(JSON, nullable=False)
    meters = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)
