"""
Moduł inicjalizacji bazy danych z SQLAlchemy.
Tworzy połączenie z bazą danych i sesje.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config import settings


connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}  # Konieczne dla SQLite z FastAPI

# Silnik bazy danych
engine = create_engine(settings.database_url, connect_args=connect_args)

# Sesja bazy danych
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Baza dla modeli ORM
Base = declarative_base()


def get_db():
    """
    Dependency dla FastAPI - zwraca sesję bazy danych.
    Automatycznie zamyka sesję po użyciu.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Inicjalizuje bazę danych - tworzy wszystkie tabele.
    """
    from app.models.billing import Tenant, TariffVersion, SavedBill, SavedBillMeter, BillDraft

    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        print("[OK] Baza danych zainicjalizowana")
    except Exception as e:
        # Indeksy współdzielone między tabelami mogą już istnieć - tabele są wtedy gotowe
        error_msg = str(e)
        if "index" in error_msg.lower() and "already exists" in error_msg.lower():
            print("[WARNING] Niektóre indeksy już istnieją, tabele są gotowe")
            print("[OK] Baza danych zainicjalizowana")
        else:
            raise


if __name__ == "__main__":
    init_db()
