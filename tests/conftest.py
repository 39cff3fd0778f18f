"""
Wspólne fixtures: baza danych w pamięci i klient API.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
import app.models.billing  # noqa: F401 - registers tables on Base


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    """Sesja bazy danych na świeżej bazie w pamięci."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine, tmp_path, monkeypatch):
    """Klient API na bazie w pamięci, rachunki PDF trafiają do tmp_path."""
    from main import app
    from app.config import settings

    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(settings, "bills_dir", str(tmp_path / "bills"))
    app.dependency_overrides[get_db] = override_get_db
    # Bez menedżera kontekstu - init_db() z lifespan nie jest uruchamiane
    yield TestClient(app)
    app.dependency_overrides.clear()
