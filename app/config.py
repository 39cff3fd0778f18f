"""
Konfiguracja aplikacji.
Używa pydantic-settings do zarządzania zmiennymi środowiskowymi.
"""

from pydantic_settings import BaseSettings
from typing import Dict, List


class Settings(BaseSettings):
    """Ustawienia aplikacji ze zmiennych środowiskowych."""

    # Baza danych
    database_url: str = "sqlite:///./bill_splitter.db"

    # API
    api_title: str = "Electricity Bill Splitter"
    api_description: str = "Obliczanie i podział wspólnego rachunku za prąd między najemców"
    api_version: str = "1.2.0"

    # CORS
    cors_allow_origins: List[str] = ["*"]  # W produkcji ograniczyć do konkretnych domen
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Ścieżki
    bills_dir: str = "bills"

    # Prezentacja
    currency_symbol: str = "Tk"

    # Google Sheets (opcjonalne)
    google_sheets_credentials_path: str = ""
    google_sheets_spreadsheet_id: str = ""

    # Domyślna taryfa (używana dopóki nie zostanie zapisana pierwsza wersja)
    default_slabs: List[Dict[str, float]] = [
        {"limit": 75, "rate": 5.26},
        {"limit": 200, "rate": 7.20},
        {"limit": 300, "rate": 7.59},
        {"limit": 400, "rate": 8.02},
        {"limit": 600, "rate": 12.67},
        {"limit": 99999, "rate": 14.61},
    ]
    default_vat_rate: float = 0.05
    default_demand_charge: float = 84.0
    default_meter_rent: float = 40.0
    default_bkash_charge: float = 10.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Globalna instancja ustawień
settings = Settings()
