"""
Moduł integracji z Google Sheets.
Wysyła lokalne dane (szkic, historia, taryfa, najemcy) do arkusza i pobiera je
z powrotem. Każdy kierunek nadpisuje w całości drugą stronę.
"""

import os
import json
import gspread
from datetime import datetime
from google.oauth2.service_account import Credentials
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from app.config import settings
from app.models.billing import SavedBill
from app.services.billing.draft import DraftManager
from app.services.billing.history import BillHistoryManager, bill_snapshot
from app.services.billing.tariff_store import TariffStore
from app.services.billing.tenants import TenantManager
from app.services.billing.types import (
    config_from_dict,
    meter_from_dict,
    meters_from_dicts,
    tariff_from_dict,
    tariff_to_dict,
    to_dict,
)


DRAFT_SHEET = "Draft"
HISTORY_SHEET = "History"
TARIFF_SHEET = "Tariff"
TENANTS_SHEET = "Tenants"

DRAFT_HEADERS = ["updated_at", "config", "main_meter", "meters"]
HISTORY_HEADERS = [
    "id", "saved_at", "month", "date_generated", "include_late_fee",
    "include_bkash_fee", "total_bill_payable", "main_meter", "meters"
]
TARIFF_HEADERS = ["version", "vat_rate", "demand_charge", "meter_rent", "bkash_charge", "slabs"]
TENANTS_HEADERS = ["name", "meter_no", "phone", "email"]


def bill_to_row(bill: SavedBill) -> List[Any]:
    """Wiersz arkusza historii dla zapisanego rachunku (liczniki jako JSON)."""
    config, main_meter, meters = bill_snapshot(bill)
    return [
        bill.id,
        bill.saved_at.isoformat() if bill.saved_at else "",
        config.month,
        config.date_generated,
        config.include_late_fee,
        config.include_bkash_fee,
        config.total_bill_payable,
        json.dumps(to_dict(main_meter)),
        json.dumps([to_dict(meter) for meter in meters]),
    ]


def _parse_datetime(value: Any) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return datetime.now()


class SpreadsheetSync:
    """Synchronizacja lokalnych danych z arkuszem Google Sheets."""

    def __init__(
        self,
        credentials_path: str,
        spreadsheet_id: str,
        draft_manager: Optional[DraftManager] = None,
        history_manager: Optional[BillHistoryManager] = None,
        tariff_store: Optional[TariffStore] = None,
        tenant_manager: Optional[TenantManager] = None
    ):
        """
        Przygotowuje połączenie z Google Sheets.

        Args:
            credentials_path: Ścieżka do pliku JSON z poświadczeniami Google Service Account
            spreadsheet_id: ID arkusza Google Sheets (można znaleźć w URL arkusza)
        """
        # Ścieżka względna - względem katalogu roboczego
        if not os.path.isabs(credentials_path):
            credentials_path = os.path.join(os.getcwd(), credentials_path)
        credentials_path = os.path.normpath(credentials_path)

        if not os.path.exists(credentials_path):
            raise FileNotFoundError(
                f"Plik credentials nie został znaleziony: {credentials_path}\n"
                f"Upewnij się, że plik istnieje i ścieżka jest prawidłowa.\n"
                f"Obecny katalog roboczy: {os.getcwd()}"
            )

        self.credentials_path = credentials_path
        self.spreadsheet_id = spreadsheet_id
        self.client = None
        self.spreadsheet = None

        self.draft_manager = draft_manager or DraftManager()
        self.history_manager = history_manager or BillHistoryManager(self.draft_manager)
        self.tariff_store = tariff_store or TariffStore()
        self.tenant_manager = tenant_manager or TenantManager()

    def connect(self):
        """Nawiązuje połączenie z Google Sheets."""
        scope = [
            "https://spreadsheets.google.com/feeds",
            "https://www.googleapis.com/auth/drive"
        ]
        try:
            creds = Credentials.from_service_account_file(self.credentials_path, scopes=scope)
            self.client = gspread.authorize(creds)
            self.spreadsheet = self.client.open_by_key(self.spreadsheet_id)
            print(f"[OK] Połączono z arkuszem: {self.spreadsheet.title}")
        except PermissionError as e:
            service_account_email = self._service_account_email()
            raise PermissionError(
                f"BRAK DOSTĘPU DO ARKUSZA GOOGLE SHEETS\n\n"
                f"Konto serwisowe nie ma uprawnień do arkusza.\n"
                f"Udostępnij arkusz dla {service_account_email} jako 'Edytor'.\n\n"
                f"Spreadsheet ID: {self.spreadsheet_id}\n"
                f"Szczegóły błędu: {str(e)}"
            ) from e

    def _service_account_email(self) -> str:
        try:
            with open(self.credentials_path, 'r', encoding='utf-8') as f:
                return json.load(f).get('client_email', 'nieznany')
        except (OSError, ValueError):
            return 'nieznany'

    def get_worksheet(self, sheet_name: str, create: bool = False):
        """Pobiera arkusz po nazwie, opcjonalnie tworząc go."""
        if not self.spreadsheet:
            self.connect()

        try:
            return self.spreadsheet.worksheet(sheet_name)
        except gspread.exceptions.WorksheetNotFound:
            if create:
                print(f"[INFO] Tworzenie arkusza '{sheet_name}'")
                return self.spreadsheet.add_worksheet(title=sheet_name, rows=1000, cols=20)
            print(f"[ERROR] Arkusz '{sheet_name}' nie został znaleziony")
            return None

    def _write_sheet(self, sheet_name: str, headers: List[str], rows: List[List[Any]]) -> int:
        worksheet = self.get_worksheet(sheet_name, create=True)
        worksheet.clear()
        worksheet.update(values=[headers] + rows, range_name="A1")
        return len(rows)

    def _read_sheet(self, sheet_name: str) -> List[Dict[str, Any]]:
        """
        Wiersze arkusza jako słowniki z wartościami tekstowymi.

        Bez konwersji liczb - numery telefonów i liczników zachowują
        wiodące zera; pola liczbowe konwertują funkcje *_from_dict.
        """
        worksheet = self.get_worksheet(sheet_name)
        if not worksheet:
            return []
        return worksheet.get_all_records(numericise_ignore=["all"])

    # ========== WYSYŁANIE ==========

    def push_draft(self, db: Session) -> int:
        draft = self.draft_manager.get_draft(db)
        row = [
            (draft.updated_at or datetime.now()).isoformat(),
            json.dumps(to_dict(draft.config)),
            json.dumps(to_dict(draft.main_meter)),
            json.dumps([to_dict(meter) for meter in draft.meters]),
        ]
        return self._write_sheet(DRAFT_SHEET, DRAFT_HEADERS, [row])

    def push_history(self, db: Session) -> int:
        bills = self.history_manager.list_bills(db)
        return self._write_sheet(HISTORY_SHEET, HISTORY_HEADERS, [bill_to_row(bill) for bill in bills])

    def push_bill(self, bill: SavedBill) -> None:
        """Dopisuje jeden zapisany rachunek do arkusza historii."""
        worksheet = self.get_worksheet(HISTORY_SHEET, create=True)
        if not worksheet.row_values(1):
            worksheet.append_row(HISTORY_HEADERS)
        worksheet.append_row(bill_to_row(bill))

    def push_tariff(self, db: Session) -> int:
        version = self.tariff_store.get_active_version(db)
        tariff = tariff_to_dict(self.tariff_store.get_active(db))
        row = [
            version.version if version else 0,
            tariff["vat_rate"],
            tariff["demand_charge"],
            tariff["meter_rent"],
            tariff["bkash_charge"],
            json.dumps(tariff["slabs"]),
        ]
        return self._write_sheet(TARIFF_SHEET, TARIFF_HEADERS, [row])

    def push_tenants(self, db: Session) -> int:
        rows = [
            [tenant.name, tenant.meter_no or "", tenant.phone or "", tenant.email or ""]
            for tenant in self.tenant_manager.list_tenants(db)
        ]
        return self._write_sheet(TENANTS_SHEET, TENANTS_HEADERS, rows)

    def push_all(self, db: Session) -> Dict[str, Any]:
        """Nadpisuje arkusz lokalnymi danymi."""
        result = {
            "draft": self.push_draft(db),
            "tariff": self.push_tariff(db),
            "tenants": self.push_tenants(db),
            "history": self.push_history(db),
        }
        print(f"[OK] Arkusz nadpisany lokalnymi danymi: {result}")
        return result

    # ========== POBIERANIE ==========

    def pull_draft(self, db: Session) -> bool:
        records = self._read_sheet(DRAFT_SHEET)
        if not records:
            return False

        row = records[0]
        self.draft_manager.save_draft(
            db,
            config_from_dict(json.loads(row["config"])),
            meter_from_dict(json.loads(row["main_meter"])),
            meters_from_dicts(json.loads(row["meters"]))
        )
        return True

    def pull_history(self, db: Session, errors: List[str]) -> int:
        records = self._read_sheet(HISTORY_SHEET)
        if not records:
            return 0

        self.history_manager.clear(db)
        imported = 0
        for row in records:
            try:
                self.history_manager.restore_bill(
                    db,
                    config_from_dict(row),
                    meter_from_dict(json.loads(row["main_meter"])),
                    meters_from_dicts(json.loads(row["meters"])),
                    _parse_datetime(row.get("saved_at"))
                )
                imported += 1
            except (KeyError, TypeError, ValueError) as e:
                db.rollback()
                errors.append(f"Wiersz historii {row.get('id')}: {str(e)}")
        return imported

    def pull_tariff(self, db: Session) -> bool:
        """Zapisuje taryfę z arkusza jako nową wersję, jeśli różni się od aktywnej."""
        records = self._read_sheet(TARIFF_SHEET)
        if not records:
            return False

        row = dict(records[0])
        row["slabs"] = json.loads(row["slabs"])
        tariff = tariff_from_dict(row)
        if tariff == self.tariff_store.get_active(db):
            return False

        self.tariff_store.save(db, tariff)
        return True

    def pull_tenants(self, db: Session) -> int:
        records = self._read_sheet(TENANTS_SHEET)
        if not records:
            return 0
        return len(self.tenant_manager.replace_all(db, records))

    def pull_all(self, db: Session) -> Dict[str, Any]:
        """Nadpisuje lokalne dane danymi z arkusza."""
        errors: List[str] = []
        result = {
            "draft": False,
            "history": 0,
            "tariff_updated": False,
            "tenants": 0,
            "errors": errors,
        }

        try:
            result["draft"] = self.pull_draft(db)
        except (KeyError, TypeError, ValueError) as e:
            errors.append(f"Szkic: {str(e)}")

        result["history"] = self.pull_history(db, errors)

        try:
            result["tariff_updated"] = self.pull_tariff(db)
        except (KeyError, TypeError, ValueError) as e:
            errors.append(f"Taryfa: {str(e)}")

        result["tenants"] = self.pull_tenants(db)

        for error in errors:
            print(f"[ERROR] {error}")
        print(f"[OK] Lokalne dane nadpisane danymi z arkusza (rachunki: {result['history']}, najemcy: {result['tenants']})")
        return result


def is_sync_configured() -> bool:
    return bool(settings.google_sheets_credentials_path and settings.google_sheets_spreadsheet_id)


def create_sync_from_settings() -> SpreadsheetSync:
    """
    Tworzy synchronizację na podstawie ustawień.

    Raises:
        ValueError: Jeśli Google Sheets nie jest skonfigurowane
    """
    if not is_sync_configured():
        raise ValueError(
            "Google Sheets nie jest skonfigurowane. Ustaw GOOGLE_SHEETS_CREDENTIALS_PATH "
            "i GOOGLE_SHEETS_SPREADSHEET_ID w zmiennych środowiskowych lub pliku .env"
        )
    return SpreadsheetSync(settings.google_sheets_credentials_path, settings.google_sheets_spreadsheet_id)


def push_if_configured(push: Callable[[SpreadsheetSync], Any], description: str) -> bool:
    """
    Wysyła zmianę do arkusza zaraz po zapisie lokalnym.

    Lokalny zapis jest już zatwierdzony - błąd wysyłki jest tylko wypisywany.

    Args:
        push: Funkcja wywoływana z obiektem SpreadsheetSync
        description: Opis danych do komunikatu

    Returns:
        True jeśli wysłano, False jeśli synchronizacja jest wyłączona lub się nie powiodła
    """
    if not is_sync_configured():
        return False

    try:
        push(create_sync_from_settings())
    except Exception as e:
        print(f"[WARNING] Nie udało się wysłać do Google Sheets ({description}): {str(e)}")
        return False

    print(f"[OK] Wysłano do Google Sheets: {description}")
    return True
