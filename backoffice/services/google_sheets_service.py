"""
Google Sheets service (service-account access through gspread).

Credentials are resolved lazily on first use so the API can boot before
the hosting environment provides them:
1. GOOGLE_SHEETS_CREDENTIALS / GOOGLE_SERVICE_ACCOUNT_KEY (JSON string)
2. the first *.json file in CREDENTIALS_DIR (dist/credentials)

Every API failure is logged and re-raised as GoogleSheetsError.
"""

import glob
import json
import logging
import os
from typing import Any, Dict, List, Optional

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import absolute_range_name, rowcol_to_a1

from backoffice.config import settings
from backoffice.services.errors import GoogleSheetsError, ServiceNotConfiguredError
from backoffice.utils.constants import DEFAULT_TEMPLATE_HEADERS, SHEET_TEMPLATE_HEADERS

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def get_template_headers(template: str) -> List[str]:
    """Header row for a sheet template ('accounting', 'project', 'personnel', other)."""
    return list(SHEET_TEMPLATE_HEADERS.get(template, DEFAULT_TEMPLATE_HEADERS))


def record_range(sheet_name: str, row_index: int, width: int) -> str:
    """
    A1 range covering one data row.

    Data row 0 sits directly below the header, i.e. on sheet row 2.
    """
    if width < 1:
        raise ValueError("Row data must contain at least one cell")
    if row_index < 0:
        raise ValueError(f"Invalid row index: {row_index}")
    sheet_row = row_index + 2
    return absolute_range_name(sheet_name, f"A{sheet_row}:{rowcol_to_a1(sheet_row, width)}")


def _load_credentials_info() -> Optional[Dict[str, Any]]:
    """Find service account JSON in the environment or the credentials directory."""
    if settings.GOOGLE_SHEETS_CREDENTIALS:
        return json.loads(settings.GOOGLE_SHEETS_CREDENTIALS)

    candidates = sorted(glob.glob(os.path.join(settings.CREDENTIALS_DIR, "*.json")))
    if candidates:
        try:
            with open(candidates[0], encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Google Sheets fallback credential read failed: {e}")

    return None


class GoogleSheetsService:
    """Thin wrapper over a gspread client for one or more spreadsheets."""

    def __init__(self) -> None:
        # Auth is deferred to the first call to avoid startup failures
        self._client: Optional[gspread.Client] = None

    def _get_client(self) -> gspread.Client:
        if self._client is not None:
            return self._client

        try:
            info = _load_credentials_info()
        except json.JSONDecodeError as e:
            raise ServiceNotConfiguredError(f"Google Sheets credentials are not valid JSON: {e}")

        if not info:
            raise ServiceNotConfiguredError(
                "Google Sheets credentials not found in environment variables or credentials directory"
            )

        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        self._client = gspread.authorize(creds)
        logger.info("Google Sheets API initialized successfully")
        return self._client

    def _open(self, spreadsheet_id: str) -> gspread.Spreadsheet:
        return self._get_client().open_by_key(spreadsheet_id)

    async def get_spreadsheet_info(self, spreadsheet_id: str) -> Dict[str, Any]:
        """
        Read spreadsheet title and tab list.

        Returns:
            {"title": str, "sheets": [{"id": int, "title": str, "index": int}, ...]}
        """
        try:
            spreadsheet = self._open(spreadsheet_id)
            return {
                "title": spreadsheet.title,
                "sheets": [
                    {"id": ws.id, "title": ws.title, "index": ws.index}
                    for ws in spreadsheet.worksheets()
                ],
            }
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error getting spreadsheet info: {e}")
            raise GoogleSheetsError("Failed to get spreadsheet information") from e

    async def get_sheet_data(self, spreadsheet_id: str, sheet_name: str) -> List[List[Any]]:
        """All rows of a tab (header row included)."""
        try:
            worksheet = self._open(spreadsheet_id).worksheet(sheet_name)
            return worksheet.get_all_values() or []
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error getting sheet data for '{sheet_name}': {e}")
            raise GoogleSheetsError("Failed to get sheet data") from e

    async def update_sheet_data(
        self, spreadsheet_id: str, a1_range: str, rows: List[List[Any]]
    ) -> Dict[str, Any]:
        """Overwrite a range (values parsed as if typed by a user)."""
        try:
            return self._open(spreadsheet_id).values_update(
                a1_range,
                params={"valueInputOption": "USER_ENTERED"},
                body={"values": rows},
            )
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error updating sheet data in {a1_range}: {e}")
            raise GoogleSheetsError("Failed to update sheet data") from e

    async def append_sheet_data(
        self, spreadsheet_id: str, sheet_name: str, rows: List[List[Any]]
    ) -> Dict[str, Any]:
        """Append rows after the last non-empty row of a tab."""
        try:
            worksheet = self._open(spreadsheet_id).worksheet(sheet_name)
            return worksheet.append_rows(rows, value_input_option="USER_ENTERED")
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error appending sheet data to '{sheet_name}': {e}")
            raise GoogleSheetsError("Failed to append sheet data") from e

    async def create_sheet(self, spreadsheet_id: str, sheet_name: str, headers: List[str]) -> int:
        """
        Add a tab and write its header row.

        Returns:
            The new tab's numeric id.
        """
        try:
            spreadsheet = self._open(spreadsheet_id)
            worksheet = spreadsheet.add_worksheet(
                title=sheet_name, rows=1000, cols=max(26, len(headers))
            )
            if headers:
                worksheet.append_rows([headers], value_input_option="USER_ENTERED")
            logger.info(f"Created sheet tab '{sheet_name}' (id={worksheet.id})")
            return worksheet.id
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error creating sheet '{sheet_name}': {e}")
            raise GoogleSheetsError("Failed to create sheet") from e

    async def delete_sheet(self, spreadsheet_id: str, sheet_tab_id: int) -> Dict[str, Any]:
        try:
            return self._open(spreadsheet_id).batch_update(
                {"requests": [{"deleteSheet": {"sheetId": sheet_tab_id}}]}
            )
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error deleting sheet tab {sheet_tab_id}: {e}")
            raise GoogleSheetsError("Failed to delete sheet") from e

    async def rename_sheet(self, spreadsheet_id: str, sheet_tab_id: int, new_name: str) -> Dict[str, Any]:
        try:
            return self._open(spreadsheet_id).batch_update({
                "requests": [{
                    "updateSheetProperties": {
                        "properties": {"sheetId": sheet_tab_id, "title": new_name},
                        "fields": "title",
                    }
                }]
            })
        except ServiceNotConfiguredError:
            raise
        except Exception as e:
            logger.error(f"Error renaming sheet tab {sheet_tab_id}: {e}")
            raise GoogleSheetsError("Failed to rename sheet") from e


google_sheets_service = GoogleSheetsService()


def get_google_sheets_service() -> GoogleSheetsService:
    """FastAPI dependency returning the shared Sheets service."""
    return google_sheets_service
