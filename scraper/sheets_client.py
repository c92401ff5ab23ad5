"""
Google Sheets access for the scraper: config cells, status cell and the
product data range.
"""

import logging
from typing import Iterable, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from product_record import ProductRecord
from run_status import HEADER, product_to_row
from scraper_utils import LOGGER_NAME, SheetsError, retry_on_failure


SCOPES = ['https://www.googleapis.com/auth/spreadsheets']
LAST_COLUMN = chr(ord('A') + len(HEADER) - 1)  # R

logger = logging.getLogger(f"{LOGGER_NAME}.sheets")


class SheetsClient:
    """Thin wrapper over the Sheets v4 values API."""

    def __init__(
        self,
        service,
        spreadsheet_id: str,
        sheet_name: str,
        config_sheet: str = "_config",
        packing_date_cell: str = "C5",
        status_cell: str = "F5"
    ):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.config_sheet = config_sheet
        self.packing_date_cell = packing_date_cell
        self.status_cell = status_cell

    @classmethod
    def from_settings(cls, settings) -> "SheetsClient":
        """Authorize with the service-account key file named in the settings."""
        creds = service_account.Credentials.from_service_account_file(
            settings.credentials_path,
            scopes=SCOPES
        )
        service = build('sheets', 'v4', credentials=creds, cache_discovery=False)
        return cls(
            service,
            spreadsheet_id=settings.spreadsheet_id,
            sheet_name=settings.sheet_name,
            config_sheet=settings.config_sheet,
            packing_date_cell=settings.packing_date_cell,
            status_cell=settings.status_cell,
        )

    def _values(self):
        return self.service.spreadsheets().values()

    @retry_on_failure(max_attempts=3, delay=2.0, error_class=SheetsError)
    def _execute(self, request):
        return request.execute()

    def read_packing_date(self) -> str:
        result = self._execute(self._values().get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.config_sheet}!{self.packing_date_cell}"
        ))
        values = result.get('values') or [[]]
        date = str(values[0][0]).strip() if values[0] else ""
        logger.info(f"Packing date from sheet: {date}")
        return date

    def update_status(self, text: str) -> None:
        self._execute(self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.config_sheet}!{self.status_cell}",
            valueInputOption="RAW",
            body={"values": [[text]]}
        ))
        logger.info(f"Updated status in {self.status_cell}: {text}")

    def write_headers(self) -> None:
        self._execute(self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.sheet_name}!A1:{LAST_COLUMN}1",
            valueInputOption="USER_ENTERED",
            body={"values": [HEADER]}
        ))
        logger.info("Header row written.")

    def clear_data(self) -> None:
        self._execute(self._values().clear(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.sheet_name}!A2:{LAST_COLUMN}",
            body={}
        ))
        logger.info("Old product data cleared (all columns).")

    def next_row(self) -> int:
        """First empty row below the data in column A."""
        result = self._execute(self._values().get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.sheet_name}!A:A"
        ))
        return max(len(result.get('values', [])), 1) + 1

    def write_rows(self, rows: List[List[str]], clear_first: bool = False) -> Optional[int]:
        """
        Write rows below the existing data.

        Args:
            rows: Row values in header column order
            clear_first: Clear the data range before writing

        Returns:
            Row number of the first written row, or None if nothing was written
        """
        if not rows:
            return None

        if clear_first:
            self.clear_data()

        start_row = self.next_row()
        self._execute(self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self.sheet_name}!A{start_row}",
            valueInputOption="USER_ENTERED",
            body={"values": rows}
        ))
        logger.info(f"Wrote {len(rows)} rows starting at row {start_row}.")
        return start_row

    def write_products(self, records: Iterable[ProductRecord], clear_first: bool = False) -> Optional[int]:
        return self.write_rows([product_to_row(record) for record in records], clear_first=clear_first)
