"""Google Sheets backed document."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import settings
from ..errors import CollaboratorError
from .addresses import index_to_col_letter, parse_range
from .port import WORKSHEETS, Cell, DocumentPort, Matrix

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def quote_sheet_name(name: str) -> str:
    """Quote a worksheet name for use in a range like 'My Sheet'!A1."""
    return "'" + name.replace("'", "''") + "'"


class GoogleSheetsDocument(DocumentPort):
    """Document backed by one worksheet of a Google Sheets spreadsheet."""

    capabilities = frozenset({WORKSHEETS})

    def __init__(
        self,
        spreadsheet_id: str,
        worksheet_name: Optional[str] = None,
        selection: Optional[str] = None,
        credentials_path: Optional[Path] = None,
        token_path: Optional[Path] = None,
        service: Any = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.worksheet_name = worksheet_name or settings.worksheet_name
        self.selection = selection or settings.default_selection
        self.credentials_path = credentials_path or settings.google_credentials_path
        self.token_path = token_path or settings.google_token_path
        self._service = service
        self._credentials = None

    def _get_credentials(self) -> Credentials:
        """Get or refresh OAuth2 credentials."""
        creds = None

        if self.token_path.exists():
            creds = Credentials.from_authorized_user_file(str(self.token_path), SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                if not self.credentials_path.exists():
                    raise FileNotFoundError(
                        f"Google credentials file not found at {self.credentials_path}. "
                        "Please download it from Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(self.credentials_path), SCOPES
                )
                creds = flow.run_local_server(port=0)

            # Save credentials for next run
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_path, "w") as token:
                token.write(creds.to_json())

        return creds

    @property
    def service(self):
        """Get or create the Sheets API service."""
        if self._service is None:
            self._credentials = self._get_credentials()
            self._service = build("sheets", "v4", credentials=self._credentials)
        return self._service

    def _qualified(self, range_address: str) -> str:
        return f"{quote_sheet_name(self.worksheet_name)}!{range_address}"

    async def _call(self, description: str, func, *args, **kwargs):
        """Run a blocking API call in a worker thread, mapping API errors."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except HttpError as e:
            raise CollaboratorError(f"Failed to {description}: {e}") from e

    # Grid access

    def _read_values(self, range_address: str) -> Matrix:
        bounds = parse_range(range_address)
        result = (
            self.service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=self._qualified(bounds.to_a1()),
                valueRenderOption="UNFORMATTED_VALUE",
            )
            .execute()
        )
        values = result.get("values", [])
        # The API trims trailing empty rows and cells; pad back to the requested shape
        return [
            [
                values[r][c] if r < len(values) and c < len(values[r]) and values[r][c] != "" else None
                for c in range(bounds.columns)
            ]
            for r in range(bounds.rows)
        ]

    async def read_grid(self, range_address: str) -> Matrix:
        try:
            parse_range(range_address)
        except ValueError as e:
            raise CollaboratorError(str(e)) from e
        return await self._call("read range", self._read_values, range_address)

    def _update_values(self, range_address: str, values: Matrix) -> dict:
        body = {"values": [["" if v is None else v for v in row] for row in values]}
        return (
            self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=self._qualified(range_address),
                valueInputOption="USER_ENTERED",
                body=body,
            )
            .execute()
        )

    async def write_cell(self, address: str, value: Cell) -> None:
        result = await self._call("write cell", self._update_values, address, [[value]])
        logger.info(f"Updated {result.get('updatedCells', 0)} cell(s) at {address}")

    async def write_range(self, address: str, values: Matrix) -> None:
        # Anchor the write at the range start; the matrix defines the extent
        start = address.split(":")[0]
        result = await self._call("write range", self._update_values, start, values)
        logger.info(f"Updated {result.get('updatedCells', 0)} cell(s) at {address}")

    async def get_selection(self) -> str:
        # The Sheets API exposes no live selection; use the configured one
        return self.selection

    async def get_worksheet_name(self) -> str:
        return self.worksheet_name

    def _get_spreadsheet_info(self) -> dict:
        result = self.service.spreadsheets().get(spreadsheetId=self.spreadsheet_id).execute()
        return {
            "id": result["spreadsheetId"],
            "title": result["properties"]["title"],
            "sheets": [
                {
                    "id": sheet["properties"]["sheetId"],
                    "title": sheet["properties"]["title"],
                    "row_count": sheet["properties"]["gridProperties"]["rowCount"],
                    "col_count": sheet["properties"]["gridProperties"]["columnCount"],
                }
                for sheet in result.get("sheets", [])
            ],
        }

    def _used_range(self) -> str:
        result = (
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=quote_sheet_name(self.worksheet_name))
            .execute()
        )
        values = result.get("values", [])
        rows = len(values)
        cols = max((len(row) for row in values), default=0)
        if rows == 0 or cols == 0:
            return "A1"
        return f"A1:{index_to_col_letter(cols - 1)}{rows}"

    async def get_used_range(self) -> str:
        return await self._call("read used range", self._used_range)

    # Worksheets

    def _sheet_id(self, name: str) -> int:
        for sheet in self._get_spreadsheet_info()["sheets"]:
            if sheet["title"] == name:
                return sheet["id"]
        raise CollaboratorError(f"Worksheet not found: {name}")

    def _batch_update(self, requests: list[dict]) -> dict:
        return (
            self.service.spreadsheets()
            .batchUpdate(spreadsheetId=self.spreadsheet_id, body={"requests": requests})
            .execute()
        )

    async def create_worksheet(self, name: str) -> None:
        await self._call(
            "create worksheet",
            self._batch_update,
            [{"addSheet": {"properties": {"title": name}}}],
        )

    async def delete_worksheet(self, name: str) -> None:
        sheet_id = await self._call("look up worksheet", self._sheet_id, name)
        await self._call("delete worksheet", self._batch_update, [{"deleteSheet": {"sheetId": sheet_id}}])

    async def rename_worksheet(self, old_name: str, new_name: str) -> None:
        sheet_id = await self._call("look up worksheet", self._sheet_id, old_name)
        await self._call(
            "rename worksheet",
            self._batch_update,
            [
                {
                    "updateSheetProperties": {
                        "properties": {"sheetId": sheet_id, "title": new_name},
                        "fields": "title",
                    }
                }
            ],
        )
        if self.worksheet_name == old_name:
            self.worksheet_name = new_name
