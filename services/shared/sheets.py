from __future__ import annotations

from urllib.parse import quote

from google.auth.transport.requests import AuthorizedSession

from services.shared.google_clients import shorten


SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsClient:
    def __init__(self, session: AuthorizedSession, timeout_seconds: int = 60):
        self._session = session
        self.timeout_seconds = timeout_seconds

    def append_row(self, spreadsheet_id: str, range_name: str, values: list[str]) -> dict:
        url = f"{SHEETS_API_BASE}/{quote(spreadsheet_id, safe='')}/values/{quote(range_name, safe='')}:append"
        response = self._session.post(
            url,
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json={"values": [values]},
            timeout=self.timeout_seconds,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"Sheets append failed ({response.status_code}): {shorten(response.text)}")
        try:
            return response.json()
        except Exception as exc:
            raise RuntimeError(f"Sheets append invalid JSON: {exc}") from exc
