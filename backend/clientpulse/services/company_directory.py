"""Company name -> meeting document lookup backed by a spreadsheet."""
import csv
import io
import logging
import re
from typing import List, Optional, Sequence, Tuple

import httpx
from googleapiclient.errors import HttpError

from clientpulse.config import Settings
from clientpulse.services.document_exceptions import DocumentFetchError, DocumentNotFoundError
from clientpulse.services.google_services import get_sheets_service

logger = logging.getLogger(__name__)

NAME_HEADERS = ("empresa", "cliente", "nome", "company", "name")
LINK_HEADERS = ("links docs", "link docs", "link", "doc", "documento", "document")
DOC_LINK_PATTERN = re.compile(r"/document/d/([a-zA-Z0-9_-]+)")
BARE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{20,}$")


def normalize_name(value: Optional[str]) -> str:
    return " ".join((value or "").lower().split())


def extract_document_id(cell: Optional[str]) -> Optional[str]:
    """Pull a Docs id out of a full link, or accept a bare id."""
    if not cell:
        return None
    cell = cell.strip()
    match = DOC_LINK_PATTERN.search(cell)
    if match:
        return match.group(1)
    if BARE_ID_PATTERN.match(cell):
        return cell
    return None


def _find_column(header: Sequence[str], candidates: Sequence[str]) -> Optional[int]:
    # Links are data, never header labels
    normalized = ["" if "/" in (cell or "") else normalize_name(cell) for cell in header]
    for candidate in candidates:
        if candidate in normalized:
            return normalized.index(candidate)
    for candidate in candidates:
        for index, cell in enumerate(normalized):
            if candidate in cell:
                return index
    return None


def _resolve_columns(rows: List[List[str]]) -> Tuple[int, Optional[int], int]:
    """Return (name column, link column or None, first data row)."""
    header = rows[0] if rows else []
    name_col = _find_column(header, NAME_HEADERS)
    link_col = _find_column(header, LINK_HEADERS)
    if name_col is None and link_col is None:
        return 0, None, 0
    return (name_col if name_col is not None else 0), link_col, 1


def match_document_id(rows: List[List[str]], company_name: str) -> Optional[str]:
    """
    Find the document id for ``company_name`` among spreadsheet rows.

    Names match case-insensitively when either one contains the other. When
    no link column is recognized, the first cell holding a Docs link is used.
    """
    wanted = normalize_name(company_name)
    if not wanted or not rows:
        return None

    name_col, link_col, start = _resolve_columns(rows)
    for row in rows[start:]:
        if name_col >= len(row):
            continue
        candidate = normalize_name(row[name_col])
        if not candidate or not (wanted in candidate or candidate in wanted):
            continue

        if link_col is not None and link_col < len(row):
            document_id = extract_document_id(row[link_col])
            if document_id:
                return document_id
        for cell in row:
            if cell and DOC_LINK_PATTERN.search(cell):
                return extract_document_id(cell)
    return None


class CompanyDirectory:
    """Base lookup: subclasses only know how to load the rows."""

    def load_rows(self) -> List[List[str]]:
        raise NotImplementedError

    def find_document_id(self, company_name: str) -> str:
        rows = self.load_rows()
        document_id = match_document_id(rows, company_name)
        if not document_id:
            raise DocumentNotFoundError(company_name)
        logger.info("Resolved '%s' to document %s", company_name, document_id)
        return document_id


class SheetsApiDirectory(CompanyDirectory):
    """Rows read with the Sheets API ``values().get``."""

    def __init__(self, sheet_id: str, sheet_range: str, service_account_file: str = "", service=None):
        self.sheet_id = sheet_id
        self.sheet_range = sheet_range
        self.service_account_file = service_account_file
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = get_sheets_service(self.service_account_file)
        return self._service

    def load_rows(self) -> List[List[str]]:
        try:
            result = self.service.spreadsheets().values().get(
                spreadsheetId=self.sheet_id,
                range=self.sheet_range,
            ).execute()
        except HttpError as exc:
            raise DocumentFetchError(
                f"Unable to read company sheet: {exc.reason}",
                document_id=self.sheet_id,
                cause="directory_unavailable",
            ) from exc
        return result.get("values", [])


class CsvDirectory(CompanyDirectory):
    """Rows read from a sheet published as CSV."""

    def __init__(self, csv_url: str, timeout: int = 20, transport: Optional[httpx.BaseTransport] = None):
        self.csv_url = csv_url
        self.timeout = timeout
        self.transport = transport

    def load_rows(self) -> List[List[str]]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
                response = client.get(self.csv_url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DocumentFetchError(
                f"Unable to download company sheet: {exc}",
                document_id=self.csv_url,
                cause="directory_unavailable",
            ) from exc
        return [row for row in csv.reader(io.StringIO(response.text))]


def build_company_directory(settings: Settings) -> CompanyDirectory:
    """Published CSV when configured, Sheets API otherwise."""
    if settings.companies_sheet_csv_url:
        return CsvDirectory(settings.companies_sheet_csv_url)
    return SheetsApiDirectory(
        sheet_id=settings.companies_sheet_id,
        sheet_range=settings.companies_sheet_range,
        service_account_file=settings.google_service_account_file,
    )
