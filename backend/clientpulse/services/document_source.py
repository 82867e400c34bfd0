"""Fetch meeting-log documents split into titled sections."""
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from googleapiclient.errors import HttpError

from clientpulse.config import Settings
from clientpulse.models.schemas import FetchedDocument, RawSection
from clientpulse.services.date_resolver import resolve_section_date
from clientpulse.services.document_exceptions import DocumentFetchError
from clientpulse.services.google_services import get_docs_service
from clientpulse.services.text_extractor import body_from_text, extract_text_from_body

logger = logging.getLogger(__name__)

MAX_HEADING_CHARS = 80
UNTITLED_SECTION = "(sem data)"


def _ensure_not_empty(document: FetchedDocument) -> FetchedDocument:
    if not any(extract_text_from_body(section.body).strip() for section in document.sections):
        raise DocumentFetchError(
            f"Document {document.document_id} has no readable text",
            document_id=document.document_id,
            cause="empty",
        )
    return document


def _iter_tabs(tabs: Iterable[Dict[str, Any]]) -> Iterable[Dict[str, Any]]:
    """Depth-first walk over tabs and their child tabs."""
    for tab in tabs:
        yield tab
        yield from _iter_tabs(tab.get("childTabs", []))


class DocumentSource:
    def fetch(self, document_id: str) -> FetchedDocument:
        raise NotImplementedError


class GoogleDocsSource(DocumentSource):
    """Sections are the document's tabs, read through the Docs API."""

    def __init__(self, service_account_file: str = "", service=None):
        self.service_account_file = service_account_file
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = get_docs_service(self.service_account_file)
        return self._service

    def fetch(self, document_id: str) -> FetchedDocument:
        try:
            doc = self.service.documents().get(
                documentId=document_id,
                includeTabsContent=True,
            ).execute()
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            cause = {404: "not_found", 403: "permission_denied"}.get(status, "api_error")
            raise DocumentFetchError(
                f"Unable to read document {document_id}: {exc.reason}",
                document_id=document_id,
                cause=cause,
            ) from exc

        return _ensure_not_empty(self.parse_document(document_id, doc))

    @staticmethod
    def parse_document(document_id: str, doc: Dict[str, Any]) -> FetchedDocument:
        title = doc.get("title", "")
        sections: List[RawSection] = []
        for tab in _iter_tabs(doc.get("tabs", [])):
            props = tab.get("tabProperties", {})
            body = tab.get("documentTab", {}).get("body", {})
            sections.append(RawSection(title=props.get("title", ""), body=body))

        if not sections and doc.get("body"):
            sections.append(RawSection(title=title, body=doc["body"]))

        return FetchedDocument(
            document_id=document_id,
            title=title,
            revision_id=doc.get("revisionId"),
            sections=sections,
        )


def split_dated_text(text: str) -> List[RawSection]:
    """
    Split a plain-text export at short lines that read as dates.

    Text before the first dated heading becomes one undated section.
    """
    sections: List[RawSection] = []
    title = UNTITLED_SECTION
    lines: List[str] = []

    def flush():
        if "".join(lines).strip():
            sections.append(RawSection(title=title, body=body_from_text("\n".join(lines))))

    for line in text.splitlines():
        stripped = line.strip()
        if stripped and len(stripped) <= MAX_HEADING_CHARS and resolve_section_date(stripped):
            flush()
            title = stripped
            lines = []
        else:
            lines.append(line)
    flush()
    return sections


class ExportDocumentSource(DocumentSource):
    """Plain-text export of a link-shared document, split by dated headings."""

    EXPORT_URL = "https://docs.google.com/document/d/{document_id}/export"

    def __init__(self, timeout: int = 30, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def fetch(self, document_id: str) -> FetchedDocument:
        url = self.EXPORT_URL.format(document_id=document_id)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
                response = client.get(url, params={"format": "txt"})
        except httpx.HTTPError as exc:
            raise DocumentFetchError(
                f"Unable to download document {document_id}: {exc}",
                document_id=document_id,
                cause="transport_error",
            ) from exc

        if response.status_code in (401, 403):
            raise DocumentFetchError(
                f"Document {document_id} is not shared for export",
                document_id=document_id,
                cause="permission_denied",
            )
        if response.status_code == 404:
            raise DocumentFetchError(
                f"Document {document_id} does not exist",
                document_id=document_id,
                cause="not_found",
            )
        if response.status_code >= 400:
            raise DocumentFetchError(
                f"Export of {document_id} failed with status {response.status_code}",
                document_id=document_id,
                cause="api_error",
            )

        text = response.text.lstrip("\ufeff")
        document = FetchedDocument(document_id=document_id, sections=split_dated_text(text))
        logger.info("Exported %s into %d sections", document_id, len(document.sections))
        return _ensure_not_empty(document)


def build_document_source(settings: Settings) -> DocumentSource:
    if settings.document_source == "export":
        return ExportDocumentSource()
    return GoogleDocsSource(service_account_file=settings.google_service_account_file)
