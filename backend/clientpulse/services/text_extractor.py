"""Flatten Google Docs body structures into plain text."""
from typing import Any, Dict, List

CELL_SEPARATOR = " | "


def _paragraph_text(paragraph: Dict[str, Any]) -> str:
    parts = []
    for element in paragraph.get("elements", []):
        text_run = element.get("textRun")
        if text_run:
            parts.append(text_run.get("content", ""))
    return "".join(parts)


def _table_text(table: Dict[str, Any]) -> str:
    rows = []
    for row in table.get("tableRows", []):
        cells = [
            _content_text(cell.get("content", [])).strip()
            for cell in row.get("tableCells", [])
        ]
        rows.append(CELL_SEPARATOR.join(cells) + "\n")
    return "".join(rows)


def _content_text(content: List[Dict[str, Any]]) -> str:
    parts = []
    for element in content:
        if "paragraph" in element:
            parts.append(_paragraph_text(element["paragraph"]))
        elif "table" in element:
            parts.append(_table_text(element["table"]))
    return "".join(parts)


def extract_text_from_body(body: Dict[str, Any]) -> str:
    """
    Linearize a document body into a single string.

    Paragraph text runs are concatenated in order; table cells are flattened
    recursively and joined with ``" | "``, one line per row. Formatting,
    links and every other non-text element are dropped.
    """
    if not body:
        return ""
    return _content_text(body.get("content", []))


def body_from_text(text: str) -> Dict[str, Any]:
    """Wrap plain text into the minimal body structure understood above."""
    return {"content": [{"paragraph": {"elements": [{"textRun": {"content": text}}]}}]}
