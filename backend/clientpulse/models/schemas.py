"""Pydantic schemas for API models and pipeline values."""
from __future__ import annotations

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SENTIMENT_SCORE = 5


# Source documents
class RawSection(BaseModel):
    """One tab (or dated chunk) of a source document, body still structured."""

    title: str = ""
    body: Dict[str, Any] = Field(default_factory=dict)


class FetchedDocument(BaseModel):
    document_id: str
    title: str = ""
    revision_id: Optional[str] = None
    sections: List[RawSection] = Field(default_factory=list)


class Section(BaseModel):
    """A titled, dated-or-undated portion of a document, ready for summarization."""

    model_config = ConfigDict(frozen=True)

    title: str
    resolved_date: Optional[date] = None
    sort_key: int = 0
    raw_text: str = ""


# Generated intelligence
class ClientStatus(str, Enum):
    EXTREMELY_SATISFIED = "Extremely Satisfied"
    SATISFIED = "Satisfied"
    NEUTRAL = "Neutral"
    DISSATISFIED = "Dissatisfied"
    CRITICAL = "Critical"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(_as_text(item) for item in value if item is not None)
    if isinstance(value, dict):
        return "; ".join(f"{key}: {_as_text(item)}" for key, item in value.items())
    return str(value).strip()


class StructuredReport(BaseModel):
    """Final report parsed from the last section's generation response."""

    resumo_executivo: str = ""
    perfil_cliente: str = ""
    estrategia_relacionamento: str = ""
    checkpoints_feitos: List[str] = Field(default_factory=list)
    proximos_passos: List[str] = Field(default_factory=list)
    riscos_bloqueios: str = ""
    sentimento_score: int = DEFAULT_SENTIMENT_SCORE

    @field_validator(
        "resumo_executivo",
        "perfil_cliente",
        "estrategia_relacionamento",
        "riscos_bloqueios",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("checkpoints_feitos", "proximos_passos", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value.strip()] if value.strip() else []
        if isinstance(value, (list, tuple)):
            items = [_as_text(item) for item in value]
            return [item for item in items if item]
        text = _as_text(value)
        return [text] if text else []

    @field_validator("sentimento_score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> int:
        # Model output is untrusted: accept "9", 8.6, "7/10"; clamp to 0..10
        if isinstance(value, bool) or value is None:
            return DEFAULT_SENTIMENT_SCORE
        if isinstance(value, str):
            value = value.strip().split("/")[0].replace(",", ".")
        try:
            number = float(value)
        except (TypeError, ValueError):
            return DEFAULT_SENTIMENT_SCORE
        if not math.isfinite(number):
            return DEFAULT_SENTIMENT_SCORE
        return max(0, min(10, int(round(number))))


class ScoreHistoryEntry(BaseModel):
    score: int
    timestamp: datetime


# Company schemas
class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1)


class Company(BaseModel):
    id: str
    name: str
    doc_link: Optional[str] = None
    doc_revision: Optional[str] = None
    rendered_report: Optional[str] = None
    report: Optional[StructuredReport] = None
    status: Optional[ClientStatus] = None
    sentiment_score: Optional[int] = None
    last_updated: Optional[datetime] = None
    score_history: List[ScoreHistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("score_history", mode="before")
    @classmethod
    def _default_history(cls, value: Any) -> Any:
        return value or []


class IntelligenceResult(BaseModel):
    """Outcome of one company run. Failures are values, never raised."""

    success: bool
    company_id: str
    company_name: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    report: Optional[StructuredReport] = None
    status: Optional[ClientStatus] = None
    skipped: bool = False
    sections_processed: int = 0


class RefreshResponse(BaseModel):
    mode: str
    task_id: Optional[str] = None
    message: str


class StatusCount(BaseModel):
    label: ClientStatus
    value: int


class DashboardStats(BaseModel):
    company_count: int
    analyzed_count: int
    average_score: Optional[float] = None
    latest_update_at: Optional[datetime] = None
    statuses: List[StatusCount] = Field(default_factory=list)


class DashboardOverview(BaseModel):
    companies: List[Company]
    stats: DashboardStats
