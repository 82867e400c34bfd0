"""Convert a StructuredReport into the persisted company card."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clientpulse.models.schemas import ClientStatus, StructuredReport

DEFAULT_HISTORY_LIMIT = 30


def document_link(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


def _bullets(items: List[str], empty: str = "_Nada registrado._") -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def render_report_markdown(
    company_name: str,
    report: StructuredReport,
    status: ClientStatus,
    doc_link: Optional[str] = None,
) -> str:
    """Render the card shown on the dashboard."""
    source_line = f"\n[Documento de reuniões]({doc_link})\n" if doc_link else ""
    return f"""# {company_name}

**Status:** {status.value} ({report.sentimento_score}/10)
{source_line}
## Resumo Executivo
{report.resumo_executivo or "_Sem resumo._"}

## Perfil do Cliente
{report.perfil_cliente or "_Não identificado._"}

## Estratégia de Relacionamento
{report.estrategia_relacionamento or "_Não definida._"}

## Checkpoints Feitos
{_bullets(report.checkpoints_feitos)}

## Próximos Passos
{_bullets(report.proximos_passos)}

## Riscos e Bloqueios
{report.riscos_bloqueios or "_Nenhum risco registrado._"}
"""


def append_score_history(
    history: Optional[List[Dict[str, Any]]],
    score: int,
    timestamp: datetime,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[Dict[str, Any]]:
    """Append ``{score, timestamp}`` and keep only the most recent ``limit`` entries."""
    entries = list(history or [])
    entries.append({"score": score, "timestamp": timestamp.isoformat()})
    return entries[-limit:] if limit > 0 else []


def build_company_update(
    company_name: str,
    report: StructuredReport,
    status: ClientStatus,
    document_id: str,
    previous_history: Optional[List[Dict[str, Any]]] = None,
    revision_id: Optional[str] = None,
    now: Optional[datetime] = None,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> Dict[str, Any]:
    """
    Build the fields written back to the company record.

    Returns:
        Dictionary ready for ``CompanyStore.upsert``
    """
    now = now or datetime.now(timezone.utc)
    doc_link = document_link(document_id)
    return {
        "doc_link": doc_link,
        "doc_revision": revision_id,
        "rendered_report": render_report_markdown(company_name, report, status, doc_link),
        "report": report.model_dump(),
        "status": status.value,
        "sentiment_score": report.sentimento_score,
        "last_updated": now.isoformat(),
        "score_history": append_score_history(
            previous_history,
            report.sentimento_score,
            now,
            limit=history_limit,
        ),
    }
