"""End-to-end client intelligence runs: lookup, fetch, summarize, classify, persist."""
import logging
from functools import lru_cache
from typing import Callable, List, Optional

from clientpulse.config import Settings, get_settings
from clientpulse.models.schemas import IntelligenceResult, StructuredReport
from clientpulse.services.company_directory import CompanyDirectory, build_company_directory
from clientpulse.services.company_store import CompanyStore, CompanyStoreError, build_company_store
from clientpulse.services.document_exceptions import DocumentFetchError, DocumentNotFoundError
from clientpulse.services.document_source import DocumentSource, build_document_source
from clientpulse.services.generation_client import build_generation_client
from clientpulse.services.report_renderer import build_company_update
from clientpulse.services.sequencer import build_sections
from clientpulse.services.status_classifier import classify_score
from clientpulse.services.summarization_engine import SummarizationEngine, SummarizationError

logger = logging.getLogger(__name__)


class IntelligenceService:
    """
    Owns the collaborators for one deployment and runs companies through the
    pipeline. Every failure comes back as ``IntelligenceResult(success=False)``.
    """

    def __init__(
        self,
        settings: Settings,
        directory: CompanyDirectory,
        source: DocumentSource,
        generate: Callable[[str, str], str],
        store: CompanyStore,
    ):
        self.settings = settings
        self.directory = directory
        self.source = source
        self.store = store
        self.engine = SummarizationEngine(
            generate,
            max_payload_chars=settings.max_payload_chars,
            carry_memory_chars=settings.carry_memory_chars,
            final_memory_chars=settings.final_memory_chars,
            degraded_context_chars=settings.degraded_context_chars,
        )

    def run(self, company_id: str, company_name: Optional[str] = None, force: bool = False) -> IntelligenceResult:
        """Refresh one company's card. Unexpected errors are reported, never raised."""
        company_id = str(company_id)
        try:
            return self._run(company_id, company_name, force)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error refreshing company %s", company_id)
            return IntelligenceResult(
                success=False,
                company_id=company_id,
                company_name=company_name,
                error="unexpected_error",
                details=str(exc),
            )

    def _run(self, company_id: str, company_name: Optional[str], force: bool) -> IntelligenceResult:
        def failure(error: str, details: str) -> IntelligenceResult:
            logger.warning("Company %s (%s): %s - %s", company_id, company_name, error, details)
            return IntelligenceResult(
                success=False,
                company_id=company_id,
                company_name=company_name,
                error=error,
                details=details,
            )

        try:
            record = self.store.get(company_id) or {}
        except CompanyStoreError as exc:
            return failure("persistence_failed", str(exc))

        company_name = company_name or record.get("name")
        if not company_name:
            return failure("company_not_found", "Company is not registered")

        try:
            document_id = self.directory.find_document_id(company_name)
            document = self.source.fetch(document_id)
        except DocumentNotFoundError as exc:
            return failure("document_not_found", str(exc))
        except DocumentFetchError as exc:
            return failure("document_fetch_failed", f"{exc} ({exc.cause})")

        if (
            not force
            and document.revision_id
            and record.get("doc_revision") == document.revision_id
            and record.get("report")
        ):
            logger.info("Company %s unchanged at revision %s; skipping generation", company_id, document.revision_id)
            report = StructuredReport.model_validate(record["report"])
            return IntelligenceResult(
                success=True,
                company_id=company_id,
                company_name=company_name,
                report=report,
                status=classify_score(report.sentimento_score),
                skipped=True,
            )

        sections = [section for section in build_sections(document.sections) if section.raw_text.strip()]
        if not sections:
            return failure("document_empty", f"Document {document_id} has no sections with text")

        try:
            summary = self.engine.run(sections, company_name=company_name)
        except SummarizationError as exc:
            return failure("generation_failed", str(exc))

        status = classify_score(summary.report.sentimento_score)
        fields = build_company_update(
            company_name,
            summary.report,
            status,
            document_id,
            previous_history=record.get("score_history"),
            revision_id=document.revision_id,
            history_limit=self.settings.score_history_limit,
        )

        try:
            self.store.upsert(company_id, fields)
        except CompanyStoreError as exc:
            return failure("persistence_failed", str(exc))

        logger.info(
            "Company %s refreshed: %s (%d/10), %d sections, %d skipped",
            company_name,
            status.value,
            summary.report.sentimento_score,
            summary.sections_succeeded,
            summary.sections_skipped,
        )
        return IntelligenceResult(
            success=True,
            company_id=company_id,
            company_name=company_name,
            report=summary.report,
            status=status,
            sections_processed=summary.sections_succeeded,
        )

    def refresh_all(self, force: bool = False) -> List[IntelligenceResult]:
        """Run every registered company, one after the other."""
        try:
            companies = self.store.list()
        except CompanyStoreError as exc:
            logger.error("Unable to list companies: %s", exc)
            return []

        results = [self.run(str(company.get("id")), company.get("name"), force=force) for company in companies]

        succeeded = sum(1 for result in results if result.success)
        logger.info("Bulk refresh finished: %d/%d companies succeeded", succeeded, len(results))
        return results


def build_intelligence_service(settings: Settings) -> IntelligenceService:
    return IntelligenceService(
        settings=settings,
        directory=build_company_directory(settings),
        source=build_document_source(settings),
        generate=build_generation_client(settings).generate,
        store=build_company_store(settings),
    )


@lru_cache()
def get_intelligence_service() -> IntelligenceService:
    """Get cached service instance."""
    return build_intelligence_service(get_settings())


@lru_cache()
def get_company_store() -> CompanyStore:
    """Store shared with the service, for read-only API endpoints."""
    return get_intelligence_service().store
