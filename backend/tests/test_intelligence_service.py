"""Tests for the end-to-end intelligence service."""
import pytest

from clientpulse.config import Settings
from clientpulse.models.schemas import ClientStatus
from clientpulse.services.document_exceptions import DocumentFetchError
from clientpulse.services.generation_exceptions import GenerationTimeoutError
from clientpulse.services.intelligence import IntelligenceService
from tests.conftest import FakeDirectory, FakeSource, RoleGenerator, ScriptedGenerator, make_document


@pytest.fixture
def generator():
    return RoleGenerator()


@pytest.fixture
def source():
    return FakeSource({"doc-1": make_document("doc-1")})


@pytest.fixture
def service(settings, source, generator, store):
    return IntelligenceService(
        settings=settings,
        directory=FakeDirectory({"acme": "doc-1"}),
        source=source,
        generate=generator,
        store=store,
    )


@pytest.fixture
def acme(store):
    return store.insert("Acme Corp")


class TestRun:
    def test_successful_run_is_persisted(self, service, store, acme):
        result = service.run(acme["id"])

        assert result.success is True
        assert result.status == ClientStatus.EXTREMELY_SATISFIED
        assert result.report.proximos_passos == ["Enviar proposta"]
        assert result.sections_processed == 3

        record = store.get(acme["id"])
        assert record["status"] == "Extremely Satisfied"
        assert record["sentiment_score"] == 9
        assert record["doc_revision"] == "rev-1"
        assert record["doc_link"].endswith("/document/d/doc-1/edit")
        assert len(record["score_history"]) == 1

    def test_unchanged_revision_skips_generation(self, service, generator, acme):
        service.run(acme["id"])
        calls = len(generator.calls)

        result = service.run(acme["id"])

        assert result.success is True
        assert result.skipped is True
        assert result.status == ClientStatus.EXTREMELY_SATISFIED
        assert len(generator.calls) == calls

    def test_force_regenerates(self, service, generator, store, acme):
        service.run(acme["id"])
        result = service.run(acme["id"], force=True)

        assert result.skipped is False
        assert len(generator.calls) == 6
        assert len(store.get(acme["id"])["score_history"]) == 2

    def test_new_revision_regenerates(self, service, source, generator, acme):
        service.run(acme["id"])
        source.documents["doc-1"] = make_document("doc-1", revision_id="rev-2")

        result = service.run(acme["id"])

        assert result.skipped is False
        assert len(generator.calls) == 6

    def test_unknown_company(self, service):
        result = service.run("missing-id")

        assert result.success is False
        assert result.error == "company_not_found"

    def test_document_not_in_directory(self, service, store):
        company = store.insert("Globex")
        result = service.run(company["id"])

        assert result.success is False
        assert result.error == "document_not_found"
        assert store.get(company["id"]).get("status") is None

    def test_document_fetch_failure(self, settings, generator, store, acme):
        denied = DocumentFetchError("denied", document_id="doc-1", cause="permission_denied")
        service = IntelligenceService(
            settings, FakeDirectory({"acme": "doc-1"}), FakeSource({}, {"doc-1": denied}), generator, store
        )

        result = service.run(acme["id"])

        assert result.error == "document_fetch_failed"
        assert "permission_denied" in result.details
        assert generator.calls == []

    def test_blank_document(self, settings, generator, store, acme):
        blank = make_document("doc-1", sections=[("14 jan", "   "), ("15 jan", "")])
        service = IntelligenceService(
            settings, FakeDirectory({"acme": "doc-1"}), FakeSource({"doc-1": blank}), generator, store
        )

        result = service.run(acme["id"])

        assert result.error == "document_empty"
        assert generator.calls == []

    def test_generation_failure(self, settings, source, store, acme):
        failing = ScriptedGenerator([GenerationTimeoutError("t")] * 6)
        service = IntelligenceService(settings, FakeDirectory({"acme": "doc-1"}), source, failing, store)

        result = service.run(acme["id"])

        assert result.success is False
        assert result.error == "generation_failed"
        assert store.get(acme["id"]).get("report") is None

    def test_generator_bug_is_reported_not_raised(self, settings, source, store, acme):
        broken = ScriptedGenerator([AttributeError("'NoneType' object has no attribute 'post'")] * 6)
        service = IntelligenceService(settings, FakeDirectory({"acme": "doc-1"}), source, broken, store)

        result = service.run(acme["id"])

        assert result.success is False
        assert result.error == "generation_failed"

    def test_unexpected_error_is_reported_not_raised(self, settings, source, generator, store, acme):
        class BrokenDirectory:
            def find_document_id(self, company_name):
                raise AttributeError("sheet client not initialised")

        service = IntelligenceService(settings, BrokenDirectory(), source, generator, store)

        result = service.run(acme["id"])

        assert result.success is False
        assert result.error == "unexpected_error"
        assert result.company_id == acme["id"]
        assert "sheet client" in result.details

    def test_score_history_is_capped(self, tmp_path, source, generator, store, acme):
        settings = Settings(_env_file=None, data_dir=str(tmp_path), score_history_limit=2)
        service = IntelligenceService(settings, FakeDirectory({"acme": "doc-1"}), source, generator, store)

        for _ in range(4):
            service.run(acme["id"], force=True)

        assert len(store.get(acme["id"])["score_history"]) == 2


class TestRefreshAll:
    def test_failures_are_isolated(self, settings, generator, store):
        acme = store.insert("Acme")
        store.insert("Globex")
        store.insert("Initech")
        source = FakeSource(
            {"doc-1": make_document("doc-1")},
            errors={"doc-3": RuntimeError("connection reset")},
        )
        directory = FakeDirectory({"acme": "doc-1", "initech": "doc-3"})
        service = IntelligenceService(settings, directory, source, generator, store)

        results = service.refresh_all()

        assert [result.company_name for result in results] == ["Acme", "Globex", "Initech"]
        assert [result.success for result in results] == [True, False, False]
        assert results[1].error == "document_not_found"
        assert results[2].error == "unexpected_error"
        assert store.get(acme["id"])["status"] == "Extremely Satisfied"

    def test_empty_store(self, service):
        assert service.refresh_all() == []
