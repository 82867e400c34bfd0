"""Shared fixtures: settings, scripted generators and in-memory collaborators."""
import json
from typing import Dict, List, Optional

import pytest

from clientpulse.config import Settings
from clientpulse.models.schemas import FetchedDocument, RawSection
from clientpulse.services.company_store import LocalCompanyStore
from clientpulse.services.document_exceptions import DocumentFetchError, DocumentNotFoundError
from clientpulse.services.text_extractor import body_from_text

FINAL_JSON = json.dumps({
    "sentimento_score": "9",
    "resumo_executivo": "ok",
    "checkpoints_feitos": [],
    "proximos_passos": ["Enviar proposta"],
})


class ScriptedGenerator:
    """Returns (or raises) the next scripted item and records every call."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    def __call__(self, instruction: str, context: str) -> str:
        self.calls.append((instruction, context))
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RoleGenerator:
    """Deterministic stub: carry text for carry calls, JSON only on the final call."""

    def __init__(self, final_response: str = FINAL_JSON):
        self.final_response = final_response
        self.calls = []

    def __call__(self, instruction: str, context: str) -> str:
        self.calls.append((instruction, context))
        if "JSON estrito" in instruction:
            return self.final_response
        return f"memória após chamada {len(self.calls)}"


class FakeDirectory:
    def __init__(self, mapping: Dict[str, str]):
        self.mapping = mapping

    def find_document_id(self, company_name: str) -> str:
        for name, document_id in self.mapping.items():
            if name.lower() in company_name.lower():
                return document_id
        raise DocumentNotFoundError(company_name)


class FakeSource:
    def __init__(self, documents: Dict[str, FetchedDocument], errors: Optional[Dict[str, Exception]] = None):
        self.documents = documents
        self.errors = errors or {}
        self.fetches: List[str] = []

    def fetch(self, document_id: str) -> FetchedDocument:
        self.fetches.append(document_id)
        if document_id in self.errors:
            raise self.errors[document_id]
        if document_id not in self.documents:
            raise DocumentFetchError(f"missing {document_id}", document_id=document_id, cause="not_found")
        return self.documents[document_id]


def make_document(document_id: str = "doc-1", revision_id: Optional[str] = "rev-1", sections=None) -> FetchedDocument:
    sections = sections or [
        ("14 jan", "Cliente elogiou a entrega do piloto."),
        ("02 fev", "Próximos passos: enviar proposta comercial."),
        ("sem data", "Contexto geral do contrato."),
    ]
    return FetchedDocument(
        document_id=document_id,
        title="Log de reuniões",
        revision_id=revision_id,
        sections=[RawSection(title=title, body=body_from_text(text)) for title, text in sections],
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_service_role_key="",
        data_dir=str(tmp_path),
        task_mode="inline",
    )


@pytest.fixture
def store(tmp_path):
    return LocalCompanyStore(tmp_path / "companies.json")
