"""Pipeline values and API schemas."""
from clientpulse.models.schemas import (
    ClientStatus,
    Company,
    CompanyCreate,
    FetchedDocument,
    IntelligenceResult,
    RawSection,
    Section,
    StructuredReport,
)

__all__ = [
    "ClientStatus",
    "Company",
    "CompanyCreate",
    "FetchedDocument",
    "IntelligenceResult",
    "RawSection",
    "Section",
    "StructuredReport",
]
