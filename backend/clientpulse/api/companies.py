"""Companies API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from clientpulse.models.schemas import Company, CompanyCreate, IntelligenceResult
from clientpulse.services.company_store import CompanyStore
from clientpulse.services.intelligence import (
    IntelligenceService,
    get_company_store,
    get_intelligence_service,
)

router = APIRouter()

# Failure codes -> HTTP status for manual refreshes
ERROR_STATUS_CODES = {
    "company_not_found": 404,
    "document_not_found": 404,
    "document_fetch_failed": 502,
    "document_empty": 422,
    "generation_failed": 502,
    "persistence_failed": 500,
    "unexpected_error": 500,
}


@router.get("", response_model=List[Company])
def list_companies(store: CompanyStore = Depends(get_company_store)):
    """Return every registered company with its latest card."""
    return [Company(**record) for record in store.list()]


@router.post("", response_model=Company, status_code=201)
def register_company(request: CompanyCreate, store: CompanyStore = Depends(get_company_store)):
    """Register a company by name; its document is resolved on first refresh."""
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Company name cannot be blank")
    return Company(**store.insert(name))


@router.get("/{company_id}", response_model=Company)
def get_company(company_id: str, store: CompanyStore = Depends(get_company_store)):
    record = store.get(company_id)
    if not record:
        raise HTTPException(status_code=404, detail="Company not found")
    return Company(**record)


@router.post("/{company_id}/refresh", response_model=IntelligenceResult)
def refresh_company(
    company_id: str,
    response: Response,
    force: bool = False,
    service: IntelligenceService = Depends(get_intelligence_service),
):
    """
    Run the intelligence pipeline for one company right away.

    The body is always an IntelligenceResult; failures also set a non-2xx
    status code so callers can branch on it.
    """
    result = service.run(company_id, force=force)
    if not result.success:
        response.status_code = ERROR_STATUS_CODES.get(result.error, 500)
    return result
