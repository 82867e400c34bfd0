"""Dashboard overview and bulk sync endpoints."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from clientpulse.config import get_settings
from clientpulse.models.schemas import (
    ClientStatus,
    Company,
    DashboardOverview,
    DashboardStats,
    RefreshResponse,
    StatusCount,
)
from clientpulse.services.company_store import CompanyStore
from clientpulse.services.intelligence import (
    IntelligenceService,
    get_company_store,
    get_intelligence_service,
)

router = APIRouter()


@router.get("/overview", response_model=DashboardOverview)
def get_dashboard_overview(store: CompanyStore = Depends(get_company_store)):
    """
    Return every company card plus aggregate stats.

    Reads only from the store, so it never spends generation calls.
    """
    companies = [Company(**record) for record in store.list()]
    return DashboardOverview(companies=companies, stats=calculate_stats(companies))


@router.post("/sync", response_model=RefreshResponse, status_code=202)
def sync_all_companies(
    background_tasks: BackgroundTasks,
    force: bool = False,
    service: IntelligenceService = Depends(get_intelligence_service),
):
    """Start a bulk refresh on Celery, or in-process when task_mode is inline."""
    settings = get_settings()

    if settings.task_mode == "inline":
        background_tasks.add_task(service.refresh_all, force)
        return RefreshResponse(mode="inline", message="Bulk refresh started in background")

    from clientpulse.tasks.refresh import refresh_all_companies_task

    try:
        task = refresh_all_companies_task.delay(force=force)
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(status_code=503, detail=f"Task queue unavailable: {exc}") from exc
    return RefreshResponse(mode="celery", task_id=task.id, message="Bulk refresh queued")


def calculate_stats(companies: List[Company]) -> DashboardStats:
    analyzed = [company for company in companies if company.status is not None]
    scores = [company.sentiment_score for company in analyzed if company.sentiment_score is not None]
    average_score = round(sum(scores) / len(scores), 1) if scores else None

    latest: Optional[datetime] = None
    for company in analyzed:
        updated = company.last_updated
        if updated is None:
            continue
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)
        if latest is None or updated > latest:
            latest = updated

    counter = Counter(company.status for company in analyzed)
    statuses = [StatusCount(label=status, value=counter.get(status, 0)) for status in ClientStatus]

    return DashboardStats(
        company_count=len(companies),
        analyzed_count=len(analyzed),
        average_score=average_score,
        latest_update_at=latest,
        statuses=statuses,
    )
