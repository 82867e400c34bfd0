"""Celery tasks refreshing client intelligence cards."""
import logging
from typing import Any, Dict, List, Optional

from clientpulse.services.intelligence import get_intelligence_service
from clientpulse.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="clientpulse.tasks.refresh.refresh_company_task")
def refresh_company_task(
    self,
    company_id: str,
    company_name: Optional[str] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """
    Background refresh of a single company.

    Args:
        self: Celery task instance
        company_id: Company id in the store
        company_name: Optional name; looked up from the store when omitted
        force: Regenerate even when the document revision is unchanged
    """
    self.update_state(state="PROGRESS", meta={"company_id": company_id, "status": "Analyzing meeting log..."})
    result = get_intelligence_service().run(company_id, company_name, force=force)
    return result.model_dump(mode="json")


@celery_app.task(bind=True, name="clientpulse.tasks.refresh.refresh_all_companies_task")
def refresh_all_companies_task(self, force: bool = False) -> Dict[str, Any]:
    """Scheduled bulk refresh; one company failing never stops the run."""
    self.update_state(state="PROGRESS", meta={"status": "Refreshing all companies..."})
    results = get_intelligence_service().refresh_all(force=force)
    failures: List[Dict[str, Any]] = [
        {"company_id": r.company_id, "error": r.error, "details": r.details}
        for r in results
        if not r.success
    ]
    return {
        "status": "completed",
        "total": len(results),
        "succeeded": len(results) - len(failures),
        "failures": failures,
    }
