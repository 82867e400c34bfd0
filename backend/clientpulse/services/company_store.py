"""Company record persistence: Supabase, or a local JSON file when unconfigured."""
from __future__ import annotations

import json
import logging
import os
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from clientpulse.config import Settings, supabase_configured
from clientpulse.utils.supabase_errors import is_invalid_id_error, is_supabase_table_missing_error

logger = logging.getLogger(__name__)


class CompanyStoreError(Exception):
    """Raised when a company record cannot be read or written."""
    pass


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class CompanyStore:
    """Interface shared by the persistence backends."""

    def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def upsert(self, company_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def insert(self, name: str) -> Dict[str, Any]:
        raise NotImplementedError

    def list(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class SupabaseCompanyStore(CompanyStore):
    def __init__(self, client, table: str = "companies"):
        self.client = client
        self.table = table

    def _raise(self, action: str, exc: Exception) -> None:
        if is_supabase_table_missing_error(exc):
            raise CompanyStoreError(
                f"Table '{self.table}' is missing; run supabase/migrations first"
            ) from exc
        raise CompanyStoreError(f"Error during {action}: {exc}") from exc

    def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.table(self.table).select("*").eq("id", company_id).execute()
        except Exception as exc:  # noqa: BLE001
            if is_invalid_id_error(exc):
                return None
            self._raise("company lookup", exc)
        return response.data[0] if response.data else None

    def upsert(self, company_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.table(self.table)\
                .update(fields)\
                .eq("id", company_id)\
                .execute()
            if response.data:
                return response.data[0]
            response = self.client.table(self.table)\
                .insert({"id": company_id, **fields})\
                .execute()
        except Exception as exc:  # noqa: BLE001
            self._raise("company update", exc)
        return response.data[0] if response.data else {"id": company_id, **fields}

    def insert(self, name: str) -> Dict[str, Any]:
        try:
            response = self.client.table(self.table).insert({"name": name}).execute()
        except Exception as exc:  # noqa: BLE001
            self._raise("company registration", exc)
        if not response.data:
            raise CompanyStoreError(f"Supabase returned no row for '{name}'")
        return response.data[0]

    def list(self) -> List[Dict[str, Any]]:
        try:
            response = self.client.table(self.table).select("*").order("name").execute()
        except Exception as exc:  # noqa: BLE001
            self._raise("company listing", exc)
        return response.data or []


class LocalCompanyStore(CompanyStore):
    """
    JSON-file store used when Supabase credentials are not configured.

    Every operation re-reads the file under the lock and writes it back
    atomically, so the API and a worker process on the same host see each
    other's rows instead of overwriting them with a stale snapshot.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable local store %s: %s", self.path, exc)
            return {}

    def _save(self, records: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(f"{self.path.name}.{uuid4().hex}.tmp")
            tmp_path.write_text(json.dumps(records, default=_json_default, indent=2))
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise CompanyStoreError(f"Unable to persist local store {self.path}: {exc}") from exc

    def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._load().get(str(company_id))
        return dict(record) if record else None

    def upsert(self, company_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            records = self._load()
            record = records.setdefault(str(company_id), {"id": str(company_id)})
            record.update(json.loads(json.dumps(fields, default=_json_default)))
            self._save(records)
            return dict(record)

    def insert(self, name: str) -> Dict[str, Any]:
        with self._lock:
            records = self._load()
            company_id = str(uuid4())
            record = {
                "id": company_id,
                "name": name,
                "score_history": [],
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            records[company_id] = record
            self._save(records)
            return dict(record)

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            records = [dict(record) for record in self._load().values()]
        return sorted(records, key=lambda record: (record.get("name") or "").lower())


def build_company_store(settings: Settings) -> CompanyStore:
    """Supabase when configured, local JSON fallback otherwise."""
    if supabase_configured(settings):
        from clientpulse.models.database import get_supabase_client

        return SupabaseCompanyStore(get_supabase_client(), table=settings.companies_table)

    path = Path(settings.data_dir) / "local_cache" / "companies.json"
    logger.info("Supabase not configured; using local company store at %s", path)
    return LocalCompanyStore(path)
