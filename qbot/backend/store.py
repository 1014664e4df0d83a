"""
Entity Store - thin client for the backend-as-a-service.

Provides entity CRUD, the signed-in user's profile and file uploads.
Two implementations share one interface:

- HttpEntityStore: REST client for the hosted backend (httpx)
- LocalEntityStore: JSON files under ``data/`` for development and tests

Usage:
    from qbot.backend.store import get_store

    store = get_store()
    inspections = store.list("Inspection", sort="-created_date", limit=100)
    created = store.create("Inspection", {"batch_number": "B-2024-001", ...})
"""

import os
import json
import uuid
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from qbot.config import config

logger = logging.getLogger(__name__)

ENTITY_NAMES = ("Inspection", "Defect", "Equipment", "Report")
DEFAULT_SORT = "-created_date"


class BackendError(RuntimeError):
    """Raised when the backend cannot be reached or rejects a request."""


class BackendConfigurationError(ValueError):
    """Raised when the backend client is missing mandatory configuration."""


def _now() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _sort_records(records: List[dict], sort: Optional[str]) -> List[dict]:
    """Sort by a field name; a leading '-' means descending.

    Records missing the field go last in either direction.
    """
    if not sort:
        return list(records)
    descending = sort.startswith("-")
    field_name = sort.lstrip("-")
    present = [r for r in records if r.get(field_name) is not None]
    missing = [r for r in records if r.get(field_name) is None]
    return sorted(present, key=lambda r: r[field_name], reverse=descending) + missing


# ============ INTERFACE ============

class EntityStore:
    """Common interface for entity storage backends."""

    def list(self, entity: str, sort: Optional[str] = DEFAULT_SORT,
             limit: Optional[int] = None) -> List[dict]:
        raise NotImplementedError

    def create(self, entity: str, data: Dict[str, Any]) -> dict:
        raise NotImplementedError

    def bulk_create(self, entity: str, records: List[Dict[str, Any]]) -> List[dict]:
        raise NotImplementedError

    def update(self, entity: str, record_id: str, data: Dict[str, Any]) -> dict:
        raise NotImplementedError

    def me(self) -> dict:
        raise NotImplementedError

    def update_me(self, data: Dict[str, Any]) -> dict:
        raise NotImplementedError

    def logout(self) -> None:
        raise NotImplementedError

    def upload_file(self, data: bytes, filename: str, content_type: str) -> str:
        raise NotImplementedError


# ============ LOCAL JSON STORE ============

class LocalEntityStore(EntityStore):
    """
    File-backed store: one JSON list per entity.

    Uploaded files are written to ``<root>/uploads`` and their paths are
    returned as file URLs.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or config["backend"]["data_path"])
        self.root.mkdir(parents=True, exist_ok=True)
        self.uploads = self.root / "uploads"

    def _path(self, entity: str) -> Path:
        if entity not in ENTITY_NAMES:
            raise BackendError(f"Unknown entity: {entity}")
        return self.root / f"{entity.lower()}.json"

    def _load(self, entity: str) -> List[dict]:
        path = self._path(entity)
        if not path.exists():
            return []
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BackendError(f"Failed to read {path.name}: {e}") from e

    def _save(self, entity: str, records: List[dict]):
        with open(self._path(entity), 'w') as f:
            json.dump(records, f, indent=2)

    def _stamp(self, data: Dict[str, Any]) -> dict:
        record = dict(data)
        record["id"] = record.get("id") or uuid.uuid4().hex
        record["created_date"] = record.get("created_date") or _now()
        return record

    def list(self, entity, sort=DEFAULT_SORT, limit=None):
        records = _sort_records(self._load(entity), sort)
        return records[:limit] if limit else records

    def create(self, entity, data):
        record = self._stamp(data)
        records = self._load(entity)
        records.append(record)
        self._save(entity, records)
        logger.info("Created %s %s", entity, record["id"])
        return record

    def bulk_create(self, entity, records):
        stamped = [self._stamp(r) for r in records]
        existing = self._load(entity)
        existing.extend(stamped)
        self._save(entity, existing)
        logger.info("Created %d %s records", len(stamped), entity)
        return stamped

    def update(self, entity, record_id, data):
        records = self._load(entity)
        for record in records:
            if record.get("id") == record_id:
                record.update({k: v for k, v in data.items() if k not in ("id", "created_date")})
                self._save(entity, records)
                return record
        raise BackendError(f"{entity} {record_id} not found")

    def _user_path(self) -> Path:
        return self.root / "user.json"

    def me(self):
        path = self._user_path()
        if path.exists():
            with open(path, 'r') as f:
                return json.load(f)
        return {
            "id": "local-user",
            "full_name": os.getenv("QBOT_USER_NAME", ""),
            "email": os.getenv("QBOT_USER_EMAIL", "operator@localhost"),
            "role": "admin",
        }

    def update_me(self, data):
        user = self.me()
        # Only the display name is editable; email and role are managed by the backend
        if "full_name" in data:
            user["full_name"] = data["full_name"]
        with open(self._user_path(), 'w') as f:
            json.dump(user, f, indent=2)
        return user

    def logout(self):
        logger.info("Local session ended")

    def upload_file(self, data, filename, content_type):
        self.uploads.mkdir(parents=True, exist_ok=True)
        safe_name = Path(filename).name.replace(" ", "_") or "upload"
        path = self.uploads / f"{uuid.uuid4().hex[:12]}_{safe_name}"
        path.write_bytes(data)
        logger.info("Stored upload %s (%d bytes, %s)", path.name, len(data), content_type)
        return str(path)


# ============ HTTP STORE ============

class HttpEntityStore(EntityStore):
    """REST client for the hosted backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        configured_url = (base_url or config["backend"]["base_url"] or "").strip()
        configured_key = (api_key or os.getenv("QBOT_BACKEND_API_KEY", "")).strip()
        if not configured_url:
            raise BackendConfigurationError("QBOT_BACKEND_URL is not configured")
        if not configured_key:
            raise BackendConfigurationError("QBOT_BACKEND_API_KEY is not configured")

        self.base_url = configured_url.rstrip("/")
        self._api_key = configured_key
        self.timeout = timeout or float(config["backend"]["timeout"])

    def _headers(self) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"}
        app_id = config["backend"].get("app_id")
        if app_id:
            headers["X-App-Id"] = app_id
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = httpx.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(f"Backend request failed: {exc}") from exc
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise BackendError(f"Backend returned invalid JSON for {path}") from exc

    def list(self, entity, sort=DEFAULT_SORT, limit=None):
        params = {}
        if sort:
            params["sort"] = sort
        if limit:
            params["limit"] = limit
        return self._request("GET", f"entities/{entity}", params=params) or []

    def create(self, entity, data):
        return self._request("POST", f"entities/{entity}", json=data)

    def bulk_create(self, entity, records):
        return self._request("POST", f"entities/{entity}/bulk", json=records) or []

    def update(self, entity, record_id, data):
        return self._request("PUT", f"entities/{entity}/{record_id}", json=data)

    def me(self):
        return self._request("GET", "auth/me")

    def update_me(self, data):
        return self._request("PUT", "auth/me", json={"full_name": data.get("full_name", "")})

    def logout(self):
        self._request("POST", "auth/logout")

    def upload_file(self, data, filename, content_type):
        payload = self._request(
            "POST",
            "integrations/upload",
            files={"file": (filename, data, content_type)},
        )
        if not payload or "file_url" not in payload:
            raise BackendError("Upload response did not include a file_url")
        return payload["file_url"]


# ============ GLOBAL INSTANCE ============

_store_instance: Optional[EntityStore] = None


def create_store() -> EntityStore:
    """Build the store selected in the configuration."""
    provider = config["backend"]["provider"]
    if provider == "http":
        return HttpEntityStore()
    return LocalEntityStore()


def get_store() -> EntityStore:
    """Get or create the store singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = create_store()
        logger.info("Using %s", type(_store_instance).__name__)
    return _store_instance


def set_store(store: Optional[EntityStore]):
    """Replace the store singleton (None resets it)."""
    global _store_instance
    _store_instance = store
