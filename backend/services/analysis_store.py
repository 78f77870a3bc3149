"""
Analysis Store - saved analyses per user

Records live under ``users/{uid}/analyses/{analysis_id}``:
- Firestore backend when Firebase is configured (store-assigned timestamps)
- In-memory backend otherwise (local development, tests)

A user only ever sees and deletes their own records. Deletion is permanent.
"""
import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from api.schemas import AnalysisResult, SavedAnalysis
from config import Settings, get_settings
from core.exceptions import AnalysisNotFound, UpstreamError

logger = structlog.get_logger()

# Set by the store; re-saving a loaded record creates a new one
_RECORD_FIELDS = {"id", "saved_at"}


class AnalysisStore(ABC):
    """Create/list/delete saved analyses keyed by user id and analysis id."""

    backend_name: str = "abstract"

    @abstractmethod
    async def create(self, uid: str, analysis: AnalysisResult) -> SavedAnalysis:
        ...

    @abstractmethod
    async def list(self, uid: str) -> List[SavedAnalysis]:
        """Return the user's saved analyses, newest first."""

    @abstractmethod
    async def delete(self, uid: str, analysis_id: str) -> None:
        """Permanently delete one analysis; AnalysisNotFound if absent."""


class InMemoryAnalysisStore(AnalysisStore):
    """Process-local store guarded by an asyncio lock."""

    backend_name = "memory"

    def __init__(self):
        self._records: Dict[str, Dict[str, SavedAnalysis]] = {}
        self._lock = asyncio.Lock()

    async def create(self, uid: str, analysis: AnalysisResult) -> SavedAnalysis:
        saved = SavedAnalysis(
            **analysis.model_dump(exclude=_RECORD_FIELDS),
            id=uuid.uuid4().hex,
            saved_at=datetime.now(timezone.utc),
        )
        async with self._lock:
            self._records.setdefault(uid, {})[saved.id] = saved

        logger.info("Analysis saved", uid=uid, analysis_id=saved.id, backend=self.backend_name)
        return saved

    async def list(self, uid: str) -> List[SavedAnalysis]:
        async with self._lock:
            records = list(self._records.get(uid, {}).values())
        return sorted(records, key=lambda r: r.saved_at, reverse=True)

    async def delete(self, uid: str, analysis_id: str) -> None:
        async with self._lock:
            user_records = self._records.get(uid, {})
            if analysis_id not in user_records:
                raise AnalysisNotFound(analysis_id)
            del user_records[analysis_id]

        logger.info("Analysis deleted", uid=uid, analysis_id=analysis_id, backend=self.backend_name)


class FirestoreAnalysisStore(AnalysisStore):
    """
    Firestore-backed store.

    The Firestore client is synchronous; calls run in a worker thread.
    Any store failure other than a missing record surfaces as UpstreamError.
    """

    backend_name = "firestore"

    def __init__(self, client: Any = None):
        if client is None:
            from firebase_admin import firestore
            from services.auth_service import init_firebase

            init_firebase()
            client = firestore.client()
        self._db = client

    def _collection(self, uid: str):
        return self._db.collection("users").document(uid).collection("analyses")

    @staticmethod
    def _from_snapshot(snapshot) -> SavedAnalysis:
        data = snapshot.to_dict() or {}
        return SavedAnalysis(**data, id=snapshot.id)

    def _sync_create(self, uid: str, analysis: AnalysisResult) -> SavedAnalysis:
        from firebase_admin import firestore

        payload = analysis.model_dump(by_alias=True, mode="json", exclude=_RECORD_FIELDS)
        payload["savedAt"] = firestore.SERVER_TIMESTAMP
        _, doc_ref = self._collection(uid).add(payload)
        return self._from_snapshot(doc_ref.get())

    def _sync_list(self, uid: str) -> List[SavedAnalysis]:
        from firebase_admin import firestore

        query = self._collection(uid).order_by("savedAt", direction=firestore.Query.DESCENDING)
        return [self._from_snapshot(snapshot) for snapshot in query.stream()]

    def _sync_delete(self, uid: str, analysis_id: str) -> None:
        doc_ref = self._collection(uid).document(analysis_id)
        if not doc_ref.get().exists:
            raise AnalysisNotFound(analysis_id)
        doc_ref.delete()

    async def _run(self, operation: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except AnalysisNotFound:
            raise
        except Exception as e:
            logger.error("Firestore call failed", operation=operation, error=str(e))
            raise UpstreamError(message="Could not reach saved analyses.", detail=str(e))

    async def create(self, uid: str, analysis: AnalysisResult) -> SavedAnalysis:
        saved = await self._run("create", self._sync_create, uid, analysis)
        logger.info("Analysis saved", uid=uid, analysis_id=saved.id, backend=self.backend_name)
        return saved

    async def list(self, uid: str) -> List[SavedAnalysis]:
        return await self._run("list", self._sync_list, uid)

    async def delete(self, uid: str, analysis_id: str) -> None:
        await self._run("delete", self._sync_delete, uid, analysis_id)
        logger.info("Analysis deleted", uid=uid, analysis_id=analysis_id, backend=self.backend_name)


# Global store instance
_analysis_store: Optional[AnalysisStore] = None


def init_analysis_store(settings: Optional[Settings] = None) -> AnalysisStore:
    """Create the store for the configured backend."""
    global _analysis_store
    settings = settings or get_settings()
    if settings.firebase_enabled:
        _analysis_store = FirestoreAnalysisStore()
    else:
        _analysis_store = InMemoryAnalysisStore()

    logger.info("Analysis store initialized", backend=_analysis_store.backend_name)
    return _analysis_store


def get_analysis_store() -> AnalysisStore:
    """Get the global store, creating it on first use."""
    if _analysis_store is None:
        return init_analysis_store()
    return _analysis_store
