"""Document storage backend shared by repositories: Firestore first, in-memory fallback."""

import copy
from datetime import datetime
import logging
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from google.api_core.exceptions import GoogleAPIError

from core.firebase_client_manager import FirebaseClientManager
from models.exceptions import PersistenceError


logger = logging.getLogger(__name__)

FilterTuple = Tuple[str, str, Any]
DocumentMutation = Callable[[Dict[str, Any]], Dict[str, Any]]


def _sort_key(value: Any) -> tuple:
    """Return a safe sortable tuple for heterogeneous stored values."""
    if value is None:
        return (0, 0.0, "")
    if isinstance(value, datetime):
        return (1, value.timestamp(), "")
    if isinstance(value, (int, float)):
        return (1, float(value), "")
    return (2, 0.0, str(value))


def _matches(payload: Dict[str, Any], filters: Optional[Sequence[FilterTuple]]) -> bool:
    """Evaluate equality filters against an in-memory document."""
    for field_name, operator, value in filters or []:
        if operator != "==":
            raise ValueError("In-memory store only supports '==' filters, got {0}".format(operator))
        if payload.get(field_name) != value:
            return False
    return True


class DocumentStore:
    """Persist documents into Firestore when configured, otherwise into process memory.

    Every datastore failure is surfaced once as `PersistenceError`; nothing is
    retried here.
    """

    def __init__(self, collection_name: str, firebase_manager: Optional[FirebaseClientManager] = None) -> None:
        self._collection_name = collection_name
        self._firebase_manager = firebase_manager
        self._lock = RLock()
        self._memory: Dict[str, Dict[str, Any]] = {}
        backend = "firestore" if firebase_manager is not None else "memory"
        logger.info("Initialized DocumentStore collection=%s backend=%s", collection_name, backend)

    @property
    def collection_name(self) -> str:
        return self._collection_name

    def _fail(self, action: str, document_id: Optional[str], exc: Exception) -> PersistenceError:
        logger.exception(
            "Datastore %s failed collection=%s document_id=%s",
            action,
            self._collection_name,
            document_id,
        )
        return PersistenceError("Failed to {0} {1} document".format(action, self._collection_name))

    def set(self, document_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create or replace one document."""
        if self._firebase_manager is not None:
            try:
                return self._firebase_manager.set_document(self._collection_name, document_id, payload)
            except GoogleAPIError as exc:
                raise self._fail("write", document_id, exc) from exc
        with self._lock:
            stored = copy.deepcopy(payload)
            stored["id"] = document_id
            self._memory[document_id] = stored
            return copy.deepcopy(stored)

    def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document or None."""
        if self._firebase_manager is not None:
            try:
                return self._firebase_manager.get_document(self._collection_name, document_id)
            except GoogleAPIError as exc:
                raise self._fail("read", document_id, exc) from exc
        with self._lock:
            payload = self._memory.get(document_id)
            return copy.deepcopy(payload) if payload is not None else None

    def transact(self, document_id: str, mutate: DocumentMutation) -> Optional[Dict[str, Any]]:
        """Apply `mutate` to one document as a single read-modify-write.

        Returns None when the document does not exist.
        """
        if self._firebase_manager is not None:
            try:
                return self._firebase_manager.transact_document(self._collection_name, document_id, mutate)
            except GoogleAPIError as exc:
                raise self._fail("update", document_id, exc) from exc
        with self._lock:
            current = self._memory.get(document_id)
            if current is None:
                return None
            updated = dict(mutate(copy.deepcopy(current)))
            updated["id"] = document_id
            self._memory[document_id] = updated
            return copy.deepcopy(updated)

    def delete(self, document_id: str) -> None:
        """Hard delete one document."""
        if self._firebase_manager is not None:
            try:
                self._firebase_manager.delete_document(self._collection_name, document_id)
                return
            except GoogleAPIError as exc:
                raise self._fail("delete", document_id, exc) from exc
        with self._lock:
            self._memory.pop(document_id, None)

    def query(
        self,
        filters: Optional[Sequence[FilterTuple]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents matching equality filters."""
        if self._firebase_manager is not None:
            try:
                return self._firebase_manager.query_documents(
                    collection_name=self._collection_name,
                    filters=filters,
                    order_by=order_by,
                    descending=descending,
                    offset=offset,
                    limit=limit,
                )
            except GoogleAPIError as exc:
                raise self._fail("query", None, exc) from exc
        with self._lock:
            rows = [copy.deepcopy(item) for item in self._memory.values() if _matches(item, filters)]
        if order_by:
            rows.sort(key=lambda item: _sort_key(item.get(order_by)), reverse=descending)
        end = offset + limit if limit is not None else None
        return rows[offset:end]

    def count(self, filters: Optional[Sequence[FilterTuple]] = None) -> int:
        """Count documents matching equality filters."""
        if self._firebase_manager is not None:
            try:
                return self._firebase_manager.count_documents(self._collection_name, filters)
            except GoogleAPIError as exc:
                raise self._fail("count", None, exc) from exc
        with self._lock:
            return sum(1 for item in self._memory.values() if _matches(item, filters))
