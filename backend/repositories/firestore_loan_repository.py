"""Firestore implementation of the loan record repository."""

from datetime import datetime
import logging
from typing import Callable, List, Optional
from uuid import uuid4

from models.base import utc_now
from models.exceptions import ModelNotFoundError
from models.loans import LoanRecord
from models.repositories import LoanMutation, LoanRepository
from repositories.document_store import DocumentStore


logger = logging.getLogger(__name__)


class FirestoreLoanRepository(LoanRepository):
    """Persist and fetch loan records from Cloud Firestore or the in-memory fallback."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize repository on top of a document store.

        Args:
            store: Document store bound to the loans collection.
            clock: Source of `updated_at` stamps.
        """
        self._store = store
        self._clock = clock
        logger.info("Initialized FirestoreLoanRepository collection=%s", store.collection_name)

    def create(self, model: LoanRecord) -> LoanRecord:
        """Create and persist a loan record, assigning ids when missing."""
        loan_id = model.id or str(uuid4())
        reference_id = model.reference_id or "LN-{0}".format(uuid4().hex[:8].upper())
        record = model.with_updates(id=loan_id, reference_id=reference_id)
        stored = self._store.set(loan_id, record.to_firestore())
        logger.info("Created loan id=%s reference_id=%s user_id=%s", loan_id, reference_id, record.user_id)
        return LoanRecord.from_firestore(stored, doc_id=loan_id)

    def get_by_id(self, model_id: str) -> LoanRecord:
        """Fetch loan record by identifier.

        Raises:
            ModelNotFoundError: If document does not exist.
        """
        payload = self._store.get(model_id)
        if payload is None or payload.get("is_deleted"):
            raise ModelNotFoundError("Query not found")
        return LoanRecord.from_firestore(payload, doc_id=model_id)

    def update_atomic(self, model_id: str, mutate: LoanMutation) -> LoanRecord:
        """Run `mutate` against the stored record and write its result in one transaction.

        Raises:
            ModelNotFoundError: If document does not exist.
            PersistenceError: If the datastore rejects the write.
        """

        def _apply(current: dict) -> dict:
            record = LoanRecord.from_firestore(current, doc_id=model_id)
            updated = mutate(record)
            return updated.with_updates(updated_at=self._clock(), version=record.version + 1).to_firestore()

        payload = self._store.transact(model_id, _apply)
        if payload is None:
            raise ModelNotFoundError("Query not found")
        return LoanRecord.from_firestore(payload, doc_id=model_id)

    def delete(self, model_id: str) -> None:
        """Hard delete a loan record after checking it exists."""
        if self._store.get(model_id) is None:
            raise ModelNotFoundError("Query not found")
        self._store.delete(model_id)
        logger.info("Deleted loan id=%s", model_id)

    def list_loans(self, user_id: Optional[str] = None, offset: int = 0, limit: int = 100) -> List[LoanRecord]:
        """Return loan records newest first, optionally scoped to one owner."""
        filters = [("user_id", "==", user_id)] if user_id else None
        payloads = self._store.query(
            filters=filters,
            order_by="created_at",
            descending=True,
            offset=offset,
            limit=limit,
        )
        return [LoanRecord.from_firestore(payload, doc_id=payload.get("id")) for payload in payloads]

    def count(self, user_id: Optional[str] = None) -> int:
        """Count loan records, optionally scoped to one owner."""
        filters = [("user_id", "==", user_id)] if user_id else None
        return self._store.count(filters=filters)
