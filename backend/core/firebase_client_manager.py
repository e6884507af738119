"""Firestore client wrapper for loan and profile documents."""

from datetime import datetime, timezone
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from google.cloud import firestore
from google.oauth2 import service_account

from models.exceptions import ServicingError


logger = logging.getLogger(__name__)

FilterTuple = Tuple[str, str, Any]
DocumentMutation = Callable[[Dict[str, Any]], Dict[str, Any]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot_payload(snapshot: Any) -> Dict[str, Any]:
    """Return snapshot data with its document id folded in."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class FirebaseClientManager:
    """Owns one Firestore client and the document operations the repositories need.

    Errors are logged here with collection context and re-raised unchanged;
    callers decide how to surface them.
    """

    def __init__(self, project_id: Optional[str] = None, credentials_path: Optional[str] = None) -> None:
        """Initialize Firestore client.

        Args:
            project_id: Optional Google Cloud project id override.
            credentials_path: Optional path to Firebase service account json file.
        """
        self._project_id = project_id
        try:
            if credentials_path:
                os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = credentials_path
                credentials = service_account.Credentials.from_service_account_file(credentials_path)
                self._client = firestore.Client(project=project_id, credentials=credentials)
            else:
                self._client = firestore.Client(project=project_id) if project_id else firestore.Client()
        except Exception:
            logger.exception("Failed to initialize Firebase Firestore client.")
            raise
        logger.info("FirebaseClientManager initialized for project_id=%s", self.project_id)

    @property
    def project_id(self) -> Optional[str]:
        """Configured project id, else the one the client resolved from the environment."""
        return self._project_id or self._client.project

    def _ref(self, collection_name: str, document_id: str) -> Any:
        return self._client.collection(collection_name).document(document_id)

    def set_document(self, collection_name: str, document_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Write the full document, replacing any existing one."""
        document = dict(payload)
        document.setdefault("created_at", _utc_now())
        document["updated_at"] = document.get("updated_at") or _utc_now()
        try:
            self._ref(collection_name, document_id).set(document)
        except Exception:
            logger.exception("Failed to set document collection=%s document_id=%s", collection_name, document_id)
            raise
        document["id"] = document_id
        return document

    def get_document(self, collection_name: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Return one document, or None when it does not exist."""
        try:
            snapshot = self._ref(collection_name, document_id).get()
        except Exception:
            logger.exception("Failed to get document collection=%s document_id=%s", collection_name, document_id)
            raise
        return _snapshot_payload(snapshot) if snapshot.exists else None

    def transact_document(
        self,
        collection_name: str,
        document_id: str,
        mutate: DocumentMutation,
    ) -> Optional[Dict[str, Any]]:
        """Read, mutate and rewrite one document inside a single transaction.

        The transaction is attempted once; contention or any datastore error
        propagates to the caller. Domain errors raised by `mutate` abort the
        write and pass through unlogged. Returns None when the document is missing.
        """
        ref = self._ref(collection_name, document_id)
        transaction = self._client.transaction(max_attempts=1)

        @firestore.transactional
        def _apply(txn: firestore.Transaction) -> Optional[Dict[str, Any]]:
            snapshot = ref.get(transaction=txn)
            if not snapshot.exists:
                return None
            updated = dict(mutate(_snapshot_payload(snapshot)))
            updated.setdefault("updated_at", _utc_now())
            txn.set(ref, updated)
            return updated

        try:
            return _apply(transaction)
        except ServicingError:
            raise
        except Exception:
            logger.exception(
                "Transactional update failed collection=%s document_id=%s",
                collection_name,
                document_id,
            )
            raise

    def delete_document(self, collection_name: str, document_id: str) -> None:
        """Hard delete a Firestore document."""
        try:
            self._ref(collection_name, document_id).delete()
        except Exception:
            logger.exception("Failed to delete document collection=%s document_id=%s", collection_name, document_id)
            raise

    def _build_query(self, collection_name: str, filters: Optional[Sequence[FilterTuple]]) -> Any:
        """Apply `(field, op, value)` filters to a collection reference."""
        query = self._client.collection(collection_name)
        for field_name, operator, value in filters or []:
            query = query.where(filter=firestore.FieldFilter(field_name, operator, value))
        return query

    def query_documents(
        self,
        collection_name: str,
        filters: Optional[Sequence[FilterTuple]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a filtered query and return document payloads.

        Args:
            collection_name: Target collection.
            filters: Sequence of tuples `(field, op, value)`.
            order_by: Optional field name for sorting.
            descending: Sort direction for `order_by`.
            offset: Number of leading results to skip.
            limit: Optional maximum result count.
        """
        query = self._build_query(collection_name, filters)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        try:
            return [_snapshot_payload(snapshot) for snapshot in query.stream()]
        except Exception:
            logger.exception("Failed query for collection=%s", collection_name)
            raise

    def count_documents(self, collection_name: str, filters: Optional[Sequence[FilterTuple]] = None) -> int:
        """Count documents matching filters with a server-side aggregation."""
        try:
            results = self._build_query(collection_name, filters).count(alias="total").get()
        except Exception:
            logger.exception("Failed count for collection=%s", collection_name)
            raise
        return int(results[0][0].value) if results else 0
