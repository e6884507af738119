"""Firestore implementation of the profile repository."""

from datetime import datetime
import logging
from typing import Any, Callable, List

from models.base import utc_now
from models.exceptions import ModelNotFoundError
from models.repositories import ProfileRepository
from models.users import ProfileModel
from repositories.document_store import DocumentStore


logger = logging.getLogger(__name__)


class FirestoreProfileRepository(ProfileRepository):
    """Persist and fetch account profiles from Cloud Firestore or the in-memory fallback."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize repository on top of a document store.

        Args:
            store: Document store bound to the profiles collection.
            clock: Source of `updated_at` stamps.
        """
        self._store = store
        self._clock = clock
        logger.info("Initialized FirestoreProfileRepository collection=%s", store.collection_name)

    def create(self, model: ProfileModel) -> ProfileModel:
        """Create and persist a profile document."""
        if not model.id:
            raise ValueError("Profile id is required")
        stored = self._store.set(model.id, model.to_firestore())
        return ProfileModel.from_firestore(stored, doc_id=model.id)

    def get_by_id(self, model_id: str) -> ProfileModel:
        """Fetch profile by identifier.

        Raises:
            ModelNotFoundError: If document does not exist.
        """
        payload = self._store.get(model_id)
        if payload is None:
            raise ModelNotFoundError("Profile not found: {0}".format(model_id))
        return ProfileModel.from_firestore(payload, doc_id=model_id)

    def list_profiles(self) -> List[ProfileModel]:
        """Return every profile, newest first."""
        payloads = self._store.query(order_by="created_at", descending=True)
        return [ProfileModel.from_firestore(payload, doc_id=payload.get("id")) for payload in payloads]

    def update_fields(self, model_id: str, **changes: Any) -> ProfileModel:
        """Update selected profile fields in one transactional write.

        Raises:
            ModelNotFoundError: If profile does not exist.
        """

        def _mutate(current: dict) -> dict:
            profile = ProfileModel.from_firestore(current, doc_id=model_id)
            payload = profile.to_firestore()
            payload.update(changes)
            payload["updated_at"] = self._clock()
            payload["version"] = profile.version + 1
            return ProfileModel.from_firestore(payload, doc_id=model_id).to_firestore()

        updated = self._store.transact(model_id, _mutate)
        if updated is None:
            raise ModelNotFoundError("Profile not found: {0}".format(model_id))
        logger.info("Updated profile id=%s fields=%s", model_id, sorted(changes))
        return ProfileModel.from_firestore(updated, doc_id=model_id)

    def delete(self, model_id: str) -> None:
        """Hard delete a profile after checking it exists."""
        if self._store.get(model_id) is None:
            raise ModelNotFoundError("Profile not found: {0}".format(model_id))
        self._store.delete(model_id)
        logger.info("Deleted profile id=%s", model_id)
