"""Firestore access: list thesis documents, read them, store chapters."""

from __future__ import annotations

import logging
from typing import Any

from .errors import PersistenceFailure
from .models import DocumentRecord
from .utils import BUCKET_URL_ATTR, CHAPTERS_ATTR, COLLECTIONS_ATTR

log = logging.getLogger(__name__)


def record_from_mapping(identifier: str, data: dict[str, Any] | None) -> DocumentRecord:
    """Build a ``DocumentRecord`` from raw document fields."""
    data = data or {}
    collections = data.get(COLLECTIONS_ATTR)
    if not isinstance(collections, (list, tuple, set, frozenset)):
        collections = ()
    bucket_url = data.get(BUCKET_URL_ATTR)
    chapters = data.get(CHAPTERS_ATTR)
    return DocumentRecord(
        identifier=identifier,
        collections=tuple(str(c) for c in collections),
        bucket_url=bucket_url if isinstance(bucket_url, str) else None,
        chapters=_chapters_marker(chapters),
    )


def _chapters_marker(chapters: Any) -> dict[str, str] | None:
    """Copy of a stored chapter map. Any other present value still marks the
    document as converted and comes back as an empty map.
    """
    if chapters is None:
        return None
    if isinstance(chapters, dict):
        return dict(chapters)
    log.debug("Non-map %s field of type %s", CHAPTERS_ATTR, type(chapters).__name__)
    return {}


class FirestoreStore:
    """Thin wrapper over ``google.cloud.firestore.Client``."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def connect(cls, project_id: str, database_id: str) -> "FirestoreStore":
        from google.cloud import firestore

        return cls(firestore.Client(project=project_id, database=database_id))

    def list_documents(self, collection_id: str) -> list[Any]:
        """Materialise every document reference of *collection_id*."""
        from google.api_core.exceptions import GoogleAPIError

        try:
            refs = list(self._client.collection(collection_id).list_documents())
        except GoogleAPIError as exc:
            raise PersistenceFailure(
                f"Listing collection {collection_id!r} failed: {exc}"
            ) from exc
        log.info("Collection %s: %s documents", collection_id, len(refs))
        return refs

    def read(self, ref: Any) -> DocumentRecord:
        from google.api_core.exceptions import GoogleAPIError

        try:
            snapshot = ref.get()
        except GoogleAPIError as exc:
            raise PersistenceFailure(f"Reading {ref.id} failed: {exc}") from exc
        return record_from_mapping(ref.id, snapshot.to_dict())

    def update_chapters(self, ref: Any, chapters: dict[str, str]) -> None:
        """Write the whole chapter map in one document update."""
        from google.api_core.exceptions import GoogleAPIError

        try:
            ref.update({CHAPTERS_ATTR: chapters})
        except GoogleAPIError as exc:
            raise PersistenceFailure(f"Updating {ref.id} failed: {exc}") from exc
