"""
Document store abstraction (SQLAlchemy key-value table vs Firebase Firestore).

The store is a flat key -> JSON document mapping with prefix scans. There are
no transactions or secondary indices; callers sort scan results themselves.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contenthub.core.config import settings
from contenthub.core.errors import StorageError
from contenthub.models import KVEntry
from contenthub.services.firebase_client import get_firestore_client

logger = logging.getLogger(__name__)

COLLECTION = "kv_store"


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


class DocumentStore(ABC):
    """Key-value document store contract"""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        ...


class SqlDocumentStore(DocumentStore):
    """Documents kept as JSON rows in the ``kv_store`` table"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            entry = self.db.get(KVEntry, key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key {key}: {e}")
            raise StorageError() from e
        return copy.deepcopy(entry.value) if entry else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            entry = self.db.get(KVEntry, key)
            if entry is None:
                self.db.add(KVEntry(key=key, value=copy.deepcopy(value)))
            else:
                entry.value = copy.deepcopy(value)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to write key {key}: {e}")
            raise StorageError() from e

    def delete(self, key: str) -> None:
        try:
            self.db.query(KVEntry).filter(KVEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete key {key}: {e}")
            raise StorageError() from e

    def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        try:
            entries = self.db.query(KVEntry).filter(
                KVEntry.key.startswith(prefix, autoescape=True)
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to scan prefix {prefix}: {e}")
            raise StorageError() from e
        return [copy.deepcopy(entry.value) for entry in entries]


class FirestoreDocumentStore(DocumentStore):
    """Documents kept in the ``kv_store`` Firestore collection, one per key"""

    def __init__(self, client=None):
        self.client = client or get_firestore_client()
        if self.client is None:
            raise StorageError("Firestore is not configured")

    def _collection(self):
        return self.client.collection(COLLECTION)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self._collection().document(key).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore read failed for {key}: {e}")
            raise StorageError() from e
        return doc.to_dict().get("value") if doc.exists else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self._collection().document(key).set({"key": key, "value": value})
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore write failed for {key}: {e}")
            raise StorageError() from e

    def delete(self, key: str) -> None:
        try:
            self._collection().document(key).delete()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore delete failed for {key}: {e}")
            raise StorageError() from e

    def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        try:
            docs = (
                self._collection()
                .where(filter=FieldFilter("key", ">=", prefix))
                .where(filter=FieldFilter("key", "<", prefix + "\uf8ff"))
                .get()
            )
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore scan failed for {prefix}: {e}")
            raise StorageError() from e
        return [d.to_dict().get("value") for d in docs]
