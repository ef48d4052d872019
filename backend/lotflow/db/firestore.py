"""
Firestore document store

Wraps the firebase_admin Firestore client behind a small path-based
interface (get / list / batch / run_transaction) so services never touch
DocumentReference objects directly and tests can swap in an in-memory
store.

Usage in FastAPI endpoints:
    @router.get("/items")
    def get_items(db: DocumentStore = Depends(get_db)):
        return db.list("dashboards", order_by="order")
"""
import os
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

import firebase_admin
from firebase_admin import credentials, firestore

from lotflow.core.settings import get_settings
from lotflow.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# ============================================================================
# Store interface
# ============================================================================

class WriteBatch(Protocol):
    def set(self, path: str, data: Dict[str, Any]) -> None: ...
    def update(self, path: str, data: Dict[str, Any]) -> None: ...
    def commit(self) -> None: ...


class Transaction(Protocol):
    def get(self, path: str) -> Optional[Dict[str, Any]]: ...
    def set(self, path: str, data: Dict[str, Any]) -> None: ...
    def update(self, path: str, data: Dict[str, Any]) -> None: ...


class DocumentStore(Protocol):
    def get(self, path: str) -> Optional[Dict[str, Any]]: ...
    def list(self, collection_path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]: ...
    def batch(self) -> WriteBatch: ...
    def run_transaction(self, callback: Callable[[Transaction], T]) -> T: ...


def _snapshot_to_dict(snapshot) -> Optional[Dict[str, Any]]:
    if not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data.setdefault("id", snapshot.id)
    return data


# ============================================================================
# Firestore implementation
# ============================================================================

class FirestoreBatch:
    """Staged writes committed all-or-nothing by Firestore."""

    def __init__(self, client):
        self._client = client
        self._batch = client.batch()
        self.size = 0

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self._batch.set(self._client.document(path), data)
        self.size += 1

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self._batch.update(self._client.document(path), data)
        self.size += 1

    def commit(self) -> None:
        if self.size == 0:
            return
        self._batch.commit()


class FirestoreTransaction:
    """Reads and writes bound to one optimistic Firestore transaction."""

    def __init__(self, client, transaction):
        self._client = client
        self._transaction = transaction

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        snapshot = self._client.document(path).get(transaction=self._transaction)
        return _snapshot_to_dict(snapshot)

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self._transaction.set(self._client.document(path), data)

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self._transaction.update(self._client.document(path), data)


class FirestoreDocumentStore:
    """DocumentStore backed by a google.cloud.firestore client."""

    def __init__(self, client):
        self.client = client

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        return _snapshot_to_dict(self.client.document(path).get())

    def list(self, collection_path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.client.collection(collection_path)
        if order_by:
            query = query.order_by(order_by)
        return [_snapshot_to_dict(snapshot) for snapshot in query.stream()]

    def batch(self) -> FirestoreBatch:
        return FirestoreBatch(self.client)

    def run_transaction(self, callback: Callable[[Transaction], T]) -> T:
        """
        Run `callback` inside a Firestore transaction.

        The SDK retries the callback when a document it read changed before
        commit, so callbacks must be free of side effects outside the
        transaction.
        """
        client = self.client

        @firestore.transactional
        def _run(transaction):
            return callback(FirestoreTransaction(client, transaction))

        return _run(client.transaction())


# ============================================================================
# Client initialization
# ============================================================================

_store: Optional[FirestoreDocumentStore] = None


def initialize_firebase() -> None:
    if firebase_admin._apps:
        return

    settings = get_settings()
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    cred_path = settings.FIREBASE_CREDENTIALS or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

    if cred_path and os.path.exists(cred_path):
        logger.info("Initializing Firebase with service account credentials")
        firebase_admin.initialize_app(credentials.Certificate(cred_path), options)
    elif os.getenv("FIRESTORE_EMULATOR_HOST"):
        logger.info(
            "Initializing Firebase against the Firestore emulator",
            extra={"emulator_host": os.getenv("FIRESTORE_EMULATOR_HOST")},
        )
        firebase_admin.initialize_app(options=options)
    else:
        logger.info("Initializing Firebase with application default credentials")
        firebase_admin.initialize_app(credentials.ApplicationDefault(), options)


def get_store() -> FirestoreDocumentStore:
    """Process-wide Firestore store, created on first use."""
    global _store
    if _store is None:
        initialize_firebase()
        _store = FirestoreDocumentStore(firestore.client())
    return _store


def get_db():
    """
    Dependency for getting the document store

    Overridden in tests with an in-memory store.
    """
    yield get_store()
