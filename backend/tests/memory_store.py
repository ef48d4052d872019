"""
In-memory document store for tests.

Implements the same get / list / batch / run_transaction interface as
lotflow.db.firestore.FirestoreDocumentStore. Documents are kept by full
path; every committed write is recorded in `writes` so tests can assert
exactly what a handler wrote.

Failure injection:
    store.fail_list["dashboards"] = RuntimeError("boom")
    store.fail_commit = RuntimeError("boom")

Transactions are optimistic like Firestore's: every document carries a
version, a transaction remembers the versions it read, and a commit whose
reads went stale is retried from the start (up to MAX_ATTEMPTS). Writes
queued in `concurrent_writes` land between a transaction body and its
commit, one per attempt, to simulate another writer:
    store.concurrent_writes.append(("dashboards/sew/lots/lot-1", {...}))
"""
import copy
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0]


def _doc_id(path: str) -> str:
    return path.rsplit("/", 1)[-1]


class TransactionConflict(Exception):
    """A transaction read a document that changed before it committed."""


class InMemoryStore:
    MAX_ATTEMPTS = 5

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.versions: Dict[str, int] = defaultdict(int)
        self.writes: List[Tuple[str, str, Dict[str, Any]]] = []
        self.list_calls: List[str] = []
        self.transactions_run = 0
        self.transaction_attempts = 0
        self.batches_committed = 0
        self.fail_list: Dict[str, Exception] = {}
        self.fail_get: Dict[str, Exception] = {}
        self.fail_commit: Optional[Exception] = None
        self.concurrent_writes: List[Tuple[str, Dict[str, Any]]] = []

    # Seeding / inspection ---------------------------------------------------

    def seed(self, path: str, data: Dict[str, Any]) -> None:
        self.documents[path] = copy.deepcopy(data)
        self.versions[path] += 1

    def raw(self, path: str) -> Optional[Dict[str, Any]]:
        return self.documents.get(path)

    def writes_to(self, prefix: str) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [write for write in self.writes if write[1].startswith(prefix)]

    # DocumentStore interface ------------------------------------------------

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        if path in self.fail_get:
            raise self.fail_get[path]
        data = self.documents.get(path)
        if data is None:
            return None
        result = copy.deepcopy(data)
        result.setdefault("id", _doc_id(path))
        return result

    def list(self, collection_path: str, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        self.list_calls.append(collection_path)
        if collection_path in self.fail_list:
            raise self.fail_list[collection_path]
        documents = [
            self.get(path)
            for path in sorted(self.documents)
            if _parent(path) == collection_path
        ]
        if order_by:
            # Firestore leaves out documents missing the ordering field
            documents = [doc for doc in documents if doc.get(order_by) is not None]
            documents.sort(key=lambda doc: doc[order_by])
        return documents

    def batch(self) -> "InMemoryBatch":
        return InMemoryBatch(self)

    def run_transaction(self, callback: Callable[["InMemoryTransaction"], Any]) -> Any:
        for _ in range(self.MAX_ATTEMPTS):
            self.transaction_attempts += 1
            transaction = InMemoryTransaction(self)
            result = callback(transaction)
            if self.concurrent_writes:
                path, data = self.concurrent_writes.pop(0)
                self._apply([("set", path, data)])
            try:
                transaction.commit()
            except TransactionConflict:
                continue
            self.transactions_run += 1
            return result
        raise ValueError(f"Failed to commit transaction in {self.MAX_ATTEMPTS} attempts.")

    # Internals --------------------------------------------------------------

    def _apply(self, staged: List[Tuple[str, str, Dict[str, Any]]]) -> None:
        for operation, path, data in staged:
            if operation == "update" and path not in self.documents:
                raise KeyError(f"No document to update: {path}")
        for operation, path, data in staged:
            if operation == "set":
                self.documents[path] = copy.deepcopy(data)
            else:
                self.documents[path].update(copy.deepcopy(data))
            self.versions[path] += 1
            self.writes.append((operation, path, copy.deepcopy(data)))


class InMemoryBatch:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self.staged: List[Tuple[str, str, Dict[str, Any]]] = []

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.staged.append(("set", path, copy.deepcopy(data)))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.staged.append(("update", path, copy.deepcopy(data)))

    def commit(self) -> None:
        if self._store.fail_commit is not None:
            raise self._store.fail_commit
        self._store._apply(self.staged)
        self._store.batches_committed += 1


class InMemoryTransaction:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self.staged: List[Tuple[str, str, Dict[str, Any]]] = []
        self.read_versions: Dict[str, int] = {}

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        self.read_versions.setdefault(path, self._store.versions[path])
        return self._store.get(path)

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.staged.append(("set", path, copy.deepcopy(data)))

    def update(self, path: str, data: Dict[str, Any]) -> None:
        self.staged.append(("update", path, copy.deepcopy(data)))

    def commit(self) -> None:
        for path, version in self.read_versions.items():
            if self._store.versions[path] != version:
                raise TransactionConflict(path)
        self._store._apply(self.staged)
