"""
In-memory Firestore for local development and tests.

Implements the subset of the google-cloud-firestore client surface the
services use: collection/document references, create/set/update/delete,
chained where/order_by/offset/limit queries, stream() and count()
aggregation. Semantics follow Firestore where it matters for us:

- create() fails with AlreadyExists, update() fails with NotFound
- order_by() drops documents that do not have the ordered field
- documents are copied on the way in and out
"""

import copy
import threading
import uuid
from typing import Any, Dict, Iterator, List, Optional, Tuple

from google.api_core.exceptions import AlreadyExists, NotFound

DESCENDING = "DESCENDING"
ASCENDING = "ASCENDING"

_MISSING = object()


def _get_field(data: Dict[str, Any], field_path: str) -> Any:
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_field(data: Dict[str, Any], field_path: str, value: Any) -> None:
    parts = field_path.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _matches(value: Any, op: str, expected: Any) -> bool:
    if value is _MISSING:
        return False
    try:
        if op == "==":
            return value == expected
        if op == "!=":
            return value != expected
        if op == "<":
            return value is not None and value < expected
        if op == "<=":
            return value is not None and value <= expected
        if op == ">":
            return value is not None and value > expected
        if op == ">=":
            return value is not None and value >= expected
        if op == "array_contains":
            return isinstance(value, list) and expected in value
        if op == "array_contains_any":
            return isinstance(value, list) and any(v in value for v in expected)
        if op == "in":
            return value in expected
        if op == "not-in":
            return value not in expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


def _sort_key(value: Any) -> Tuple[bool, Any]:
    # Firestore orders null before every other value
    return (False, 0) if value is None else (True, value)


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str) -> Any:
        value = _get_field(self._data or {}, field_path)
        return None if value is _MISSING else copy.deepcopy(value)


class MockDocumentReference:
    def __init__(self, client: "MockFirestore", collection_name: str, doc_id: str):
        self._client = client
        self._collection_name = collection_name
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection_name}/{self.id}"

    def _store(self) -> Dict[str, Dict[str, Any]]:
        return self._client._data.setdefault(self._collection_name, {})

    def get(self) -> MockDocumentSnapshot:
        with self._client._lock:
            data = self._store().get(self.id)
            return MockDocumentSnapshot(self, copy.deepcopy(data))

    def create(self, document_data: Dict[str, Any]) -> None:
        with self._client._lock:
            store = self._store()
            if self.id in store:
                raise AlreadyExists(f"Document already exists: {self.path}")
            store[self.id] = copy.deepcopy(document_data)

    def set(self, document_data: Dict[str, Any], merge: bool = False) -> None:
        with self._client._lock:
            store = self._store()
            if merge and self.id in store:
                store[self.id].update(copy.deepcopy(document_data))
            else:
                store[self.id] = copy.deepcopy(document_data)

    def update(self, field_updates: Dict[str, Any]) -> None:
        with self._client._lock:
            store = self._store()
            if self.id not in store:
                raise NotFound(f"No document to update: {self.path}")
            for field_path, value in field_updates.items():
                _set_field(store[self.id], field_path, copy.deepcopy(value))

    def delete(self) -> None:
        with self._client._lock:
            self._store().pop(self.id, None)


class MockAggregationResult:
    def __init__(self, alias: str, value: int):
        self.alias = alias
        self.value = value


class MockAggregationQuery:
    def __init__(self, query: "MockQuery", alias: str):
        self._query = query
        self._alias = alias

    def get(self) -> List[List[MockAggregationResult]]:
        return [[MockAggregationResult(self._alias, len(self._query._run()))]]


class MockQuery:
    def __init__(
        self,
        client: "MockFirestore",
        collection_name: str,
        filters: Tuple = (),
        orders: Tuple = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ):
        self._client = client
        self._collection_name = collection_name
        self._filters = filters
        self._orders = orders
        self._offset = offset
        self._limit = limit

    def _copy(self, **overrides) -> "MockQuery":
        params = {
            "filters": self._filters,
            "orders": self._orders,
            "offset": self._offset,
            "limit": self._limit,
        }
        params.update(overrides)
        return MockQuery(self._client, self._collection_name, **params)

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = ASCENDING) -> "MockQuery":
        return self._copy(orders=self._orders + ((field_path, direction),))

    def offset(self, num_to_skip: int) -> "MockQuery":
        return self._copy(offset=num_to_skip)

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit=count)

    def count(self, alias: str = "count") -> MockAggregationQuery:
        # Firestore aggregations ignore offset/limit set on the query they wrap
        return MockAggregationQuery(self._copy(offset=0, limit=None), alias)

    def _run(self) -> List[Tuple[str, Dict[str, Any]]]:
        with self._client._lock:
            store = self._client._data.get(self._collection_name, {})
            rows = [(doc_id, copy.deepcopy(data)) for doc_id, data in store.items()]

        for field_path, op, expected in self._filters:
            rows = [r for r in rows if _matches(_get_field(r[1], field_path), op, expected)]

        for field_path, _ in self._orders:
            rows = [r for r in rows if _get_field(r[1], field_path) is not _MISSING]

        # Stable multi-key sort: apply the least significant key first
        rows.sort(key=lambda r: r[0])
        for field_path, direction in reversed(self._orders):
            rows.sort(key=lambda r: _sort_key(_get_field(r[1], field_path)), reverse=(direction == DESCENDING))

        rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[: self._limit]
        return rows

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        for doc_id, data in self._run():
            ref = MockDocumentReference(self._client, self._collection_name, doc_id)
            yield MockDocumentSnapshot(ref, data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, client: "MockFirestore", collection_name: str):
        super().__init__(client, collection_name)
        self.id = collection_name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._client, self._collection_name, document_id or uuid.uuid4().hex[:20])

    def add(self, document_data: Dict[str, Any]) -> Tuple[None, MockDocumentReference]:
        ref = self.document()
        ref.create(document_data)
        return None, ref


class MockFirestore:
    """Firestore client look-alike holding every collection in a dict."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def collection(self, collection_name: str) -> MockCollectionReference:
        return MockCollectionReference(self, collection_name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._data]


_mock_db: Optional[MockFirestore] = None


def get_mock_db() -> MockFirestore:
    global _mock_db
    if _mock_db is None:
        _mock_db = MockFirestore()
    return _mock_db
