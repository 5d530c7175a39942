import copy
import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from mflix_api.api.deps import get_db, get_embedding_client
from mflix_api.server import app

MISSING = object()


def _get_path(doc: Dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for operator, operand in condition.items():
            if operator == "$in" and value not in operand:
                return False
            if operator == "$nin" and value in operand:
                return False
            if operator == "$gte" and (value is MISSING or value is None or value < operand):
                return False
            if operator == "$lte" and (value is MISSING or value is None or value > operand):
                return False
            if operator == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                candidates = value if isinstance(value, list) else [value]
                if not any(isinstance(c, str) and re.search(operand, c, flags) for c in candidates):
                    return False
        return True
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$text":
            needle = condition["$search"].lower()
            haystack = " ".join(str(doc.get(f, "")) for f in ("title", "plot", "fullplot")).lower()
            if needle not in haystack:
                return False
            continue
        if not _matches_condition(_get_path(doc, key), condition):
            return False
    return True


class FakeCursor:
    """Mimics the chainable subset of a Motor cursor the service uses."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, keys):
        for field, direction in reversed(keys):
            present = [d for d in self._documents if _get_path(d, field) not in (MISSING, None)]
            absent = [d for d in self._documents if _get_path(d, field) in (MISSING, None)]
            present.sort(key=lambda d: _get_path(d, field), reverse=direction < 0)
            self._documents = absent + present if direction > 0 else present + absent
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None):
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        if length is not None:
            documents = documents[:length]
        return [copy.deepcopy(d) for d in documents]


class FakeCollection:
    """
    In-memory stand-in for an AsyncIOMotorCollection.

    aggregate() does not evaluate pipelines: it records them and replays
    results queued with queue_aggregate().
    """

    def __init__(self, name: str):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.pipelines: List[List[Dict[str, Any]]] = []
        self.find_calls: List[Dict[str, Any]] = []
        self._aggregate_results: List[List[Dict[str, Any]]] = []
        self.aggregate_error: Optional[Exception] = None
        self.calls = 0

    # --- test helpers ---
    def queue_aggregate(self, results: List[Dict[str, Any]]) -> None:
        self._aggregate_results.append(results)

    def seed(self, *documents: Dict[str, Any]) -> List[ObjectId]:
        ids = []
        for document in documents:
            stored = dict(document)
            stored.setdefault("_id", ObjectId())
            self.documents.append(stored)
            ids.append(stored["_id"])
        return ids

    # --- driver surface ---
    def find(self, query: Optional[Dict[str, Any]] = None):
        self.calls += 1
        query = query or {}
        self.find_calls.append(query)
        return FakeCursor([d for d in self.documents if matches(d, query)])

    async def find_one(self, query: Dict[str, Any]):
        self.calls += 1
        for document in self.documents:
            if matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document: Dict[str, Any]):
        self.calls += 1
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        if any(d["_id"] == stored["_id"] for d in self.documents):
            raise DuplicateKeyError("E11000 duplicate key error", 11000)
        self.documents.append(stored)
        return SimpleNamespace(acknowledged=True, inserted_id=stored["_id"])

    async def insert_many(self, documents: List[Dict[str, Any]]):
        self.calls += 1
        inserted_ids = []
        for document in documents:
            stored = copy.deepcopy(document)
            stored.setdefault("_id", ObjectId())
            self.documents.append(stored)
            inserted_ids.append(stored["_id"])
        return SimpleNamespace(acknowledged=True, inserted_ids=inserted_ids)

    def _apply_set(self, document: Dict[str, Any], changes: Dict[str, Any]) -> bool:
        modified = False
        for key, value in changes.items():
            if document.get(key, MISSING) != value:
                document[key] = copy.deepcopy(value)
                modified = True
        return modified

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        self.calls += 1
        for document in self.documents:
            if matches(document, query):
                modified = self._apply_set(document, update["$set"])
                return SimpleNamespace(matched_count=1, modified_count=int(modified))
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query: Dict[str, Any], update: Dict[str, Any]):
        self.calls += 1
        matched = modified = 0
        for document in self.documents:
            if matches(document, query):
                matched += 1
                modified += int(self._apply_set(document, update["$set"]))
        return SimpleNamespace(matched_count=matched, modified_count=modified)

    async def delete_one(self, query: Dict[str, Any]):
        self.calls += 1
        for index, document in enumerate(self.documents):
            if matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: Dict[str, Any]):
        self.calls += 1
        kept = [d for d in self.documents if not matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)

    async def find_one_and_delete(self, query: Dict[str, Any]):
        self.calls += 1
        for index, document in enumerate(self.documents):
            if matches(document, query):
                return self.documents.pop(index)
        return None

    def aggregate(self, pipeline: List[Dict[str, Any]]):
        self.calls += 1
        self.pipelines.append(pipeline)
        if self.aggregate_error is not None:
            raise self.aggregate_error
        results = self._aggregate_results.pop(0) if self._aggregate_results else []
        return FakeCursor(results)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.ping_error: Optional[Exception] = None

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def command(self, name: str):
        if self.ping_error is not None:
            raise self.ping_error
        return {"ok": 1}

    @property
    def total_calls(self) -> int:
        return sum(collection.calls for collection in self.collections.values())


class StubEmbedder:
    def __init__(self, vector: Optional[List[float]] = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.queries: List[str] = []
        self.error: Optional[Exception] = None
        self.configured = True

    async def embed(self, text: str) -> List[float]:
        self.queries.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder()


@pytest.fixture
def client(db, embedder):
    async def _override_db():
        return db

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_embedding_client] = lambda: embedder
    # 500s are rendered by the catch-all handler instead of being re-raised
    http_client = TestClient(app, raise_server_exceptions=False)
    yield http_client
    app.dependency_overrides.clear()
