"""
Pytest fixtures: environment, an in-memory stand-in for the async MongoDB
database, and sample event payloads.

The fake implements only the collection calls the services make
(insert_one, replace_one, find_one, find/sort/skip/limit/to_list,
count_documents, create_index) and enforces unique indexes the way the
server does, raising DuplicateKeyError.
"""

import copy
import os
from types import SimpleNamespace
from typing import Any, Optional

# Settings are read at import time by app modules
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/devevents_test")
os.environ["REDIS_ENABLED"] = "false"
os.environ["MONGODB_ENSURE_INDEXES"] = "false"

import pytest
import pytest_asyncio
from bson import ObjectId
from pymongo.errors import DuplicateKeyError


def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list, direction: Optional[int] = None) -> "FakeCursor":
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for key, order in reversed(keys):
            self._docs.sort(key=lambda d: d.get(key), reverse=order < 0)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None) -> list[dict]:
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        if length is not None:
            docs = docs[:length]
        return docs


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: list[dict] = []
        self.unique_fields: set[str] = set()
        self.indexes: dict[str, Any] = {}

    def _check_unique(self, doc: dict, ignore_id: Any = None) -> None:
        for field in self.unique_fields:
            for existing in self.docs:
                if existing["_id"] != ignore_id and existing.get(field) == doc.get(field):
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name} dup key: {{ {field}: {doc.get(field)!r} }}",
                        code=11000,
                    )

    async def create_index(self, keys, unique: bool = False, name: Optional[str] = None) -> str:
        index_name = name or "_".join(f"{k}_{d}" for k, d in keys)
        self.indexes[index_name] = {"keys": keys, "unique": unique}
        if unique:
            self.unique_fields.update(k for k, _ in keys)
        return index_name

    async def insert_one(self, doc: dict) -> SimpleNamespace:
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self._check_unique(doc)
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def replace_one(self, query: dict, replacement: dict) -> SimpleNamespace:
        for i, existing in enumerate(self.docs):
            if _matches(existing, query):
                new_doc = copy.deepcopy(replacement)
                new_doc["_id"] = existing["_id"]
                self._check_unique(new_doc, ignore_id=existing["_id"])
                self.docs[i] = new_doc
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one(self, query: dict) -> Optional[dict]:
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: dict) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def count_documents(self, query: dict, limit: int = 0) -> int:
        count = sum(1 for d in self.docs if _matches(d, query))
        return min(count, limit) if limit else count


class FakeDatabase:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


@pytest_asyncio.fixture
async def db() -> FakeDatabase:
    """Fake database with the production indexes in place."""
    from app.db.indexes import ensure_indexes

    database = FakeDatabase()
    await ensure_indexes(database)
    return database


@pytest.fixture
def event_payload() -> dict:
    return {
        "title": "PyCon Berlin 2026",
        "description": "Three days of talks, sprints and workshops.",
        "overview": "The yearly gathering of the Python community.",
        "image": "/images/pycon.png",
        "venue": "bcc Berlin Congress Center",
        "location": "Berlin, Germany",
        "date": "2026-04-14T09:00:00Z",
        "time": "9:30",
        "mode": "offline",
        "audience": "Developers",
        "agenda": ["Keynote", "Talks", "Sprints"],
        "organizer": "Python Software Verband",
        "tags": ["python", "conference"],
    }
