"""
In-memory stand-ins for pymongo's AsyncCollection / AsyncCursor.

They record what the code under test asked for rather than evaluating
MongoDB predicates.
"""

import copy
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError


class FakeCursor:
    def __init__(self, collection, filter, projection):
        self.collection = collection
        self.filter = filter
        self.projection = projection
        self.sort_keys = None
        self.skip_count = 0
        self.limit_count = 0

    def sort(self, keys):
        self.sort_keys = keys
        return self

    def skip(self, count):
        self.skip_count = count
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    async def to_list(self, length=None):
        self.collection.calls.append("find")
        if self.collection.fail:
            raise ServerSelectionTimeoutError("no servers")
        documents = self.collection.documents[self.skip_count:]
        if self.limit_count:
            documents = documents[:self.limit_count]
        return copy.deepcopy(documents)


class FakeCollection:
    def __init__(self, name="products", documents=None, total=None, fail=False):
        self.name = name
        self.documents = list(documents or [])
        self.total = total
        self.fail = fail
        self.cursors = []
        self.count_filters = []
        self.calls = []

    def find(self, filter=None, projection=None):
        cursor = FakeCursor(self, filter, projection)
        self.cursors.append(cursor)
        return cursor

    async def count_documents(self, filter):
        self.calls.append("count")
        if self.fail:
            raise ServerSelectionTimeoutError("no servers")
        self.count_filters.append(filter)
        return self.total if self.total is not None else len(self.documents)

    def _find_by_id(self, filter):
        for document in self.documents:
            if document["_id"] == filter["_id"]:
                return document
        return None

    async def find_one(self, filter, projection=None):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers")
        document = self._find_by_id(filter)
        return copy.deepcopy(document) if document else None

    async def insert_one(self, document):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers")
        document = dict(document)
        document["_id"] = ObjectId()
        self.documents.append(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one_and_update(self, filter, update, projection=None, return_document=None):
        document = self._find_by_id(filter)
        if not document:
            return None
        document.update(update["$set"])
        return copy.deepcopy(document)

    async def delete_one(self, filter):
        document = self._find_by_id(filter)
        if document:
            self.documents.remove(document)
        return SimpleNamespace(deleted_count=1 if document else 0)


@pytest.fixture
def collection():
    return FakeCollection()
