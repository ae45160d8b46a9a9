from typing import Any, Dict, List, Optional, Tuple
from loguru import logger
from pymongo.errors import PyMongoError


class QueryExecutionError(Exception):
    """Raised when the storage engine fails to run a composed query."""


class MongoQuery:
    """
    Mutable query against one collection, optionally pre-filtered.

    Each restriction is kept as a separate clause so a pre-filter, the
    structural filter and the keyword search never overwrite each other.
    """

    def __init__(self, collection, pre_filter: Optional[Dict[str, Any]] = None):
        self.collection = collection
        self.clauses: List[Dict[str, Any]] = []
        self.sort_keys: List[Tuple[str, int]] = []
        self.projection: Optional[Dict[str, int]] = None
        self.skip_count = 0
        self.limit_count = 0
        self._documents: Optional[List[dict]] = None
        if pre_filter:
            self.restrict(pre_filter)

    @property
    def predicate(self) -> Dict[str, Any]:
        if not self.clauses:
            return {}
        if len(self.clauses) == 1:
            return self.clauses[0]
        return {"$and": list(self.clauses)}

    def restrict(self, predicate: Dict[str, Any]) -> "MongoQuery":
        if predicate:
            self.clauses.append(predicate)
        return self

    def sort(self, keys: List[Tuple[str, int]]) -> "MongoQuery":
        self.sort_keys = list(keys)
        return self

    def select(self, projection: Dict[str, int]) -> "MongoQuery":
        self.projection = dict(projection)
        return self

    def skip(self, count: int) -> "MongoQuery":
        self.skip_count = count
        return self

    def limit(self, count: int) -> "MongoQuery":
        self.limit_count = count
        return self

    async def execute(self) -> List[dict]:
        if self._documents is not None:
            return self._documents

        logger.debug(
            "find {} filter={} projection={} sort={} skip={} limit={}",
            self.collection.name, self.predicate, self.projection,
            self.sort_keys, self.skip_count, self.limit_count,
        )
        cursor = self.collection.find(self.predicate, self.projection)
        if self.sort_keys:
            cursor = cursor.sort(self.sort_keys)
        if self.skip_count:
            cursor = cursor.skip(self.skip_count)
        if self.limit_count:
            cursor = cursor.limit(self.limit_count)

        try:
            self._documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Query on '{self.collection.name}' failed: {e}")
            raise QueryExecutionError("Query execution failed") from e
        return self._documents

    async def count(self) -> int:
        # skip/limit never apply here, the count covers the whole predicate
        try:
            return await self.collection.count_documents(self.predicate)
        except PyMongoError as e:
            logger.error(f"Count on '{self.collection.name}' failed: {e}")
            raise QueryExecutionError("Query execution failed") from e
