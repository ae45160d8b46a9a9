import asyncio
import math
import re
from typing import Any, Dict, List, Optional, Tuple
from loguru import logger

from models.pagination import PaginationResult
from services.mongo_query import MongoQuery

RESERVED_KEYS = frozenset({"page", "sort", "limit", "fields", "keyword"})
RANGE_OPERATORS = frozenset({"gt", "gte", "lt", "lte"})
NUMBER = re.compile(r"^-?\d+(\.\d+)?$")

SEARCH_FIELDS = ("title", "description")
DEFAULT_SORT = [("createdAt", -1)]
DEFAULT_PROJECTION = {"__v": 0}
DEFAULT_PAGE_LIMIT = 10
DEFAULT_MAX_PAGE_LIMIT = 100
# skip is sent as a BSON int64
MAX_SKIP = 2 ** 63 - 1


def to_number(value: str) -> Any:
    return float(value) if "." in value else int(value)


def to_mongo_operators(value: Any) -> Any:
    """Rewrite nested gt/gte/lt/lte keys into $gt/$gte/$lt/$lte."""
    if isinstance(value, dict):
        return {
            (f"${key}" if key in RANGE_OPERATORS else key): to_mongo_operators(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [to_mongo_operators(item) for item in value]
    return value


def match_candidates(value: Any) -> List[Any]:
    # "100" should match both a string and a numeric field
    if isinstance(value, str) and NUMBER.match(value):
        return [value, to_number(value)]
    return [value]


def equality_condition(value: Any) -> Any:
    if isinstance(value, dict):
        return to_mongo_operators(value)
    if isinstance(value, list):
        return {"$in": [candidate for item in value for candidate in match_candidates(item)]}
    candidates = match_candidates(value)
    if len(candidates) > 1:
        return {"$in": candidates}
    return value


def split_list_param(value: Any) -> List[str]:
    """`"a, b"` or `["a", "b,c"]` -> `["a", "b", "c"]`, blanks dropped."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        value = ",".join(str(item) for item in value)
    return [item.strip() for item in str(value).split(",") if item.strip()]


def positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 1 else default
    if isinstance(value, str) and value.strip().isdecimal():
        number = int(value.strip())
        return number if number >= 1 else default
    return default


class QueryComposer:
    """
    Narrows a MongoQuery from client query parameters.

    filter(), search(), limit_fields() and sort() each touch an independent
    facet of the query and return self, so they chain in any order. Paging
    needs the total count, see paginate() and execute_paginated().
    """

    def __init__(self, query: MongoQuery, params: Dict[str, Any]):
        self.query = query
        # shallow copy, the caller's mapping is never modified
        self.params = dict(params)
        self.pagination_result: Optional[PaginationResult] = None

    def filter(self) -> "QueryComposer":
        conditions = {
            key: equality_condition(value)
            for key, value in self.params.items()
            if key not in RESERVED_KEYS
        }
        self.query.restrict(conditions)
        return self

    def search(self) -> "QueryComposer":
        keyword = self.params.get("keyword")
        if isinstance(keyword, list):
            keyword = keyword[0] if keyword else None
        if keyword:
            pattern = re.escape(str(keyword))
            self.query.restrict({
                "$or": [
                    {field: {"$regex": pattern, "$options": "i"}}
                    for field in SEARCH_FIELDS
                ]
            })
        return self

    def limit_fields(self) -> "QueryComposer":
        projection = {}
        for field in split_list_param(self.params.get("fields")):
            if field.startswith("-"):
                if field[1:]:
                    projection[field[1:]] = 0
            else:
                projection[field] = 1
        # MongoDB rejects a projection mixing inclusions and exclusions
        if not projection or len(set(projection.values())) > 1:
            projection = DEFAULT_PROJECTION
        self.query.select(projection)
        return self

    def sort(self) -> "QueryComposer":
        keys: List[Tuple[str, int]] = []
        for field in split_list_param(self.params.get("sort")):
            if field.startswith("-"):
                if field[1:]:
                    keys.append((field[1:], -1))
            else:
                keys.append((field, 1))
        self.query.sort(keys or DEFAULT_SORT)
        return self

    def page_window(self, default_limit: int = DEFAULT_PAGE_LIMIT, max_limit: int = DEFAULT_MAX_PAGE_LIMIT) -> Tuple[int, int]:
        limit = min(positive_int(self.params.get("limit"), default_limit), max_limit)
        page = min(positive_int(self.params.get("page"), 1), MAX_SKIP // limit + 1)
        return page, limit

    def _apply_window(self, default_limit: int, max_limit: int) -> Tuple[int, int]:
        page, limit = self.page_window(default_limit, max_limit)
        self.query.skip((page - 1) * limit).limit(limit)
        return page, limit

    def paginate(self, total_count: int, default_limit: int = DEFAULT_PAGE_LIMIT, max_limit: int = DEFAULT_MAX_PAGE_LIMIT) -> PaginationResult:
        page, limit = self._apply_window(default_limit, max_limit)
        self.pagination_result = build_pagination(page, limit, total_count)
        return self.pagination_result

    async def execute(self) -> List[dict]:
        return await self.query.execute()

    async def execute_paginated(self, default_limit: int = DEFAULT_PAGE_LIMIT, max_limit: int = DEFAULT_MAX_PAGE_LIMIT) -> Tuple[List[dict], PaginationResult]:
        """
        Run the page query and the count query together.

        Both read the predicate as it stands now; skip/limit only affect
        the page query. If either read fails the other one is cancelled.
        """
        page, limit = self._apply_window(default_limit, max_limit)
        reads = [asyncio.ensure_future(self.query.execute()), asyncio.ensure_future(self.query.count())]
        try:
            documents, total_count = await asyncio.gather(*reads)
        except BaseException:
            for read in reads:
                read.cancel()
            raise
        self.pagination_result = build_pagination(page, limit, total_count)
        logger.debug(f"page {page}/{self.pagination_result.number_of_pages}, {len(documents)} of {total_count} documents")
        return documents, self.pagination_result


def build_pagination(page: int, limit: int, total_count: int) -> PaginationResult:
    result = PaginationResult(
        current_page=page,
        results_per_page=limit,
        number_of_pages=math.ceil(total_count / limit),
    )
    if page * limit < total_count:
        result.next_page = page + 1
    if page > 1:
        result.previous_page = page - 1
    return result
