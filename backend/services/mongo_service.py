from datetime import datetime, timezone
from typing import Any, Dict, Optional
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from loguru import logger
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import PyMongoError
import config

from services.mongo_query import MongoQuery, QueryExecutionError
from services.query_composer import QueryComposer

_client: Optional[AsyncMongoClient] = None

def get_client() -> AsyncMongoClient:
    global _client
    if _client is None:
        _client = AsyncMongoClient(config.MONGO_URI)
    return _client

async def close_client():
    global _client
    if _client is not None:
        await _client.close()
        _client = None

def get_collection(name: str):
    return get_client()[config.MONGO_DB][name]

# FastAPI dependencies, overridden in tests
def brands_collection():
    return get_collection(config.BRANDS_COLLECTION)

def products_collection():
    return get_collection(config.PRODUCTS_COLLECTION)

def sub_categories_collection():
    return get_collection(config.SUB_CATEGORIES_COLLECTION)


def to_object_id(document_id: str) -> ObjectId:
    try:
        return ObjectId(document_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid id {document_id}")

def serialize(document: Dict[str, Any]) -> Dict[str, Any]:
    if "_id" in document:
        document["_id"] = str(document["_id"])
    return document


async def get_document(collection, document_id: str) -> Optional[dict]:
    try:
        return await collection.find_one({"_id": to_object_id(document_id)}, {"__v": 0})
    except PyMongoError as e:
        logger.error(f"find_one on '{collection.name}' failed: {e}")
        raise QueryExecutionError("Query execution failed") from e

async def create_document(collection, fields: Dict[str, Any]) -> dict:
    now = datetime.now(timezone.utc)
    document = {**fields, "createdAt": now, "updatedAt": now, "__v": 0}
    try:
        result = await collection.insert_one(document)
    except PyMongoError as e:
        logger.error(f"insert_one on '{collection.name}' failed: {e}")
        raise QueryExecutionError("Query execution failed") from e

    document["_id"] = result.inserted_id
    document.pop("__v")
    logger.info(f"Created {collection.name} document {result.inserted_id}")
    return document

async def update_document(collection, document_id: str, fields: Dict[str, Any]) -> Optional[dict]:
    update = {**fields, "updatedAt": datetime.now(timezone.utc)}
    try:
        document = await collection.find_one_and_update(
            {"_id": to_object_id(document_id)},
            {"$set": update},
            projection={"__v": 0},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"find_one_and_update on '{collection.name}' failed: {e}")
        raise QueryExecutionError("Query execution failed") from e

    if document:
        logger.info(f"Updated {collection.name} document {document_id}")
    return document

async def delete_document(collection, document_id: str) -> bool:
    try:
        result = await collection.delete_one({"_id": to_object_id(document_id)})
    except PyMongoError as e:
        logger.error(f"delete_one on '{collection.name}' failed: {e}")
        raise QueryExecutionError("Query execution failed") from e

    if result.deleted_count:
        logger.info(f"Deleted {collection.name} document {document_id}")
    return result.deleted_count > 0


async def list_documents(collection, params: Dict[str, Any], default_limit: int, max_limit: int, pre_filter: Optional[Dict[str, Any]] = None) -> dict:
    composer = (
        QueryComposer(MongoQuery(collection, pre_filter), params)
        .filter()
        .search()
        .limit_fields()
        .sort()
    )
    documents, pagination = await composer.execute_paginated(default_limit, max_limit)
    return {
        "results": len(documents),
        "paginationResult": pagination.to_response(),
        "data": [serialize(document) for document in documents],
    }
