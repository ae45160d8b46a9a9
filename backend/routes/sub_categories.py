from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from slugify import slugify
from models.sub_category import SubCategoryIn
from services import mongo_service
from services.query_params import parse_query_params
import config

router = APIRouter()

# Mounted both at /subcategories and at /categories/{category_id}/subcategories
nested_router = APIRouter()

async def list_sub_categories(request: Request, collection, category_id: Optional[str] = None):
    params = parse_query_params(request.query_params.multi_items())
    pre_filter = {"category": category_id} if category_id else None
    return await mongo_service.list_documents(
        collection, params, config.SUB_CATEGORIES_PAGE_LIMIT,
        config.SUB_CATEGORIES_MAX_PAGE_LIMIT, pre_filter
    )

async def create_sub_category(body: SubCategoryIn, collection, category_id: Optional[str] = None):
    category = body.category or category_id
    if not category:
        raise HTTPException(status_code = 400, detail = "Sub-category must belong to a category")

    sub_category = await mongo_service.create_document(
        collection, {"name": body.name, "slug": slugify(body.name), "category": category}
    )
    return {"data": mongo_service.serialize(sub_category)}

@router.get("/")
async def get_sub_categories(request: Request, collection = Depends(mongo_service.sub_categories_collection)):
    return await list_sub_categories(request, collection)

@nested_router.get("/{category_id}/subcategories")
async def get_category_sub_categories(category_id: str, request: Request, collection = Depends(mongo_service.sub_categories_collection)):
    return await list_sub_categories(request, collection, category_id)

@router.get("/{sub_category_id}")
async def get_sub_category(sub_category_id: str, collection = Depends(mongo_service.sub_categories_collection)):
    sub_category = await mongo_service.get_document(collection, sub_category_id)
    if not sub_category:
        raise HTTPException(status_code = 404, detail = f"No subCategory for this id {sub_category_id}")

    return {"data": mongo_service.serialize(sub_category)}

@router.post("/", status_code=201)
async def post_sub_category(body: SubCategoryIn, collection = Depends(mongo_service.sub_categories_collection)):
    return await create_sub_category(body, collection)

@nested_router.post("/{category_id}/subcategories", status_code=201)
async def post_category_sub_category(category_id: str, body: SubCategoryIn, collection = Depends(mongo_service.sub_categories_collection)):
    return await create_sub_category(body, collection, category_id)

@router.put("/{sub_category_id}")
async def update_sub_category(sub_category_id: str, body: SubCategoryIn, collection = Depends(mongo_service.sub_categories_collection)):
    fields = {"name": body.name, "slug": slugify(body.name)}
    if body.category:
        fields["category"] = body.category

    sub_category = await mongo_service.update_document(collection, sub_category_id, fields)
    if not sub_category:
        raise HTTPException(status_code = 404, detail = f"No subCategory for this id {sub_category_id}")

    return {"data": mongo_service.serialize(sub_category)}

@router.delete("/{sub_category_id}", status_code=204)
async def delete_sub_category(sub_category_id: str, collection = Depends(mongo_service.sub_categories_collection)):
    if not await mongo_service.delete_document(collection, sub_category_id):
        raise HTTPException(status_code = 404, detail = f"No subCategory for this id {sub_category_id}")

    return Response(status_code=204)
