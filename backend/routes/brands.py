from fastapi import APIRouter, Depends, HTTPException, Request, Response
from slugify import slugify
from models.brand import BrandIn
from services import mongo_service
from services.query_params import parse_query_params
import config

router = APIRouter()

@router.get("/")
async def get_brands(request: Request, collection = Depends(mongo_service.brands_collection)):
    params = parse_query_params(request.query_params.multi_items())
    return await mongo_service.list_documents(collection, params, config.BRANDS_PAGE_LIMIT, config.BRANDS_MAX_PAGE_LIMIT)

@router.get("/{brand_id}")
async def get_brand(brand_id: str, collection = Depends(mongo_service.brands_collection)):
    brand = await mongo_service.get_document(collection, brand_id)
    if not brand:
        raise HTTPException(status_code = 404, detail = f"No brand for this id {brand_id}")

    return {"data": mongo_service.serialize(brand)}

@router.post("/", status_code=201)
async def create_brand(body: BrandIn, collection = Depends(mongo_service.brands_collection)):
    brand = await mongo_service.create_document(collection, {"name": body.name, "slug": slugify(body.name)})
    return {"data": mongo_service.serialize(brand)}

@router.put("/{brand_id}")
async def update_brand(brand_id: str, body: BrandIn, collection = Depends(mongo_service.brands_collection)):
    brand = await mongo_service.update_document(
        collection, brand_id, {"name": body.name, "slug": slugify(body.name)}
    )
    if not brand:
        raise HTTPException(status_code = 404, detail = f"No brand for this id {brand_id}")

    return {"data": mongo_service.serialize(brand)}

@router.delete("/{brand_id}", status_code=204)
async def delete_brand(brand_id: str, collection = Depends(mongo_service.brands_collection)):
    if not await mongo_service.delete_document(collection, brand_id):
        raise HTTPException(status_code = 404, detail = f"No brand for this id {brand_id}")

    return Response(status_code=204)
