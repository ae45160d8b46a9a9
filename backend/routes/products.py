from fastapi import APIRouter, Depends, HTTPException, Request, Response
from slugify import slugify
from models.product import ProductIn, ProductUpdate
from services import mongo_service
from services.query_params import parse_query_params
import config

router = APIRouter()

@router.get("/")
async def get_products(request: Request, collection = Depends(mongo_service.products_collection)):
    params = parse_query_params(request.query_params.multi_items())
    return await mongo_service.list_documents(collection, params, config.PRODUCTS_PAGE_LIMIT, config.PRODUCTS_MAX_PAGE_LIMIT)

@router.get("/{product_id}")
async def get_product(product_id: str, collection = Depends(mongo_service.products_collection)):
    product = await mongo_service.get_document(collection, product_id)
    if not product:
        raise HTTPException(status_code = 404, detail = f"No product for this id {product_id}")

    return {"data": mongo_service.serialize(product)}

@router.post("/", status_code=201)
async def create_product(body: ProductIn, collection = Depends(mongo_service.products_collection)):
    fields = body.model_dump(exclude_none=True)
    fields["slug"] = slugify(body.title)
    product = await mongo_service.create_document(collection, fields)
    return {"data": mongo_service.serialize(product)}

@router.put("/{product_id}")
async def update_product(product_id: str, body: ProductUpdate, collection = Depends(mongo_service.products_collection)):
    fields = body.model_dump(exclude_unset=True)
    if body.title:
        fields["slug"] = slugify(body.title)

    product = await mongo_service.update_document(collection, product_id, fields)
    if not product:
        raise HTTPException(status_code = 404, detail = f"No product for this id {product_id}")

    return {"data": mongo_service.serialize(product)}

@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: str, collection = Depends(mongo_service.products_collection)):
    if not await mongo_service.delete_document(collection, product_id):
        raise HTTPException(status_code = 404, detail = f"No product for this id {product_id}")

    return Response(status_code=204)
