import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from routes import brands
from routes import products
from routes import sub_categories
from services import mongo_service
from services.mongo_query import QueryExecutionError
import config

logger.remove()
logger.add(sys.stderr, level=config.LOG_LEVEL)

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await mongo_service.close_client()

app = FastAPI(title="Catalog Api", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(QueryExecutionError)
async def query_execution_error_handler(request: Request, exc: QueryExecutionError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Query execution failed"})

app.include_router(brands.router, prefix="/api/v1/brands", tags=["brands"])
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(sub_categories.router, prefix="/api/v1/subcategories", tags=["subcategories"])
app.include_router(sub_categories.nested_router, prefix="/api/v1/categories", tags=["subcategories"])
