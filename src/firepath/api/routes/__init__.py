from fastapi import APIRouter

from firepath.api.routes.documents import router as documents_router
from firepath.api.routes.healthz import router as healthz_router
from firepath.api.routes.queries import router as queries_router

api_router = APIRouter()
api_router.include_router(healthz_router)
api_router.include_router(documents_router)
api_router.include_router(queries_router)
