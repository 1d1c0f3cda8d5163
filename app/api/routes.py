from fastapi import APIRouter

from app.api.classification import router as classification_router
from app.api.collections import router as collections_router
from app.api.public.health import router as health_router
from app.api.users import router as users_router
from app.api.workspaces import router as workspaces_router


api_router = APIRouter()
api_router.include_router(health_router)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(classification_router)
v1_router.include_router(collections_router)
v1_router.include_router(users_router)
v1_router.include_router(workspaces_router)

api_router.include_router(v1_router)
