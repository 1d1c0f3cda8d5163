from fastapi import APIRouter, Depends, Query

from app.api.deps import require_admin
from app.db.session import get_db
from app.schemas.taxonomy import (
    CategoryCreate,
    CategoryListResponse,
    CategoryOut,
    CategoryUpdate,
    CollectionCreate,
    CollectionListResponse,
    CollectionOut,
    CollectionUpdate,
    TaxonomyCategoryOut,
)
from app.services.category_service import CategoryService

router = APIRouter(tags=["collections"], dependencies=[Depends(require_admin)])


def get_category_service(db=Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("/collections", response_model=CollectionListResponse)
def list_collections(
    workspace_id: int | None = Query(None, alias="workspaceId"),
    service: CategoryService = Depends(get_category_service),
) -> CollectionListResponse:
    return service.list_collections(workspace_id)


@router.post("/collections", response_model=CollectionOut, status_code=201)
def create_collection(payload: CollectionCreate, service: CategoryService = Depends(get_category_service)) -> CollectionOut:
    return service.create_collection(payload)


@router.get("/collections/{collection_id}", response_model=CollectionOut)
def get_collection(collection_id: int, service: CategoryService = Depends(get_category_service)) -> CollectionOut:
    return service.get_collection(collection_id)


@router.put("/collections/{collection_id}", response_model=CollectionOut)
def update_collection(
    collection_id: int,
    payload: CollectionUpdate,
    service: CategoryService = Depends(get_category_service),
) -> CollectionOut:
    return service.update_collection(collection_id, payload)


@router.delete("/collections/{collection_id}", status_code=204)
def delete_collection(collection_id: int, service: CategoryService = Depends(get_category_service)) -> None:
    service.delete_collection(collection_id)


@router.get("/collections/{collection_id}/categories", response_model=CategoryListResponse)
def list_categories(collection_id: int, service: CategoryService = Depends(get_category_service)) -> CategoryListResponse:
    return service.list_categories(collection_id)


@router.get("/collections/{collection_id}/taxonomy", response_model=list[TaxonomyCategoryOut])
def get_taxonomy(collection_id: int, service: CategoryService = Depends(get_category_service)) -> list[TaxonomyCategoryOut]:
    return service.get_taxonomy(collection_id)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, service: CategoryService = Depends(get_category_service)) -> CategoryOut:
    return service.create_category(payload)


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, service: CategoryService = Depends(get_category_service)) -> CategoryOut:
    return service.get_category(category_id)


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
) -> CategoryOut:
    return service.update_category(category_id, payload)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: int, service: CategoryService = Depends(get_category_service)) -> None:
    service.delete_category(category_id)
