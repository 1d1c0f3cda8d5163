from fastapi import APIRouter, Depends

from app.api.deps import require_auth
from app.db.session import get_db
from app.schemas.admin import WorkspaceCreate, WorkspaceListResponse, WorkspaceOut, WorkspaceUpdate
from app.services.admin_service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"], dependencies=[Depends(require_auth)])


def get_workspace_service(db=Depends(get_db)) -> WorkspaceService:
    return WorkspaceService(db)


@router.get("", response_model=WorkspaceListResponse)
def list_workspaces(service: WorkspaceService = Depends(get_workspace_service)) -> WorkspaceListResponse:
    return service.list_workspaces()


@router.post("", response_model=WorkspaceOut, status_code=201)
def create_workspace(payload: WorkspaceCreate, service: WorkspaceService = Depends(get_workspace_service)) -> WorkspaceOut:
    return service.create_workspace(payload)


@router.get("/{workspace_id}", response_model=WorkspaceOut)
def get_workspace(workspace_id: int, service: WorkspaceService = Depends(get_workspace_service)) -> WorkspaceOut:
    return service.get_workspace(workspace_id)


@router.put("/{workspace_id}", response_model=WorkspaceOut)
def update_workspace(
    workspace_id: int,
    payload: WorkspaceUpdate,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceOut:
    return service.update_workspace(workspace_id, payload)


@router.delete("/{workspace_id}", status_code=204)
def delete_workspace(workspace_id: int, service: WorkspaceService = Depends(get_workspace_service)) -> None:
    service.delete_workspace(workspace_id)
