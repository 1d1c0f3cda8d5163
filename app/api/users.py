from fastapi import APIRouter, Depends

from app.api.deps import require_admin
from app.db.session import get_db
from app.schemas.admin import UserCreate, UserListResponse, UserOut, UserUpdate
from app.services.admin_service import UserService

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


def get_user_service(db=Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=UserListResponse)
def list_users(service: UserService = Depends(get_user_service)) -> UserListResponse:
    return service.list_users()


@router.post("", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)) -> UserOut:
    return service.create_user(payload)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, service: UserService = Depends(get_user_service)) -> UserOut:
    return service.get_user(user_id)


@router.put("/{user_id}", response_model=UserOut)
def update_user(user_id: int, payload: UserUpdate, service: UserService = Depends(get_user_service)) -> UserOut:
    return service.update_user(user_id, payload)


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: int, service: UserService = Depends(get_user_service)) -> None:
    service.delete_user(user_id)
