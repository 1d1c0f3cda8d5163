from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import User, Workspace
from app.schemas.admin import (
    UserCreate,
    UserListResponse,
    UserOut,
    UserUpdate,
    WorkspaceCreate,
    WorkspaceListResponse,
    WorkspaceOut,
    WorkspaceUpdate,
)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def list_users(self) -> UserListResponse:
        rows = self.db.scalars(select(User).order_by(User.id)).all()
        return UserListResponse(users=[UserOut.model_validate(row) for row in rows], total=len(rows))

    def get_user(self, user_id: int) -> UserOut:
        return UserOut.model_validate(self._get_user(user_id))

    def create_user(self, payload: UserCreate) -> UserOut:
        user = User(
            name=payload.name,
            email=payload.email.lower(),
            email_verified=payload.email_verified,
            role=payload.role,
        )
        self.db.add(user)
        self._commit_unique_email()
        self.db.refresh(user)
        return UserOut.model_validate(user)

    def update_user(self, user_id: int, payload: UserUpdate) -> UserOut:
        user = self._get_user(user_id)
        if payload.name is not None:
            user.name = payload.name
        if payload.email is not None:
            user.email = payload.email.lower()
        if payload.email_verified is not None:
            user.email_verified = payload.email_verified
        if payload.role is not None:
            user.role = payload.role
        self._commit_unique_email()
        self.db.refresh(user)
        return UserOut.model_validate(user)

    def delete_user(self, user_id: int) -> None:
        user = self._get_user(user_id)
        self.db.delete(user)
        self.db.commit()

    def _get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user_not_found")
        return user

    def _commit_unique_email(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email_taken") from exc


class WorkspaceService:
    def __init__(self, db: Session):
        self.db = db

    def list_workspaces(self) -> WorkspaceListResponse:
        rows = self.db.scalars(select(Workspace).order_by(Workspace.id)).all()
        return WorkspaceListResponse(
            workspaces=[WorkspaceOut.model_validate(row) for row in rows],
            total=len(rows),
        )

    def get_workspace(self, workspace_id: int) -> WorkspaceOut:
        return WorkspaceOut.model_validate(self._get_workspace(workspace_id))

    def create_workspace(self, payload: WorkspaceCreate) -> WorkspaceOut:
        workspace = Workspace(name=payload.name, description=payload.description or None)
        self.db.add(workspace)
        self.db.commit()
        self.db.refresh(workspace)
        return WorkspaceOut.model_validate(workspace)

    def update_workspace(self, workspace_id: int, payload: WorkspaceUpdate) -> WorkspaceOut:
        workspace = self._get_workspace(workspace_id)
        if payload.name is not None:
            workspace.name = payload.name
        if payload.description is not None:
            workspace.description = payload.description
        self.db.commit()
        self.db.refresh(workspace)
        return WorkspaceOut.model_validate(workspace)

    def delete_workspace(self, workspace_id: int) -> None:
        workspace = self._get_workspace(workspace_id)
        self.db.delete(workspace)
        self.db.commit()

    def _get_workspace(self, workspace_id: int) -> Workspace:
        workspace = self.db.get(Workspace, workspace_id)
        if workspace is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="workspace_not_found")
        return workspace
