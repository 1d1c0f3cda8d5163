from app.db.models.classification import Classification, ClassificationJob, Input
from app.db.models.collection import Collection, CollectionCategory
from app.db.models.user import User
from app.db.models.workspace import ApiKey, Workspace
from app.db.base import Base

__all__ = [
    "Base",
    "User",
    "Workspace",
    "ApiKey",
    "Collection",
    "CollectionCategory",
    "Input",
    "ClassificationJob",
    "Classification",
]
