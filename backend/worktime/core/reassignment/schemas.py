import uuid
from pydantic import BaseModel


class SnapshotRequest(BaseModel):
    user_id_to_delete: uuid.UUID


class SnapshotResult(BaseModel):
    user_id: uuid.UUID
    updated: dict[str, int]
