from pydantic import BaseModel
from uuid import UUID


class BarRead(BaseModel):
    id: UUID
    name: str
    is_active: bool


class BarCreate(BaseModel):
    name: str
