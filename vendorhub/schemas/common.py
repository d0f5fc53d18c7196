from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Wire models use camelCase; Python code uses field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(APIModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None
    error: str | None = None


class MessageResponse(APIModel):
    success: bool = True
    message: str
