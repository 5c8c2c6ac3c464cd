from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_serializer
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class APIModel(BaseModel):
    """База всех схем: camelCase в JSON, snake_case принимается на входе."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(APIModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None
    errors: Optional[Dict[str, List[str]]] = None

    @model_serializer(mode="wrap")
    def drop_empty_meta(self, handler):
        """Пустые message и errors не попадают в ответ."""
        data = handler(self)
        for key in ("message", "errors"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class MessageResponse(APIModel):
    success: bool = True
    message: str


class PaginationMeta(APIModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Page(APIModel, Generic[DataT]):
    data: List[DataT]
    pagination: PaginationMeta


class PaginatedEnvelope(Page[DataT], Generic[DataT]):
    success: bool = True
