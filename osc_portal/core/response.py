"""Response envelopes: `{data, message}` for single items, `{data, meta}` for pages."""

from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from osc_portal.core.pagination import PageMeta, PaginationParams

T = TypeVar("T")

_ENVELOPE_CONFIG = {"populate_by_name": True, "alias_generator": to_camel}


class DataResponse(BaseModel, Generic[T]):
    """`{ data: {...}, message: "..." }`; `data` is null for pure acknowledgements."""

    data: T
    message: str | None = None

    model_config = _ENVELOPE_CONFIG


class ListResponse(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta

    model_config = _ENVELOPE_CONFIG


def paginated(items: list, total: int, pagination: PaginationParams) -> dict:
    """Body for a ListResponse from one page of items and the unpaged total."""
    return {"data": items, "meta": pagination.meta(total)}
