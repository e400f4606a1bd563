"""
peopleguard.api.pagination

Shared paging contract for list endpoints.

Responsibilities:
- Clamp page/size query values.
- Provide the `{data, page, size, total, total_pages}` envelope model.
"""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

MAX_PAGE_SIZE = 100


def clamp_paging(page: int, size: int) -> tuple[int, int]:
    return max(page, 1), min(max(size, 1), MAX_PAGE_SIZE)


class Paged(BaseModel, Generic[T]):
    data: list[T]
    page: int
    size: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, *, data: list[T], page: int, size: int, total: int) -> Paged[T]:
        return cls(
            data=data,
            page=page,
            size=size,
            total=total,
            total_pages=math.ceil(total / size) if size else 0,
        )
