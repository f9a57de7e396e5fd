"""
Page envelope shared by every list endpoint.
"""
from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


def page_offset(page: int, size: int) -> int:
    """Row offset of a 1-based page."""
    return (page - 1) * size


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    size: int

    @computed_field  # type: ignore[misc]
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    @computed_field  # type: ignore[misc]
    @property
    def has_next(self) -> bool:
        return self.page < self.pages
