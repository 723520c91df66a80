from __future__ import annotations

import math
from dataclasses import dataclass


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    sort_by: str
    sort_order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"

    def meta(self, total: int) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalPages": total_pages(total, self.limit),
        }


def _positive_int(raw_value, default: int) -> int:
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return int(math.ceil(max(0, int(total)) / float(limit)))


def calculate_pagination(
    *,
    page=None,
    limit=None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    default_sort: str = "created_at",
) -> Pagination:
    order = (sort_order or "desc").strip().lower()
    if order not in ("asc", "desc"):
        order = "desc"
    return Pagination(
        page=_positive_int(page, DEFAULT_PAGE),
        limit=min(_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT),
        sort_by=(sort_by or default_sort).strip() or default_sort,
        sort_order=order,
    )
