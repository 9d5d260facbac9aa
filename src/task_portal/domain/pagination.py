from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results plus the counts needed for the `meta` envelope."""

    items: List[T] = field(default_factory=list)
    total: int = 0
    per_page: int = 15
    current_page: int = 1

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.per_page

    @property
    def from_index(self) -> Optional[int]:
        return self.offset + 1 if self.items else None

    @property
    def to_index(self) -> Optional[int]:
        return self.offset + len(self.items) if self.items else None


# SQLite binds integers as signed 64-bit.
MAX_SQL_OFFSET = 2**63 - 1


def sql_offset(page: int, per_page: int) -> int:
    """Row offset for a page; pages past the ceiling just read nothing."""
    return min((page - 1) * per_page, MAX_SQL_OFFSET)
