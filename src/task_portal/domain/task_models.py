from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DUE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DUE_DAY_FORMAT = "%Y-%m-%d"

# SQLite INTEGER primary keys are signed 64-bit.
MAX_TASK_ID = 2**63 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.low: 1,
    TaskPriority.medium: 2,
    TaskPriority.high: 3,
    TaskPriority.urgent: 4,
}


class SortField(str, Enum):
    created_at = "created_at"
    updated_at = "updated_at"
    due_date = "due_date"
    priority = "priority"
    is_completed = "is_completed"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


def parse_due_date(value: Any) -> datetime:
    """Parse a `YYYY-MM-DD HH:MM:SS` wall-clock string as a UTC instant that lies in the future."""
    if not isinstance(value, str):
        raise ValueError("The due date must be a string in YYYY-MM-DD HH:MM:SS format")
    try:
        parsed = datetime.strptime(value, DUE_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValueError("The due date does not match the format YYYY-MM-DD HH:MM:SS") from None
    if parsed <= utcnow():
        raise ValueError("The due date must be a future date and time")
    return parsed


def parse_due_day(value: str) -> date:
    try:
        return datetime.strptime(value, DUE_DAY_FORMAT).date()
    except ValueError:
        raise ValueError("The due date does not match the format YYYY-MM-DD") from None


class TaskCreate(BaseModel):
    # Unknown keys (user_id, owner, ...) are dropped; the owner always comes from the principal.
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    is_completed: bool
    due_date: Optional[datetime] = None
    priority: TaskPriority

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v: Any) -> Optional[datetime]:
        return None if v is None else parse_due_date(v)


class TaskUpdate(BaseModel):
    """Partial update: only keys present in the payload are applied."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None

    @field_validator("title", "is_completed", "priority")
    @classmethod
    def _not_null(cls, v: Any, info) -> Any:
        # Validators skip defaults, so this only fires on an explicit null.
        if v is None:
            raise ValueError(f"The {info.field_name} field may not be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v: Any) -> Optional[datetime]:
        return None if v is None else parse_due_date(v)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Task(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    priority: TaskPriority = TaskPriority.low
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TaskFilter(BaseModel):
    is_completed: Optional[bool] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    overdue: bool = False
    upcoming_days: Optional[int] = Field(default=None, ge=1, le=365)
    sort_by: Optional[SortField] = None
    sort_order: SortOrder = SortOrder.desc
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=15, ge=1, le=100)


class TaskSearch(BaseModel):
    query: str = Field(min_length=2)
    is_completed: Optional[bool] = None
    priority: Optional[TaskPriority] = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=15, ge=1, le=100)
