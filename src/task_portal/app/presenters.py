"""
Task -> JSON shaping.

Presence rules are explicit per field: optional fields are left out only when
they are unset (None), never merely because they are falsy, so
`is_completed: false` and `description: ""` are always emitted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from task_portal.domain.pagination import Page
from task_portal.domain.task_models import DUE_DATE_FORMAT, Task
from task_portal.domain.user_models import Principal


def _fmt(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(DUE_DATE_FORMAT) if value is not None else None


def present_due_date(due: datetime) -> Dict[str, Any]:
    return {
        "date": due.strftime("%Y-%m-%d"),
        "time": due.strftime("%H:%M:%S"),
        "formatted": due.strftime(DUE_DATE_FORMAT),
        "timestamp": int(due.timestamp()),
    }


def present_author(user: Principal) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "username": user.username}


def present_task(task: Task, author: Optional[Principal] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": task.id, "title": task.title}
    if task.description is not None:
        out["description"] = task.description
    out["is_completed"] = task.is_completed
    if task.due_date is not None:
        out["due_date"] = present_due_date(task.due_date)
    out["priority"] = task.priority.value
    if author is not None:
        out["author"] = present_author(author)
    out["created_at"] = _fmt(task.created_at)
    out["updated_at"] = _fmt(task.updated_at)
    return out


def present_page(page: Page[Task], author: Optional[Principal] = None) -> Dict[str, Any]:
    return {
        "data": [present_task(t, author) for t in page.items],
        "meta": {
            "total": page.total,
            "per_page": page.per_page,
            "current_page": page.current_page,
            "last_page": page.last_page,
            "from": page.from_index,
            "to": page.to_index,
        },
    }
