"""
Query filter engine: turns a validated TaskFilter into SELECT statements.

The owner predicate is the first clause of every statement built here, so
no filter combination can reach another user's rows.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Tuple

from sqlalchemy import Select, case, func, select

from task_portal.domain.pagination import sql_offset
from task_portal.domain.task_models import SortField, SortOrder, TaskFilter, TaskPriority
from task_portal.infra.db.tables import TaskRow

_PRIORITY_ORDER = case(
    {p.value: p.rank for p in TaskPriority},
    value=TaskRow.priority,
    else_=0,
)

_SORT_COLUMNS = {
    SortField.created_at: TaskRow.created_at,
    SortField.updated_at: TaskRow.updated_at,
    SortField.due_date: TaskRow.due_date,
    SortField.priority: _PRIORITY_ORDER,
    SortField.is_completed: TaskRow.is_completed,
}


def owner_scope(owner_id: int) -> Select:
    return select(TaskRow).where(TaskRow.user_id == owner_id)


def apply_filters(stmt: Select, f: TaskFilter, now: datetime) -> Select:
    if f.is_completed is not None:
        stmt = stmt.where(TaskRow.is_completed == f.is_completed)
    if f.priority is not None:
        stmt = stmt.where(TaskRow.priority == f.priority.value)
    if f.due_date is not None:
        # whole-day match as a half-open range so the due_date index stays usable
        start = datetime.combine(f.due_date, time.min, tzinfo=timezone.utc)
        stmt = stmt.where(TaskRow.due_date >= start, TaskRow.due_date < start + timedelta(days=1))
    # overdue / upcoming compare calendar days (UTC), not instants
    today = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    if f.overdue:
        stmt = stmt.where(
            TaskRow.is_completed.is_(False),
            TaskRow.due_date.is_not(None),
            TaskRow.due_date < today,
        )
    if f.upcoming_days is not None:
        stmt = stmt.where(
            TaskRow.is_completed.is_(False),
            TaskRow.due_date.is_not(None),
            TaskRow.due_date >= today,
            TaskRow.due_date < today + timedelta(days=f.upcoming_days + 1),
        )
    return stmt


def apply_sort(stmt: Select, f: TaskFilter) -> Select:
    if f.sort_by is None:
        # newest first
        return stmt.order_by(TaskRow.created_at.desc(), TaskRow.id.desc())

    column = _SORT_COLUMNS[f.sort_by]
    if f.sort_order == SortOrder.asc:
        return stmt.order_by(column.asc(), TaskRow.id.asc())
    return stmt.order_by(column.desc(), TaskRow.id.desc())


def build_task_query(owner_id: int, f: TaskFilter, now: datetime) -> Tuple[Select, Select]:
    """Return (page statement, count statement) for one owner's filtered tasks."""
    filtered = apply_filters(owner_scope(owner_id), f, now)
    count_stmt = select(func.count()).select_from(filtered.subquery())
    page_stmt = (
        apply_sort(filtered, f)
        .limit(f.per_page)
        .offset(sql_offset(f.page, f.per_page))
    )
    return page_stmt, count_stmt
