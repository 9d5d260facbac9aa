from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, select

from task_portal.domain.pagination import Page
from task_portal.domain.task_models import Task, TaskCreate, TaskFilter, utcnow
from task_portal.infra.db.sqlite import as_utc
from task_portal.infra.db.tables import TaskRow
from task_portal.infra.db.task_query import build_task_query


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SQLiteTaskRepo:
    def __init__(self, sessionmaker):
        self.sessionmaker = sessionmaker

    async def create(self, owner_id: int, data: TaskCreate) -> Task:
        now = utcnow()
        row = TaskRow(
            user_id=owner_id,
            title=data.title,
            description=data.description,
            is_completed=data.is_completed,
            priority=data.priority.value,
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
        )
        async with self.sessionmaker() as session:
            session.add(row)
            await session.commit()
            return row.to_domain()

    async def get(self, task_id: int) -> Optional[Task]:
        """Unscoped lookup; callers must run the ownership check on the result."""
        async with self.sessionmaker() as session:
            row = await session.get(TaskRow, task_id)
            return row.to_domain() if row else None

    async def update(self, task_id: int, changes: Dict[str, Any]) -> Tuple[Optional[Task], bool]:
        """Apply changed fields only. Returns (task, changed); updated_at moves only when something changed."""
        async with self.sessionmaker() as session:
            row = await session.get(TaskRow, task_id)
            if row is None:
                return None, False

            changed = False
            for field, value in changes.items():
                value = _column_value(value)
                current = getattr(row, field)
                if isinstance(current, datetime):
                    current = as_utc(current)
                if current != value:
                    setattr(row, field, value)
                    changed = True

            if changed:
                # never move backwards, even if the clock does
                row.updated_at = max(utcnow(), as_utc(row.updated_at), as_utc(row.created_at))
                await session.commit()
            return row.to_domain(), changed

    async def delete(self, task_id: int) -> bool:
        async with self.sessionmaker() as session:
            res = await session.execute(delete(TaskRow).where(TaskRow.id == task_id))
            await session.commit()
            return res.rowcount > 0

    async def list_for_owner(self, owner_id: int, filters: TaskFilter) -> Page[Task]:
        page_stmt, count_stmt = build_task_query(owner_id, filters, utcnow())
        async with self.sessionmaker() as session:
            total = (await session.execute(count_stmt)).scalar_one()
            rows = (await session.execute(page_stmt)).scalars().all()
        return Page(
            items=[r.to_domain() for r in rows],
            total=total,
            per_page=filters.per_page,
            current_page=filters.page,
        )

    async def get_many_for_owner(self, owner_id: int, task_ids: Sequence[int]) -> List[Task]:
        """Load tasks by id, keeping the given order and silently skipping ids that are gone."""
        if not task_ids:
            return []
        async with self.sessionmaker() as session:
            res = await session.execute(
                select(TaskRow).where(TaskRow.user_id == owner_id, TaskRow.id.in_(list(task_ids)))
            )
            by_id = {r.id: r.to_domain() for r in res.scalars().all()}
        return [by_id[i] for i in task_ids if i in by_id]
