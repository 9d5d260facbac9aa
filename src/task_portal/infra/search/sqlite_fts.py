"""
Search projection backed by an SQLite FTS5 table.

Each task is mirrored as a flat document (epoch timestamps, string priority)
keyed by its id. Writes arrive through the sync worker, so the projection may
briefly lag the tasks table.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text

from task_portal.domain.pagination import sql_offset
from task_portal.domain.task_models import Task, TaskSearch

_TERM = re.compile(r"\w+", re.UNICODE)
MAX_TERMS = 16


def _epoch(value: Optional[datetime]) -> Optional[int]:
    return int(value.timestamp()) if value is not None else None


def to_document(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "is_completed": task.is_completed,
        "user_id": task.user_id,
        "priority": task.priority.value,
        "due_date": _epoch(task.due_date),
        "created_at": _epoch(task.created_at),
        "updated_at": _epoch(task.updated_at),
    }


def search_terms(query: str) -> List[str]:
    return _TERM.findall(query)


def build_match_expression(query: str) -> Optional[str]:
    """
    Turn free text into an FTS5 MATCH expression: every word becomes a quoted
    prefix term, all terms must match. Returns None when the text has no
    searchable words (e.g. only punctuation). Callers reject queries with more
    than MAX_TERMS words before they get here.
    """
    terms = search_terms(query)
    if not terms:
        return None
    return " ".join(f'"{t}"*' for t in terms)


class SQLiteSearchIndex:
    def __init__(self, sessionmaker):
        self.sessionmaker = sessionmaker

    async def upsert(self, doc: Dict[str, Any]) -> None:
        async with self.sessionmaker() as session:
            await session.execute(text("DELETE FROM tasks_search WHERE rowid = :id"), {"id": doc["id"]})
            await session.execute(
                text(
                    "INSERT INTO tasks_search (rowid, title, description, user_id, is_completed, "
                    "priority, due_date, created_at, updated_at) VALUES (:id, :title, :description, "
                    ":user_id, :is_completed, :priority, :due_date, :created_at, :updated_at)"
                ),
                {**doc, "is_completed": int(doc["is_completed"])},
            )
            await session.commit()

    async def delete(self, task_id: int) -> None:
        async with self.sessionmaker() as session:
            await session.execute(text("DELETE FROM tasks_search WHERE rowid = :id"), {"id": task_id})
            await session.commit()

    async def get_document(self, task_id: int) -> Optional[Dict[str, Any]]:
        async with self.sessionmaker() as session:
            res = await session.execute(
                text(
                    "SELECT rowid AS id, title, description, is_completed, user_id, priority, "
                    "due_date, created_at, updated_at FROM tasks_search WHERE rowid = :id"
                ),
                {"id": task_id},
            )
            row = res.mappings().first()
        if row is None:
            return None
        doc = dict(row)
        doc["is_completed"] = bool(doc["is_completed"])
        return doc

    async def search(self, owner_id: int, q: TaskSearch) -> Tuple[List[int], int]:
        """Return (ranked task ids for the requested page, total hits) within one owner's documents."""
        match = build_match_expression(q.query)
        if match is None:
            return [], 0

        where = ["tasks_search MATCH :match", "user_id = :user_id"]
        params: Dict[str, Any] = {"match": match, "user_id": owner_id}
        if q.is_completed is not None:
            where.append("is_completed = :is_completed")
            params["is_completed"] = int(q.is_completed)
        if q.priority is not None:
            where.append("priority = :priority")
            params["priority"] = q.priority.value
        clause = " AND ".join(where)

        async with self.sessionmaker() as session:
            total = (
                await session.execute(text(f"SELECT count(*) FROM tasks_search WHERE {clause}"), params)
            ).scalar_one()
            res = await session.execute(
                text(
                    f"SELECT rowid FROM tasks_search WHERE {clause} "
                    "ORDER BY rank, rowid DESC LIMIT :limit OFFSET :offset"
                ),
                {**params, "limit": q.per_page, "offset": sql_offset(q.page, q.per_page)},
            )
            ids = [r[0] for r in res.all()]
        return ids, total
