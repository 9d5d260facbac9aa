from __future__ import annotations
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from task_portal.infra.db.sqlite import Base
from task_portal.infra.db import tables  # noqa: F401  (registers rows on Base.metadata)

logger = logging.getLogger("portal.system")

# Search projection. rowid is the task id; everything but title/description is
# stored unindexed so results can be narrowed without touching the tasks table.
SEARCH_TABLE_DDL = """
CREATE VIRTUAL TABLE IF NOT EXISTS tasks_search USING fts5(
    title,
    description,
    user_id UNINDEXED,
    is_completed UNINDEXED,
    priority UNINDEXED,
    due_date UNINDEXED,
    created_at UNINDEXED,
    updated_at UNINDEXED,
    tokenize = 'unicode61 remove_diacritics 2'
)
"""


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.exec_driver_sql(SEARCH_TABLE_DDL)
    logger.info("db.schema_ready", extra={"category": "system", "event": "db.schema_ready"})
