from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from task_portal.domain.errors import AuthorizationError
from task_portal.domain.task_models import Task
from task_portal.domain.user_models import Principal

logger = logging.getLogger("portal.tasks")


class TaskAction(str, Enum):
    view_any = "view_any"
    create = "create"
    view = "view"
    update = "update"
    delete = "delete"


_COLLECTION_ACTIONS = (TaskAction.view_any, TaskAction.create)


def can(principal: Principal, action: TaskAction, task: Optional[Task] = None) -> bool:
    # Listing and creating are always owner-scoped by construction.
    if action in _COLLECTION_ACTIONS:
        return True
    return task is not None and task.user_id == principal.id


def authorize(principal: Principal, action: TaskAction, task: Optional[Task] = None) -> None:
    if can(principal, action, task):
        return
    logger.warning(
        "task.forbidden",
        extra={
            "category": "tasks",
            "event": "task.forbidden",
            "action": action.value,
            "user_id": principal.id,
            "task_id": task.id if task else None,
        },
    )
    raise AuthorizationError()
