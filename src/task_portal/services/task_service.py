import logging

from task_portal.domain.errors import NotFoundError
from task_portal.domain.pagination import Page
from task_portal.domain.task_models import Task, TaskCreate, TaskFilter, TaskSearch, TaskUpdate
from task_portal.domain.user_models import Principal
from task_portal.services.authorization import TaskAction, authorize

logger = logging.getLogger("portal.tasks")


class TaskService:
    def __init__(self, repo, search_index, sync):
        self.repo = repo
        self.search_index = search_index
        self.sync = sync

    async def _load(self, principal: Principal, task_id: int, action: TaskAction) -> Task:
        task = await self.repo.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        authorize(principal, action, task)
        return task

    async def list_tasks(self, principal: Principal, filters: TaskFilter) -> Page[Task]:
        authorize(principal, TaskAction.view_any)
        return await self.repo.list_for_owner(principal.id, filters)

    async def create_task(self, principal: Principal, data: TaskCreate) -> Task:
        authorize(principal, TaskAction.create)
        task = await self.repo.create(principal.id, data)
        logger.info(
            "task.create",
            extra={"category": "tasks", "event": "task.create", "task_id": task.id, "user_id": principal.id},
        )
        await self.sync.task_saved(task)
        return task

    async def get_task(self, principal: Principal, task_id: int) -> Task:
        return await self._load(principal, task_id, TaskAction.view)

    async def update_task(self, principal: Principal, task_id: int, data: TaskUpdate) -> Task:
        await self._load(principal, task_id, TaskAction.update)
        changes = data.changes()
        task, changed = await self.repo.update(task_id, changes)
        if task is None:
            # deleted between the ownership check and the write
            raise NotFoundError("Task", task_id)
        if changed:
            logger.info(
                "task.update",
                extra={
                    "category": "tasks",
                    "event": "task.update",
                    "task_id": task_id,
                    "user_id": principal.id,
                    "fields": sorted(changes),
                },
            )
            await self.sync.task_saved(task)
        return task

    async def delete_task(self, principal: Principal, task_id: int) -> None:
        await self._load(principal, task_id, TaskAction.delete)
        if not await self.repo.delete(task_id):
            raise NotFoundError("Task", task_id)
        logger.info(
            "task.delete",
            extra={"category": "tasks", "event": "task.delete", "task_id": task_id, "user_id": principal.id},
        )
        await self.sync.task_deleted(task_id)

    async def search_tasks(self, principal: Principal, query: TaskSearch) -> Page[Task]:
        authorize(principal, TaskAction.view_any)
        ids, total = await self.search_index.search(principal.id, query)
        # The projection can lag; hydrate from the store and drop ids that no longer exist.
        items = await self.repo.get_many_for_owner(principal.id, ids)
        return Page(items=items, total=total, per_page=query.per_page, current_page=query.page)
