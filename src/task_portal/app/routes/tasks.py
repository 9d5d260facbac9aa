from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from task_portal.app.deps import get_principal, get_service, get_settings
from task_portal.app.presenters import present_page, present_task
from task_portal.config import Settings
from task_portal.domain.errors import ValidationError
from task_portal.domain.task_models import (
    MAX_TASK_ID,
    SortField,
    SortOrder,
    TaskCreate,
    TaskFilter,
    TaskPriority,
    TaskSearch,
    TaskUpdate,
    parse_due_day,
)
from task_portal.domain.user_models import Principal
from task_portal.infra.search.sqlite_fts import MAX_TERMS, search_terms
from task_portal.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
    settings: Settings = Depends(get_settings),
    is_completed: Optional[bool] = None,
    priority: Optional[TaskPriority] = None,
    due_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    overdue: bool = False,
    upcoming_days: Optional[int] = Query(None, ge=1, le=365),
    sort_by: Optional[SortField] = None,
    sort_order: SortOrder = SortOrder.desc,
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
):
    day = None
    if due_date is not None:
        try:
            day = parse_due_day(due_date)
        except ValueError as e:
            raise ValidationError.for_field("due_date", str(e))

    filters = TaskFilter(
        is_completed=is_completed,
        priority=priority,
        due_date=day,
        overdue=overdue,
        upcoming_days=upcoming_days,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        per_page=per_page or settings.default_per_page,
    )
    return present_page(await svc.list_tasks(principal, filters), author=principal)


@router.post("", status_code=201)
async def create_task(
    payload: TaskCreate,
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
):
    task = await svc.create_task(principal, payload)
    return present_task(task, author=principal)


@router.get("/search")
async def search_tasks(
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
    settings: Settings = Depends(get_settings),
    query: str = Query(..., min_length=2),
    is_completed: Optional[bool] = None,
    priority: Optional[TaskPriority] = None,
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
):
    # The limit is configurable, so it is checked here rather than in Query().
    if len(query) > settings.search_max_query_length:
        raise ValidationError.for_field(
            "query", f"Search query may not be greater than {settings.search_max_query_length} characters"
        )
    if len(search_terms(query)) > MAX_TERMS:
        raise ValidationError.for_field("query", f"Search query may not contain more than {MAX_TERMS} words")

    search = TaskSearch(
        query=query,
        is_completed=is_completed,
        priority=priority,
        page=page,
        per_page=per_page or settings.default_per_page,
    )
    return present_page(await svc.search_tasks(principal, search), author=principal)


@router.get("/{task_id}")
async def get_task(
    task_id: int = Path(..., ge=1, le=MAX_TASK_ID),
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
):
    return present_task(await svc.get_task(principal, task_id), author=principal)


@router.api_route("/{task_id}", methods=["PUT", "PATCH"])
async def update_task(
    task_id: int = Path(..., ge=1, le=MAX_TASK_ID),
    payload: TaskUpdate = Body(...),
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
):
    task = await svc.update_task(principal, task_id, payload)
    return present_task(task, author=principal)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int = Path(..., ge=1, le=MAX_TASK_ID),
    principal: Principal = Depends(get_principal),
    svc: TaskService = Depends(get_service),
):
    await svc.delete_task(principal, task_id)
    return {"message": "Task deleted successfully"}
