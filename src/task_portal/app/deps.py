from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from task_portal.config import Settings
from task_portal.domain.errors import AuthenticationError
from task_portal.domain.user_models import Principal
from task_portal.infra.db.identity_sqlite import IdentityProvider
from task_portal.services.task_service import TaskService

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_service(request: Request) -> TaskService:
    return request.app.state.task_service


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Principal:
    if credentials is None:
        raise AuthenticationError()

    identity: IdentityProvider = request.app.state.identity
    principal = await identity.resolve(credentials.credentials)
    if principal is None:
        raise AuthenticationError("Invalid or expired token.")

    request.state.user_id = principal.id
    return principal
