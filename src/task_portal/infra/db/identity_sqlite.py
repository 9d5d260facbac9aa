from __future__ import annotations
import hashlib
import logging
import secrets
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import select

from task_portal.domain.task_models import utcnow
from task_portal.domain.user_models import Principal
from task_portal.infra.db.sqlite import as_utc
from task_portal.infra.db.tables import ApiTokenRow, UserRow

logger = logging.getLogger("portal.auth")


class IdentityProvider(Protocol):
    async def resolve(self, token: str) -> Optional[Principal]: ...


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SQLIdentityProvider:
    """
    Bearer-token lookup against the users / api_tokens tables.

    Registration, login and password flows belong to the identity service;
    only `create_user` and `issue_token` exist here, for seeding and tests.
    """

    def __init__(self, sessionmaker):
        self.sessionmaker = sessionmaker

    async def resolve(self, token: str) -> Optional[Principal]:
        if not token:
            return None
        async with self.sessionmaker() as session:
            res = await session.execute(
                select(ApiTokenRow, UserRow)
                .join(UserRow, UserRow.id == ApiTokenRow.user_id)
                .where(ApiTokenRow.token_hash == hash_token(token))
            )
            found = res.first()

        if found is None:
            return None
        token_row, user_row = found
        if token_row.expires_at is not None and as_utc(token_row.expires_at) <= utcnow():
            logger.info(
                "auth.token_expired",
                extra={"category": "auth", "event": "auth.token_expired", "token_id": token_row.id},
            )
            return None
        return user_row.to_domain()

    async def create_user(self, name: str, email: str, username: str) -> Principal:
        row = UserRow(name=name, email=email, username=username, created_at=utcnow())
        async with self.sessionmaker() as session:
            session.add(row)
            await session.commit()
            return row.to_domain()

    async def issue_token(self, user_id: int, name: str = "api", expires_at: Optional[datetime] = None) -> str:
        """Create a token and return its plaintext; only the hash is stored."""
        plain = secrets.token_urlsafe(40)
        row = ApiTokenRow(
            user_id=user_id,
            name=name,
            token_hash=hash_token(plain),
            expires_at=expires_at,
            created_at=utcnow(),
        )
        async with self.sessionmaker() as session:
            session.add(row)
            await session.commit()
        logger.info(
            "auth.token_issued",
            extra={"category": "auth", "event": "auth.token_issued", "user_id": user_id, "token_name": name},
        )
        return plain
