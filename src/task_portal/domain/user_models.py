from __future__ import annotations

from pydantic import BaseModel


class Principal(BaseModel):
    """The authenticated user a request acts as, as resolved by the identity provider."""

    id: int
    name: str
    email: str
    username: str
