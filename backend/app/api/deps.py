from __future__ import annotations

from fastapi import Header, Query

from app.core.audit_context import set_audit_actor
from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.db.session import get_db  # noqa: F401  (re-exporte pour les routeurs)


async def get_actor(x_actor: str | None = Header(default=None, alias="X-Actor")) -> str | None:
    """Identifie l'auteur des modifications pour le journal d'audit (renseigne par la passerelle)."""
    actor = x_actor.strip() if x_actor else None
    set_audit_actor(actor or None)
    return actor or None


def get_clock() -> Clock:
    return system_clock


class Paging:
    def __init__(
        self,
        limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
        offset: int = Query(default=0, ge=0),
        order: str | None = Query(default=None, description="champ ou champ.desc"),
    ):
        self.limit = limit
        self.offset = offset
        self.order = order
