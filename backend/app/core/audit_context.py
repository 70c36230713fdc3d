from __future__ import annotations

from contextvars import ContextVar
from typing import Optional

_audit_actor: ContextVar[Optional[str]] = ContextVar("audit_actor", default=None)


def set_audit_actor(actor: str | None) -> None:
    _audit_actor.set(actor)


def get_audit_actor() -> str | None:
    return _audit_actor.get()
