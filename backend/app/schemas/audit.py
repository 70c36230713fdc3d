from __future__ import annotations

from datetime import datetime
from typing import Any

from app.schemas.base import OrmModel


class AuditLogOut(OrmModel):
    id: int
    entity_type: str
    entity_id: str
    action: str
    field_name: str | None = None
    old_value: Any = None
    new_value: Any = None
    actor: str | None = None
    created_at: datetime
