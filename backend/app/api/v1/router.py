from fastapi import APIRouter

from app.api.v1.endpoints import (
    audit_logs,
    budget_modifications,
    catalog,
    financial_operations,
    health,
    item_distributions,
    planned_items,
    references,
)

api_router = APIRouter()

# Routes techniques
api_router.include_router(health.router, tags=["health"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])

# Referentiels
api_router.include_router(catalog.router, tags=["catalog"])
api_router.include_router(financial_operations.router, tags=["financial-operations"])
api_router.include_router(references.router, tags=["references"])

# Planification
api_router.include_router(planned_items.router, prefix="/planned-items", tags=["planned-items"])
api_router.include_router(item_distributions.router, prefix="/item-distributions", tags=["item-distributions"])
api_router.include_router(
    budget_modifications.router, prefix="/budget-modifications", tags=["budget-modifications"]
)
