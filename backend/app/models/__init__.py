from app.models.audit_log import AuditLog
from app.models.budget_modification import BudgetModification
from app.models.catalog import Domain, Item, ItemStatus, Rubric
from app.models.document import Document
from app.models.financial_operation import BudgetType, FinancialOperation
from app.models.item_distribution import ItemDistribution
from app.models.planned_item import PlannedItem
from app.models.structure import Structure

__all__ = [
    "AuditLog",
    "BudgetModification",
    "BudgetType",
    "Document",
    "Domain",
    "FinancialOperation",
    "Item",
    "ItemDistribution",
    "ItemStatus",
    "PlannedItem",
    "Rubric",
    "Structure",
]
