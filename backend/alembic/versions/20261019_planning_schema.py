"""tables de planification budgetaire

Revision ID: 20261019_planning_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261019_planning_schema"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _designations(length: int) -> list[sa.Column]:
    return [
        sa.Column("designation_ar", sa.String(length=length), nullable=True),
        sa.Column("designation_en", sa.String(length=length), nullable=True),
        sa.Column("designation_fr", sa.String(length=length), nullable=False),
    ]


def upgrade() -> None:
    # Catalogue
    op.create_table(
        "domains",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        *_designations(200),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_domains"),
        sa.UniqueConstraint("designation_fr", name="uq_domains_designation_fr"),
    )
    op.create_table(
        "rubrics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        *_designations(200),
        sa.Column("domain_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_rubrics"),
        sa.UniqueConstraint("designation_fr", name="uq_rubrics_designation_fr"),
        sa.ForeignKeyConstraint(
            ["domain_id"], ["domains.id"], name="fk_rubrics_domain_id_domains", ondelete="RESTRICT"
        ),
    )
    op.create_index("ix_rubrics_domain_id", "rubrics", ["domain_id"])
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        *_designations(200),
        sa.Column("rubric_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
        sa.ForeignKeyConstraint(
            ["rubric_id"], ["rubrics.id"], name="fk_items_rubric_id_rubrics", ondelete="RESTRICT"
        ),
    )
    op.create_index("ix_items_rubric_id", "items", ["rubric_id"])
    op.create_table(
        "item_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        *_designations(100),
        sa.PrimaryKeyConstraint("id", name="pk_item_statuses"),
        sa.UniqueConstraint("designation_fr", name="uq_item_statuses_designation_fr"),
    )

    # Operations financieres
    op.create_table(
        "budget_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        *_designations(200),
        sa.Column("acronym_ar", sa.String(length=20), nullable=True),
        sa.Column("acronym_en", sa.String(length=20), nullable=True),
        sa.Column("acronym_fr", sa.String(length=20), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_budget_types"),
        sa.UniqueConstraint("designation_fr", name="uq_budget_types_designation_fr"),
        sa.UniqueConstraint("acronym_fr", name="uq_budget_types_acronym_fr"),
    )
    op.create_table(
        "financial_operations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("operation", sa.String(length=200), nullable=False),
        sa.Column("budget_year", sa.Integer(), nullable=False),
        sa.Column("budget_type_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_financial_operations"),
        sa.UniqueConstraint("operation", name="uq_financial_operations_operation"),
        sa.CheckConstraint(
            "budget_year BETWEEN 1900 AND 2200", name="ck_financial_operations_budget_year_range"
        ),
        sa.ForeignKeyConstraint(
            ["budget_type_id"],
            ["budget_types.id"],
            name="fk_financial_operations_budget_type_id_budget_types",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_financial_operations_budget_year", "financial_operations", ["budget_year"])
    op.create_index("ix_financial_operations_budget_type_id", "financial_operations", ["budget_type_id"])

    # Referentiels externes
    op.create_table(
        "structures",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("designation_fr", sa.String(length=200), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_structures"),
        sa.UniqueConstraint("code", name="uq_structures_code"),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["structures.id"], name="fk_structures_parent_id_structures", ondelete="RESTRICT"
        ),
    )
    op.create_index("ix_structures_parent_id", "structures", ["parent_id"])
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("reference", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
        sa.UniqueConstraint("reference", name="uq_documents_reference"),
    )

    # Modifications budgetaires
    op.create_table(
        "budget_modifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("object", sa.String(length=200), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("approval_date", sa.Date(), nullable=True),
        sa.Column("demande_id", sa.Integer(), nullable=False),
        sa.Column("response_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_budget_modifications"),
        sa.UniqueConstraint("approval_date", "demande_id", name="uq_budget_modifications_approval_demande"),
        sa.ForeignKeyConstraint(
            ["demande_id"],
            ["documents.id"],
            name="fk_budget_modifications_demande_id_documents",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["response_id"],
            ["documents.id"],
            name="fk_budget_modifications_response_id_documents",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_budget_modifications_approval_date", "budget_modifications", ["approval_date"])
    op.create_index("ix_budget_modifications_demande_id", "budget_modifications", ["demande_id"])
    op.create_index("ix_budget_modifications_response_id", "budget_modifications", ["response_id"])

    # Lignes de planification
    op.create_table(
        "planned_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("designation", sa.String(length=200), nullable=False),
        sa.Column("unit_cost", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("planned_quantity", sa.Numeric(15, 3), nullable=False, server_default="0"),
        sa.Column("allocated_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("item_status_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("financial_operation_id", sa.Integer(), nullable=False),
        sa.Column("budget_modification_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_planned_items"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_planned_items_unit_cost_nonneg"),
        sa.CheckConstraint("planned_quantity >= 0", name="ck_planned_items_planned_quantity_nonneg"),
        sa.CheckConstraint("allocated_amount >= 0", name="ck_planned_items_allocated_amount_nonneg"),
        sa.ForeignKeyConstraint(
            ["item_status_id"],
            ["item_statuses.id"],
            name="fk_planned_items_item_status_id_item_statuses",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_planned_items_item_id_items", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["financial_operation_id"],
            ["financial_operations.id"],
            name="fk_planned_items_financial_operation_id_financial_operations",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["budget_modification_id"],
            ["budget_modifications.id"],
            name="fk_planned_items_budget_modification_id_budget_modifications",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_planned_items_designation", "planned_items", ["designation"])
    op.create_index("ix_planned_items_item_status_id", "planned_items", ["item_status_id"])
    op.create_index("ix_planned_items_item_id", "planned_items", ["item_id"])
    op.create_index("ix_planned_items_financial_operation_id", "planned_items", ["financial_operation_id"])
    op.create_index("ix_planned_items_budget_modification_id", "planned_items", ["budget_modification_id"])

    op.create_table(
        "item_distributions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("quantity", sa.Numeric(15, 3), nullable=False, server_default="0"),
        sa.Column("planned_item_id", sa.Integer(), nullable=False),
        sa.Column("structure_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_item_distributions"),
        sa.CheckConstraint("quantity >= 0", name="ck_item_distributions_quantity_nonneg"),
        sa.ForeignKeyConstraint(
            ["planned_item_id"],
            ["planned_items.id"],
            name="fk_item_distributions_planned_item_id_planned_items",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["structure_id"],
            ["structures.id"],
            name="fk_item_distributions_structure_id_structures",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_item_distributions_planned_item_id", "item_distributions", ["planned_item_id"])
    op.create_index("ix_item_distributions_structure_id", "item_distributions", ["structure_id"])

    # Journal d'audit
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=50), nullable=False),
        sa.Column("action", sa.String(length=30), nullable=False),
        sa.Column("field_name", sa.String(length=50), nullable=True),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("actor", sa.String(length=120), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity_type", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_item_distributions_structure_id", table_name="item_distributions")
    op.drop_index("ix_item_distributions_planned_item_id", table_name="item_distributions")
    op.drop_table("item_distributions")

    op.drop_index("ix_planned_items_budget_modification_id", table_name="planned_items")
    op.drop_index("ix_planned_items_financial_operation_id", table_name="planned_items")
    op.drop_index("ix_planned_items_item_id", table_name="planned_items")
    op.drop_index("ix_planned_items_item_status_id", table_name="planned_items")
    op.drop_index("ix_planned_items_designation", table_name="planned_items")
    op.drop_table("planned_items")

    op.drop_index("ix_budget_modifications_response_id", table_name="budget_modifications")
    op.drop_index("ix_budget_modifications_demande_id", table_name="budget_modifications")
    op.drop_index("ix_budget_modifications_approval_date", table_name="budget_modifications")
    op.drop_table("budget_modifications")

    op.drop_table("documents")
    op.drop_index("ix_structures_parent_id", table_name="structures")
    op.drop_table("structures")

    op.drop_index("ix_financial_operations_budget_type_id", table_name="financial_operations")
    op.drop_index("ix_financial_operations_budget_year", table_name="financial_operations")
    op.drop_table("financial_operations")
    op.drop_table("budget_types")

    op.drop_table("item_statuses")
    op.drop_index("ix_items_rubric_id", table_name="items")
    op.drop_table("items")
    op.drop_index("ix_rubrics_domain_id", table_name="rubrics")
    op.drop_table("rubrics")
    op.drop_table("domains")
