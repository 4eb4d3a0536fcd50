"""Initial CRM core schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
    ]


def upgrade() -> None:
    op.create_table(
        "crm_user",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_crm_user_email", "crm_user", ["email"])
    op.create_index("ix_crm_user_deleted_at", "crm_user", ["deleted_at"])

    op.create_table(
        "organization",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("industry", sa.String(100)),
        sa.Column("website", sa.String(255)),
        sa.Column("address", sa.String(500)),
        *_timestamps(),
    )
    op.create_index("ix_organization_deleted_at", "organization", ["deleted_at"])

    op.create_table(
        "contact",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("organization_id", sa.Uuid, sa.ForeignKey("organization.id")),
        sa.Column("created_by", sa.Uuid, sa.ForeignKey("crm_user.id")),
        *_timestamps(),
    )
    op.create_index("ix_contact_email", "contact", ["email"])
    op.create_index("ix_contact_organization_id", "contact", ["organization_id"])
    op.create_index("ix_contact_deleted_at", "contact", ["deleted_at"])

    op.create_table(
        "pipeline",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("created_by", sa.Uuid, sa.ForeignKey("crm_user.id")),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_pipeline_is_default", "pipeline", ["is_default"])
    op.create_index("ix_pipeline_deleted_at", "pipeline", ["deleted_at"])

    op.create_table(
        "stage",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("pipeline_id", sa.Uuid, sa.ForeignKey("pipeline.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("win_probability", sa.Float, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_stage_pipeline_id", "stage", ["pipeline_id"])
    op.create_index("ix_stage_deleted_at", "stage", ["deleted_at"])

    op.create_table(
        "deal",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(300)),
        sa.Column("contact_id", sa.Uuid, sa.ForeignKey("contact.id"), nullable=False),
        sa.Column("value", sa.Float, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("expected_close_date", sa.Date),
        sa.Column("pipeline_id", sa.Uuid, sa.ForeignKey("pipeline.id"), nullable=False),
        sa.Column("stage_id", sa.Uuid, sa.ForeignKey("stage.id"), nullable=False),
        sa.Column("assigned_to", sa.Uuid, sa.ForeignKey("crm_user.id")),
        sa.Column("closed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_deal_contact_id", "deal", ["contact_id"])
    op.create_index("ix_deal_pipeline_id", "deal", ["pipeline_id"])
    op.create_index("ix_deal_stage_id", "deal", ["stage_id"])
    op.create_index("ix_deal_assigned_to", "deal", ["assigned_to"])
    op.create_index("ix_deal_deleted_at", "deal", ["deleted_at"])

    op.create_table(
        "activity",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("deal_id", sa.Uuid, sa.ForeignKey("deal.id"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("subject", sa.String(300), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text),
        sa.Column("created_by", sa.Uuid, sa.ForeignKey("crm_user.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_activity_deal_id", "activity", ["deal_id"])
    op.create_index("ix_activity_deleted_at", "activity", ["deleted_at"])

    op.create_table(
        "note",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("deal_id", sa.Uuid, sa.ForeignKey("deal.id"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_by", sa.Uuid, sa.ForeignKey("crm_user.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_note_deal_id", "note", ["deal_id"])
    op.create_index("ix_note_deleted_at", "note", ["deleted_at"])

    # Append-only; rows are never updated or deleted.
    op.create_table(
        "audit_record",
        sa.Column("seq", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.Uuid),
        sa.Column("entity_kind", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid, nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("field_changes", sa.JSON, nullable=False),
        sa.Column("description", sa.Text),
    )
    op.create_index(
        "ix_audit_record_entity", "audit_record", ["entity_kind", "entity_id", "recorded_at"]
    )


def downgrade() -> None:
    op.drop_table("audit_record")
    op.drop_table("note")
    op.drop_table("activity")
    op.drop_table("deal")
    op.drop_table("stage")
    op.drop_table("pipeline")
    op.drop_table("contact")
    op.drop_table("organization")
    op.drop_table("crm_user")
