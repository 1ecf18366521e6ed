"""document routing schema

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    # --- Enums ---
    userrole = sa.Enum("admin", "supervisor", "user", name="userrole")
    userstatus = sa.Enum("active", "inactive", "pending", name="userstatus")
    documentstatus = sa.Enum(
        "pending",
        "in_review",
        "approved",
        "rejected",
        "derived",
        "archived",
        name="documentstatus",
    )
    documentpriority = sa.Enum(
        "low", "normal", "high", "urgent", name="documentpriority"
    )
    historyaction = sa.Enum(
        "created",
        "viewed",
        "downloaded",
        "derived",
        "edited",
        "status_changed",
        "commented",
        name="historyaction",
    )
    notificationtype = sa.Enum(
        "info", "success", "warning", "error", "document", name="notificationtype"
    )
    bind = op.get_bind()
    for enum_type in (
        userrole,
        userstatus,
        documentstatus,
        documentpriority,
        historyaction,
        notificationtype,
    ):
        enum_type.create(bind, checkfirst=True)

    # --- Tenancy ---
    op.create_table(
        "companies",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_companies_slug"),
    )

    op.create_table(
        "areas",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_areas_company_name"),
    )
    op.create_index("ix_areas_company_id", "areas", ["company_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("position", sa.String(length=120), nullable=True),
        sa.Column("role", userrole, nullable=True),
        sa.Column("status", userstatus, nullable=True),
        sa.Column("area_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "email", name="uq_users_company_email"),
    )
    op.create_index("ix_users_company_id", "users", ["company_id"])
    op.create_index("ix_users_area_id", "users", ["area_id"])

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_name", sa.String(length=500), nullable=False),
        sa.Column("file_path", sa.String(length=1024), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("file_type", sa.String(length=20), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=False),
        sa.Column("current_area_id", sa.UUID(), nullable=True),
        sa.Column("current_user_id", sa.UUID(), nullable=True),
        sa.Column("origin_area_id", sa.UUID(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("status", documentstatus, nullable=True),
        sa.Column("priority", documentpriority, nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["current_area_id"], ["areas.id"]),
        sa.ForeignKeyConstraint(["current_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_company_id", "documents", ["company_id"])
    op.create_index("ix_documents_current_area_id", "documents", ["current_area_id"])
    op.create_index("ix_documents_current_user_id", "documents", ["current_user_id"])
    op.create_index("ix_documents_created_by", "documents", ["created_by"])
    op.create_index("ix_documents_status", "documents", ["status"])

    # --- History ledger (snapshot columns carry no foreign keys) ---
    op.create_table(
        "document_history",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("action", historyaction, nullable=False),
        sa.Column("from_area_id", sa.UUID(), nullable=True),
        sa.Column("from_area_name", sa.String(length=50), nullable=True),
        sa.Column("to_area_id", sa.UUID(), nullable=True),
        sa.Column("to_area_name", sa.String(length=50), nullable=True),
        sa.Column("from_user_id", sa.UUID(), nullable=True),
        sa.Column("from_user_name", sa.String(length=100), nullable=True),
        sa.Column("to_user_id", sa.UUID(), nullable=True),
        sa.Column("to_user_name", sa.String(length=100), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_history_document_id", "document_history", ["document_id"]
    )
    op.create_index(
        "ix_document_history_company_id", "document_history", ["company_id"]
    )
    op.create_index("ix_document_history_action", "document_history", ["action"])
    op.create_index(
        "ix_document_history_created_at", "document_history", ["created_at"]
    )

    # --- Notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("company_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", notificationtype, nullable=True),
        sa.Column("document_id", sa.UUID(), nullable=True),
        sa.Column("action_url", sa.String(length=1024), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])


def downgrade() -> None:
    op.drop_index("ix_notifications_is_read", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_document_history_created_at", table_name="document_history")
    op.drop_index("ix_document_history_action", table_name="document_history")
    op.drop_index("ix_document_history_company_id", table_name="document_history")
    op.drop_index("ix_document_history_document_id", table_name="document_history")
    op.drop_table("document_history")

    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_index("ix_documents_created_by", table_name="documents")
    op.drop_index("ix_documents_current_user_id", table_name="documents")
    op.drop_index("ix_documents_current_area_id", table_name="documents")
    op.drop_index("ix_documents_company_id", table_name="documents")
    op.drop_table("documents")

    op.drop_index("ix_users_area_id", table_name="users")
    op.drop_index("ix_users_company_id", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_areas_company_id", table_name="areas")
    op.drop_table("areas")
    op.drop_table("companies")

    bind = op.get_bind()
    for name in (
        "notificationtype",
        "historyaction",
        "documentpriority",
        "documentstatus",
        "userstatus",
        "userrole",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
