"""Initial Breviago schema

Revision ID: 001
Revises: None
Create Date: 2026-10-01 00:00:00.000000+00:00

Creates users, sessions, settings and audit log; organizations and
memberships; the acronym vault (labels, relations, notes, grants,
revisions); folders and documents.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _public_id():
    return sa.Column("uuid", sa.Uuid(), nullable=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _deleted_at():
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def _index_public_columns(table: str, soft_delete: bool = True) -> None:
    op.create_index(f"ix_{table}_uuid", table, ["uuid"], unique=True)
    if soft_delete:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("username", sa.String(150), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("legal_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False, server_default=""),
        *_timestamps(),
        _deleted_at(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    _index_public_columns("users")
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(1024), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_sessions_user_id"),
    )
    op.create_index("ix_sessions_token", "sessions", ["token"], unique=True)

    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "key", name="uq_user_settings_user_key"),
    )
    op.create_index("ix_user_settings_user_id", "user_settings", ["user_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("data", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # ── Organizations ─────────────────────────────────────────────────────
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        _deleted_at(),
    )
    _index_public_columns("organizations")
    op.create_index("ix_organizations_name", "organizations", ["name"])

    op.create_table(
        "organization_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE", onupdate="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "user_id", name="idx_org_user"),
    )
    _index_public_columns("organization_members", soft_delete=False)
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])
    op.create_index("ix_organization_members_organization_id", "organization_members", ["organization_id"])

    # ── Acronyms ──────────────────────────────────────────────────────────
    op.create_table(
        "labels",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("label", sa.String(100), nullable=False),
        *_timestamps(),
    )
    _index_public_columns("labels", soft_delete=False)
    op.create_index("ix_labels_label", "labels", ["label"], unique=True)

    op.create_table(
        "acronyms",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("acronym", sa.String(100), nullable=False),
        sa.Column("meaning", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="private"),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        _deleted_at(),
    )
    _index_public_columns("acronyms")
    op.create_index("ix_acronyms_acronym", "acronyms", ["acronym"])
    op.create_index("ix_acronyms_owner_id", "acronyms", ["owner_id"])

    op.create_table(
        "acronym_labels",
        sa.Column("acronym_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("label_id", sa.Integer(), sa.ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "acronym_relations",
        sa.Column("acronym_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("related_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "acronym_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("acronym_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        *_timestamps(),
        _deleted_at(),
    )
    _index_public_columns("acronym_notes")
    op.create_index("ix_acronym_notes_acronym_id", "acronym_notes", ["acronym_id"])

    op.create_table(
        "acronym_grants",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("acronym_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("grantee_type", sa.String(20), nullable=False),
        sa.Column("grantee_uuid", sa.Uuid(), nullable=False),
        sa.Column("relation", sa.String(20), nullable=False, server_default="viewer"),
        *_timestamps(),
        sa.UniqueConstraint("acronym_id", "grantee_type", "grantee_uuid", name="uq_acronym_grants_grantee"),
    )
    _index_public_columns("acronym_grants", soft_delete=False)
    op.create_index("ix_acronym_grants_acronym_id", "acronym_grants", ["acronym_id"])
    op.create_index("ix_acronym_grants_grantee_uuid", "acronym_grants", ["grantee_uuid"])

    op.create_table(
        "acronym_revisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("acronym_id", sa.Integer(), sa.ForeignKey("acronyms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("new_value", sa.Text(), nullable=False, server_default="{}"),
        *_timestamps(),
    )
    _index_public_columns("acronym_revisions", soft_delete=False)
    op.create_index("ix_acronym_revisions_acronym_id", "acronym_revisions", ["acronym_id"])

    # ── Folders & documents ───────────────────────────────────────────────
    op.create_table(
        "folders",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("owner_type", sa.String(20), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("folders.id", ondelete="CASCADE"), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    _index_public_columns("folders")
    op.create_index("ix_folders_name", "folders", ["name"])
    op.create_index("ix_folders_owner_id", "folders", ["owner_id"])
    op.create_index("ix_folders_parent_id", "folders", ["parent_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        _public_id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("owner_type", sa.String(20), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("folder_id", sa.Integer(), sa.ForeignKey("folders.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    _index_public_columns("documents")
    op.create_index("ix_documents_name", "documents", ["name"])
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index("ix_documents_folder_id", "documents", ["folder_id"])


def downgrade() -> None:
    for table in (
        "documents",
        "folders",
        "acronym_revisions",
        "acronym_grants",
        "acronym_notes",
        "acronym_relations",
        "acronym_labels",
        "acronyms",
        "labels",
        "organization_members",
        "organizations",
        "audit_logs",
        "user_settings",
        "sessions",
        "users",
    ):
        op.drop_table(table)
