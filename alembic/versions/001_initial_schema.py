"""Initial schema for Studioflow.

Creates projects, rooms and stages, the team roster, rendering and
floorplan versions, client approval snapshots, assets, comments with
mentions, and the append-only activity log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS: dict[str, tuple[str, ...]] = {
    "stage_type": ("DESIGN", "THREE_D", "CLIENT_APPROVAL", "DRAWINGS", "FFE"),
    "stage_status": ("NOT_STARTED", "IN_PROGRESS", "COMPLETED", "NOT_APPLICABLE"),
    "team_role": ("OWNER", "ADMIN", "DESIGNER", "RENDERER", "DRAFTER", "FFE", "VIEWER"),
    "rendering_version_status": (
        "IN_PROGRESS", "COMPLETED", "PUSHED_TO_CLIENT", "CLIENT_APPROVED", "REVISION_REQUESTED",
    ),
    "floorplan_version_status": (
        "DRAFT", "READY_FOR_CLIENT", "SENT_TO_CLIENT", "FOLLOW_UP_REQUIRED",
        "CLIENT_APPROVED", "REVISION_REQUESTED",
    ),
    "asset_type": (
        "IMAGE", "PDF", "DOCUMENT", "LINK", "RENDER", "DRAWING",
        "FLOORPLAN_PDF", "FLOORPLAN_CAD", "OTHER",
    ),
    "approval_decision": ("PENDING", "APPROVED", "REVISION_REQUESTED"),
    "comment_target": ("RENDERING_VERSION", "FLOORPLAN_VERSION", "STAGE", "CHAT"),
    "activity_action": (
        "CREATE", "UPLOAD", "COMPLETE", "REOPEN", "PUSH_TO_CLIENT", "CLIENT_DECISION",
        "DELETE", "RENAME", "UPDATE", "FOLLOW_UP", "REVISION_PROGRESS", "ASSET_UPDATE",
        "ASSET_DELETE", "COMMENT", "STAGE_STATUS",
    ),
}


def _enum(name: str) -> ENUM:
    return ENUM(*ENUMS[name], name=name, create_type=False)


def _id() -> sa.Column:
    return sa.Column(
        "id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def _fk(column: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        column, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "projects",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("client_name", sa.Text(), nullable=True),
        sa.Column("client_email", sa.Text(), nullable=True),
        sa.Column(
            "floorplan_version_counter", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        *_timestamps(),
    )

    op.create_table(
        "rooms",
        _id(),
        _fk("project_id", "projects.id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("room_type", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "stages",
        _id(),
        _fk("room_id", "rooms.id"),
        sa.Column("type", _enum("stage_type"), nullable=False),
        sa.Column(
            "status", _enum("stage_status"), nullable=False, server_default="NOT_STARTED"
        ),
        sa.Column("assigned_to", sa.Uuid(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.Uuid(), nullable=True),
        sa.Column(
            "rendering_version_counter", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        *_timestamps(),
        sa.UniqueConstraint("room_id", "type", name="uq_stages_room_type"),
    )

    op.create_table(
        "team_members",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("role", _enum("team_role"), nullable=False, server_default="DESIGNER"),
        *_timestamps(),
    )

    op.create_table(
        "rendering_versions",
        _id(),
        _fk("stage_id", "stages.id"),
        _fk("room_id", "rooms.id"),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("custom_name", sa.Text(), nullable=True),
        sa.Column(
            "status",
            _enum("rendering_version_status"),
            nullable=False,
            server_default="IN_PROGRESS",
        ),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.Uuid(), nullable=True),
        sa.Column("pushed_to_client_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_file_path", sa.Text(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("stage_id", "sequence", name="uq_rendering_versions_stage_sequence"),
    )

    op.create_table(
        "floorplan_versions",
        _id(),
        _fk("project_id", "projects.id"),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column(
            "status", _enum("floorplan_version_status"), nullable=False, server_default="DRAFT"
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("principal_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("principal_approved_by", sa.Uuid(), nullable=True),
        sa.Column("sent_to_client_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_by", sa.Uuid(), nullable=True),
        sa.Column("follow_up_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("follow_up_notes", sa.Text(), nullable=True),
        sa.Column(
            "revision_items", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("source_file_path", sa.Text(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "project_id", "sequence", name="uq_floorplan_versions_project_sequence"
        ),
    )

    op.create_table(
        "assets",
        _id(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("asset_type", _enum("asset_type"), nullable=False, server_default="OTHER"),
        sa.Column("size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.Uuid(), nullable=True),
        _fk("rendering_version_id", "rendering_versions.id", nullable=True),
        _fk("stage_id", "stages.id", nullable=True),
        sa.Column("section", sa.Text(), nullable=True),
        _fk("project_id", "projects.id", nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "floorplan_version_assets",
        _id(),
        _fk("version_id", "floorplan_versions.id"),
        _fk("asset_id", "assets.id"),
        sa.Column("include_in_email", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.UniqueConstraint("version_id", "asset_id", name="uq_floorplan_version_assets"),
    )

    op.create_table(
        "client_approval_versions",
        _id(),
        _fk("rendering_version_id", "rendering_versions.id", nullable=True),
        _fk("floorplan_version_id", "floorplan_versions.id", nullable=True),
        _fk("stage_id", "stages.id", nullable=True),
        _fk("project_id", "projects.id"),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column(
            "decision", _enum("approval_decision"), nullable=False, server_default="PENDING"
        ),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("client_message", sa.Text(), nullable=True),
        sa.Column("decided_by", sa.Uuid(), nullable=True),
        sa.Column("sent_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(rendering_version_id IS NULL) <> (floorplan_version_id IS NULL)",
            name="ck_client_approval_single_origin",
        ),
    )

    op.create_table(
        "client_approval_assets",
        _id(),
        _fk("approval_id", "client_approval_versions.id"),
        _fk("asset_id", "assets.id", nullable=True, ondelete="SET NULL"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("asset_type", _enum("asset_type"), nullable=False),
        sa.Column("include_in_email", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )

    op.create_table(
        "comments",
        _id(),
        sa.Column("target_type", _enum("comment_target"), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("stage_id", sa.Uuid(), nullable=True),
        sa.Column("section", sa.Text(), nullable=True),
        _fk("parent_id", "comments.id", nullable=True),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "mentions",
        _id(),
        _fk("comment_id", "comments.id"),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )

    op.create_table(
        "activity_log",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("action", _enum("activity_action"), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("stage_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("details", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    # Foreign key and filter indexes
    for table, column in (
        ("rooms", "project_id"),
        ("stages", "room_id"),
        ("rendering_versions", "stage_id"),
        ("rendering_versions", "room_id"),
        ("floorplan_versions", "project_id"),
        ("floorplan_version_assets", "version_id"),
        ("assets", "rendering_version_id"),
        ("assets", "stage_id"),
        ("assets", "project_id"),
        ("client_approval_versions", "rendering_version_id"),
        ("client_approval_versions", "floorplan_version_id"),
        ("client_approval_versions", "stage_id"),
        ("client_approval_assets", "approval_id"),
        ("comments", "target_id"),
        ("comments", "stage_id"),
        ("mentions", "comment_id"),
        ("mentions", "user_id"),
        ("activity_log", "entity_id"),
        ("activity_log", "stage_id"),
        ("activity_log", "project_id"),
    ):
        op.create_index(f"ix_{table}_{column}", table, [column])


def downgrade() -> None:
    for table in (
        "activity_log",
        "mentions",
        "comments",
        "client_approval_assets",
        "client_approval_versions",
        "floorplan_version_assets",
        "assets",
        "floorplan_versions",
        "rendering_versions",
        "team_members",
        "stages",
        "rooms",
        "projects",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        ENUM(name=name).drop(bind, checkfirst=True)
