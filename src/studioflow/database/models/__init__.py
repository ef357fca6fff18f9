"""SQLAlchemy ORM models for Studioflow.

This module defines the database schema: projects, rooms and stages, the
team roster, rendering and floorplan versions, client approval snapshots,
assets, comments and mentions, and the append-only activity log.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from studioflow.database.models.activity import ActivityAction, ActivityLog
from studioflow.database.models.approval import (
    ApprovalDecision,
    ClientApprovalAsset,
    ClientApprovalVersion,
)
from studioflow.database.models.asset import Asset, AssetType
from studioflow.database.models.base import Base, TimestampMixin
from studioflow.database.models.comment import Comment, CommentTarget, Mention
from studioflow.database.models.floorplan import (
    FloorplanVersion,
    FloorplanVersionAsset,
    FloorplanVersionStatus,
)
from studioflow.database.models.project import Project, Room
from studioflow.database.models.rendering import RenderingVersion, RenderingVersionStatus
from studioflow.database.models.stage import STAGE_SEQUENCE, Stage, StageStatus, StageType
from studioflow.database.models.team import TeamMember, TeamRole

__all__ = [
    "Base",
    "TimestampMixin",
    "Project",
    "Room",
    "Stage",
    "StageStatus",
    "StageType",
    "STAGE_SEQUENCE",
    "TeamMember",
    "TeamRole",
    "RenderingVersion",
    "RenderingVersionStatus",
    "FloorplanVersion",
    "FloorplanVersionAsset",
    "FloorplanVersionStatus",
    "ClientApprovalVersion",
    "ClientApprovalAsset",
    "ApprovalDecision",
    "Asset",
    "AssetType",
    "Comment",
    "CommentTarget",
    "Mention",
    "ActivityLog",
    "ActivityAction",
]
