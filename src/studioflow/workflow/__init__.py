"""Workflow layer for Studioflow.

This module implements the stage router, the rendering and floorplan
version state machines, client approval decisions, the asset lock policy,
comments with @mention resolution, the activity log, and the stage
orchestrator that reacts to workflow events.
"""

from __future__ import annotations

from studioflow.workflow.activity import (
    ActivityDetails,
    TimelineEntry,
    describe,
    parse_details,
    record_activity,
    timeline,
)
from studioflow.workflow.approvals import (
    ApprovalSnapshot,
    load_snapshot,
    record_client_decision,
)
from studioflow.workflow.assets import (
    delete_asset,
    describe_asset,
    ensure_asset_editable,
    upload_stage_asset,
)
from studioflow.workflow.comments import (
    CommentView,
    delete_comment,
    edit_comment,
    list_thread,
    post_comment,
)
from studioflow.workflow.events import (
    ClientDecisionRecorded,
    DeletionReport,
    FloorplanSentToClient,
    MentionCreated,
    OperationResult,
    StageStatusChanged,
    VersionPushedToClient,
    WorkflowEvent,
)
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.locks import ensure_revision, ensure_unlocked, is_locked
from studioflow.workflow.mentions import (
    ResolvedMention,
    RosterMember,
    highlight_mentions,
    resolve_mentions,
)
from studioflow.workflow.orchestration import StageOrchestrator
from studioflow.workflow.projects import add_room, add_team_member, start_project
from studioflow.workflow.renderings import RenderingWorkflow
from studioflow.workflow.stages import (
    StageWorkspace,
    WorkspaceKind,
    build_workspace,
    route_stage,
    transition_stage,
    update_stage,
)
from studioflow.workflow.state_machine import StageAction, VersionAction

__all__ = [
    # Activity
    "ActivityDetails",
    "TimelineEntry",
    "describe",
    "parse_details",
    "record_activity",
    "timeline",
    # Approvals
    "ApprovalSnapshot",
    "load_snapshot",
    "record_client_decision",
    # Assets
    "delete_asset",
    "describe_asset",
    "ensure_asset_editable",
    "upload_stage_asset",
    # Comments
    "CommentView",
    "delete_comment",
    "edit_comment",
    "list_thread",
    "post_comment",
    # Events
    "ClientDecisionRecorded",
    "DeletionReport",
    "FloorplanSentToClient",
    "MentionCreated",
    "OperationResult",
    "StageStatusChanged",
    "VersionPushedToClient",
    "WorkflowEvent",
    # Versions
    "FloorplanWorkflow",
    "RenderingWorkflow",
    "StageAction",
    "VersionAction",
    "ensure_revision",
    "ensure_unlocked",
    "is_locked",
    # Mentions
    "ResolvedMention",
    "RosterMember",
    "highlight_mentions",
    "resolve_mentions",
    # Orchestration
    "StageOrchestrator",
    # Projects and stages
    "StageWorkspace",
    "WorkspaceKind",
    "add_room",
    "add_team_member",
    "build_workspace",
    "route_stage",
    "start_project",
    "transition_stage",
    "update_stage",
]
