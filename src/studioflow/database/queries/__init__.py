"""Database query functions for Studioflow.

This module provides async query functions for all database entities:
- Projects, rooms and stages
- Team roster
- Rendering and floorplan versions
- Client approval snapshots
- Assets
- Comments and mentions
- Activity log (append and read only)

Query functions add and flush; committing is left to session_scope.
"""

from studioflow.database.queries.activity import insert_activity, list_activity
from studioflow.database.queries.approval import (
    create_client_approval,
    delete_client_approvals,
    get_client_approval,
    list_approval_assets,
    list_client_approvals,
)
from studioflow.database.queries.asset import (
    create_asset,
    delete_asset,
    get_asset,
    get_assets,
    list_rendering_assets,
    list_stage_assets,
    update_asset,
)
from studioflow.database.queries.comment import (
    create_comment,
    delete_comment,
    delete_comments_for_target,
    get_comment,
    list_comments,
    list_mentions,
    replace_mentions,
)
from studioflow.database.queries.floorplan import (
    create_floorplan_version,
    delete_floorplan_version,
    get_current_floorplan_version,
    get_floorplan_link,
    get_floorplan_version,
    link_floorplan_asset,
    list_floorplan_assets,
    list_floorplan_versions,
    list_floorplan_versions_for_asset,
)
from studioflow.database.queries.project import (
    create_project,
    create_room,
    get_project,
    get_room,
    list_projects,
    list_rooms,
)
from studioflow.database.queries.rendering import (
    create_rendering_version,
    delete_rendering_version,
    get_rendering_version,
    list_rendering_versions,
)
from studioflow.database.queries.stage import get_room_stage, get_stage, list_room_stages
from studioflow.database.queries.team import (
    create_team_member,
    get_team_member,
    list_team_members,
)

__all__ = [
    # Activity
    "insert_activity",
    "list_activity",
    # Approvals
    "create_client_approval",
    "delete_client_approvals",
    "get_client_approval",
    "list_approval_assets",
    "list_client_approvals",
    # Assets
    "create_asset",
    "delete_asset",
    "get_asset",
    "get_assets",
    "list_rendering_assets",
    "list_stage_assets",
    "update_asset",
    # Comments
    "create_comment",
    "delete_comment",
    "delete_comments_for_target",
    "get_comment",
    "list_comments",
    "list_mentions",
    "replace_mentions",
    # Floorplans
    "create_floorplan_version",
    "delete_floorplan_version",
    "get_current_floorplan_version",
    "get_floorplan_link",
    "get_floorplan_version",
    "link_floorplan_asset",
    "list_floorplan_assets",
    "list_floorplan_versions",
    "list_floorplan_versions_for_asset",
    # Projects and rooms
    "create_project",
    "create_room",
    "get_project",
    "get_room",
    "list_projects",
    "list_rooms",
    # Renderings
    "create_rendering_version",
    "delete_rendering_version",
    "get_rendering_version",
    "list_rendering_versions",
    # Stages
    "get_room_stage",
    "get_stage",
    "list_room_stages",
    # Team
    "create_team_member",
    "get_team_member",
    "list_team_members",
]
