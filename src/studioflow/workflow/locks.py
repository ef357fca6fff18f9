"""Version lock policy.

Once a version has gone to the client its content is frozen: assets cannot
be added, edited or removed, the version cannot be renamed, and no new
notes can be attached until it is reopened. Every mutating workflow entry
point calls ensure_unlocked() before touching the version or its assets.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm.attributes import flag_modified

from studioflow.database.models.base import utcnow
from studioflow.database.models.floorplan import FloorplanVersion, FloorplanVersionStatus
from studioflow.database.models.rendering import RenderingVersion, RenderingVersionStatus
from studioflow.errors import StaleVersionError, VersionLockedError

RENDERING_LOCKED_STATUSES = frozenset(
    {
        RenderingVersionStatus.PUSHED_TO_CLIENT,
        RenderingVersionStatus.CLIENT_APPROVED,
        RenderingVersionStatus.REVISION_REQUESTED,
    }
)

FLOORPLAN_LOCKED_STATUSES = frozenset(
    {
        FloorplanVersionStatus.SENT_TO_CLIENT,
        FloorplanVersionStatus.FOLLOW_UP_REQUIRED,
        FloorplanVersionStatus.CLIENT_APPROVED,
        FloorplanVersionStatus.REVISION_REQUESTED,
    }
)


def is_locked(version: RenderingVersion | FloorplanVersion) -> bool:
    """Return True if the version's content is frozen."""
    if isinstance(version, RenderingVersion):
        return version.status in RENDERING_LOCKED_STATUSES
    return version.status in FLOORPLAN_LOCKED_STATUSES


def ensure_unlocked(version: RenderingVersion | FloorplanVersion, operation: str) -> None:
    """Reject an operation on a locked version.

    Args:
        version: The rendering or floorplan version being modified.
        operation: Short description of the refused operation, used in the
            error message (e.g. "upload assets").

    Raises:
        VersionLockedError: If the version is locked.
    """
    if is_locked(version):
        raise VersionLockedError(version.id, version.status, operation)


def ensure_revision(
    version: RenderingVersion | FloorplanVersion,
    expected_revision: int | None,
) -> None:
    """Reject a mutation made against an outdated copy of the version.

    Args:
        version: The version as currently stored.
        expected_revision: Revision the caller last read, or None to skip.

    Raises:
        StaleVersionError: If the stored revision has moved on.
    """
    if expected_revision is not None and expected_revision != version.revision:
        raise StaleVersionError(
            f"Version {version.id} is at revision {version.revision}, "
            f"not {expected_revision}; reload and retry",
            version_id=str(version.id),
            revision=version.revision,
        )


def touch_version(
    version: RenderingVersion | FloorplanVersion,
    actor_id: UUID | None = None,
) -> None:
    """Mark a version's content as changed so its revision moves on.

    Asset rows and attachment links live in their own tables, so changing
    them does not update the version row by itself.

    Args:
        version: The version whose assets changed.
        actor_id: Who made the change (recorded on rendering versions).
    """
    version.updated_at = utcnow()
    flag_modified(version, "updated_at")
    if actor_id is not None and isinstance(version, RenderingVersion):
        version.updated_by = actor_id
