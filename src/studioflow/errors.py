"""Error taxonomy for Studioflow workflow operations.

Every workflow operation either returns a typed result or raises one of the
errors below. The web layer maps each family to a single HTTP status code:

- ValidationError: bad input or an illegal state transition (400)
- PermissionDeniedError: the actor may not touch the entity (403)
- NotFoundError: the referenced entity does not exist (404)
- ConflictError: lock violation, stale revision or duplicate decision (409)
- TransientIOError: the database was unreachable, safe to retry (503)
"""

from __future__ import annotations

from typing import Any


class StudioflowError(Exception):
    """Base class for errors raised by the workflow layer.

    Attributes:
        code: Stable machine-readable error code for API clients.
        context: Extra structured fields for logs and error bodies.
    """

    code = "studioflow_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(StudioflowError):
    """Input failed a business rule or the requested transition is illegal."""

    code = "validation_error"


class InvalidTransitionError(ValidationError):
    """Raised when an action is not allowed from the current status.

    Attributes:
        current: Status the entity is in.
        action: The attempted action.
        entity_id: Identifier of the entity that refused the transition.
    """

    code = "invalid_transition"

    def __init__(self, current: Any, action: Any, entity_id: str | None = None) -> None:
        self.current = current
        self.action = action
        self.entity_id = entity_id
        current_value = getattr(current, "value", current)
        action_value = getattr(action, "value", action)
        msg = f"Cannot {action_value} from status {current_value}"
        if entity_id:
            msg += f" for {entity_id}"
        super().__init__(msg, status=current_value, action=action_value)


class PermissionDeniedError(ValidationError):
    """The actor is not allowed to modify this entity."""

    code = "permission_denied"


class NotFoundError(StudioflowError):
    """The referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=str(entity_id))


class ConflictError(StudioflowError):
    """The request conflicts with the current state of the entity."""

    code = "conflict"


class VersionLockedError(ConflictError):
    """A locked version refused a mutation.

    Attributes:
        version_id: The locked version.
        status: The status that holds the lock.
        operation: The refused operation name.
    """

    code = "version_locked"

    def __init__(self, version_id: Any, status: Any, operation: str) -> None:
        self.version_id = version_id
        self.status = status
        self.operation = operation
        status_value = getattr(status, "value", status)
        super().__init__(
            f"Version {version_id} is locked in status {status_value}; cannot {operation}",
            version_id=str(version_id),
            status=status_value,
            operation=operation,
        )


class StaleVersionError(ConflictError):
    """The caller's revision token no longer matches the stored row."""

    code = "stale_version"


class TransientIOError(StudioflowError):
    """A storage call failed in a way that is safe to retry."""

    code = "transient_io"
