"""Client decision rules shared by rendering and floorplan approvals."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from studioflow.database.models.approval import ApprovalDecision, ClientApprovalVersion
from studioflow.errors import ConflictError, ValidationError

ACCEPTED_DECISIONS = frozenset({ApprovalDecision.APPROVED, ApprovalDecision.REVISION_REQUESTED})


class RevisionItem(BaseModel):
    """One change requested by the client.

    Attributes:
        text: What to change.
        completed: Ticked off once the drafter has made the change.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    text: str
    completed: bool = False


RevisionItemInput = Union[str, RevisionItem, Mapping[str, Any]]


def normalize_revision_items(items: Sequence[RevisionItemInput] | None) -> list[RevisionItem]:
    """Parse revision items and drop the blank ones.

    Plain strings become open items.

    Raises:
        ValidationError: If an item is neither a string nor a text/completed mapping.
    """
    cleaned = []
    for raw in items or []:
        if isinstance(raw, RevisionItem):
            item = raw
        elif isinstance(raw, str):
            item = RevisionItem(text=raw)
        else:
            try:
                item = RevisionItem.model_validate(raw)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid revision item: {raw!r}") from exc
        if item.text:
            cleaned.append(item)
    return cleaned


def revision_progress(items: Sequence[RevisionItem]) -> tuple[int, int]:
    """Count completed items and the total."""
    return sum(1 for item in items if item.completed), len(items)


def validate_decision(
    decision: ApprovalDecision | str,
    message: str | None,
    revision_items: Sequence[RevisionItemInput] | None = None,
    allow_items_instead_of_message: bool = False,
) -> tuple[ApprovalDecision, str | None, list[RevisionItem]]:
    """Check a client decision before it is applied.

    A revision request must say what to change: a non-blank message, or for
    floorplans a non-empty list of revision items.

    Args:
        decision: APPROVED or REVISION_REQUESTED.
        message: The client's comments.
        revision_items: Itemised changes (floorplans only).
        allow_items_instead_of_message: Accept revision items in place of a message.

    Returns:
        Tuple of the parsed decision, the stripped message (None when blank)
        and the cleaned revision items.

    Raises:
        ValidationError: If the decision is unknown or the revision request
            is empty.
    """
    try:
        parsed = ApprovalDecision(decision)
    except ValueError as exc:
        raise ValidationError(f"Unknown decision: {decision}", decision=str(decision)) from exc
    if parsed not in ACCEPTED_DECISIONS:
        raise ValidationError(
            "Decision must be APPROVED or REVISION_REQUESTED", decision=parsed.value
        )

    cleaned = message.strip() if message else ""
    items = normalize_revision_items(revision_items)
    if parsed is ApprovalDecision.REVISION_REQUESTED and not cleaned:
        if not (allow_items_instead_of_message and items):
            raise ValidationError("A revision request needs a message describing the changes")
    return parsed, cleaned or None, items


def stamp_decision(
    approval: ClientApprovalVersion,
    decision: ApprovalDecision,
    message: str | None,
    actor_id: UUID | None,
) -> None:
    """Write the decision onto a pending snapshot.

    Raises:
        ConflictError: If the snapshot already holds a decision.
    """
    if approval.decision is not ApprovalDecision.PENDING:
        raise ConflictError(
            f"Approval {approval.id} was already decided ({approval.decision.value})",
            approval_id=str(approval.id),
            decision=approval.decision.value,
        )
    approval.decision = decision
    approval.client_message = message
    approval.decided_at = datetime.now(timezone.utc)
    approval.decided_by = actor_id
