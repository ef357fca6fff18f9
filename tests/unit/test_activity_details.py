"""Unit tests for activity detail models and timeline sentences."""

from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from studioflow.database.models.activity import ActivityAction, ActivityLog
from studioflow.workflow.activity import (
    AssetDeleteDetails,
    AssetUpdateDetails,
    ClientDecisionDetails,
    CommentDetails,
    CompleteDetails,
    CreateDetails,
    DeleteDetails,
    FollowUpDetails,
    PushDetails,
    RenameDetails,
    ReopenDetails,
    RevisionProgressDetails,
    StageStatusDetails,
    UpdateDetails,
    UploadDetails,
    describe,
    parse_details,
)

ASSET_ID = uuid.uuid4()
APPROVAL_ID = uuid.uuid4()


@pytest.mark.parametrize(
    "details,sentence",
    [
        (CreateDetails(entity="rendering_version", label="v1"), "Created rendering version v1"),
        (CreateDetails(entity="project", name="Harbour House"), "Created project Harbour House"),
        (CreateDetails(entity="widget"), "Created widget"),
        (
            UploadDetails(asset_id=ASSET_ID, title="Kitchen", asset_type="RENDER", label="v1"),
            "Uploaded 'Kitchen' to v1",
        ),
        (
            UploadDetails(asset_id=ASSET_ID, title="Mood board", asset_type="IMAGE"),
            "Uploaded 'Mood board'",
        ),
        (CompleteDetails(label="v1"), "Marked v1 as complete"),
        (
            ReopenDetails(label="v1", from_status="REVISION_REQUESTED"),
            "Reopened v1 (was revision requested)",
        ),
        (
            PushDetails(label="v1", approval_id=APPROVAL_ID, asset_ids=[ASSET_ID]),
            "Sent v1 to client with 1 asset",
        ),
        (
            PushDetails(
                label="v2",
                approval_id=APPROVAL_ID,
                asset_ids=[ASSET_ID, uuid.uuid4()],
                mark_only=True,
            ),
            "Marked v2 as sent to client with 2 assets",
        ),
        (
            ClientDecisionDetails(label="v1", approval_id=APPROVAL_ID, decision="APPROVED"),
            "Client approved v1",
        ),
        (
            ClientDecisionDetails(
                label="v1",
                approval_id=APPROVAL_ID,
                decision="REVISION_REQUESTED",
                message="fix lighting",
            ),
            "Client requested revisions on v1: fix lighting",
        ),
        (
            DeleteDetails(entity="rendering_version", label="v3", status="PUSHED_TO_CLIENT",
                          was_pushed=True),
            "Deleted rendering version v3 (it had been sent to the client)",
        ),
        (
            RenameDetails(label="v1", old_name=None, new_name="Evening mood"),
            "Renamed v1 to Evening mood",
        ),
        (RenameDetails(label="v1", old_name="Evening mood"), "Reset the name of v1"),
        (
            UpdateDetails(entity="floorplan_version", label="v2", fields=["notes"]),
            "Updated notes on floorplan version v2",
        ),
        (FollowUpDetails(label="v2", notes="called"), "Followed up with client on v2: called"),
        (
            RevisionProgressDetails(label="v2", completed=1, total=3),
            "Updated revision progress on v2: 1/3 completed",
        ),
        (
            AssetUpdateDetails(asset_id=ASSET_ID, title="Plan", fields=["title", "description"]),
            "Updated title, description of 'Plan'",
        ),
        (AssetDeleteDetails(asset_id=ASSET_ID, title="Plan"), "Removed 'Plan'"),
        (
            CommentDetails(comment_id=ASSET_ID, target_type="CHAT", mention_ids=[ASSET_ID]),
            "Posted a message mentioning 1 person",
        ),
        (
            CommentDetails(comment_id=ASSET_ID, target_type="STAGE", change="edited"),
            "Edited a note",
        ),
        (
            StageStatusDetails(
                stage_type="CLIENT_APPROVAL",
                from_status="NOT_STARTED",
                to_status="IN_PROGRESS",
                automatic=True,
            ),
            "Moved Client Approval from not started to in progress automatically",
        ),
    ],
)
def test_describe_sentences(details, sentence):
    assert details.describe() == sentence


class TestParseDetails:
    def test_round_trip_by_action_tag(self):
        payload = CompleteDetails(label="v4").model_dump(mode="json")

        parsed = parse_details(payload)

        assert isinstance(parsed, CompleteDetails)
        assert parsed.label == "v4"

    def test_unknown_action_rejected(self):
        with pytest.raises(PydanticValidationError):
            parse_details({"action": "TELEPORT", "label": "v1"})

    def test_extra_fields_rejected(self):
        with pytest.raises(PydanticValidationError):
            parse_details({"action": "COMPLETE", "label": "v1", "colour": "red"})


class TestDescribeEntry:
    def test_describes_stored_entry(self):
        entry = ActivityLog(
            id=1,
            action=ActivityAction.COMPLETE,
            entity_type="rendering_version",
            entity_id=uuid.uuid4(),
            details={"action": "COMPLETE", "label": "v1"},
        )
        assert describe(entry) == "Marked v1 as complete"

    def test_unreadable_details_fall_back_to_action(self):
        entry = ActivityLog(
            id=2,
            action=ActivityAction.PUSH_TO_CLIENT,
            entity_type="rendering_version",
            entity_id=uuid.uuid4(),
            details={"action": "PUSH_TO_CLIENT"},
        )
        assert describe(entry) == "Push to client rendering version"
