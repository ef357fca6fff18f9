"""Asset editing endpoints.

Edits and deletes go through the same lock check as uploads: an asset that
belongs to a version the client is reviewing cannot be changed.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from studioflow.errors import ValidationError
from studioflow.web.dependencies import WorkflowRunner, get_runner, require_actor
from studioflow.web.schemas import AssetResponse
from studioflow.workflow.assets import delete_asset, describe_asset


class AssetUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


def create_assets_router() -> APIRouter:
    """Create the assets router.

    Routes:
        PATCH /assets/{asset_id} - Change title or description
        DELETE /assets/{asset_id} - Delete an asset
    """
    router = APIRouter(prefix="/assets", tags=["assets"])

    @router.patch("/{asset_id}", response_model=AssetResponse)
    async def patch_asset(
        asset_id: UUID,
        body: AssetUpdate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> AssetResponse:
        if not body.model_fields_set:
            raise ValidationError("Nothing to update; send title or description")
        result = await runner.run(
            lambda session: describe_asset(
                session,
                asset_id,
                actor_id,
                title=body.title,
                description=body.description,
            )
        )
        return AssetResponse.model_validate(result.value)

    @router.delete("/{asset_id}", status_code=204)
    async def remove_asset(
        asset_id: UUID,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> Response:
        await runner.run(lambda session: delete_asset(session, asset_id, actor_id))
        return Response(status_code=204)

    return router
