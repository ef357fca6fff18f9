"""HTTP API for Studioflow.

The FastAPI application exposes projects, stages, rendering and floorplan
versions, client approvals, assets, comments and the activity timeline.
"""

from studioflow.web.app import create_app

__all__ = ["create_app"]
