"""Studioflow - workflow backend for interior design studio projects.

This package tracks projects, rooms and per-room workflow stages, the
rendering and floorplan version lifecycles that lead to client approval,
and the comments, assets and activity history attached to them.
"""

__version__ = "0.1.0"
