"""API route modules for Studioflow.

Each module exposes a ``create_*_router()`` factory that app.create_app()
includes.
"""
