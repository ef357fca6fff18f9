"""Typer sub-commands for Studioflow."""
