"""Web API for the Wordpix challenge game."""

from _03_ui.app import create_app

__all__ = ["create_app"]
