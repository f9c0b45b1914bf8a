"""Core components for the Wordpix web API."""

from _03_ui.core.container import Services, build_services, get_services, set_services

__all__ = [
    "Services",
    "build_services",
    "get_services",
    "set_services",
]
