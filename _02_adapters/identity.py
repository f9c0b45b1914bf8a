"""Display-name lookup for challenge creators."""

from __future__ import annotations

from threading import Lock

from _01_engine.collaborators import DisplayInfo, IdentityService


class InMemoryIdentityService(IdentityService):
    """Profiles registered in process; unknown users resolve to None."""

    def __init__(self, profiles: dict[str, DisplayInfo] | None = None):
        self._profiles: dict[str, DisplayInfo] = dict(profiles or {})
        self._lock = Lock()

    def register(self, user_id: str, display_name: str, profile_image_url: str | None = None) -> None:
        with self._lock:
            self._profiles[user_id] = DisplayInfo(display_name=display_name, profile_image_url=profile_image_url)

    def get_display_info(self, user_id: str) -> DisplayInfo | None:
        with self._lock:
            return self._profiles.get(user_id)


__all__ = ["InMemoryIdentityService"]
