"""Interfaces for services the engine calls out to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class ImageGenerator(ABC):
    """Turns a text prompt into a hosted image URL."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Generate one image for ``prompt``.

        Args:
            prompt: Free-text description of the picture.

        Returns:
            URL of the generated image.

        Raises:
            ImageGenerationError: Categorised as auth, quota, timeout, safety
                or unknown.
        """
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class DisplayInfo:
    display_name: str
    profile_image_url: str | None = None


class IdentityService(ABC):
    """Presentation-only lookup of user display details."""

    @abstractmethod
    def get_display_info(self, user_id: str) -> DisplayInfo | None:
        ...


__all__ = ["DisplayInfo", "IdentityService", "ImageGenerator"]
