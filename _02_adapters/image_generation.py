"""fal.ai image generation for challenge pictures and word hints."""

from __future__ import annotations

import logging
import os
from typing import Any

import fal_client
import httpx

from _01_engine.collaborators import ImageGenerator
from _01_engine.exceptions import ImageGenerationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "fal-ai/flux/schnell"
DEFAULT_IMAGE_SIZE = "landscape_4_3"

_SAFETY_MARKERS = ("nsfw", "safety", "content policy", "moderation")
_AUTH_MARKERS = ("unauthorized", "credential", "api key", "forbidden", "fal_key")
_QUOTA_MARKERS = ("quota", "rate limit", "too many requests", "insufficient balance", "exhausted", "billing")
_TIMEOUT_MARKERS = ("timeout", "timed out")


def categorize_error(exc: BaseException) -> str:
    """Map a provider exception onto auth, quota, timeout, safety or unknown.

    Walks the ``__cause__``/``__context__`` chain so that wrapped httpx errors
    are still classified by their status code.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ImageGenerationError):
            return current.kind
        if isinstance(current, (httpx.TimeoutException, TimeoutError)):
            return "timeout"
        if isinstance(current, httpx.HTTPStatusError):
            status = current.response.status_code
            if status in (401, 403):
                return "auth"
            if status in (402, 429):
                return "quota"
            if status in (408, 504):
                return "timeout"
        current = current.__cause__ or current.__context__

    text = str(exc).lower()
    for kind, markers in (
        ("safety", _SAFETY_MARKERS),
        ("auth", _AUTH_MARKERS),
        ("quota", _QUOTA_MARKERS),
        ("timeout", _TIMEOUT_MARKERS),
    ):
        if any(marker in text for marker in markers):
            return kind
    return "unknown"


class FalImageGenerator(ImageGenerator):
    """Image generator backed by a fal.ai text-to-image model."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        *,
        image_size: str = DEFAULT_IMAGE_SIZE,
        num_inference_steps: int = 4,
        api_key: str | None = None,
    ):
        self.model = model
        self.image_size = image_size
        self.num_inference_steps = num_inference_steps
        self._api_key = api_key

    def _client(self) -> fal_client.SyncClient:
        api_key = self._api_key or os.environ.get("FAL_KEY")
        if not api_key:
            raise ImageGenerationError("auth", "FAL_KEY environment variable not set")
        return fal_client.SyncClient(key=api_key)

    def generate(self, prompt: str) -> str:
        client = self._client()
        arguments: dict[str, Any] = {
            "prompt": prompt,
            "image_size": self.image_size,
            "num_inference_steps": self.num_inference_steps,
            "num_images": 1,
            "enable_safety_checker": True,
        }
        try:
            result = client.subscribe(self.model, arguments=arguments)
        except Exception as exc:
            kind = categorize_error(exc)
            logger.warning("fal.ai request failed (%s): %s", kind, exc)
            raise ImageGenerationError(kind, f"Failed to generate image: {exc}") from exc

        return _extract_url(result)


def _extract_url(result: dict[str, Any]) -> str:
    if any(result.get("has_nsfw_concepts") or ()):
        raise ImageGenerationError("safety", "Generated image was flagged by the safety checker")
    images = result.get("images") or []
    url = images[0].get("url") if images else None
    if not url:
        raise ImageGenerationError("unknown", "Failed to generate image")
    return url


__all__ = ["DEFAULT_IMAGE_SIZE", "DEFAULT_MODEL", "FalImageGenerator", "categorize_error"]
