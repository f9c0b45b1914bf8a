"""Service layer for the Wordpix web API."""

from _03_ui.services.serializer import mask, serialize_challenge, word_view

__all__ = [
    "mask",
    "serialize_challenge",
    "word_view",
]
