"""Serialization functions for the Wordpix web API."""

from __future__ import annotations

from datetime import timezone

from _01_engine.collaborators import IdentityService  # noqa: TC001
from _01_engine.state import Challenge, Word, WordState  # noqa: TC001


def serialize_challenge(
    challenge: Challenge,
    viewer_id: str | None,
    identity: IdentityService | None = None,
) -> dict:
    """Serialize a challenge for one viewer.

    Word text is masked unless the viewer bought or guessed that word, or the
    challenge is solved. Other players' purchases and guesses are never
    exposed, and neither is the sentence before it is solved.
    """
    creator = identity.get_display_info(challenge.created_by) if identity is not None else None
    own_images = {
        str(index): url
        for index, url in challenge.word_images.items()
        if viewer_id is not None and challenge.words[index].purchased_by == viewer_id
    }
    return {
        "id": challenge.id,
        "imageUrl": challenge.image_url,
        "imageStatus": challenge.image_status.value,
        "prizeAmount": challenge.prize_amount,
        "wordPrice": challenge.word_price,
        "wordCount": challenge.word_count,
        "wordImages": own_images,
        "words": [word_view(word, challenge, viewer_id) for word in challenge.words],
        "createdBy": challenge.created_by,
        "createdByDisplayName": creator.display_name if creator else None,
        "createdByProfileImage": creator.profile_image_url if creator else None,
        "solvedBy": challenge.solved_by,
        "isActive": challenge.is_active,
        "createdAt": _iso(challenge),
        "sentence": challenge.sentence if challenge.is_solved else None,
    }


def word_view(word: Word, challenge: Challenge, viewer_id: str | None) -> dict:
    """Convert a Word to a JSON-serializable dict for ``viewer_id``."""
    purchased_by_viewer = viewer_id is not None and word.purchased_by == viewer_id
    guessed_by_viewer = viewer_id is not None and word.is_guessed_by(viewer_id)
    revealed = purchased_by_viewer or guessed_by_viewer or challenge.is_solved
    return {
        "position": word.position,
        "length": len(word.text),
        "text": word.text if revealed else mask(word.text),
        "isRevealed": revealed,
        "state": word.state.value,
        "isPurchased": word.is_purchased,
        "isGenerating": word.state is WordState.GENERATING,
        "imageReady": word.state is WordState.READY,
        "generationFailed": word.state is WordState.FAILED,
        "purchasedByYou": purchased_by_viewer,
        "guessedByYou": guessed_by_viewer,
    }


def mask(text: str) -> str:
    """Length-matching placeholder for hidden word text."""
    return "*" * len(text)


def _iso(challenge: Challenge) -> str:
    created = challenge.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.isoformat(timespec="milliseconds")
