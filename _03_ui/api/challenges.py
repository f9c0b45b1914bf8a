"""Challenge-related API routes."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query, status

from _03_ui.core.container import get_services
from _03_ui.models.requests import (  # noqa: TC001
    CreateChallengeRequest,
    GuessRequest,
    GuessWordRequest,
    PurchaseRequest,
)
from _03_ui.services.serializer import serialize_challenge

router = APIRouter(prefix="/api/challenges", tags=["challenges"])


@router.get("")
def api_list_challenges(user_id: str | None = Query(default=None, alias="userId")) -> list[dict]:
    """List every challenge as seen by ``userId``."""
    services = get_services()
    return [
        serialize_challenge(challenge, user_id, services.identity)
        for challenge in services.engine.list_challenges()
    ]


@router.post("", status_code=status.HTTP_201_CREATED)
def api_create_challenge(request: CreateChallengeRequest, background_tasks: BackgroundTasks) -> dict:
    """Create a challenge and start rendering its picture."""
    services = get_services()
    challenge = services.engine.create_challenge(request.sentence, request.created_by, request.prize_amount)
    background_tasks.add_task(services.engine.challenge_image_job(challenge.id))
    return serialize_challenge(challenge, request.created_by, services.identity)


@router.get("/{challenge_id}")
def api_get_challenge(challenge_id: str, user_id: str | None = Query(default=None, alias="userId")) -> dict:
    """Get one challenge; clients poll this for image progress."""
    services = get_services()
    challenge = services.engine.get_challenge(challenge_id)
    return serialize_challenge(challenge, user_id, services.identity)


@router.post("/{challenge_id}/generate")
def api_generate_image(challenge_id: str) -> dict:
    """Generate the challenge picture now, or return the existing one."""
    services = get_services()
    image_url = services.engine.generate_challenge_image(challenge_id)
    return {"imageUrl": image_url}


@router.post("/{challenge_id}/purchase")
def api_purchase_word(challenge_id: str, payload: PurchaseRequest, background_tasks: BackgroundTasks) -> dict:
    """Buy a word hint; the hint picture is rendered after the response."""
    services = get_services()
    result = services.engine.purchase_word(challenge_id, payload.word_index, payload.user_id)
    background_tasks.add_task(services.engine.word_hint_job(challenge_id, payload.word_index))
    return result.to_dict()


@router.post("/{challenge_id}/guess-word")
def api_guess_word(challenge_id: str, payload: GuessWordRequest) -> dict:
    """Guess a single word."""
    services = get_services()
    result = services.engine.guess_word(challenge_id, payload.word_index, payload.user_id, payload.guess)
    return result.to_dict()


@router.post("/{challenge_id}/guess")
def api_guess_sentence(challenge_id: str, payload: GuessRequest) -> dict:
    """Guess the whole sentence."""
    services = get_services()
    result = services.engine.guess_sentence(challenge_id, payload.user_id, payload.guess)
    return result.to_dict()
