"""Credit balance and refill API routes."""

from __future__ import annotations

from fastapi import APIRouter

from _03_ui.core.container import get_services

router = APIRouter(prefix="/api", tags=["credits"])


@router.get("/wallet/{user_id}")
def api_wallet(user_id: str) -> dict:
    """Current balance, under the ``wallet`` key older clients read."""
    return {"wallet": get_services().ledger.get(user_id)}


@router.get("/credits/{user_id}")
def api_refill_status(user_id: str) -> dict:
    """Auto-refill eligibility and countdown."""
    return get_services().ledger.refill_status(user_id).to_dict()


@router.post("/credits/{user_id}")
def api_process_refill(user_id: str) -> dict:
    """Apply a refill if one is due."""
    return get_services().ledger.process_refill(user_id).to_dict()
