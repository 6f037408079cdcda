"""
Calculator session API endpoints.

A session keeps the deal's values between requests so each request only
has to carry the field that changed.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from titlesplit.api.calculations import FieldEdit
from titlesplit.api.extraction import ExtractionRequest
from titlesplit.calculations.calculator import EDIT_GROUPS, DealCalculator
from titlesplit.config import Settings, get_settings
from titlesplit.services.extraction import get_extractor
from titlesplit.services.sessions import SessionStore, get_session_store

router = APIRouter()


def _get_calculator(session_id: str, store: SessionStore) -> DealCalculator:
    calculator = store.get(session_id)
    if calculator is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return calculator


@router.post("/", status_code=201)
async def create_session(
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """Start a session with the default deal."""
    session_id, calculator = store.create(settings)
    return {"id": session_id, "snapshot": asdict(calculator.snapshot())}


@router.get("/{session_id}")
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Current values of a session."""
    calculator = _get_calculator(session_id, store)
    return {"id": session_id, "snapshot": asdict(calculator.snapshot())}


@router.patch("/{session_id}/{group}")
async def edit_session(
    session_id: str,
    group: str,
    edit: FieldEdit,
    store: SessionStore = Depends(get_session_store),
):
    """Apply a field edit to the seller, buyer or financing values."""
    calculator = _get_calculator(session_id, store)
    if group not in EDIT_GROUPS:
        raise HTTPException(status_code=400, detail=f"Unknown value group: {group}")

    try:
        snapshot = calculator.edit(group, edit.field, edit.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"id": session_id, "snapshot": asdict(snapshot)}


@router.post("/{session_id}/extract")
async def extract_into_session(
    session_id: str,
    request: ExtractionRequest,
    store: SessionStore = Depends(get_session_store),
    extractor=Depends(get_extractor),
):
    """Pre-fill the seller values from a listing URL."""
    calculator = _get_calculator(session_id, store)
    outcome = await calculator.extract(request.url, extractor)
    return {
        "id": session_id,
        "outcome": asdict(outcome),
        "snapshot": asdict(calculator.snapshot()),
    }


@router.delete("/{session_id}")
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """End a session."""
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"deleted": True}
