"""Flashcard deck routes. All owner-scoped: another account's deck is a 404."""
from typing import Annotated

from fastapi import APIRouter, Depends

from studybuddy.db.session import DatabaseManager, get_database_manager
from studybuddy.routers.deps import CurrentPrincipal, get_deck_store
from studybuddy.schemas.auth import MessageSchema
from studybuddy.schemas.deck import (
    DeckInSchema,
    DeckOutSchema,
    DeckSummarySchema,
    ProgressPatchSchema,
    StudyPositionSchema,
)
from studybuddy.services.decks import DeckStore
from studybuddy.services.study import open_study_session

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


@router.post("", response_model=DeckOutSchema, status_code=201)
async def create_deck(
    body: DeckInSchema,
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    return await store.create(principal.id, body.model_dump())


@router.get("", response_model=list[DeckSummarySchema])
async def list_decks(
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    """Decks of the current user, newest first; card answers are left out."""
    return await store.list_by_owner(principal.id)


@router.get("/{deck_id}", response_model=DeckOutSchema)
async def get_deck(
    deck_id: int,
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    return await store.get(deck_id, principal.id)


@router.put("/{deck_id}", response_model=DeckOutSchema)
async def update_deck(
    deck_id: int,
    body: DeckInSchema,
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    return await store.update(deck_id, principal.id, body.model_dump())


@router.patch("/{deck_id}", response_model=DeckOutSchema)
async def update_progress(
    deck_id: int,
    body: ProgressPatchSchema,
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    """Set study progress (0-100) and stamp last_studied."""
    return await store.update_progress(deck_id, principal.id, body.progress)


@router.delete("/{deck_id}", response_model=MessageSchema)
async def delete_deck(
    deck_id: int,
    principal: CurrentPrincipal,
    store: Annotated[DeckStore, Depends(get_deck_store)],
):
    await store.delete(deck_id, principal.id)
    return MessageSchema(message="Deck deleted successfully")


@router.get("/{deck_id}/study", response_model=StudyPositionSchema)
async def study_position(
    deck_id: int,
    principal: CurrentPrincipal,
    db: Annotated[DatabaseManager, Depends(get_database_manager)],
):
    """Where a resumed study session starts for this deck."""
    session = await open_study_session(db, principal, deck_id)
    return StudyPositionSchema(
        deck_id=deck_id,
        card_count=session.card_count,
        index=session.index,
        progress=session.progress,
    )
