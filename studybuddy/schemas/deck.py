"""Pydantic schemas for decks, cards, progress and study positions."""
from datetime import datetime
from typing import Union

from pydantic import BaseModel, StrictFloat, StrictInt


class CardSchema(BaseModel):
    front: str = ""
    back: str = ""


class DeckInSchema(BaseModel):
    """Body of create (POST) and wholesale update (PUT)."""

    title: str = ""
    subject: str = ""
    description: str | None = None
    cards: list[CardSchema] = []


class CardOutSchema(BaseModel):
    front: str
    back: str

    class Config:
        from_attributes = True


class CardSummarySchema(BaseModel):
    """List view card: the answer side is left out."""

    front: str

    class Config:
        from_attributes = True


class DeckOutSchema(BaseModel):
    id: int
    title: str
    description: str | None = None
    subject: str
    cards: list[CardOutSchema]
    progress: int
    last_studied: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeckSummarySchema(BaseModel):
    id: int
    title: str
    description: str | None = None
    subject: str
    cards: list[CardSummarySchema]
    progress: int
    last_studied: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProgressPatchSchema(BaseModel):
    progress: Union[StrictInt, StrictFloat]


class StudyPositionSchema(BaseModel):
    deck_id: int
    card_count: int
    index: int
    progress: int
