"""Pydantic schemas for the chat passthrough."""
from typing import Literal

from pydantic import BaseModel, Field


class ChatMessageSchema(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequestSchema(BaseModel):
    messages: list[ChatMessageSchema] = Field(min_length=1)


class ChatReplySchema(BaseModel):
    message: str
