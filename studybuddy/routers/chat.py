"""Chat route: relays a conversation to the configured chat-completion provider."""
from typing import Annotated

from fastapi import APIRouter, Depends

from studybuddy.core.config import Settings, get_settings
from studybuddy.routers.deps import CurrentPrincipal
from studybuddy.schemas.chat import ChatReplySchema, ChatRequestSchema
from studybuddy.services.chat import ChatProxy

router = APIRouter(tags=["chat"])


def get_chat_proxy(settings: Annotated[Settings, Depends(get_settings)]) -> ChatProxy:
    return ChatProxy(settings)


@router.post("/chat", response_model=ChatReplySchema)
async def chat(
    body: ChatRequestSchema,
    principal: CurrentPrincipal,
    proxy: Annotated[ChatProxy, Depends(get_chat_proxy)],
):
    reply = await proxy.complete([m.model_dump() for m in body.messages])
    return ChatReplySchema(message=reply)
