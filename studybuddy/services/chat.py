"""Chat passthrough to an OpenAI-compatible chat-completion API."""
import logging
from typing import Any

import httpx

from studybuddy.core.config import Settings
from studybuddy.core.errors import Unavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a friendly study buddy. Explain topics simply, use examples, "
    "break information into small steps and keep the student motivated."
)


class ChatProxy:
    """Adds the system prompt, forwards the conversation, relays the reply text."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = settings.chat_api_url
        self._api_key = settings.chat_api_key
        self._model = settings.chat_model
        self._timeout = settings.chat_timeout_seconds
        self._transport = transport

    def _payload(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "system", "content": SYSTEM_PROMPT}, *messages],
            "temperature": 0.7,
            "max_tokens": 4096,
        }

    async def complete(self, messages: list[dict[str, str]]) -> str:
        if not self._api_key:
            logger.error("Chat requested but no chat API key is configured")
            raise Unavailable("chat provider not configured")

        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=self._payload(messages), headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Chat provider returned %s", e.response.status_code)
            raise Unavailable("chat provider error") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Chat provider unreachable: %s", e)
            raise Unavailable("chat provider unreachable") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise Unavailable("chat provider sent no reply") from e
        if not content:
            raise Unavailable("chat provider sent no reply")
        return content
