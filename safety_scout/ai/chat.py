"""Emergency advisor chat for Safety Scout.

A ChatSession owns the conversation locally: the visible transcript and the
turn history replayed to Gemini on every call. Transport failures never reach
the caller; they become a fixed advisory message in the transcript, so the
emergency chat is never left silently broken.

Sessions are not safe for concurrent ``send`` calls.
"""

from __future__ import annotations

import logging

from google.genai import types

from safety_scout.ai.client import AIClient, get_client
from safety_scout.ai.prompts import (
    CHAT_GREETING,
    CONNECTION_FALLBACK,
    EMERGENCY_ADVISOR_INSTRUCTION,
    ERROR_FALLBACK,
)
from safety_scout.config import AISettings
from safety_scout.models import ChatMessage, ChatRole

logger = logging.getLogger(__name__)


class ChatSession:
    """One emergency-advisor conversation.

    The greeting and any fallback messages are shown in the transcript but
    never replayed to the model; only completed user/model exchanges are.

    Attributes:
        client: Gemini client used for each turn.
        system_instruction: Fixed persona for the whole session.
    """

    def __init__(
        self,
        client: AIClient,
        system_instruction: str = EMERGENCY_ADVISOR_INSTRUCTION,
        greeting: str | None = CHAT_GREETING,
    ) -> None:
        self.client = client
        self.system_instruction = system_instruction
        self._transcript: list[ChatMessage] = []
        self._history: list[types.Content] = []

        if greeting:
            self._transcript.append(ChatMessage.create(ChatRole.MODEL, greeting))

    @classmethod
    def create(
        cls,
        client: AIClient | None = None,
        settings: AISettings | None = None,
    ) -> "ChatSession":
        """Start a new session with the emergency advisor persona.

        Args:
            client: Gemini client. Created from configuration if None.
            settings: Settings for a newly created client.
        """
        session = cls(client or get_client(settings=settings))
        logger.debug(f"Chat session created with model {session.client.model_name}")
        return session

    @property
    def transcript(self) -> list[ChatMessage]:
        """Copy of the visible messages, oldest first."""
        return list(self._transcript)

    @property
    def history_length(self) -> int:
        """Number of turns replayed to the model on the next call."""
        return len(self._history)

    def send(self, text: str) -> str | None:
        """Send a user message and return the advisor's reply text.

        The user message and the reply are both appended to the transcript.
        An empty reply becomes CONNECTION_FALLBACK; any error becomes
        ERROR_FALLBACK.

        Args:
            text: The user's message.

        Returns:
            The reply text, or None if the message was blank (nothing sent).
        """
        if not text.strip():
            return None

        self._transcript.append(ChatMessage.create(ChatRole.USER, text))

        try:
            response = self.client.chat(
                list(self._history),
                text,
                system_instruction=self.system_instruction,
            )
        except Exception as e:
            logger.error(f"Chat turn failed: {type(e).__name__}")
            return self._append_reply(ERROR_FALLBACK)

        if not response.text:
            logger.warning("Chat reply was empty")
            return self._append_reply(CONNECTION_FALLBACK)

        self._history.append(
            types.Content(role=ChatRole.USER.value, parts=[types.Part.from_text(text=text)])
        )
        self._history.append(
            types.Content(
                role=ChatRole.MODEL.value, parts=[types.Part.from_text(text=response.text)]
            )
        )
        return self._append_reply(response.text)

    def _append_reply(self, text: str) -> str:
        self._transcript.append(ChatMessage.create(ChatRole.MODEL, text))
        return text


def create_emergency_chat(client: AIClient | None = None) -> ChatSession:
    """Create a chat session bound to the emergency advisor persona."""
    return ChatSession.create(client=client)
