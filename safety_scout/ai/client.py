"""Low-level Gemini API client for Safety Scout.

This module provides the AIClient class, the only place that talks to the
Gemini API. Each call performs exactly one network exchange: there is no
retry, no cache and no timeout override. SDK failures are mapped onto a small
exception hierarchy so callers can decide how to degrade.

Security: never log the API key, prompts, images or model replies. Only
model names, token counts and latencies are logged.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from safety_scout.config import (
    AISettings,
    AppConfig,
    ConfigurationError,
    get_config,
    get_key_manager,
)
from safety_scout.models import GroundingChunk, WebSource

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class AIClientError(Exception):
    """Base exception for AI client errors."""

    pass


class APIKeyMissingError(AIClientError):
    """Raised when API key is not configured or is rejected."""

    pass


class RateLimitError(AIClientError):
    """Raised when the rate limit or quota is exceeded."""

    pass


class ModelNotAvailableError(AIClientError):
    """Raised when the requested model is not available."""

    pass


class ContentBlockedError(AIClientError):
    """Raised when the prompt or reply is blocked by safety filters."""

    pass


class AIRequestError(AIClientError):
    """Generic AI request failure."""

    pass


# =============================================================================
# Response Data Class
# =============================================================================


@dataclass
class AIResponse:
    """Response from a single generation request.

    Attributes:
        text: The generated text (empty string if the model returned none).
        model: The model that generated the response.
        grounding_chunks: Search citations attached to the reply, in order.
        prompt_tokens: Number of tokens in the prompt (if available).
        completion_tokens: Number of tokens in the completion (if available).
        finish_reason: Why generation stopped (if available).
        latency_ms: Wall time of the call in milliseconds.
        raw_response: The original response object from the SDK.
    """

    text: str
    model: str
    grounding_chunks: list[GroundingChunk] = field(default_factory=list)
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    finish_reason: str | None = None
    latency_ms: float | None = None
    raw_response: Any = field(default=None, repr=False)


# =============================================================================
# AI Client
# =============================================================================


class AIClient:
    """Client for Google's Gemini API.

    The credential and settings are held on the instance; create one client
    per process and hand it to the analyzer and chat sessions.

    Attributes:
        settings: AI configuration settings.
        model_name: Name of the Gemini model to use.

    Example:
        ```python
        client = AIClient(api_key="...")
        response = client.generate(["Is this street safe?"])
        print(response.text)
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        settings: AISettings | None = None,
        config: AppConfig | None = None,
    ) -> None:
        """Initialize the AI client.

        Args:
            api_key: Gemini API key. If None, retrieved via the configured backend.
            settings: AI settings. Taken from ``config`` (or defaults) if None.
            config: Application configuration used for key lookup and defaults.

        Raises:
            APIKeyMissingError: If no API key is available.
        """
        self._config = config
        self.settings = settings or (config.ai if config else AISettings())
        self._api_key = api_key or self._retrieve_api_key()

        if not self._api_key:
            raise APIKeyMissingError(
                "No API key available. Configure with 'safety-scout config set-key'."
            )

        self._client = genai.Client(api_key=self._api_key)

        logger.debug(f"AI client initialized with model: {self.settings.model_name}")

    def _retrieve_api_key(self) -> str | None:
        """Attempt to retrieve API key from configured storage."""
        try:
            manager = get_key_manager(self._config or get_config())
            return manager.retrieve_key()
        except ConfigurationError as e:
            logger.debug(f"Could not retrieve API key: {e}")
            return None

    # =========================================================================
    # Public Methods
    # =========================================================================

    @property
    def model_name(self) -> str:
        """Get the name of the configured model."""
        return self.settings.model_name

    def generate(
        self,
        contents: Sequence[Any] | str,
        *,
        use_search: bool | None = None,
        system_instruction: str | None = None,
        model: str | None = None,
    ) -> AIResponse:
        """Send one generation request.

        Args:
            contents: A prompt string, a list of parts, or a list of Content turns.
            use_search: Attach the Google Search tool. Defaults to settings.
            system_instruction: Optional system instruction.
            model: Model override.

        Returns:
            AIResponse with the text and any grounding citations.

        Raises:
            AIClientError: Any failure, mapped to the most specific subclass.
        """
        model_name = model or self.settings.model_name
        config = self._build_config(
            use_search=self.settings.use_search if use_search is None else use_search,
            system_instruction=system_instruction,
        )

        start = time.perf_counter()
        try:
            response = self._client.models.generate_content(
                model=model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"Generation failed: {type(e).__name__}")
            raise self._map_exception(e) from e

        latency_ms = (time.perf_counter() - start) * 1000
        result = self._parse_response(response, model_name, latency_ms)

        logger.info(
            f"Generation finished: {result.completion_tokens or '?'} tokens, "
            f"{len(result.grounding_chunks)} citations in {latency_ms:.0f}ms"
        )
        return result

    def chat(
        self,
        history: Sequence[types.Content],
        message: str,
        *,
        system_instruction: str,
    ) -> AIResponse:
        """Send one chat turn, replaying the prior history.

        Args:
            history: Earlier user/model turns, oldest first.
            message: The new user message.
            system_instruction: Persona applied to the whole conversation.

        Returns:
            AIResponse for the model's reply.
        """
        contents = list(history)
        contents.append(
            types.Content(role="user", parts=[types.Part.from_text(text=message)])
        )
        return self.generate(
            contents,
            use_search=False,
            system_instruction=system_instruction,
        )

    def test_connection(self) -> tuple[bool, str]:
        """Make a minimal call to verify the key and model.

        Returns:
            Tuple of (success, message).
        """
        try:
            response = self.generate("Say 'ok'", use_search=False)
        except AIClientError as e:
            return False, str(e)

        if response.text:
            return True, f"Connected to {self.model_name}"
        return False, "Empty response from API"

    # =========================================================================
    # Private Methods
    # =========================================================================

    def _build_config(
        self,
        use_search: bool,
        system_instruction: str | None,
    ) -> types.GenerateContentConfig:
        """Build the per-request generation config.

        No response schema is requested: the search tool does not combine
        with JSON-constrained output, so replies are free-form text.
        """
        params: dict[str, Any] = {}
        if system_instruction:
            params["system_instruction"] = system_instruction
        if use_search:
            params["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        if self.settings.temperature is not None:
            params["temperature"] = self.settings.temperature
        if self.settings.max_tokens is not None:
            params["max_output_tokens"] = self.settings.max_tokens

        return types.GenerateContentConfig(**params)

    def _parse_response(self, response: Any, model_name: str, latency_ms: float) -> AIResponse:
        """Convert an SDK response into an AIResponse.

        Raises:
            ContentBlockedError: If the prompt or the reply was blocked.
        """
        candidates = response.candidates or []

        if not candidates:
            feedback = getattr(response, "prompt_feedback", None)
            block_reason = getattr(feedback, "block_reason", None) if feedback else None
            if block_reason:
                raise ContentBlockedError(f"Prompt blocked: {block_reason}")

        finish_reason = None
        chunks: list[GroundingChunk] = []
        if candidates:
            candidate = candidates[0]
            reason = getattr(candidate, "finish_reason", None)
            finish_reason = getattr(reason, "name", None) or (str(reason) if reason else None)

            if finish_reason == "SAFETY":
                raise ContentBlockedError("Response blocked due to safety settings")

            chunks = _extract_grounding_chunks(getattr(candidate, "grounding_metadata", None))

        prompt_tokens = None
        completion_tokens = None
        usage = getattr(response, "usage_metadata", None)
        if usage:
            prompt_tokens = getattr(usage, "prompt_token_count", None)
            completion_tokens = getattr(usage, "candidates_token_count", None)

        return AIResponse(
            text=response.text or "",
            model=model_name,
            grounding_chunks=chunks,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            finish_reason=finish_reason,
            latency_ms=latency_ms,
            raw_response=response,
        )

    def _map_exception(self, error: Exception) -> AIClientError:
        """Map SDK exceptions to our error hierarchy."""
        error_str = str(error).lower()

        if isinstance(error, genai_errors.APIError):
            code = error.code

            if code in (401, 403):
                return APIKeyMissingError(f"Authentication failed - check API key: {error}")
            if code == 429:
                return RateLimitError(f"Rate limit or quota exceeded: {error}")
            if code == 404:
                return ModelNotAvailableError(f"Model not available: {self.model_name}")
            if isinstance(error, genai_errors.ServerError):
                return AIRequestError(f"Server error ({code}): {error}")
            return AIRequestError(f"Invalid request ({code}): {error}")

        if "quota" in error_str or "rate limit" in error_str:
            return RateLimitError(f"Rate limit or quota exceeded: {error}")

        if "api key" in error_str or "authentication" in error_str:
            return APIKeyMissingError(f"API key error: {error}")

        if "model" in error_str and ("not found" in error_str or "unavailable" in error_str):
            return ModelNotAvailableError(f"Model not available: {self.model_name}")

        return AIRequestError(f"AI request failed: {error}")


# =============================================================================
# Module-Level Functions
# =============================================================================


def _extract_grounding_chunks(metadata: Any) -> list[GroundingChunk]:
    """Pull citation chunks out of the SDK grounding metadata, keeping order."""
    if metadata is None:
        return []

    chunks: list[GroundingChunk] = []
    for raw in getattr(metadata, "grounding_chunks", None) or []:
        chunks.append(
            GroundingChunk(
                web=_to_web_source(getattr(raw, "web", None)),
                maps=_to_web_source(getattr(raw, "maps", None)),
            )
        )
    return chunks


def _to_web_source(record: Any) -> WebSource | None:
    if record is None:
        return None
    return WebSource(
        uri=getattr(record, "uri", None) or "",
        title=getattr(record, "title", None) or "",
    )


def get_client(
    api_key: str | None = None,
    settings: AISettings | None = None,
    config: AppConfig | None = None,
) -> AIClient:
    """Get a configured AI client instance.

    Raises:
        APIKeyMissingError: If no API key is available.
    """
    return AIClient(api_key=api_key, settings=settings, config=config)


def check_api_key_configured(config: AppConfig | None = None) -> bool:
    """Check if an API key is configured without initializing a client."""
    try:
        return get_key_manager(config or get_config()).is_key_configured()
    except ConfigurationError:
        return False
