"""Safety analysis for Safety Scout.

Takes an AnalysisRequest, sends it to Gemini with search grounding in one
call, and interprets the reply. Any failure is reported as a single
AnalysisError; no partial result is ever returned.
"""

from __future__ import annotations

import logging

from safety_scout.ai.client import AIClient, get_client
from safety_scout.ai.interpreter import interpret_response
from safety_scout.ai.prompts import EmptyRequestError, build_analysis_contents
from safety_scout.config import AISettings
from safety_scout.models import AnalysisRequest, AnalysisResult
from safety_scout.utils.logging import LogContext

logger = logging.getLogger(__name__)

EMPTY_REPLY_TEXT = "No analysis available."


# =============================================================================
# Exceptions
# =============================================================================


class AnalysisError(Exception):
    """Raised when a safety analysis cannot be completed."""

    DEFAULT_MESSAGE = "Failed to analyze safety. Please try again."

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


# =============================================================================
# Analyzer
# =============================================================================


class SafetyAnalyzer:
    """Runs one grounded safety analysis per request.

    Attributes:
        client: The Gemini client used for the call.

    Example:
        ```python
        analyzer = SafetyAnalyzer()
        result = analyzer.analyze(AnalysisRequest(text="Is this street safe?"))
        print(result.safety_score)
        ```
    """

    def __init__(
        self,
        client: AIClient | None = None,
        settings: AISettings | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            client: Gemini client. Created from configuration if None.
            settings: Settings for a newly created client.
        """
        self.client = client or get_client(settings=settings)

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Analyze a request and return the interpreted result.

        Args:
            request: Text, image and/or coordinates to assess.

        Returns:
            The structured analysis.

        Raises:
            EmptyRequestError: If the request is empty. Nothing is sent.
            AnalysisError: If the call or interpretation fails.
        """
        if request.is_empty:
            raise EmptyRequestError("Provide a question, a photo or a location to analyze")

        logger.debug(
            f"Analysis request: text={len(request.text)} chars, "
            f"image={request.image.size_bytes if request.image else 0} bytes, "
            f"location={'yes' if request.location else 'no'}"
        )

        try:
            with LogContext("Safety analysis", level=logging.DEBUG, logger=logger):
                contents = build_analysis_contents(request)
                response = self.client.generate(contents)
                text = response.text or EMPTY_REPLY_TEXT
                result = interpret_response(text, response.grounding_chunks)
        except Exception as e:
            logger.error(f"Safety analysis error: {type(e).__name__}")
            raise AnalysisError() from e

        logger.info(
            f"Analysis complete: score={result.safety_score}, sources={len(result.sources)}"
        )
        return result


def analyze_safety(
    request: AnalysisRequest,
    client: AIClient | None = None,
) -> AnalysisResult:
    """Convenience wrapper around SafetyAnalyzer.analyze."""
    return SafetyAnalyzer(client=client).analyze(request)
