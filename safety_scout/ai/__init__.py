"""AI module for Safety Scout.

All Gemini communication goes through ``client.AIClient``. The analyzer and
chat session build on it; the interpreter and prompt builders are pure
helpers with no network access.

Exports:
    - AIClient / get_client: Gemini client and factory
    - SafetyAnalyzer: Request -> grounded analysis -> AnalysisResult
    - ChatSession: Emergency advisor conversation
    - interpret_response / extract_safety_score: Reply parsing
    - Exception hierarchy for typed error handling
"""

from safety_scout.ai.analyzer import AnalysisError, SafetyAnalyzer, analyze_safety
from safety_scout.ai.chat import ChatSession, create_emergency_chat
from safety_scout.ai.client import (
    AIClient,
    AIClientError,
    AIRequestError,
    AIResponse,
    APIKeyMissingError,
    ContentBlockedError,
    ModelNotAvailableError,
    RateLimitError,
    check_api_key_configured,
    get_client,
)
from safety_scout.ai.interpreter import (
    DEFAULT_SAFETY_SCORE,
    collect_sources,
    extract_safety_score,
    interpret_response,
)
from safety_scout.ai.prompts import (
    EmptyRequestError,
    build_analysis_contents,
    build_analysis_prompt,
)

__all__ = [
    # Analysis
    "SafetyAnalyzer",
    "AnalysisError",
    "analyze_safety",
    # Chat
    "ChatSession",
    "create_emergency_chat",
    # Client
    "AIClient",
    "AIResponse",
    "get_client",
    "check_api_key_configured",
    # Parsing
    "DEFAULT_SAFETY_SCORE",
    "collect_sources",
    "extract_safety_score",
    "interpret_response",
    # Prompts
    "EmptyRequestError",
    "build_analysis_contents",
    "build_analysis_prompt",
    # Exceptions
    "AIClientError",
    "AIRequestError",
    "APIKeyMissingError",
    "ContentBlockedError",
    "ModelNotAvailableError",
    "RateLimitError",
]
