"""Safety Scout - situational safety advice backed by live search.

Describe where you are, attach a photo or your coordinates, and get a
0-100 safety score with a Markdown assessment and the web sources it was
grounded on. A separate chat mode gives calm emergency guidance.

Quick Start:
    >>> from safety_scout.ai import analyze_safety
    >>> from safety_scout.models import AnalysisRequest
    >>> result = analyze_safety(AnalysisRequest(text="Is this street safe?"))
    >>> print(result.safety_score)

CLI Usage:
    $ safety-scout config set-key      # Configure Gemini API key
    $ safety-scout analyze -t "Is this street safe?" --lat 40.71 --lng -74.0
    $ safety-scout chat
"""

__version__ = "0.1.0"

from safety_scout.models import (
    AnalysisRequest,
    AnalysisResult,
    ChatMessage,
    ChatRole,
    Coordinates,
    GroundingChunk,
    ImagePayload,
    RiskBand,
    SourceCitation,
    WebSource,
)

__all__ = [
    # Version
    "__version__",
    # Models
    "AnalysisRequest",
    "AnalysisResult",
    "ChatMessage",
    "ChatRole",
    "Coordinates",
    "GroundingChunk",
    "ImagePayload",
    "RiskBand",
    "SourceCitation",
    "WebSource",
]
