"""Prompt templates and request assembly for Safety Scout.

The analysis prompt is a single instruction block followed by optional
trailing context lines (coordinates, then the user's own words). The chat
persona and the fixed chat messages live here too so all model-facing text is
in one place.
"""

from __future__ import annotations

from google.genai import types

from safety_scout.models import AnalysisRequest, Coordinates


class EmptyRequestError(ValueError):
    """Raised when asked to build a request with no text, image or location."""

    pass


# =============================================================================
# Analysis Prompt
# =============================================================================


ANALYSIS_INSTRUCTIONS = """You are Safety Scout, an expert security and safety analyst.
Analyze the provided context (location description, coordinates, or image) for safety concerns.

Output Requirements:
1. A Safety Score (0-100), where 100 is perfectly safe and 0 is extremely dangerous.
2. A concise Summary of the safety situation.
3. A list of potential Risks (bullet points).
4. A list of Safe Havens or positive safety features (bullet points).

Format the text output in Markdown.
Use the Google Search tool to find recent crime reports, news, or safety reviews for this specific area if a location name or coordinates are provided.
If an image is provided, analyze the visual cues (lighting, crowd, environment condition).
"""

COORDINATE_CONTEXT_LINE = "Coordinate Context: {coordinates}"
USER_CONTEXT_LINE = "User Query/Context: {text}"


# =============================================================================
# Chat Persona
# =============================================================================


EMERGENCY_ADVISOR_INSTRUCTION = (
    "You are Safety Scout, a calm and helpful emergency advisor. "
    "Provide clear, concise, and actionable advice for safety and emergency situations. "
    "Prioritize user safety. "
    "If a situation seems life-threatening, immediately advise calling local emergency "
    "services (like 911). "
    "Do not provide legal or medical advice, but offer first-aid guidelines if asked."
)

CHAT_GREETING = (
    "I'm Safety Scout. I can help you with emergency advice, safety tips, "
    "or first aid guidance. What's happening?"
)

CONNECTION_FALLBACK = "I'm having trouble connecting. Please check your internet or try again."

ERROR_FALLBACK = (
    "Sorry, I encountered an error providing advice. "
    "In an emergency, always call local authorities."
)


# =============================================================================
# Builders
# =============================================================================


def build_analysis_prompt(
    text: str = "",
    location: Coordinates | None = None,
) -> str:
    """Assemble the instruction text for a safety analysis.

    The search and image instructions are always present; the model applies
    them only when the matching context exists.

    Args:
        text: The user's question or description (may be empty).
        location: Device coordinates, if shared.

    Returns:
        The full instruction string.
    """
    prompt = ANALYSIS_INSTRUCTIONS

    if location is not None:
        prompt += "\n" + COORDINATE_CONTEXT_LINE.format(coordinates=location.format_context())

    if text.strip():
        prompt += "\n" + USER_CONTEXT_LINE.format(text=text)

    return prompt


def build_analysis_contents(request: AnalysisRequest) -> list[types.Part]:
    """Build the ordered request parts: image first (if any), then text.

    Args:
        request: The user's analysis request.

    Returns:
        Parts to send as a single user turn.

    Raises:
        EmptyRequestError: If the request carries no text, image or location.
    """
    if request.is_empty:
        raise EmptyRequestError("Provide a question, a photo or a location to analyze")

    parts: list[types.Part] = []

    if request.image is not None:
        parts.append(
            types.Part.from_bytes(
                data=request.image.to_bytes(),
                mime_type=request.image.mime_type,
            )
        )

    parts.append(types.Part.from_text(text=build_analysis_prompt(request.text, request.location)))
    return parts
