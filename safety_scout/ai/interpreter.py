"""Turn free-form model replies into structured analysis results.

Search-grounded replies cannot be constrained to a JSON schema, so the score
is recovered with a tolerant pattern and everything else is kept as Markdown.
All functions here are pure: the same text and chunks always give the same
result.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from safety_scout.models import AnalysisResult, GroundingChunk, SourceCitation

# Neutral score used when the reply carries no recognizable score
DEFAULT_SAFETY_SCORE = 50

SCORE_PATTERN = re.compile(r"Safety Score:?\s*\**\s*(\d+)", re.IGNORECASE)


def extract_safety_score(text: str) -> int | None:
    """Find the first "Safety Score" figure in a reply.

    Accepts an optional colon and any run of Markdown emphasis before the
    number, e.g. ``Safety Score: 73``, ``safety score **73**`` or
    ``**Safety Score:** 73``. The value is returned as written; it is not
    clamped to 0-100.

    Args:
        text: Raw model reply.

    Returns:
        The score, or None if no score label is found.
    """
    match = SCORE_PATTERN.search(text)
    if match is None:
        return None
    return int(match.group(1))


def collect_sources(
    chunks: Iterable[GroundingChunk | Mapping[str, Any]] | None,
) -> list[SourceCitation]:
    """Build citations from grounding chunks that carry a web record.

    Chunks without a ``web`` sub-record are skipped. Order is preserved.
    """
    sources: list[SourceCitation] = []
    for chunk in chunks or []:
        if not isinstance(chunk, GroundingChunk):
            chunk = GroundingChunk.model_validate(chunk)
        if chunk.web is not None:
            sources.append(SourceCitation(title=chunk.web.title, uri=chunk.web.uri))
    return sources


def interpret_response(
    text: str,
    chunks: Iterable[GroundingChunk | Mapping[str, Any]] | None = None,
) -> AnalysisResult:
    """Package a model reply as an AnalysisResult.

    The summary is the complete reply. Risks and safe havens stay empty; they
    are read from the Markdown summary when rendered.

    Args:
        text: Raw model reply.
        chunks: Grounding chunks returned with the reply.

    Returns:
        The structured result.
    """
    score = extract_safety_score(text)

    return AnalysisResult(
        safety_score=DEFAULT_SAFETY_SCORE if score is None else score,
        summary=text,
        risks=[],
        safe_havens=[],
        sources=collect_sources(chunks),
    )
