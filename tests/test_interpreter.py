"""Tests for reply interpretation: score extraction and citations."""

from __future__ import annotations

import pytest

from safety_scout.ai.interpreter import (
    DEFAULT_SAFETY_SCORE,
    collect_sources,
    extract_safety_score,
    interpret_response,
)
from safety_scout.models import GroundingChunk, SourceCitation

# =============================================================================
# Score Extraction Tests
# =============================================================================


class TestExtractSafetyScore:
    """Tests for extract_safety_score()."""

    @pytest.mark.parametrize(
        "text",
        [
            "Safety Score: 73",
            "Safety Score: **73**",
            "Safety Score 73",
            "safety score: *73*",
            "## SAFETY SCORE: 73\nRest of the report",
        ],
    )
    def test_recognized_forms(self, text: str) -> None:
        assert extract_safety_score(text) == 73

    def test_no_label_returns_none(self) -> None:
        assert extract_safety_score("The area looks fine. Score unknown.") is None

    def test_first_match_wins(self) -> None:
        text = "Safety Score: 20\n...\nRevised Safety Score: 90"
        assert extract_safety_score(text) == 20

    def test_not_clamped(self) -> None:
        assert extract_safety_score("Safety Score: 150") == 150

    def test_bold_label(self) -> None:
        assert extract_safety_score("**Safety Score:** 73") == 73

    def test_bold_score_in_reply(self) -> None:
        result = interpret_response("## Safety Score: **73**\n\nWell lit, busy street.")

        assert result.safety_score == 73

    def test_emphasis_without_digits(self) -> None:
        assert extract_safety_score("Safety Score: **high**") is None


# =============================================================================
# Citation Tests
# =============================================================================


class TestCollectSources:
    """Tests for collect_sources()."""

    def test_skips_chunks_without_web(self, sample_chunks: list[GroundingChunk]) -> None:
        sources = collect_sources(sample_chunks)

        assert sources == [
            SourceCitation(title="A", uri="https://example.com/a"),
            SourceCitation(title="", uri="https://example.com/c"),
        ]

    def test_accepts_dicts(self) -> None:
        sources = collect_sources(
            [
                {"web": {"uri": "https://one.test", "title": "One"}},
                {"maps": {"uri": "https://maps.test"}},
                {"web": {"uri": "https://two.test"}},
            ]
        )

        assert [s.uri for s in sources] == ["https://one.test", "https://two.test"]
        assert sources[1].label == "https://two.test"

    def test_none_and_empty(self) -> None:
        assert collect_sources(None) == []
        assert collect_sources([]) == []


# =============================================================================
# interpret_response Tests
# =============================================================================


class TestInterpretResponse:
    """Tests for interpret_response()."""

    def test_street_question_without_chunks(self) -> None:
        reply = "Safety Score: 42\n\nSome risks..."

        result = interpret_response(reply, [])

        assert result.safety_score == 42
        assert result.summary == reply
        assert result.sources == []
        assert result.risks == []
        assert result.safe_havens == []

    def test_missing_score_defaults_to_fifty(self) -> None:
        result = interpret_response("No obvious hazards were reported.")

        assert result.safety_score == DEFAULT_SAFETY_SCORE == 50

    def test_unclamped_score_passes_through(self) -> None:
        assert interpret_response("Safety Score: 150").safety_score == 150

    def test_citation_count_and_order(
        self, sample_reply: str, sample_chunks: list[GroundingChunk]
    ) -> None:
        result = interpret_response(sample_reply, sample_chunks)

        assert result.safety_score == 73
        assert len(result.sources) == 2
        assert [s.title for s in result.sources] == ["A", ""]

    def test_is_idempotent(self, sample_reply: str, sample_chunks: list[GroundingChunk]) -> None:
        first = interpret_response(sample_reply, sample_chunks)
        second = interpret_response(sample_reply, sample_chunks)

        assert first == second

    def test_summary_is_full_reply(self, sample_reply: str) -> None:
        assert interpret_response(sample_reply).summary == sample_reply

    def test_sdk_shaped_chunks_via_model_validate(self) -> None:
        chunks = [
            GroundingChunk.model_validate({"web": {"uri": "https://a.test", "title": "A"}}),
        ]
        assert interpret_response("x", chunks).sources[0].uri == "https://a.test"

