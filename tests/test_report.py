"""Tests for terminal rendering and report export."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
from rich.console import Console

from safety_scout.models import AnalysisResult, ChatMessage, ChatRole, SourceCitation
from safety_scout.report import (
    ReportFormat,
    ReportGenerator,
    clamp_score,
    export_analysis,
    gauge_bar,
    gauge_color,
    render_analysis,
    render_chat_message,
)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=100, record=True, color_system=None)


# =============================================================================
# Gauge Tests
# =============================================================================


class TestGauge:
    """Tests for score clamping and gauge colours."""

    @pytest.mark.parametrize("score,expected", [(-20, 0), (0, 0), (64, 64), (100, 100), (150, 100)])
    def test_clamp_score(self, score: int, expected: int) -> None:
        assert clamp_score(score) == expected

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, "#ef4444"),
            (50, "#eab308"),
            (100, "#22c55e"),
            (-5, "#ef4444"),
            (180, "#22c55e"),
        ],
    )
    def test_gauge_color_stops(self, score: int, expected: str) -> None:
        assert gauge_color(score) == expected

    def test_gauge_color_between_stops(self) -> None:
        color = gauge_color(75)

        assert color.startswith("#")
        assert color not in ("#eab308", "#22c55e")

    def test_gauge_bar_fill(self) -> None:
        bar = gauge_bar(73, width=10)

        assert bar.plain == "███████░░░"

    def test_gauge_bar_overflow_is_full(self) -> None:
        assert gauge_bar(150, width=10).plain == "█" * 10


# =============================================================================
# Terminal Rendering Tests
# =============================================================================


class TestRenderAnalysis:
    """Tests for render_analysis()."""

    def test_sections_rendered(
        self, console: Console, sample_result_with_sources: AnalysisResult
    ) -> None:
        render_analysis(sample_result_with_sources, console)
        output = console.export_text()

        assert "SAFETY SCORE" in output
        assert "73" in output
        assert "Exercise normal caution." in output
        assert "Report Summary" in output
        assert "Sources & References" in output
        assert "City crime map" in output
        assert "https://example.org/news" in output

    def test_no_sources_section_without_sources(
        self, console: Console, sample_result: AnalysisResult
    ) -> None:
        render_analysis(sample_result, console)
        output = console.export_text()

        assert "42" in output
        assert "High caution advised." in output
        assert "Sources & References" not in output

    def test_unclamped_score_displayed(self, console: Console) -> None:
        render_analysis(AnalysisResult(safety_score=150, summary="Safety Score: 150"), console)

        assert "150" in console.export_text()

    def test_render_chat_message(self, console: Console) -> None:
        render_chat_message(ChatMessage.create(ChatRole.USER, "help, fire"), console)
        render_chat_message(ChatMessage.create(ChatRole.MODEL, "Leave the building."), console)
        output = console.export_text()

        assert "You: help, fire" in output
        assert "Safety Scout" in output
        assert "Leave the building." in output


# =============================================================================
# Export Tests
# =============================================================================


class TestExport:
    """Tests for HTML and JSON export."""

    def test_html_contains_result(self, sample_result_with_sources: AnalysisResult) -> None:
        html = ReportGenerator(ReportFormat.HTML).render_html(sample_result_with_sources)

        assert "<!DOCTYPE html>" in html
        assert ">73<" in html
        assert "Exercise normal caution." in html
        assert 'href="https://example.com/crime"' in html
        assert ">City crime map<" in html
        assert ">https://example.org/news<" in html
        assert "contact local authorities" in html

    def test_html_escapes_summary_and_sources(self) -> None:
        result = AnalysisResult(
            safety_score=30,
            summary="Safety Score: 30\n<script>alert('x')</script>",
            sources=[SourceCitation(title="<b>bold</b>", uri="https://x.test/?a=1&b=2")],
        )

        html = ReportGenerator().render_html(result)

        assert "<script>alert" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;bold&lt;/b&gt;" in html
        assert "a=1&amp;b=2" in html

    def test_html_links_only_web_sources(self) -> None:
        result = AnalysisResult(
            safety_score=60,
            summary="x",
            sources=[
                SourceCitation(title="Bad", uri="javascript:alert(1)"),
                SourceCitation(title="Local", uri="file:///etc/passwd"),
                SourceCitation(title="News", uri="https://news.test/a"),
            ],
        )

        html = ReportGenerator().render_html(result)

        assert "javascript:" not in html
        assert "file://" not in html
        assert "<li>Bad</li>" in html
        assert "<li>Local</li>" in html
        assert 'href="https://news.test/a"' in html

    def test_html_gauge_is_clamped(self) -> None:
        html = ReportGenerator().render_html(AnalysisResult(safety_score=150, summary="x"))

        assert "width: 100%" in html
        assert ">150<" in html

    def test_export_both(self, tmp_path: Path, sample_result_with_sources: AnalysisResult) -> None:
        paths = export_analysis(
            sample_result_with_sources, tmp_path / "out" / "report", ReportFormat.BOTH
        )

        assert [p.suffix for p in paths] == [".html", ".json"]
        assert all(p.exists() for p in paths)

        data = json.loads(paths[1].read_text(encoding="utf-8"))
        assert data == sample_result_with_sources.to_dict()

    def test_export_json_only(self, tmp_path: Path, sample_result: AnalysisResult) -> None:
        paths = export_analysis(sample_result, tmp_path / "report.txt", ReportFormat.JSON)

        assert paths == [tmp_path / "report.json"]
        assert json.loads(paths[0].read_text(encoding="utf-8"))["safety_score"] == 42
