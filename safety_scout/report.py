"""Rendering and export of Safety Scout results.

Terminal output uses Rich: a score panel with a colour-coded gauge, the
Markdown summary and the source list. Results can also be exported as JSON
or as a self-contained HTML page.

Display code clamps the score to 0-100 for the gauge only; the number shown
is always the score as extracted.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

from jinja2 import BaseLoader, Environment
from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from safety_scout.models import AnalysisResult, ChatMessage, ChatRole

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class ReportFormat(Enum):
    """Output format for an exported analysis."""

    HTML = "html"
    JSON = "json"
    BOTH = "both"


# =============================================================================
# Gauge Helpers
# =============================================================================

# Red -> yellow -> green, at scores 0, 50 and 100
GAUGE_STOPS = [
    (0, (0xEF, 0x44, 0x44)),
    (50, (0xEA, 0xB3, 0x08)),
    (100, (0x22, 0xC5, 0x5E)),
]

GAUGE_WIDTH = 30


def clamp_score(score: int) -> int:
    """Clamp a score to 0-100 for drawing."""
    return max(0, min(100, score))


def gauge_color(score: int) -> str:
    """Interpolate the gauge colour for a score as ``#rrggbb``."""
    value = clamp_score(score)

    for (lo, lo_rgb), (hi, hi_rgb) in zip(GAUGE_STOPS, GAUGE_STOPS[1:]):
        if value <= hi:
            t = (value - lo) / (hi - lo)
            rgb = tuple(round(a + (b - a) * t) for a, b in zip(lo_rgb, hi_rgb))
            return "#{:02x}{:02x}{:02x}".format(*rgb)

    return "#{:02x}{:02x}{:02x}".format(*GAUGE_STOPS[-1][1])


def gauge_bar(score: int, width: int = GAUGE_WIDTH) -> Text:
    """Horizontal gauge: filled share of ``width`` in the score's colour."""
    filled = round(clamp_score(score) / 100 * width)
    bar = Text()
    bar.append("█" * filled, style=gauge_color(score))
    bar.append("░" * (width - filled), style="grey70")
    return bar


# =============================================================================
# Terminal Rendering
# =============================================================================


def render_analysis(result: AnalysisResult, console: Console) -> None:
    """Print an analysis result.

    Args:
        result: The analysis to show.
        console: Rich console to print to.
    """
    header = Text()
    header.append("SAFETY SCORE  ", style="bold")
    header.append(str(result.safety_score), style=f"bold {gauge_color(result.safety_score)}")

    score_panel = Panel(
        Group(header, gauge_bar(result.safety_score), Text(result.risk_band.advice, style="dim")),
        expand=False,
        border_style=gauge_color(result.safety_score),
    )
    console.print(score_panel)
    console.print()
    console.print(Panel(Markdown(result.summary), title="Report Summary", title_align="left"))

    if result.sources:
        console.print()
        console.print("[bold]Sources & References[/bold]")
        for source in result.sources:
            line = Text("  • ")
            if source.is_web_link:
                line.append(source.label, style=Style(color="blue", link=source.uri))
            else:
                line.append(source.label)
            console.print(line)


def render_chat_message(message: ChatMessage, console: Console) -> None:
    """Print one chat transcript entry."""
    if message.role == ChatRole.USER:
        console.print(Text(f"You: {message.text}", style="bold blue"))
        return

    console.print(
        Panel(Markdown(message.text), title="Safety Scout", title_align="left", border_style="green")
    )


# =============================================================================
# HTML Template
# =============================================================================

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Safety Scout Report</title>
    <style>
        body { font-family: system-ui, sans-serif; background: #f8fafc; color: #1e293b; margin: 0; }
        main { max-width: 56rem; margin: 0 auto; padding: 1.5rem; }
        .card { background: #fff; border: 1px solid #e2e8f0; border-radius: 1rem; padding: 1.5rem; margin-bottom: 1.5rem; }
        .score { font-size: 3rem; font-weight: 700; color: {{ color }}; }
        .label { font-size: 0.75rem; text-transform: uppercase; letter-spacing: 0.1em; color: #64748b; }
        .gauge { background: #e2e8f0; border-radius: 999px; height: 0.75rem; overflow: hidden; }
        .gauge > div { background: {{ color }}; height: 100%; width: {{ gauge_percent }}%; }
        .advice { color: #475569; font-size: 0.9rem; margin-top: 0.75rem; }
        .summary { white-space: pre-wrap; line-height: 1.6; }
        .sources a { color: #2563eb; text-decoration: none; }
        footer { text-align: center; color: #94a3b8; font-size: 0.75rem; padding: 1.5rem; }
    </style>
</head>
<body>
<main>
    <section class="card">
        <div class="label">Safety Score</div>
        <div class="score">{{ result.safety_score }}</div>
        <div class="gauge"><div></div></div>
        <p class="advice">{{ result.risk_band.advice }}</p>
    </section>
    <section class="card">
        <h2>Report Summary</h2>
        <div class="summary">{{ result.summary }}</div>
    </section>
    {% if result.sources %}
    <section class="card sources">
        <h4>Sources &amp; References</h4>
        <ul>
        {% for source in result.sources %}
            {% if source.is_web_link %}
            <li><a href="{{ source.uri }}" target="_blank" rel="noopener noreferrer">{{ source.label }}</a></li>
            {% else %}
            <li>{{ source.label }}</li>
            {% endif %}
        {% endfor %}
        </ul>
    </section>
    {% endif %}
</main>
<footer>
    Disclaimer: This tool is for informational purposes only. In a life-threatening
    emergency, always contact local authorities immediately.
</footer>
</body>
</html>
"""


# =============================================================================
# Report Generator
# =============================================================================


class ReportGenerator:
    """Writes an AnalysisResult to HTML and/or JSON.

    Attributes:
        output_format: The format(s) to generate.

    Example:
        ```python
        generator = ReportGenerator(ReportFormat.HTML)
        paths = generator.generate(result, Path("reports/main_street"))
        ```
    """

    def __init__(self, output_format: ReportFormat = ReportFormat.HTML) -> None:
        self.output_format = output_format
        self._env = self._create_jinja_env()
        logger.debug(f"ReportGenerator initialized with format: {output_format.value}")

    def _create_jinja_env(self) -> Environment:
        return Environment(loader=BaseLoader(), autoescape=True)

    def generate(self, result: AnalysisResult, output_path: Path) -> list[Path]:
        """Generate report file(s).

        Args:
            result: The analysis to export.
            output_path: Base path for output (extension is replaced).

        Returns:
            List of created file paths.
        """
        created_files = []
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if self.output_format in (ReportFormat.HTML, ReportFormat.BOTH):
            html_path = output_path.with_suffix(".html")
            html_path.write_text(self.render_html(result), encoding="utf-8")
            created_files.append(html_path)
            logger.info(f"Generated HTML report: {html_path}")

        if self.output_format in (ReportFormat.JSON, ReportFormat.BOTH):
            json_path = output_path.with_suffix(".json")
            json_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
            created_files.append(json_path)
            logger.info(f"Generated JSON export: {json_path}")

        return created_files

    def render_html(self, result: AnalysisResult) -> str:
        """Render the HTML page for a result."""
        template = self._env.from_string(HTML_TEMPLATE)
        return template.render(**self._prepare_context(result))

    def _prepare_context(self, result: AnalysisResult) -> dict[str, Any]:
        return {
            "result": result,
            "color": gauge_color(result.safety_score),
            "gauge_percent": clamp_score(result.safety_score),
        }


def export_analysis(
    result: AnalysisResult,
    output_path: Path,
    output_format: ReportFormat = ReportFormat.HTML,
) -> list[Path]:
    """Convenience function to export an analysis.

    Returns:
        List of created file paths.
    """
    return ReportGenerator(output_format).generate(result, output_path)
