"""Central Pytest Fixtures for Safety Scout.

Reusable test data and mock objects shared by the test modules. No test
touches the network: the Gemini SDK is always replaced with mocks.

Fixtures included:
- Core data: sample_reply, sample_result, sample_result_with_sources, sample_chunks
- Images: png_bytes, png_file
- AI Mocks: mock_ai_client, mock_ai_client_failing, make_sdk_chunk, make_sdk_response
- Environment: clean_env, config_path
"""

import io
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from PIL import Image

from safety_scout.ai.client import AIRequestError, AIResponse
from safety_scout.models import (
    AnalysisResult,
    GroundingChunk,
    SourceCitation,
    WebSource,
)

SAMPLE_REPLY = """## Safety Score: 73

**Summary:** The area is busy and well lit in the evening.

### Risks
- Occasional pickpocketing near the station

### Safe Havens
- 24-hour pharmacy on the corner
"""


# =============================================================================
# Helper Functions
# =============================================================================


def create_test_image(fmt: str = "PNG", color: str = "red") -> bytes:
    """Create a small solid-colour image and return its encoded bytes."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def _sdk_chunk(uri: str | None = None, title: str | None = None, web: bool = True):
    record = SimpleNamespace(uri=uri, title=title) if web else None
    return SimpleNamespace(web=record, maps=None)


# =============================================================================
# Core Data Fixtures
# =============================================================================


@pytest.fixture
def sample_result() -> AnalysisResult:
    """A result with no citations."""
    return AnalysisResult(safety_score=42, summary="Safety Score: 42\n\nSome risks...")


@pytest.fixture
def sample_result_with_sources() -> AnalysisResult:
    """A result with two citations, one without a title."""
    return AnalysisResult(
        safety_score=73,
        summary=SAMPLE_REPLY,
        sources=[
            SourceCitation(title="City crime map", uri="https://example.com/crime"),
            SourceCitation(title="", uri="https://example.org/news"),
        ],
    )


@pytest.fixture
def sample_chunks() -> list[GroundingChunk]:
    """Three chunks, the middle one without a web record."""
    return [
        GroundingChunk(web=WebSource(uri="https://example.com/a", title="A")),
        GroundingChunk(maps=WebSource(uri="https://maps.example.com/b", title="B")),
        GroundingChunk(web=WebSource(uri="https://example.com/c", title="")),
    ]


@pytest.fixture
def sample_reply() -> str:
    return SAMPLE_REPLY


# =============================================================================
# Image Fixtures
# =============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    return create_test_image("PNG")


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "street.png"
    path.write_bytes(png_bytes)
    return path


# =============================================================================
# AI Mock Fixtures
# =============================================================================


@pytest.fixture
def make_sdk_chunk():
    """Factory for objects shaped like an SDK grounding chunk."""
    return _sdk_chunk


@pytest.fixture
def make_sdk_response():
    """Factory for objects shaped like a google-genai GenerateContentResponse."""

    def _make(
        text: str | None = "ok",
        chunks: list | None = None,
        finish_reason: str | None = "STOP",
        candidates: bool = True,
        block_reason: str | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.text = text
        response.usage_metadata.prompt_token_count = 120
        response.usage_metadata.candidates_token_count = 80
        response.prompt_feedback = SimpleNamespace(block_reason=block_reason)

        if not candidates:
            response.candidates = []
            return response

        candidate = MagicMock()
        candidate.finish_reason = SimpleNamespace(name=finish_reason) if finish_reason else None
        if chunks is None:
            candidate.grounding_metadata = None
        else:
            candidate.grounding_metadata = SimpleNamespace(grounding_chunks=chunks)
        response.candidates = [candidate]
        return response

    return _make


@pytest.fixture
def mock_ai_client() -> MagicMock:
    """A mock AIClient that answers every call with SAMPLE_REPLY."""
    mock = MagicMock()
    mock.model_name = "gemini-2.5-flash"

    response = AIResponse(
        text=SAMPLE_REPLY,
        model="gemini-2.5-flash",
        grounding_chunks=[
            GroundingChunk(web=WebSource(uri="https://example.com/crime", title="City crime map")),
        ],
        finish_reason="STOP",
    )
    mock.generate.return_value = response
    mock.chat.return_value = AIResponse(text="Move to a well-lit area.", model="gemini-2.5-flash")
    mock.test_connection.return_value = (True, "Connected to gemini-2.5-flash")
    return mock


@pytest.fixture
def mock_ai_client_failing() -> MagicMock:
    """A mock AIClient whose every call raises."""
    mock = MagicMock()
    mock.model_name = "gemini-2.5-flash"
    mock.generate.side_effect = AIRequestError("network unreachable")
    mock.chat.side_effect = AIRequestError("network unreachable")
    mock.test_connection.return_value = (False, "network unreachable")
    return mock


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Remove API key variables and point the config directory at tmp_path."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path


@pytest.fixture
def config_path(clean_env: Path) -> Path:
    """Location for a test config file (not created)."""
    return clean_env / "config" / "config.yaml"
