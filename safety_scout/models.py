"""Core data models for Safety Scout.

This module defines the request a user assembles (text, photo, coordinates),
the structured result produced from a model reply, and the chat transcript
entries. All models use Pydantic v2 for validation and serialization.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import time
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from uuid import uuid4

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


# =============================================================================
# Enums
# =============================================================================


class ChatRole(str, Enum):
    """Author of a chat transcript entry.

    Attributes:
        USER: Message typed by the person asking for help
        MODEL: Reply produced by the advisor (or a local fallback)
    """

    USER = "user"
    MODEL = "model"


class RiskBand(str, Enum):
    """Coarse reading of a safety score for display.

    Attributes:
        SAFE: Score above 80
        CAUTION: Score above 50
        HIGH_CAUTION: Everything else
    """

    SAFE = "safe"
    CAUTION = "caution"
    HIGH_CAUTION = "high_caution"

    @classmethod
    def from_score(cls, score: int) -> "RiskBand":
        """Classify a safety score."""
        if score > 80:
            return cls.SAFE
        if score > 50:
            return cls.CAUTION
        return cls.HIGH_CAUTION

    @property
    def advice(self) -> str:
        """One-line advice shown under the score."""
        return {
            RiskBand.SAFE: "Conditions appear safe.",
            RiskBand.CAUTION: "Exercise normal caution.",
            RiskBand.HIGH_CAUTION: "High caution advised.",
        }[self]


# =============================================================================
# Request Models
# =============================================================================


def _format_number(value: float) -> str:
    """Render a coordinate the way a JavaScript template literal would.

    Whole numbers drop the trailing ".0". Exponent notation is used only
    below 1e-6 and has no zero-padded exponent, e.g. ``1e-7``; anything
    larger is written positionally, e.g. ``0.00001``.
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text
    if abs(value) < 1e-6:
        mantissa, exponent = text.split("e")
        return f"{mantissa}e{int(exponent)}"
    return format(Decimal(text), "f")


class Coordinates(BaseModel):
    """Device position supplied by the geolocation provider.

    Attributes:
        latitude: Latitude in decimal degrees (-90 to 90)
        longitude: Longitude in decimal degrees (-180 to 180)
        accuracy: Reported accuracy radius in meters, if known
    """

    latitude: float
    longitude: float
    accuracy: float | None = None

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: float) -> float:
        """Validate latitude is within valid range."""
        if v < -90 or v > 90:
            raise ValueError("Latitude must be between -90 and 90 degrees")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: float) -> float:
        """Validate longitude is within valid range."""
        if v < -180 or v > 180:
            raise ValueError("Longitude must be between -180 and 180 degrees")
        return v

    def format_context(self) -> str:
        """Return the pair as sent to the model, e.g. ``"40.7128, -74.006"``."""
        return f"{_format_number(self.latitude)}, {_format_number(self.longitude)}"

    def format_short(self) -> str:
        """Return a display string rounded to four decimal places."""
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


class ImagePayload(BaseModel):
    """Photo attached to an analysis request.

    The image travels as base64 text with no data-URL prefix, so the media
    type has to be declared separately.

    Attributes:
        data: Base64-encoded image bytes
        mime_type: Declared media type (e.g. "image/png")
    """

    data: str
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        """Reject empty or non-base64 payloads."""
        if not v:
            raise ValueError("Image data must not be empty")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Image data is not valid base64: {e}") from e
        return v

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str | None = None) -> "ImagePayload":
        """Encode raw image bytes, detecting the media type when not given.

        Args:
            raw: Raw file contents.
            mime_type: Explicit media type. Detected with Pillow if None.

        Returns:
            Encoded payload.
        """
        if not raw:
            raise ValueError("Image file is empty")
        return cls(
            data=base64.b64encode(raw).decode("ascii"),
            mime_type=mime_type or detect_mime_type(raw),
        )

    @classmethod
    def from_data_url(cls, url: str) -> "ImagePayload":
        """Build a payload from a ``data:<mime>;base64,<data>`` string.

        The prefix is stripped; its media type is kept as the declared type.
        A bare base64 string (no prefix) is accepted as JPEG.
        """
        if "," not in url:
            return cls(data=url)

        header, data = url.split(",", 1)
        mime_type = DEFAULT_IMAGE_MIME_TYPE
        if header.startswith("data:"):
            declared = header[len("data:"):].split(";", 1)[0]
            if declared:
                mime_type = declared
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_path(cls, path: Path) -> "ImagePayload":
        """Read and encode an image file."""
        return cls.from_bytes(Path(path).read_bytes())

    def to_bytes(self) -> bytes:
        """Decode the payload back to raw bytes."""
        return base64.b64decode(self.data)

    @property
    def size_bytes(self) -> int:
        """Decoded size, for logging."""
        return len(self.to_bytes())


def detect_mime_type(raw: bytes) -> str:
    """Identify an image's media type from its bytes.

    Falls back to JPEG when Pillow cannot identify the format.
    """
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        logger.debug("Could not identify image format, assuming JPEG")
        return DEFAULT_IMAGE_MIME_TYPE

    return Image.MIME.get(fmt or "", DEFAULT_IMAGE_MIME_TYPE)


class AnalysisRequest(BaseModel):
    """Context gathered for a single "analyze" action.

    At least one of text, image or location must be present before the
    request is dispatched.

    Attributes:
        text: Free-text question or description (may be empty)
        image: Optional attached photo
        location: Optional device coordinates
    """

    text: str = ""
    image: ImagePayload | None = None
    location: Coordinates | None = None

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to analyze."""
        return not self.text.strip() and self.image is None and self.location is None


# =============================================================================
# Result Models
# =============================================================================


class WebSource(BaseModel):
    """Web evidence record inside a grounding chunk."""

    uri: str = ""
    title: str = ""


class GroundingChunk(BaseModel):
    """Citation record returned with search-grounded replies.

    Only the ``web`` sub-record produces a citation; a chunk without one is
    ignored.
    """

    web: WebSource | None = None
    maps: WebSource | None = None


class SourceCitation(BaseModel):
    """A source shown under the analysis.

    Attributes:
        title: Page title (may be empty)
        uri: Link to the source
    """

    title: str = ""
    uri: str

    @property
    def label(self) -> str:
        """Text to show for the link."""
        return self.title or self.uri

    @property
    def is_web_link(self) -> bool:
        """True for http(s) URIs, the only ones rendered as links."""
        parsed = urlparse(self.uri)
        return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


class AnalysisResult(BaseModel):
    """Structured result of a safety analysis.

    Attributes:
        safety_score: Score extracted from the reply (0-100 by convention,
            not clamped)
        summary: The complete raw model reply, rendered as Markdown
        risks: Itemized risks (left empty; the summary carries them)
        safe_havens: Itemized safe havens (left empty; the summary carries them)
        sources: Citations in the order the model returned them
    """

    safety_score: int
    summary: str
    risks: list[str] = Field(default_factory=list)
    safe_havens: list[str] = Field(default_factory=list)
    sources: list[SourceCitation] = Field(default_factory=list)

    @property
    def risk_band(self) -> RiskBand:
        """Display band for the score."""
        return RiskBand.from_score(self.safety_score)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return self.model_dump(mode="json")


# =============================================================================
# Chat Models
# =============================================================================


class ChatMessage(BaseModel):
    """One entry in the chat transcript. Immutable once created.

    Attributes:
        id: Unique message identifier
        role: Who wrote the message
        text: Message body (Markdown)
        timestamp: Creation time in epoch milliseconds
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: ChatRole
    text: str
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))

    model_config = {"frozen": True}

    @classmethod
    def create(cls, role: ChatRole, text: str) -> "ChatMessage":
        """Create a message stamped with the current time."""
        return cls(role=role, text=text)
