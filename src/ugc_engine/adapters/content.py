"""Typed content parts shared by the generator adapters.

Stage functions describe a request as a list of parts; each adapter
translates the list into its provider's wire format.
"""

import base64
from dataclasses import dataclass

from ugc_engine.domain.enums import FrameRole


@dataclass
class TextPart:
    """A text segment of a prompt."""

    text: str


@dataclass
class ImagePart:
    """An inline image, optionally tagged with its role in a video request."""

    data: bytes
    mime_type: str = "image/png"
    role: FrameRole | None = None

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


ContentPart = TextPart | ImagePart


def text_of(parts: list[ContentPart]) -> str:
    """Concatenate the text parts (used for logging and stored prompts)."""
    return "\n".join(p.text for p in parts if isinstance(p, TextPart))
