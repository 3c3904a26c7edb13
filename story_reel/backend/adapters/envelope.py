"""
Typed view of a generate-content response: candidates -> content -> parts,
where a part may carry inline binary data. Only the fields the asset layer
reads are modelled; everything else in the SDK response is ignored.
"""

from __future__ import annotations

import base64
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InlineData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mime_type: str = ""
    data: bytes = b""

    def data_uri(self, mime_type: Optional[str] = None) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{mime_type or self.mime_type};base64,{payload}"


class Part(BaseModel):
    model_config = ConfigDict(extra="ignore")

    inline_data: Optional[InlineData] = None


class Content(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: Optional[List[Part]] = None


class Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[Content] = None


class GenerationEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    candidates: List[Candidate] = Field(default_factory=list)

    @classmethod
    def from_response(cls, response: Any) -> "GenerationEnvelope":
        """Build from an SDK response object (or a plain dict)."""
        if isinstance(response, GenerationEnvelope):
            return response
        if hasattr(response, "model_dump"):
            response = response.model_dump(exclude_none=True)
        data = response or {}
        # the SDK reports "no candidates" as None
        if data.get("candidates") is None:
            data = {**data, "candidates": []}
        return cls.model_validate(data)

    def first_parts(self) -> List[Part]:
        if not self.candidates:
            return []
        content = self.candidates[0].content
        if content is None or not content.parts:
            return []
        return content.parts


def first_inline_data(envelope: GenerationEnvelope) -> Optional[InlineData]:
    """First part of the first candidate that carries inline data."""
    for part in envelope.first_parts():
        if part.inline_data is not None:
            return part.inline_data
    return None


def leading_inline_data(envelope: GenerationEnvelope) -> Optional[InlineData]:
    """Inline data of the first candidate's first part, if it has any."""
    parts = envelope.first_parts()
    if not parts or parts[0].inline_data is None:
        return None
    return parts[0].inline_data
