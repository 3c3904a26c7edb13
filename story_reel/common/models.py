from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# -----------------------------
# Data Models
# -----------------------------
class AssetKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"


class Scene(BaseModel):
    """One slide of a story: narrative text plus the prompts for its media."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    image_prompt: str
    audio_prompt: str
    image_url: Optional[str] = None
    audio_url: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.image_url and self.audio_url)


@dataclass(frozen=True)
class AssetCacheEntry:
    kind: AssetKind
    fingerprint: str
    reference: str
    created_at: str


class AssetErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTERNAL_SERVICE = "external_service"


@dataclass(frozen=True)
class AssetResult:
    """Outcome of one asset request: either a reference or an error kind."""

    reference: Optional[str] = None
    error: Optional[AssetErrorKind] = None
    message: str = ""
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.reference is not None

    @classmethod
    def resolved(cls, reference: str, *, cached: bool = False) -> "AssetResult":
        return cls(reference=reference, cached=cached)

    @classmethod
    def failed(cls, error: AssetErrorKind, message: str) -> "AssetResult":
        return cls(error=error, message=message)


# -----------------------------
# Helpers / Constants
# -----------------------------
TITLE_MAX_LEN = 50


def story_title(prompt: str) -> str:
    if len(prompt) > TITLE_MAX_LEN:
        return prompt[: TITLE_MAX_LEN - 3] + "..."
    return prompt
