"""Pytest configuration and fixtures for story_reel tests."""

import asyncio
from typing import Callable, List, Optional

import pytest

from story_reel.backend.adapters.envelope import (
    Candidate,
    Content,
    GenerationEnvelope,
    InlineData,
    Part,
)
from story_reel.backend.storage.asset_cache import AssetCacheStore
from story_reel.common.db import Database
from story_reel.common.models import Scene


def build_envelope(*parts: Part) -> GenerationEnvelope:
    return GenerationEnvelope(candidates=[Candidate(content=Content(parts=list(parts)))])


def inline_part(data: bytes, mime_type: str) -> Part:
    return Part(inline_data=InlineData(mime_type=mime_type, data=data))


class FakeCollaborator:
    """Scripted stand-in for the Gemini collaborator that records every call."""

    def __init__(
        self,
        image: Optional[GenerationEnvelope] = None,
        speech: Optional[GenerationEnvelope] = None,
        scenes: Optional[List[Scene]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.image = image if image is not None else GenerationEnvelope()
        self.speech = speech if speech is not None else GenerationEnvelope()
        self.scenes = scenes or []
        self.error = error
        self.delay = delay
        self.image_calls: list = []
        self.speech_calls: list = []
        self.story_calls: list = []

    async def _respond(self, value):
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return value

    async def generate_story(self, prompt: str) -> List[Scene]:
        self.story_calls.append(prompt)
        return await self._respond([s.model_copy() for s in self.scenes])

    async def generate_image(self, prompt: str, *, aspect_ratio: str) -> GenerationEnvelope:
        self.image_calls.append((prompt, aspect_ratio))
        return await self._respond(self.image)

    async def generate_speech(self, content: str, *, voice: str) -> GenerationEnvelope:
        self.speech_calls.append((content, voice))
        return await self._respond(self.speech)


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(tmp_path / "stories.db")
    db.init()
    return db


@pytest.fixture
def cache_store(database) -> AssetCacheStore:
    return AssetCacheStore(database)


@pytest.fixture
def make_envelope() -> Callable[..., GenerationEnvelope]:
    return build_envelope


@pytest.fixture
def make_part() -> Callable[[bytes, str], Part]:
    return inline_part


@pytest.fixture
def fake_collaborator() -> Callable[..., FakeCollaborator]:
    return FakeCollaborator


@pytest.fixture
def pcm_samples() -> bytes:
    # four 16-bit little-endian samples: 0, 1000, -1000, 32767
    return b"\x00\x00\xe8\x03\x18\xfc\xff\x7f"
