"""
Cached image and narration generation.

Each request is: cache lookup -> (miss) remote call -> payload extraction ->
normalization -> cache write. There is no lock around that sequence, so two
first-time requests for the same key can both call out; the unique key on the
cache table turns the second write into a StorageConflict, which is ignored.
Set ``single_flight=True`` to share one in-flight call between concurrent
identical requests instead.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, Protocol, Tuple

from story_reel.backend.adapters.envelope import (
    GenerationEnvelope,
    InlineData,
    first_inline_data,
    leading_inline_data,
)
from story_reel.backend.services.wav import encode_wav
from story_reel.backend.storage.asset_cache import AssetCacheStore, StorageConflict
from story_reel.common.fingerprint import audio_fingerprint, image_fingerprint
from story_reel.common.models import AssetErrorKind, AssetKind, AssetResult

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"
DEFAULT_AUDIO_MIME = "application/octet-stream"
DEFAULT_SAMPLE_RATE = 24000
_RATE_PARAM = re.compile(r"rate=(\d+)", re.IGNORECASE)


class GenerationCollaborator(Protocol):
    async def generate_image(self, prompt: str, *, aspect_ratio: str) -> GenerationEnvelope:
        ...

    async def generate_speech(self, content: str, *, voice: str) -> GenerationEnvelope:
        ...


class AssetOrchestrator:
    def __init__(
        self,
        store: AssetCacheStore,
        collaborator: GenerationCollaborator,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        aspect_ratio: str = "16:9",
        voice: str = "Puck",
        single_flight: bool = False,
    ):
        self.store = store
        self.collaborator = collaborator
        self.sample_rate = sample_rate
        self.aspect_ratio = aspect_ratio
        self.voice = voice
        self.single_flight = single_flight
        self._in_flight: Dict[Tuple[AssetKind, str], "asyncio.Future[AssetResult]"] = {}

    # -------------------------------
    # Public operations
    # -------------------------------
    async def generate_image(self, image_prompt: str) -> AssetResult:
        if not image_prompt:
            return AssetResult.failed(AssetErrorKind.VALIDATION, "imagePrompt is required")

        async def produce() -> AssetResult:
            envelope = await self.collaborator.generate_image(
                image_prompt, aspect_ratio=self.aspect_ratio
            )
            inline = first_inline_data(envelope)
            if inline is None:
                return AssetResult.failed(AssetErrorKind.NOT_FOUND, "No image generated")
            mime = inline.mime_type if inline.mime_type.startswith("image/") else DEFAULT_IMAGE_MIME
            return AssetResult.resolved(inline.data_uri(mime))

        return await self._resolve(AssetKind.IMAGE, image_fingerprint(image_prompt), produce)

    async def generate_audio(self, text: str, audio_prompt: str) -> AssetResult:
        if not text or not audio_prompt:
            return AssetResult.failed(
                AssetErrorKind.VALIDATION, "text and audioPrompt are required"
            )

        async def produce() -> AssetResult:
            envelope = await self.collaborator.generate_speech(
                f"{audio_prompt}: {text}", voice=self.voice
            )
            inline = leading_inline_data(envelope)
            if inline is None:
                return AssetResult.failed(AssetErrorKind.NOT_FOUND, "No audio generated")
            return AssetResult.resolved(self._audio_reference(inline))

        return await self._resolve(
            AssetKind.AUDIO, audio_fingerprint(audio_prompt, text), produce
        )

    # -------------------------------
    # Internals
    # -------------------------------
    def _audio_reference(self, inline: InlineData) -> str:
        if "pcm" not in inline.mime_type.lower():
            return inline.data_uri(inline.mime_type or DEFAULT_AUDIO_MIME)
        declared = _RATE_PARAM.search(inline.mime_type)
        if declared and int(declared.group(1)) != self.sample_rate:
            logger.warning(
                "PCM payload declares %s Hz but the WAV header uses %s Hz (%s)",
                declared.group(1),
                self.sample_rate,
                inline.mime_type,
            )
        return encode_wav(inline.data, self.sample_rate)

    async def _resolve(
        self,
        kind: AssetKind,
        fingerprint: str,
        produce: Callable[[], Awaitable[AssetResult]],
    ) -> AssetResult:
        if not self.single_flight:
            return await self._lookup_or_generate(kind, fingerprint, produce)

        key = (kind, fingerprint)
        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup_or_generate(kind, fingerprint, produce))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda task: self._finish_flight(key, task))
        else:
            logger.info("Joining in-flight %s request for %s", kind.value, fingerprint)
        return await asyncio.shield(pending)

    def _finish_flight(self, key: Tuple[AssetKind, str], task: "asyncio.Future[AssetResult]") -> None:
        self._in_flight.pop(key, None)
        # every waiter may have been cancelled; retrieve the error so it is not lost
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Shared %s request for %s failed",
                key[0].value,
                key[1],
                exc_info=task.exception(),
            )

    async def _lookup_or_generate(
        self,
        kind: AssetKind,
        fingerprint: str,
        produce: Callable[[], Awaitable[AssetResult]],
    ) -> AssetResult:
        cached = await asyncio.to_thread(self.store.lookup, kind, fingerprint)
        if cached is not None:
            logger.info("%s cache hit for: %s", kind.value.capitalize(), fingerprint)
            return AssetResult.resolved(cached, cached=True)

        logger.info("%s cache miss for: %s", kind.value.capitalize(), fingerprint)
        try:
            result = await produce()
        except Exception as exc:
            logger.exception("%s generation failed", kind.value.capitalize())
            return AssetResult.failed(AssetErrorKind.EXTERNAL_SERVICE, str(exc) or type(exc).__name__)

        if not result.ok:
            return result
        try:
            await asyncio.to_thread(self.store.store, kind, fingerprint, result.reference)
        except StorageConflict:
            logger.debug("%s asset %s was cached concurrently", kind.value, fingerprint)
        return result
