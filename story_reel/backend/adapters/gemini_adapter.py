from __future__ import annotations

import json
import logging
from typing import List, Optional

from google import genai
from google.genai import types
from pydantic import TypeAdapter, ValidationError

from story_reel.backend import config
from story_reel.backend.adapters.envelope import GenerationEnvelope
from story_reel.common.models import Scene

logger = logging.getLogger(__name__)

_SCENES = TypeAdapter(List[Scene])

# --- Helpers -----------------------------------------------------------------
def _scene_schema() -> types.Schema:
    """Response schema: an array of {text, imagePrompt, audioPrompt}, all required."""
    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(
            type=types.Type.OBJECT,
            properties={
                "text": types.Schema(type=types.Type.STRING),
                "imagePrompt": types.Schema(type=types.Type.STRING),
                "audioPrompt": types.Schema(type=types.Type.STRING),
            },
            required=["text", "imagePrompt", "audioPrompt"],
        ),
    )


def _build_story_prompt(prompt: str) -> str:
    return (
        f'Create a short, engaging story based on this prompt: "{prompt}".\n'
        "Break the story into 3-5 distinct scenes.\n"
        "For each scene, provide:\n"
        "1. The story text for that scene (narrative).\n"
        "2. A detailed visual prompt for an image generator (avoid text in images).\n"
        '3. A brief instruction for the narrator (e.g., "Speak mysteriously", "Speak excitedly").\n'
        'Return the result as a JSON array of objects with keys: "text", "imagePrompt", "audioPrompt".'
    )


def parse_scenes(raw_json: Optional[str]) -> List[Scene]:
    """Scenes from the model's JSON text; anything malformed gives an empty list."""
    try:
        return _SCENES.validate_python(json.loads(raw_json or "[]"))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Story response was not a valid scene list: %s", exc)
        return []


# --- Public API --------------------------------------------------------------
class GeminiCollaborator:
    """
    Remote calls to the Gemini API. Returns raw envelopes for media so the
    caller decides what counts as a usable payload.
    """

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        *,
        story_model: str = config.STORY_MODEL,
        image_model: str = config.IMAGE_MODEL,
        audio_model: str = config.AUDIO_MODEL,
    ):
        self.client = client or genai.Client(api_key=config.GEMINI_API_KEY)
        self.story_model = story_model
        self.image_model = image_model
        self.audio_model = audio_model

    async def generate_story(self, prompt: str) -> List[Scene]:
        response = await self.client.aio.models.generate_content(
            model=self.story_model,
            contents=_build_story_prompt(prompt),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=_scene_schema(),
            ),
        )
        return parse_scenes(response.text)

    async def generate_image(self, prompt: str, *, aspect_ratio: str) -> GenerationEnvelope:
        response = await self.client.aio.models.generate_content(
            model=self.image_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
            ),
        )
        return GenerationEnvelope.from_response(response)

    async def generate_speech(self, content: str, *, voice: str) -> GenerationEnvelope:
        response = await self.client.aio.models.generate_content(
            model=self.audio_model,
            contents=content,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                    ),
                ),
            ),
        )
        return GenerationEnvelope.from_response(response)
