import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import requests

from story_reel.common.models import Scene

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("STORY_API_BASE_URL", "http://127.0.0.1:8000/api")
REQUEST_TIMEOUT = 120
TTS_SCHEME = "tts://"


def _headers(token: Optional[str] = None) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_detail(resp: requests.Response) -> str:
    try:
        return str(resp.json().get("detail"))
    except ValueError:
        return resp.text


def _post(path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Any:
    resp = requests.post(
        f"{API_BASE_URL}{path}",
        json=payload,
        headers=_headers(token),
        timeout=REQUEST_TIMEOUT,
    )
    if not resp.ok:
        raise RuntimeError(f"API error {resp.status_code} on {path}: {_error_detail(resp)}")
    return resp.json()


def _get(path: str, token: str) -> Any:
    resp = requests.get(
        f"{API_BASE_URL}{path}",
        headers=_headers(token),
        timeout=REQUEST_TIMEOUT,
    )
    if not resp.ok:
        raise RuntimeError(f"API error {resp.status_code} on {path}: {_error_detail(resp)}")
    return resp.json()


# 1- Story structure (saved to history when a token is given)
def generate_story_structure(prompt: str, token: Optional[str] = None) -> List[Scene]:
    try:
        data = _post("/story", {"prompt": prompt}, token)
        return [Scene.model_validate(s) for s in data]
    except Exception:
        logger.exception("Failed to fetch story structure")
        return []


# 2- History
def fetch_history(token: str) -> List[Dict[str, Any]]:
    try:
        return _get("/stories", token)
    except Exception:
        logger.exception("Failed to fetch history")
        return []


def fetch_story_by_id(story_id: int, token: str) -> List[Scene]:
    try:
        data = _get(f"/stories/{story_id}", token)
        return [Scene.model_validate(s) for s in data]
    except Exception:
        logger.exception("Failed to fetch story %s", story_id)
        return []


# 3- Per-scene media
def generate_scene_image(image_prompt: str) -> Optional[str]:
    try:
        return _post("/image", {"imagePrompt": image_prompt}).get("imageUrl")
    except Exception:
        logger.exception("Failed to fetch image")
        return None


def generate_scene_audio(text: str, audio_prompt: str) -> Optional[str]:
    try:
        return _post("/audio", {"text": text, "audioPrompt": audio_prompt}).get("audioUrl")
    except Exception:
        logger.exception("Failed to fetch audio")
        return None


def browser_tts(text: str) -> str:
    """Free narration: the player speaks `tts://` URLs with the local voice."""
    return f"{TTS_SCHEME}{text}"


def generate_scene_assets(scene: Scene, masterpiece: bool = False) -> Scene:
    """
    Resolve image and narration for one scene in parallel.
    Only `masterpiece` stories pay for generated narration.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        image_future = pool.submit(generate_scene_image, scene.image_prompt)
        if masterpiece:
            audio_future = pool.submit(generate_scene_audio, scene.text, scene.audio_prompt)
        else:
            audio_future = pool.submit(browser_tts, scene.text)
        image_url = image_future.result()
        audio_url = audio_future.result()
    return scene.model_copy(update={"image_url": image_url, "audio_url": audio_url})
