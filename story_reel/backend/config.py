import logging
import os

from dotenv import load_dotenv

from story_reel.common.paths import data_dir, repo_root

load_dotenv(dotenv_path=repo_root() / ".env")

logger = logging.getLogger(__name__)

# --- Configuration -----------------------------------------------------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or ""
STORY_MODEL = os.getenv("STORY_MODEL", "gemini-2.0-flash-lite")  # cheap, structure only
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image")
AUDIO_MODEL = os.getenv("AUDIO_MODEL", "gemini-2.5-flash-preview-tts")
IMAGE_ASPECT_RATIO = os.getenv("IMAGE_ASPECT_RATIO", "16:9")
NARRATOR_VOICE = os.getenv("NARRATOR_VOICE", "Puck")
# Rate of the speech model's raw PCM output. Not announced per response.
PCM_SAMPLE_RATE = int(os.getenv("PCM_SAMPLE_RATE", "24000"))

DB_PATH = os.getenv("STORY_DB_PATH", str(data_dir() / "stories.db"))
ASSET_SINGLE_FLIGHT = os.getenv("ASSET_SINGLE_FLIGHT", "0").strip().lower() in {"1", "true", "yes"}
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if not GEMINI_API_KEY:
    logger.warning("GEMINI_API_KEY is not set.")
