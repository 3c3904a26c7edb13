# story_reel/backend/app.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from story_reel.backend import config
from story_reel.backend.adapters.gemini_adapter import GeminiCollaborator
from story_reel.backend.services.assets import AssetOrchestrator
from story_reel.backend.storage.asset_cache import AssetCacheStore
from story_reel.common.db import Database
from story_reel.common.models import AssetErrorKind, AssetResult, Scene, story_title

logger = logging.getLogger(__name__)


# -------------------------------
# FastAPI app & middleware
# -------------------------------
app = FastAPI(title="Story Reel API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    AssetErrorKind.VALIDATION: 400,
    AssetErrorKind.NOT_FOUND: 404,
    AssetErrorKind.EXTERNAL_SERVICE: 500,
}


# -------------------------------
# Dependencies (built once, on first use)
# -------------------------------
def get_database(request: Request) -> Database:
    state = request.app.state
    if getattr(state, "database", None) is None:
        database = Database(config.DB_PATH)
        database.init()
        state.database = database
    return state.database


def get_collaborator(request: Request):
    state = request.app.state
    if getattr(state, "collaborator", None) is None:
        state.collaborator = GeminiCollaborator()
    return state.collaborator


def get_orchestrator(
    request: Request,
    database: Database = Depends(get_database),
    collaborator=Depends(get_collaborator),
) -> AssetOrchestrator:
    state = request.app.state
    if getattr(state, "orchestrator", None) is None:
        state.orchestrator = AssetOrchestrator(
            AssetCacheStore(database),
            collaborator,
            sample_rate=config.PCM_SAMPLE_RATE,
            aspect_ratio=config.IMAGE_ASPECT_RATIO,
            voice=config.NARRATOR_VOICE,
            single_flight=config.ASSET_SINGLE_FLIGHT,
        )
    return state.orchestrator


def _bearer_token(request: Request) -> str:
    parts = request.headers.get("authorization", "").split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return ""


def optional_account(
    request: Request, database: Database = Depends(get_database)
) -> Optional[Dict[str, Any]]:
    """Anonymous when no token is sent; 403 when the token is unknown."""
    token = _bearer_token(request)
    if not token:
        return None
    row = database.account_for_token(token)
    if not row:
        raise HTTPException(status_code=403, detail="Invalid token")
    return {"id": int(row["id"]), "username": row["username"]}


def require_account(
    account: Optional[Dict[str, Any]] = Depends(optional_account),
) -> Dict[str, Any]:
    if account is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return account


# -------------------------------
# Pydantic models
# -------------------------------
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthReq(BaseModel):
    username: str = Field(default="", max_length=80)
    password: str = Field(default="", max_length=200)


class AuthResp(BaseModel):
    token: str
    username: str


class StoryReq(BaseModel):
    prompt: str = Field(default="", max_length=2000)


class StorySummary(BaseModel):
    id: int
    title: str
    created_at: str


class ImageReq(CamelModel):
    image_prompt: str = ""


class ImageResp(CamelModel):
    image_url: str


class AudioReq(CamelModel):
    text: str = ""
    audio_prompt: str = ""


class AudioResp(CamelModel):
    audio_url: str


def _unwrap(result: AssetResult) -> str:
    if result.ok:
        return result.reference
    raise HTTPException(status_code=ERROR_STATUS[result.error], detail=result.message)


# -------------------------------
# Routes
# -------------------------------
@app.get("/health")
def health():
    return {"ok": True}


@app.post("/auth/signup", response_model=AuthResp, status_code=201)
def signup(req: AuthReq, database: Database = Depends(get_database)):
    if not req.username or not req.password:
        raise HTTPException(status_code=400, detail="Username and password required")
    try:
        account_id = database.create_account(req.username, req.password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    token = database.create_session(account_id)
    return {"token": token, "username": req.username.strip()}


@app.post("/auth/login", response_model=AuthResp)
def login(req: AuthReq, database: Database = Depends(get_database)):
    if not req.username or not req.password:
        raise HTTPException(status_code=400, detail="Username and password required")
    account_id = database.authenticate(req.username, req.password)
    if not account_id:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = database.create_session(account_id)
    return {"token": token, "username": req.username.strip()}


@app.post("/auth/logout")
def logout(request: Request, database: Database = Depends(get_database)):
    database.delete_session(_bearer_token(request))
    return {"ok": True}


@app.get("/stories", response_model=List[StorySummary])
def list_stories(
    account: Dict[str, Any] = Depends(require_account),
    database: Database = Depends(get_database),
):
    rows = database.list_stories(account["id"])
    return [
        {"id": int(r["id"]), "title": r["title"], "created_at": r["created_at"]}
        for r in rows
    ]


@app.get("/stories/{story_id}", response_model=List[Scene], response_model_exclude_none=True)
def get_story(
    story_id: int,
    account: Dict[str, Any] = Depends(require_account),
    database: Database = Depends(get_database),
):
    scenes = database.get_story_scenes(account["id"], story_id)
    if scenes is None:
        raise HTTPException(status_code=404, detail="Story not found")
    return scenes


@app.post("/story", response_model=List[Scene], response_model_exclude_none=True)
async def create_story(
    req: StoryReq,
    account: Optional[Dict[str, Any]] = Depends(optional_account),
    database: Database = Depends(get_database),
    collaborator=Depends(get_collaborator),
):
    """
    Generate the scene structure for a prompt. Media is requested per scene
    afterwards through /image and /audio.
    """
    if not req.prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")
    try:
        scenes = await collaborator.generate_story(req.prompt)
    except Exception as e:
        logger.exception("Story generation failed")
        raise HTTPException(status_code=500, detail=str(e) or "Internal Server Error")
    if not scenes:
        raise HTTPException(status_code=500, detail="Story generation returned no scenes")

    if account is not None:
        try:
            database.save_story(
                account["id"],
                story_title(req.prompt),
                [s.model_dump(by_alias=True, exclude_none=True) for s in scenes],
            )
        except Exception:
            logger.exception("Failed to save story to database")
    return scenes


@app.post("/image", response_model=ImageResp)
async def generate_image(
    req: ImageReq, orchestrator: AssetOrchestrator = Depends(get_orchestrator)
):
    result = await orchestrator.generate_image(req.image_prompt)
    return {"image_url": _unwrap(result)}


@app.post("/audio", response_model=AudioResp)
async def generate_audio(
    req: AudioReq, orchestrator: AssetOrchestrator = Depends(get_orchestrator)
):
    result = await orchestrator.generate_audio(req.text, req.audio_prompt)
    return {"audio_url": _unwrap(result)}
