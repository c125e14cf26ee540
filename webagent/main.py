import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webagent import config, llm_client
from webagent.errors import ValidationError, WebAgentError
from webagent.models import (
    ChatRequest,
    GameDevChatRequest,
    HostRequest,
    Page,
    SolanaChatRequest,
    TranscriptEntry,
)
from webagent.paths import normalize
from webagent.pipeline import PromptPipeline
from webagent.site_store import SiteStore, default_store


if not logging.getLogger().handlers:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

app = FastAPI(title="webagent")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOW_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_store: Optional[SiteStore] = None


def get_pipeline() -> PromptPipeline:
    return PromptPipeline()


def get_site_store() -> SiteStore:
    global _store
    if _store is None:
        _store = default_store()
    return _store


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    if request.url.path == "/api/host":
        message = "Pages array is required"
    else:
        message = "Invalid request body"
    log.info("request validation failed path=%s errors=%d", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": message})


def _error_response(exc: Exception, message: str) -> JSONResponse:
    """Boundary for anything the taxonomy does not cover; never leaks internals."""
    if isinstance(exc, WebAgentError):
        log.warning("handler error: %r", exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})
    log.exception("unexpected handler error")
    return JSONResponse(status_code=500, content={"error": message})


def _single_file_pages(structure: str, default_name: str, extension: str) -> List[Page]:
    """Decode the `{"name", "code"}` JSON string single-file clients send."""
    name, code = default_name, ""
    if structure:
        try:
            data = json.loads(structure)
        except ValueError:
            data = None
        if isinstance(data, dict):
            name = str(data.get("name") or default_name)
            code = data.get("code") if isinstance(data.get("code"), str) else ""
    return [Page(name=name, path=normalize(name, extension), content=code, isActive=True)]


def _run_chat(
    pipeline: PromptPipeline,
    prompt: str,
    previous: List[TranscriptEntry],
    pages: List[Page],
    agent_type: str,
) -> JSONResponse:
    try:
        result = pipeline.run(prompt, previous, pages, agent_type=agent_type)
    except Exception as exc:
        return _error_response(exc, "Failed to process chat request")
    return JSONResponse(result.to_response())


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return llm_client.status()


@app.post("/api/chat")
def chat_endpoint(req: ChatRequest, pipeline: PromptPipeline = Depends(get_pipeline)):
    return _run_chat(pipeline, req.prompt, req.previousMessages, req.siteStructure, "webapp")


@app.post("/api/gamedevchat")
def gamedev_chat_endpoint(req: GameDevChatRequest, pipeline: PromptPipeline = Depends(get_pipeline)):
    pages = _single_file_pages(req.gameStructure, "index.html", ".html")
    return _run_chat(pipeline, req.prompt, req.previousMessages, pages, "gamedev")


@app.post("/api/solanachat")
def solana_chat_endpoint(req: SolanaChatRequest, pipeline: PromptPipeline = Depends(get_pipeline)):
    pages = _single_file_pages(req.programStructure, "lib.rs", ".rs")
    return _run_chat(pipeline, req.prompt, req.previousMessages, pages, "solana")


@app.post("/api/host")
def host_endpoint(req: HostRequest, store: SiteStore = Depends(get_site_store)):
    try:
        if req.pages is None:
            raise ValidationError("Pages array is required")
        return store.host_site(req.pages, req.metadata)
    except Exception as exc:
        return _error_response(exc, "Failed to host site")


@app.get("/api/sites")
def list_sites_endpoint(startAfter: Optional[str] = None, store: SiteStore = Depends(get_site_store)):
    try:
        return store.list_sites(startAfter)
    except Exception as exc:
        return _error_response(exc, "Failed to list sites")


@app.get("/api/recentsites")
def recent_sites_endpoint(store: SiteStore = Depends(get_site_store)):
    try:
        return store.list_recent_sites()
    except Exception as exc:
        return _error_response(exc, "Failed to list sites")


@app.get("/api/sites/{site_id}")
def get_site_endpoint(site_id: str, store: SiteStore = Depends(get_site_store)):
    try:
        return store.get_site(site_id)
    except Exception as exc:
        return _error_response(exc, "Failed to fetch site")
