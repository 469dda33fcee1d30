import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from whatsong.config import Settings, configure_logging, load_settings
from whatsong.errors import WhatsongError
from whatsong.playback.offset import Playing, deep_link, resolve_offset
from whatsong.schemas import Report
from whatsong.storage.db import EventStore, MetadataResolver
from whatsong.ui.now_playing import router as ui_router
from whatsong.youtube.client import YoutubeClient

logger = logging.getLogger(__name__)


def get_store(request: Request) -> EventStore:
    return request.app.state.store


async def read_report(request: Request) -> Report:
    """
    Reads the insert body, refusing anything over settings.max_body_bytes.
    """
    limit = request.app.state.settings.max_body_bytes

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail=f"body larger than {limit} bytes")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise HTTPException(status_code=413, detail=f"body larger than {limit} bytes")

    try:
        return Report.model_validate_json(bytes(body))
    except ValidationError as ex:
        raise RequestValidationError(ex.errors(include_url=False)) from ex


def create_app(
    settings: Optional[Settings] = None,
    resolver: Optional[MetadataResolver] = None,
) -> FastAPI:
    settings = settings or load_settings()
    resolver = resolver or YoutubeClient(settings)
    store = EventStore(settings.db_path, resolver, supported_version=settings.supported_version)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if not settings.youtube_api_key:
            logger.warning("YOUTUBE_API_KEY is not set; catalog lookups will be rejected")
        store.init_db()
        logger.info("whatsong storing events at %s", settings.db_path)
        yield

    app = FastAPI(title="whatsong", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(WhatsongError)
    async def whatsong_error(request: Request, exc: WhatsongError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.as_payload())

    # ---------------------------------------------------------
    # Health
    # ---------------------------------------------------------
    @app.get("/health")
    def health():
        return {"ok": True}

    # ---------------------------------------------------------
    # Ingest
    # ---------------------------------------------------------
    @app.post("/youtube", status_code=202)
    def insert(report: Report = Depends(read_report), store: EventStore = Depends(get_store)):
        logger.info("got an item: %s", report.source_url)
        event = store.insert(report)
        return {"received": True, "sequence": event.sequence}

    # ---------------------------------------------------------
    # Queries
    # ---------------------------------------------------------
    @app.get("/current")
    def current(store: EventStore = Depends(get_store)) -> Dict[str, Any]:
        event = store.current()
        playback = resolve_offset(event)
        playing = isinstance(playback, Playing)
        return {
            **event.model_dump(),
            "playing": playing,
            "offset_seconds": (playback.offset_seconds if playing else None),
            "link": deep_link(event, playback),
        }

    @app.get("/previous")
    def previous(store: EventStore = Depends(get_store)) -> Dict[str, Any]:
        event = store.previous()
        return {**event.model_dump(), "link": deep_link(event)}

    @app.get("/list/youtube")
    def list_all(store: EventStore = Depends(get_store)) -> Dict[str, Any]:
        return {"events": [e.model_dump() for e in store.all()]}

    app.include_router(ui_router)
    return app


app = create_app()
