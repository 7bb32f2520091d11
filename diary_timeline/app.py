from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .database import DocumentStore
from .engine import DiaryEngine
from .models import (
    EntryBodyResponse,
    EntryDetail,
    FavoriteToggleResponse,
    ImportResponse,
    ParsedEntry,
    RandomPickResponse,
    SortDirection,
    TimelineFilter,
    ViewOptions,
    ViewState,
)
from .preferences import SqlitePreferenceStore, read_claimed_names
from .settings import settings
from .text_extractor import extract_document_from_upload

LOG_LEVEL = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("diary_timeline.app")
logger.setLevel(LOG_LEVEL)


app = FastAPI(
    title=settings.app_title,
    description=settings.app_description,
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _uptime_seconds() -> float:
    started_at = getattr(app.state, "started_at", None)
    if not started_at:
        return 0.0
    return max(0.0, (datetime.utcnow() - started_at).total_seconds())


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id
    start_time = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    if settings.enable_request_logging:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid4()))
    logger.exception(
        "Unhandled server error",
        extra={"request_id": request_id, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "伺服器發生未預期的錯誤。",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


@app.on_event("startup")
async def startup() -> None:
    app.state.started_at = datetime.utcnow()
    app.state.settings = settings
    store = await run_in_threadpool(
        DocumentStore,
        settings.db_path,
        legacy_db_path=settings.legacy_db_path or None,
    )
    preferences = SqlitePreferenceStore(settings.db_path)
    claimed = await run_in_threadpool(read_claimed_names, preferences, settings.claimed_names_key)
    documents = await run_in_threadpool(store.load_all, claimed_names=claimed)
    app.state.document_store = store
    app.state.engine = await run_in_threadpool(
        DiaryEngine,
        documents,
        preferences=preferences,
        body_loader=store.load_body,
        settings=settings,
    )
    logger.info("Loaded %d diary documents.", len(documents))


def _engine() -> DiaryEngine:
    return app.state.engine


def _view_options(
    filter: TimelineFilter = Query(default="all", description="all / favorites / undated"),
    query: str = Query(default="", max_length=200, description="內文、標題或檔名中的關鍵字"),
    sort: SortDirection = Query(default="desc", description="asc=由舊到新、desc=由新到舊"),
    selected: Optional[str] = Query(default=None, description="目前閱讀中的文件名稱"),
) -> ViewOptions:
    return ViewOptions(filter=filter, query=query, sort_direction=sort, selected_name=selected)


def _require_entry(engine: DiaryEngine, name: str) -> ParsedEntry:
    entry = engine.get_entry(name)
    if entry is None:
        raise HTTPException(status_code=404, detail="找不到這篇日記。")
    return entry


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "uptime_seconds": round(_uptime_seconds(), 3),
        "version": app.version,
    }


@app.get("/api/view", response_model=ViewState)
async def view(options: ViewOptions = Depends(_view_options)) -> ViewState:
    return _engine().view(options)


@app.get("/api/navigate", response_model=EntryDetail)
async def navigate(
    delta: int = Query(default=1, ge=-1000, le=1000),
    options: ViewOptions = Depends(_view_options),
) -> EntryDetail:
    engine = _engine()
    entry = engine.shift(options, delta)
    if entry is None:
        raise HTTPException(status_code=404, detail="目前的分類沒有可閱讀的日記。")
    return EntryDetail(entry=entry, favorite=engine.is_favorite(entry.name))


@app.get("/api/random", response_model=RandomPickResponse)
async def random_entry(options: ViewOptions = Depends(_view_options)) -> RandomPickResponse:
    engine = _engine()
    pool_size = len(engine.reading_pool(options))
    entry = engine.pick_random(options)
    if entry is None:
        return RandomPickResponse(pool_size=pool_size)
    return RandomPickResponse(entry=entry, snippet=engine.compact_snippet(entry), pool_size=pool_size)


@app.get("/api/entries/{name}", response_model=EntryDetail)
async def get_entry(name: str) -> EntryDetail:
    engine = _engine()
    entry = _require_entry(engine, name)
    return EntryDetail(entry=entry, favorite=engine.is_favorite(name))


@app.get("/api/entries/{name}/body", response_model=EntryBodyResponse)
async def get_entry_body(name: str) -> EntryBodyResponse:
    engine = _engine()
    entry = _require_entry(engine, name)
    body = await engine.load_body(name)
    return EntryBodyResponse(name=name, body=body, is_rich_text=bool(entry.rich_text) and body == entry.rich_text)


@app.post("/api/entries/{name}/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(name: str) -> FavoriteToggleResponse:
    engine = _engine()
    _require_entry(engine, name)
    favorite = await run_in_threadpool(engine.toggle_favorite, name)
    return FavoriteToggleResponse(
        name=name,
        favorite=favorite,
        favorites_count=len(engine.favorites),
    )


@app.delete("/api/entries/{name}")
async def delete_entry(name: str) -> Dict[str, Any]:
    engine = _engine()
    _require_entry(engine, name)
    store: DocumentStore = app.state.document_store
    await run_in_threadpool(store.delete_document, name)
    await run_in_threadpool(engine.remove_document, name)
    return {"name": name, "deleted": True, "total_entries": len(engine.entries)}


@app.post("/api/import", response_model=ImportResponse)
async def import_document(file: UploadFile = File(...)) -> ImportResponse:
    document, preview = await extract_document_from_upload(file, max_file_size=settings.max_upload_bytes)
    store: DocumentStore = app.state.document_store
    await run_in_threadpool(store.save_documents, [document])
    engine = _engine()
    (entry,) = await run_in_threadpool(engine.add_documents, [document])
    return ImportResponse(
        name=document.name,
        characters=len(entry.body_text),
        text_preview=preview,
        entry=entry,
        total_entries=len(engine.entries),
    )
