"""FastAPI application exposing the upload and copy endpoints and the single-page UI."""

import asyncio
import logging
import os
import uuid

import uvicorn
from fastapi import FastAPI, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, HTMLResponse

from .config import Settings
from .logging_config import configure_logging
from .models import SessionSnapshot
from .processing import ProcessingSession

INDEX_PATH = os.path.join(os.path.dirname(__file__), "index.html")

settings = Settings.from_env()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="ViraFlow")
session = ProcessingSession(settings)


@app.get("/")
async def get_index() -> HTMLResponse:
    """Serve the index.html single-page UI."""
    with open(INDEX_PATH, encoding="utf-8") as f:
        return HTMLResponse(f.read())


def _write_file(path: str, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)


@app.post("/upload", response_model=SessionSnapshot)
async def upload_video(file: UploadFile = File(...)) -> SessionSnapshot:
    """Save the uploaded video as the preview file and start a processing cycle."""
    filename = os.path.basename(file.filename or "video")
    preview_path = os.path.join(settings.upload_dir, f"{uuid.uuid4().hex}_{filename}")
    data = await file.read()
    await asyncio.to_thread(_write_file, preview_path, data)
    mime_type = file.content_type or "application/octet-stream"
    logger.info("Received %s (%s, %d bytes)", filename, mime_type, len(data))
    session.start(filename, len(data), mime_type, preview_path)
    return session.snapshot()


@app.get("/state", response_model=SessionSnapshot)
async def get_state() -> SessionSnapshot:
    return session.snapshot()


@app.get("/preview")
async def get_preview() -> FileResponse:
    """Stream the uploaded video back for the page's <video> element."""
    asset = session.asset
    if asset is None or not asset.preview_path or not os.path.exists(asset.preview_path):
        raise HTTPException(status_code=404, detail="No video loaded")
    return FileResponse(asset.preview_path, media_type=asset.mime_type, filename=asset.name)


@app.post("/reset", response_model=SessionSnapshot)
async def reset() -> SessionSnapshot:
    session.reset()
    return session.snapshot()


@app.post("/copy/{field}")
async def copy_field(field: str) -> dict:
    """Return the text behind a copy button and light up its indicator."""
    try:
        text = session.record_copy(field)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown field: {field}")
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"field": field, "text": text}


@app.websocket("/ws/state")
async def websocket_state(websocket: WebSocket) -> None:
    """Push a session snapshot on connect and after every change."""
    await websocket.accept()
    logger.debug("State subscriber connected")

    queue = session.subscribe()

    async def receiver():
        # The page never sends anything; this only notices the disconnect
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("State subscriber disconnected")

    async def sender():
        await websocket.send_json(session.snapshot().model_dump(mode="json", by_alias=True))
        while True:
            snapshot = await queue.get()
            await websocket.send_json(snapshot.model_dump(mode="json", by_alias=True))

    receiver_task = asyncio.create_task(receiver())
    sender_task = asyncio.create_task(sender())
    try:
        done, _ = await asyncio.wait({receiver_task, sender_task}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning("State stream closed: %s", task.exception())
    finally:
        receiver_task.cancel()
        sender_task.cancel()
        session.unsubscribe(queue)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "viraflow.main:app",
        host=os.environ.get("VIRAFLOW_HOST", "127.0.0.1"),
        port=int(os.environ.get("VIRAFLOW_PORT", "8000")),
        log_level=settings.log_level.lower(),
    )
