"""The single upload-to-result cycle and its cosmetic progress indicator."""

import asyncio
import contextlib
import logging
import os
from typing import Optional

from .config import Settings
from .encoder import encode_file
from .gemini_service import GeminiService
from .models import (
    AssetView,
    InferenceResult,
    MediaAsset,
    ProcessingState,
    ProcessingStatus,
    SessionSnapshot,
)
from .presentation import CopyFeedback, field_text, format_hashtag

logger = logging.getLogger(__name__)

UPLOADING_PROGRESS = 20.0
TRANSCRIBING_PROGRESS = 50.0
PROGRESS_CEILING = 98.0
# share of the remaining gap to the ceiling closed on every tick
TICK_RATIO = 0.05
FALLBACK_ERROR = "Analysis failed. If the file is too large, try compressing it."


class ProcessingSession:
    """Owns the one live MediaAsset and ProcessingState.

    Every cycle is tagged with a generation number. Starting a new upload or
    resetting bumps the generation, so a cycle that is still awaiting Gemini
    when it is superseded drops its result instead of publishing it.
    """

    def __init__(self, settings: Settings, service: Optional[GeminiService] = None) -> None:
        self.settings = settings
        self._service = service
        self.asset: Optional[MediaAsset] = None
        self.state = ProcessingState()
        self.generation = 0
        self.copy_feedback = CopyFeedback(settings.copy_feedback_seconds)
        self._cycle_task: Optional[asyncio.Task] = None
        self._ticker_task: Optional[asyncio.Task] = None
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def service(self) -> GeminiService:
        if self._service is None:
            self._service = GeminiService(self.settings)
        return self._service

    # -- observers ---------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        asset_view = None
        if self.asset is not None:
            result = self.asset.result
            asset_view = AssetView(
                name=self.asset.name,
                size=self.asset.size,
                size_label=self.asset.size_label,
                mime_type=self.asset.mime_type,
                has_preview=self.asset.preview_path is not None,
                transcript=self.asset.transcript,
                result=result,
                hashtags=[format_hashtag(tag) for tag in result.tags] if result else [],
            )
        return SessionSnapshot(
            status=self.state.status,
            progress=self.state.progress,
            error=self.state.error,
            asset=asset_view,
            copied_field=self.copy_feedback.current,
            generation=self.generation,
        )

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for queue in self._subscribers:
            queue.put_nowait(snapshot)

    def _set_state(self, generation: int, status: ProcessingStatus, progress: float, error: Optional[str] = None) -> bool:
        if generation != self.generation:
            return False
        self.state = ProcessingState(status=status, progress=progress, error=error)
        self._publish()
        return True

    # -- transitions -------------------------------------------------------

    def begin(self, name: str, size: int, mime_type: str, preview_path: Optional[str]) -> int:
        """Replace whatever was loaded with a new asset and enter ``uploading``."""
        self._stop_tasks()
        self._release_preview()
        self.generation += 1
        self.asset = MediaAsset(name=name, size=size, mime_type=mime_type, preview_path=preview_path)
        self.copy_feedback.clear()
        logger.info("Cycle %d started for %s (%s)", self.generation, name, self.asset.size_label)
        self._set_state(self.generation, ProcessingStatus.UPLOADING, UPLOADING_PROGRESS)
        return self.generation

    def start(self, name: str, size: int, mime_type: str, preview_path: str) -> asyncio.Task:
        generation = self.begin(name, size, mime_type, preview_path)
        self._cycle_task = asyncio.create_task(self.run_cycle(generation))
        return self._cycle_task

    async def run_cycle(self, generation: int) -> None:
        """Encode, call Gemini, and land in ``ready`` or ``error``."""
        asset = self.asset
        try:
            result = await self._infer(generation, asset)
        except Exception as exc:
            if generation != self.generation:
                logger.info("Cycle %d failed after being superseded: %s", generation, exc)
                return
            logger.error("Cycle %d failed: %s", generation, exc, exc_info=exc)
            self._set_state(generation, ProcessingStatus.ERROR, 0.0, error=str(exc) or FALLBACK_ERROR)
            return
        if result is None or generation != self.generation:
            logger.info("Discarding result of superseded cycle %d", generation)
            return
        self.asset = asset.model_copy(update={"transcript": result.transcription, "result": result.result})
        logger.info("Cycle %d ready", generation)
        self._set_state(generation, ProcessingStatus.READY, 100.0)

    async def _infer(self, generation: int, asset: MediaAsset) -> Optional[InferenceResult]:
        payload = await encode_file(asset.preview_path)
        if not self._set_state(generation, ProcessingStatus.TRANSCRIBING, TRANSCRIBING_PROGRESS):
            return None
        self._ticker_task = ticker = asyncio.create_task(self._tick(generation))
        try:
            return await self.service.process_video(payload, asset.mime_type)
        finally:
            ticker.cancel()

    async def _tick(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.settings.tick_interval)
            if generation != self.generation or not self.state.status.in_flight:
                return
            progress = self.state.progress + (PROGRESS_CEILING - self.state.progress) * TICK_RATIO
            logger.debug("Cycle %d progress %.1f", generation, progress)
            self._set_state(generation, ProcessingStatus.GENERATING, progress)

    def reset(self) -> None:
        """Drop the current asset and its preview file and go back to ``idle``."""
        self._stop_tasks()
        self._release_preview()
        self.generation += 1
        self.asset = None
        self.copy_feedback.clear()
        self.state = ProcessingState()
        logger.info("Session reset (generation %d)", self.generation)
        self._publish()

    async def wait(self) -> None:
        """Wait for the current cycle, if any, to finish."""
        task = self._cycle_task
        if task is not None and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # -- copy feedback -----------------------------------------------------

    def record_copy(self, field: str) -> str:
        if self.asset is None:
            raise ValueError("No video loaded")
        text = field_text(self.asset, field)
        self.copy_feedback.mark(field)
        self._publish()
        # let subscribers see the indicator clear on its own
        asyncio.get_running_loop().call_later(self.copy_feedback.delay, self._publish)
        return text

    # -- resources ---------------------------------------------------------

    def _stop_tasks(self) -> None:
        for task in (self._ticker_task, self._cycle_task):
            if task is not None and not task.done():
                task.cancel()
        self._ticker_task = None
        self._cycle_task = None

    def _release_preview(self) -> None:
        if self.asset is None or not self.asset.preview_path:
            return
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.asset.preview_path)
        logger.debug("Released preview %s", self.asset.preview_path)
