import asyncio
import sys
import os

import pytest

# Ensure the project root is in sys.path so `from viraflow.main import app` works
# with relative imports inside the viraflow package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from viraflow.config import Settings  # noqa: E402
from viraflow.models import GeneratedContent, InferenceResult  # noqa: E402


class FakeService:
    """Stands in for GeminiService; returns ``result`` or raises ``error``."""

    def __init__(self, result=None, error=None, delay=0.0, gate=None):
        self.result = result
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = []

    async def process_video(self, payload, mime_type):
        self.calls.append((payload, mime_type))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def settings(tmp_path):
    return Settings(api_key="test-key", tick_interval=0.01, copy_feedback_seconds=2.0, upload_dir=str(tmp_path))


@pytest.fixture
def sample_result():
    return InferenceResult(
        transcription="hello world",
        result=GeneratedContent(titles=["A", "B", "C"], description="D", tags=["#x", "y"], searchTags=["p", "q"]),
    )


@pytest.fixture
def make_service():
    return FakeService
