import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from viraflow.config import Settings
from viraflow.errors import ConfigError, EmptyResponseError, MalformedResponseError
from viraflow.gemini_service import RESPONSE_SCHEMA, GeminiService, build_prompt, parse_response

VALID = {
    "transcription": "hello world",
    "result": {"titles": ["A", "B", "C"], "description": "D", "tags": ["#x", "y"], "searchTags": ["p", "q"]},
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _service_with_response(text):
    """Build a GeminiService whose client returns a response carrying ``text``."""
    with patch("viraflow.gemini_service.genai.Client") as client_cls:
        service = GeminiService(Settings(api_key="test-key", model="test-model", language="English"))
    client = client_cls.return_value
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=text))
    return service, client


# ---------------------------------------------------------------------------
# parse_response
# ---------------------------------------------------------------------------

class TestParseResponse:
    def test_valid_payload(self):
        parsed = parse_response(json.dumps(VALID))

        assert parsed.transcription == "hello world"
        assert parsed.result.titles == ["A", "B", "C"]
        assert parsed.result.search_tags == ["p", "q"]

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_response(self, text):
        with pytest.raises(EmptyResponseError) as exc_info:
            parse_response(text)
        assert "Try another video" in str(exc_info.value)

    def test_invalid_json(self):
        with pytest.raises(MalformedResponseError):
            parse_response("{not json")

    def test_missing_tags(self):
        broken = json.loads(json.dumps(VALID))
        del broken["result"]["tags"]

        with pytest.raises(MalformedResponseError) as exc_info:
            parse_response(json.dumps(broken))
        assert "result.tags" in str(exc_info.value)

    def test_missing_transcription(self):
        with pytest.raises(MalformedResponseError):
            parse_response(json.dumps({"result": VALID["result"]}))


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------

class TestGeminiService:
    def test_missing_api_key_fails_at_construction(self):
        with pytest.raises(ConfigError):
            GeminiService(Settings(api_key=None))

    def test_prompt_names_counts_and_language(self):
        prompt = build_prompt("English")
        assert "in English" in prompt
        assert "3 extremely catchy" in prompt
        assert "15 most effective hashtags" in prompt
        assert "WITHOUT the # sign" in prompt
        assert "JSON" in prompt

    def test_schema_requires_all_fields(self):
        assert RESPONSE_SCHEMA.required == ["transcription", "result"]
        assert RESPONSE_SCHEMA.properties["result"].required == ["titles", "description", "tags", "searchTags"]

    @pytest.mark.asyncio
    async def test_process_video_sends_inline_video_and_schema(self):
        service, client = _service_with_response(json.dumps(VALID))
        payload = base64.b64encode(b"fake-video-bytes").decode("ascii")

        parsed = await service.process_video(payload, "video/mp4")

        assert parsed.result.description == "D"
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "test-model"
        video_part, text_part = kwargs["contents"][0].parts
        assert video_part.inline_data.data == b"fake-video-bytes"
        assert video_part.inline_data.mime_type == "video/mp4"
        assert "in English" in text_part.text
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].response_schema == RESPONSE_SCHEMA

    @pytest.mark.asyncio
    async def test_empty_response_raises(self):
        service, _ = _service_with_response(None)

        with pytest.raises(EmptyResponseError):
            await service.process_video("AAEC", "video/mp4")

    @pytest.mark.asyncio
    async def test_transport_error_propagates_verbatim(self):
        service, client = _service_with_response(None)
        client.aio.models.generate_content.side_effect = RuntimeError("429 RESOURCE_EXHAUSTED")

        with pytest.raises(RuntimeError, match="RESOURCE_EXHAUSTED"):
            await service.process_video("AAEC", "video/mp4")
