"""This module contains the classes to manage the Gemini communication"""

import json
import logging

from google import genai
from google.genai import types
from pydantic import ValidationError

from .config import Settings
from .encoder import decode_payload
from .errors import EmptyResponseError, MalformedResponseError
from .models import InferenceResult

logger = logging.getLogger(__name__)

TITLE_COUNT = 3
TAG_COUNT = 15
SEARCH_TAG_COUNT = 15

PROMPT_TEMPLATE = """
Your task is to analyse the video and prepare a content pack for publishing on social
networks (Shorts, Reels, TikTok, YouTube, Rutube).

1. Transcription: write down verbatim everything that is said in the video, in the original language.
2. Viral content (in {language}):
   - titles: come up with {titles} extremely catchy (clickbait) titles that make people tap the video.
   - description: write a strong description. It must be short, engaging, contain keywords
     and end with a call to action (CTA).
   - tags: list the {tags} most effective hashtags (with the # sign).
   - searchTags: list {search_tags} search tags (key phrases). These are phrases people type
     into search to find similar content. WITHOUT the # sign.

Return the answer STRICTLY in JSON format.
"""

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "transcription": types.Schema(type=types.Type.STRING, description="Full text spoken in the video"),
        "result": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "titles": types.Schema(
                    type=types.Type.ARRAY,
                    items=types.Schema(type=types.Type.STRING),
                    description=f"{TITLE_COUNT} title options",
                ),
                "description": types.Schema(type=types.Type.STRING, description="Viral description"),
                "tags": types.Schema(
                    type=types.Type.ARRAY,
                    items=types.Schema(type=types.Type.STRING),
                    description=f"{TAG_COUNT} hashtags",
                ),
                "searchTags": types.Schema(
                    type=types.Type.ARRAY,
                    items=types.Schema(type=types.Type.STRING),
                    description=f"{SEARCH_TAG_COUNT} search phrases",
                ),
            },
            required=["titles", "description", "tags", "searchTags"],
        ),
    },
    required=["transcription", "result"],
)


def build_prompt(language: str) -> str:
    return PROMPT_TEMPLATE.format(
        language=language,
        titles=TITLE_COUNT,
        tags=TAG_COUNT,
        search_tags=SEARCH_TAG_COUNT,
    )


def parse_response(text: str | None) -> InferenceResult:
    """Validate the raw response text against the expected JSON shape.

    Nothing is defaulted: a missing field fails the whole response.
    """
    if not text or not text.strip():
        raise EmptyResponseError()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"The model returned invalid JSON: {exc.msg}") from exc
    try:
        return InferenceResult.model_validate(data)
    except ValidationError as exc:
        missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedResponseError(f"The model response is missing or has invalid fields: {missing}") from exc


class GeminiService:
    """Sends one video to Gemini and returns the transcript plus generated copy."""

    def __init__(self, settings: Settings) -> None:
        self.model = settings.model
        self.language = settings.language
        # Fails here, not on the first request, when the key is absent
        self.client = genai.Client(api_key=settings.require_api_key())

    def build_contents(self, payload: str, mime_type: str) -> list[types.Content]:
        return [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=decode_payload(payload), mime_type=mime_type),
                    types.Part.from_text(text=build_prompt(self.language)),
                ],
            )
        ]

    def build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
        )

    async def process_video(self, payload: str, mime_type: str) -> InferenceResult:
        """Issue the single generate_content call; transport errors propagate as raised."""
        logger.info("Sending %s payload to %s", mime_type, self.model)
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=self.build_contents(payload, mime_type),
            config=self.build_config(),
        )
        return parse_response(response.text)
