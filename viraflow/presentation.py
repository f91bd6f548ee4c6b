"""Text shaping for the copy buttons of the result page."""

import time
from typing import Callable, Optional

from .models import GeneratedContent, MediaAsset

COPY_ALL = "copy-all"


def format_hashtag(tag: str) -> str:
    """Return ``tag`` with exactly one leading ``#``."""
    return "#" + tag.strip().lstrip("#")


def format_hashtags(tags: list[str]) -> str:
    return " ".join(format_hashtag(tag) for tag in tags)


def format_search_tags(tags: list[str]) -> str:
    return ", ".join(tags)


def copy_all_text(content: GeneratedContent) -> str:
    """Concatenate first title, description, hashtags and search tags into one block."""
    sections = [
        f"TITLE:\n{content.titles[0] if content.titles else ''}",
        f"DESCRIPTION:\n{content.description}",
        f"HASHTAGS:\n{format_hashtags(content.tags)}",
        f"SEO TAGS:\n{format_search_tags(content.search_tags)}",
    ]
    return "\n\n".join(sections)


def field_text(asset: MediaAsset, field: str) -> str:
    """Text behind one copy button.

    Raises ValueError before a result exists and KeyError for unknown fields.
    """
    content = asset.result
    if content is None:
        raise ValueError("No generated content yet")
    if field == COPY_ALL:
        return copy_all_text(content)
    if field == "desc":
        return content.description
    if field == "tags":
        return format_hashtags(content.tags)
    if field == "searchTags":
        return format_search_tags(content.search_tags)
    if field == "trans":
        return asset.transcript or ""
    if field.startswith("title-"):
        try:
            index = int(field[len("title-"):])
        except ValueError:
            raise KeyError(field) from None
        if not 0 <= index < len(content.titles):
            raise KeyError(field)
        return content.titles[index]
    raise KeyError(field)


class CopyFeedback:
    """Remembers the last copied field until ``delay`` seconds have passed."""

    def __init__(self, delay: float = 2.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.delay = delay
        self._clock = clock
        self._field: Optional[str] = None
        self._expires_at = 0.0

    def mark(self, field: str) -> None:
        self._field = field
        self._expires_at = self._clock() + self.delay

    def clear(self) -> None:
        self._field = None

    @property
    def current(self) -> Optional[str]:
        if self._field is not None and self._clock() >= self._expires_at:
            self._field = None
        return self._field
