"""Runtime settings read from the environment (and an optional .env file)."""

import os
import tempfile
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_LANGUAGE = "Russian"


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    language: str = DEFAULT_LANGUAGE
    tick_interval: float = 1.5
    copy_feedback_seconds: float = 2.0
    upload_dir: str = field(default_factory=tempfile.gettempdir)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment, loading .env first."""
        load_dotenv()
        try:
            return cls(
                api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY"),
                model=os.environ.get("VIRAFLOW_MODEL", DEFAULT_MODEL),
                language=os.environ.get("VIRAFLOW_LANGUAGE", DEFAULT_LANGUAGE),
                tick_interval=float(os.environ.get("VIRAFLOW_TICK_INTERVAL", "1.5")),
                copy_feedback_seconds=float(os.environ.get("VIRAFLOW_COPY_FEEDBACK", "2")),
                upload_dir=os.environ.get("VIRAFLOW_UPLOAD_DIR", tempfile.gettempdir()),
                log_level=os.environ.get("VIRAFLOW_LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError("Missing GEMINI_API_KEY (or API_KEY) environment variable.")
        return self.api_key
