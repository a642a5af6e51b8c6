"""
Runtime configuration for the presentation composer.

Values are read from the process environment after ``load_dotenv()`` has
merged a local ``.env`` file. Recognised variables:

    PDF_FETCH_TIMEOUT_MS   per-attempt deadline for the tail download (60000)
    PDF_FETCH_RETRIES      number of download attempts (3)
    PDF_FETCH_BACKOFF_MS   base delay between attempts, doubled each time (1000)
    ENG_TAIL_URL           tail PDF appended to English presentations
    AR_TAIL_URL            tail PDF appended to Arabic presentations
    TEMPLATE_PATH          background PDF whose first page is personalised
    FONT_DIR               directory holding the Inter and Amiri TTF files
    LOG_LEVEL              logging level name (INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from errors import ConfigurationError

ROOT_DIR = Path(__file__).resolve().parent

DEFAULT_ENG_TAIL_URL = (
    "https://do-mediaout-7107.fra1.digitaloceanspaces.com/7107374016/"
    "48963020-8bd7-4e86-8e2f-e907866e3474.pdf"
)
DEFAULT_AR_TAIL_URL = (
    "https://do-mediaout-7107.fra1.digitaloceanspaces.com/7107374016/"
    "ae16790f-6474-4eed-9338-bc33d06714d1.pdf"
)

# Environment variable -> Settings field
_ENV_FIELDS: dict[str, str] = {
    "PDF_FETCH_TIMEOUT_MS": "fetch_timeout_ms",
    "PDF_FETCH_RETRIES": "fetch_retries",
    "PDF_FETCH_BACKOFF_MS": "fetch_backoff_ms",
    "ENG_TAIL_URL": "eng_tail_url",
    "AR_TAIL_URL": "ar_tail_url",
    "TEMPLATE_PATH": "template_path",
    "FONT_DIR": "font_dir",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    fetch_timeout_ms: int = Field(60000, gt=0)
    fetch_retries: int = Field(3, ge=1)
    fetch_backoff_ms: int = Field(1000, ge=0)
    eng_tail_url: str = DEFAULT_ENG_TAIL_URL
    ar_tail_url: str = DEFAULT_AR_TAIL_URL
    template_path: Path = ROOT_DIR / "name.pdf"
    font_dir: Path = ROOT_DIR / "fonts"
    log_level: str = "INFO"

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from *environ* (defaults to ``os.environ``).

        Empty values are treated as absent so the documented default applies.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        values = {
            field: environ[key]
            for key, field in _ENV_FIELDS.items()
            if environ.get(key, "").strip()
        }
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid composer configuration: {exc}") from exc
