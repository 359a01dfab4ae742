"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Callable, TypeVar

from dotenv import load_dotenv

from engsmart.constants.generation_constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GENERATION_TIMEOUT_SECONDS,
)
from engsmart.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from engsmart.core.errors import ValidationError

DEFAULT_DATA_DIR = Path("data")
DEFAULT_TEACHER_PASSPHRASE = "123456"

_Number = TypeVar("_Number", int, float)


@dataclass(frozen=True, slots=True)
class AppSettings:
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    generation_timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS
    data_dir: Path = DEFAULT_DATA_DIR
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    teacher_passphrase: str = DEFAULT_TEACHER_PASSPHRASE
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls, load_env_file: bool = True) -> "AppSettings":
        if load_env_file:
            load_dotenv()
        env = os.environ
        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY") or None,
            gemini_model=env.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            generation_timeout_seconds=_parse_number(
                env.get("ENGSMART_GENERATION_TIMEOUT"), DEFAULT_GENERATION_TIMEOUT_SECONDS, float
            ),
            data_dir=Path(env.get("ENGSMART_DATA_DIR", str(DEFAULT_DATA_DIR))),
            host=env.get("ENGSMART_HOST", DEFAULT_HOST),
            port=_parse_number(env.get("ENGSMART_PORT"), DEFAULT_PORT, int),
            teacher_passphrase=env.get("ENGSMART_TEACHER_PASSPHRASE", DEFAULT_TEACHER_PASSPHRASE),
            log_level=env.get("ENGSMART_LOG_LEVEL", "INFO"),
        )


def _parse_number(raw_value: str | None, default: _Number, convert: Callable[[str], _Number]) -> _Number:
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = convert(raw_value.strip())
    except ValueError as exc:
        raise ValidationError(f"Invalid numeric setting: {raw_value!r}") from exc
    if value <= 0:
        raise ValidationError(f"Numeric setting must be positive: {raw_value!r}")
    return value
