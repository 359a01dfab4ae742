"""Defaults for the Gemini question generator."""

DEFAULT_GEMINI_MODEL: str = "gemini-2.5-pro"
DEFAULT_GENERATION_TIMEOUT_SECONDS: float = 180.0
