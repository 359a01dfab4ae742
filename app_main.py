"""Application entry point for the EngSmart quiz API."""

from __future__ import annotations

from engsmart.constants.about import APP_NAME
from engsmart.core.question_generator import GeminiQuestionGenerator
from engsmart.core.quiz_manager import QuizManager
from engsmart.core.storage import JsonFileStore
from engsmart.server.api_server import create_api_app, run_api_server
from engsmart.utils.logging_config import configure_logging
from engsmart.utils.settings import AppSettings


def main() -> None:
    """Load settings, wire the services, and serve the API."""
    settings = AppSettings.from_environment()
    logger = configure_logging(settings.log_level)
    logger.info("Starting %s…", APP_NAME)
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; question generation will fail until it is.")

    store = JsonFileStore(settings.data_dir)
    logger.info("Storing quizzes and submissions in %s", store.data_dir.resolve())
    generator = GeminiQuestionGenerator(api_key=settings.gemini_api_key, model=settings.gemini_model)
    quiz_manager = QuizManager(
        store=store,
        generator=generator,
        generation_timeout_seconds=settings.generation_timeout_seconds,
    )
    app = create_api_app(quiz_manager, teacher_passphrase=settings.teacher_passphrase)
    run_api_server(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
