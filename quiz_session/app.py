"""FastAPI application serving the quiz panel."""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quiz_session.config import EDU_API_BASE, LOG_LEVEL, ControllerSettings
from quiz_session.logging_setup import setup_console_logging
from quiz_session.routes import quiz
from quiz_session.services.auth import provider_from_env
from quiz_session.services.http_client import AuthorizedHttpClient
from quiz_session.services.quiz_api import QuizApi
from quiz_session.services.session_controller import QuizSessionController


def default_api() -> QuizApi:
    """Quiz API client for the configured edu service."""
    return QuizApi(AuthorizedHttpClient(EDU_API_BASE, provider_from_env()))


def create_app(
    api: QuizApi | None = None,
    settings: ControllerSettings | None = None,
) -> FastAPI:
    setup_console_logging(LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.controller = QuizSessionController(api or default_api(), settings)
        try:
            yield
        finally:
            # Panel teardown: flush what we can, record CLOSE, stop loops.
            await app.state.controller.close()

    app = FastAPI(title="Quiz Session API", lifespan=lifespan)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(quiz.router)
    return app
