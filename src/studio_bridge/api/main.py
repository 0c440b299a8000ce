"""Studio Bridge API.

Serves the Roblox Studio plugin and prompt callers:
- GET  /request   long-poll pickup for the plugin
- POST /response  plugin results
- POST /prompt    Gemini generation + luau execution
- GET  /health    dispatcher snapshot

The app is built by create_app(); the dispatcher is constructed in the
lifespan handler and closed on shutdown, which fails any caller still
waiting on the plugin.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI

from studio_bridge import __version__
from studio_bridge.api.dependencies import get_dispatcher
from studio_bridge.api.routes import plugin, prompt
from studio_bridge.config import Settings
from studio_bridge.dispatcher import DispatcherState
from studio_bridge.llm import GeminiBackend, TextBackend
from studio_bridge.orchestrator import PromptOrchestrator

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[TextBackend] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Service settings (defaults to Settings.from_env())
        backend: Text-generation backend (defaults to Gemini from settings)
    """
    settings = settings or Settings.from_env()
    backend = backend or GeminiBackend.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        dispatcher = DispatcherState()
        app.state.dispatcher = dispatcher
        app.state.orchestrator = PromptOrchestrator(
            dispatcher, backend, code_tags=settings.code_tags
        )
        logger.info(
            f"Studio bridge ready (model={backend.model_id}, "
            f"long poll={settings.long_poll_seconds:g}s)"
        )
        yield
        logger.info("Shutting down studio bridge")
        await dispatcher.close()

    app = FastAPI(
        title="Studio Bridge",
        description="Bridges HTTP callers to the polling Roblox Studio plugin.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(plugin.router)
    app.include_router(prompt.router)

    @app.get("/health")
    async def health(dispatcher: DispatcherState = Depends(get_dispatcher)):
        """Health check with a dispatcher snapshot."""
        stats = await dispatcher.stats()
        return {
            "status": "closed" if stats.closed else "healthy",
            "version": __version__,
            "dispatcher": stats.model_dump(),
        }

    return app
