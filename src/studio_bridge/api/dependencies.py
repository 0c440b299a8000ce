"""FastAPI dependencies resolving per-app objects from app.state.

The dispatcher and orchestrator are built once in the application lifespan
(see studio_bridge.api.main.create_app); routes receive them through these
dependencies instead of importing module-level globals.
"""

from fastapi import Request

from studio_bridge.config import Settings
from studio_bridge.dispatcher import DispatcherState
from studio_bridge.orchestrator import PromptOrchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> DispatcherState:
    return request.app.state.dispatcher


def get_orchestrator(request: Request) -> PromptOrchestrator:
    return request.app.state.orchestrator
