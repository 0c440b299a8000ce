"""Prompt route: Gemini generation with optional execution in Studio.

Requires GEMINI_API_KEY; a missing key fails the request, not the server.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from studio_bridge.api.dependencies import get_orchestrator
from studio_bridge.errors import (
    ExternalApiError,
    MissingCredentialError,
    ToolExecutionError,
)
from studio_bridge.orchestrator import PromptOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["prompt"])


class PromptRequest(BaseModel):
    """Natural-language instruction for Studio."""

    prompt: str = Field(..., description="What to build or change", examples=["insert a red car"])


@router.post("/prompt", response_class=PlainTextResponse)
async def run_prompt(
    payload: PromptRequest,
    orchestrator: PromptOrchestrator = Depends(get_orchestrator),
):
    try:
        text = await orchestrator.handle(payload.prompt)
    except MissingCredentialError as e:
        logger.error(str(e))
        return PlainTextResponse(str(e), status_code=500)
    except ExternalApiError as e:
        logger.error(f"Gemini request failed: {e}")
        return PlainTextResponse(str(e), status_code=500)
    except ToolExecutionError as e:
        logger.error(f"Failed to run code: {e}")
        return PlainTextResponse(f"Failed to run code: {e}", status_code=500)

    return PlainTextResponse(text)
