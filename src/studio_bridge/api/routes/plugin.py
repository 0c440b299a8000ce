"""Routes polled by the Roblox Studio plugin.

Endpoints:
    GET  /request    Long-poll for the next tool call
                     200 + ToolCall JSON | 202 (empty body) | 500 "Error: ..."
    POST /response   Post the result of a tool call
                     200 {"id", "status"} | 404 "Unknown ID"

The plugin calls GET /request again immediately after every 202.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from studio_bridge.api.dependencies import get_dispatcher, get_settings
from studio_bridge.config import Settings
from studio_bridge.dispatcher import DispatcherState, ToolResponse
from studio_bridge.errors import DispatcherClosedError, UnknownToolCallError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plugin"])


@router.get("/request")
async def request_tool_call(
    dispatcher: DispatcherState = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Return the next queued tool call, waiting up to the long-poll bound."""
    try:
        call = await dispatcher.next_tool_call(settings.long_poll_seconds)
    except DispatcherClosedError as e:
        logger.error(f"Long poll failed: {e}")
        return PlainTextResponse(f"Error: {e}", status_code=500)

    if call is None:
        return Response(status_code=202)
    return JSONResponse(content=call.model_dump(mode="json"))


@router.post("/response")
async def submit_tool_response(
    payload: ToolResponse,
    dispatcher: DispatcherState = Depends(get_dispatcher),
):
    """Hand a plugin result to the caller waiting on its id."""
    try:
        status = await dispatcher.submit_response(payload)
    except UnknownToolCallError:
        logger.warning(f"Response for unknown tool call {payload.id}")
        return PlainTextResponse("Unknown ID", status_code=404)

    return {"id": str(payload.id), "status": status.value}
