"""Wire schemas shared by the dispatcher and the plugin routes.

The Studio plugin speaks a fixed JSON protocol:

    GET  /request   -> {"args": {"RunCode": {"command": "..."}}, "id": "<uuid>"}
    POST /response  <- {"id": "<uuid>", "response": "..."}

Tool arguments are externally tagged (the variant name is the only key of
the `args` object), so ToolCall converts between that shape and the typed
argument models below.
"""

from enum import Enum
from typing import Any, ClassVar, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    field_serializer,
    field_validator,
)


class ToolArguments(BaseModel):
    """Base for tool argument variants. Each subclass declares its wire tag."""

    model_config = ConfigDict(frozen=True)

    tag: ClassVar[str]


class RunCode(ToolArguments):
    """Run a luau snippet inside Roblox Studio."""

    tag: ClassVar[str] = "RunCode"

    command: str = Field(..., description="Luau source to execute")


# Closed set of tool argument variants. New operation kinds are added to
# this Union and registered in TOOL_ARGUMENT_TYPES.
ToolArgs = Union[RunCode]

TOOL_ARGUMENT_TYPES: dict[str, type[ToolArguments]] = {
    cls.tag: cls for cls in (RunCode,)
}


class ToolCall(BaseModel):
    """A unit of work queued for the Studio plugin."""

    model_config = ConfigDict(frozen=True)

    args: ToolArgs
    id: Optional[UUID] = Field(
        default=None,
        description="Correlation id, assigned when the call is enqueued",
    )

    @field_validator("args", mode="before")
    @classmethod
    def _untag_args(cls, value: Any) -> Any:
        if isinstance(value, ToolArguments):
            return value
        if isinstance(value, dict) and len(value) == 1:
            tag, body = next(iter(value.items()))
            arg_type = TOOL_ARGUMENT_TYPES.get(tag)
            if arg_type is None:
                raise ValueError(f"Unknown tool argument variant: {tag}")
            return arg_type.model_validate(body)
        raise ValueError("Tool arguments must be an object with a single variant key")

    @field_serializer("args")
    def _tag_args(self, args: ToolArguments, info: SerializationInfo) -> dict:
        return {args.tag: args.model_dump(mode=info.mode)}


class ToolResponse(BaseModel):
    """A result posted back by the Studio plugin."""

    id: UUID
    response: str


class DeliveryStatus(str, Enum):
    """Outcome of handing a result to its waiting caller."""
    DELIVERED = "delivered"
    DROPPED = "dropped"  # caller stopped waiting before the result arrived


class DispatcherStats(BaseModel):
    """Point-in-time snapshot of dispatcher state."""

    queued: int = Field(description="Tool calls waiting for pickup")
    pending: int = Field(description="Correlation entries awaiting a result")
    generation: int = Field(description="Number of change notifications sent")
    closed: bool = False
