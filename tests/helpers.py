"""Test helpers shared across modules."""

import asyncio
from typing import Optional

from studio_bridge.dispatcher import DispatcherState
from studio_bridge.llm import LLMCallResult


class FakeBackend:
    """Text backend returning canned content and recording prompts."""

    def __init__(self, content: str = "", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.prompts: list[str] = []
        self.api_keys: list[str] = []

    @property
    def model_id(self) -> str:
        return "fake-model"

    async def generate(self, prompt: str, *, api_key: str, label: str = "") -> LLMCallResult:
        self.prompts.append(prompt)
        self.api_keys.append(api_key)
        if self.error is not None:
            raise self.error
        return LLMCallResult(content=self.content, model_id=self.model_id, duration_ms=0)


async def wait_for_queued(dispatcher: DispatcherState, count: int, timeout: float = 2.0) -> None:
    """Wait until `count` tool calls are queued."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while (await dispatcher.stats()).queued < count:
        if loop.time() > deadline:
            raise AssertionError(f"Timed out waiting for {count} queued tool call(s)")
        await asyncio.sleep(0.01)
