"""Prompt orchestration: generate text, extract luau, run it in Studio.

Sequential glue on top of the dispatcher:
1. Read the API key (per request)
2. Ask the text-generation backend for a response
3. Look for a fenced code block with a recognised tag
4. If there is one, run it through the dispatcher and append the output
"""

import logging
from typing import Iterable

from studio_bridge.dispatcher import DispatcherState, RunCode
from studio_bridge.errors import ChannelClosedError, ToolExecutionError
from studio_bridge.llm import TextBackend, extract_code_block, get_api_key

logger = logging.getLogger(__name__)


def format_response(generated: str, output: str) -> str:
    return f"Gemini says:\n{generated}\n\nRoblox Studio output:\n{output}"


class PromptOrchestrator:
    """Turns a natural-language prompt into (optionally executed) luau."""

    def __init__(
        self,
        dispatcher: DispatcherState,
        backend: TextBackend,
        code_tags: Iterable[str] = ("luau",),
    ):
        self.dispatcher = dispatcher
        self.backend = backend
        self.code_tags = tuple(code_tags)

    async def handle(self, prompt: str) -> str:
        """Run one prompt end to end.

        Returns:
            The generated text alone, or the generated text plus the Studio
            output when a code block was executed

        Raises:
            MissingCredentialError: If GEMINI_API_KEY is not set
            ExternalApiError: If the text-generation call fails
            ToolExecutionError: If the extracted code could not be run
        """
        api_key = get_api_key()
        result = await self.backend.generate(prompt, api_key=api_key, label="prompt")

        code = extract_code_block(result.content, self.code_tags)
        if not code:
            logger.info("No runnable code block in response, returning text only")
            return result.content

        logger.info(f"Running {len(code):,} chars of extracted code in Studio")
        try:
            output = await self.dispatcher.run_tool(RunCode(command=code))
        except ChannelClosedError as e:
            raise ToolExecutionError(str(e)) from e

        return format_response(result.content, output)
