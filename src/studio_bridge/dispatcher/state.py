"""Shared dispatcher state: work queue, correlation table, change notifier.

One DispatcherState is created per application (in the FastAPI lifespan)
and injected into every route. All three structures live behind a single
asyncio.Lock; the change notifier is an asyncio.Condition bound to that same
lock, so a poller that finds the queue empty and starts waiting can never
miss a notification sent in between.

The lock is only held for queue/dict manipulation. Callers awaiting a
result, and pollers waiting for work, always wait with the lock released.

Lifecycle of a tool call:
1. run_tool() enqueues it and registers a one-shot future under its id
2. next_tool_call() pops it for the plugin (the only place that pops)
3. submit_response() resolves the future
4. run_tool() wakes up and removes its own correlation entry; if the caller
   was cancelled instead, the entry stays until submit_response() reports
   the late result as dropped, or close() discards it
"""

import asyncio
import logging
import uuid
from collections import deque
from typing import Optional
from uuid import UUID

from studio_bridge.dispatcher.schemas import (
    DeliveryStatus,
    DispatcherStats,
    ToolArgs,
    ToolCall,
    ToolResponse,
)
from studio_bridge.errors import (
    ChannelClosedError,
    DispatcherClosedError,
    UnknownToolCallError,
)

logger = logging.getLogger(__name__)


class DispatcherState:
    """Queue + correlation table + notifier, guarded by one lock."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._changed = asyncio.Condition(self._lock)
        self._queue: deque[ToolCall] = deque()
        self._pending: dict[UUID, asyncio.Future] = {}
        self._generation = 0
        self._closed = False

    def _notify(self) -> None:
        # Caller must hold self._lock
        self._generation += 1
        self._changed.notify_all()

    async def run_tool(self, args: ToolArgs) -> str:
        """Enqueue a tool call and wait for the plugin's response.

        There is no timeout here: the wait ends when the plugin posts a
        result or the dispatcher is closed. If the awaiting task is
        cancelled (e.g. the HTTP client disconnected) the correlation entry
        is kept so a later plugin result can be reported as dropped.

        Args:
            args: Tool arguments to send to the plugin

        Returns:
            The response string exactly as the plugin posted it

        Raises:
            ChannelClosedError: If the result channel closed without a value
        """
        loop = asyncio.get_running_loop()

        async with self._changed:
            if self._closed:
                raise ChannelClosedError("Dispatcher is closed; tool call not queued")
            call_id = uuid.uuid4()
            call = ToolCall(args=args, id=call_id)
            result = loop.create_future()
            self._queue.append(call)
            self._pending[call_id] = result
            self._notify()
            queued = len(self._queue)

        logger.info(f"Queued tool call {call_id} ({args.tag}), {queued} waiting for pickup")

        try:
            return await result
        finally:
            # Synchronous so a second cancel() cannot interrupt it
            if result.cancelled():
                logger.info(f"Caller for {call_id} stopped waiting; a late result will be dropped")
            else:
                self._pending.pop(call_id, None)
                logger.debug(f"Released correlation entry for {call_id}")

    async def next_tool_call(self, timeout: float) -> Optional[ToolCall]:
        """Pop the next queued tool call, waiting up to `timeout` seconds.

        Every wake-up re-checks the queue under the lock: a notification
        only means "something changed", another poller may already have
        taken the item.

        Returns:
            The next ToolCall, or None if nothing was queued within timeout

        Raises:
            DispatcherClosedError: If the dispatcher shuts down while waiting
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        async with self._changed:
            while True:
                if self._closed:
                    raise DispatcherClosedError("Dispatcher closed while waiting for work")
                if self._queue:
                    call = self._queue.popleft()
                    logger.info(f"Tool call {call.id} picked up ({len(self._queue)} still queued)")
                    return call

                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    # Condition.wait re-acquires the lock before the timeout
                    # propagates; loop once more to re-check the queue.
                    pass

    async def submit_response(self, response: ToolResponse) -> DeliveryStatus:
        """Deliver a plugin response to the caller waiting on its id.

        The correlation entry is left in place for the waiting caller to
        remove. An entry whose caller was cancelled is removed here and the
        result is reported as dropped. A second response for an id that
        already received one is rejected the same way as an id that never
        existed.

        Raises:
            UnknownToolCallError: If no caller is waiting on this id
        """
        async with self._lock:
            result = self._pending.get(response.id)
            if result is None or (result.done() and not result.cancelled()):
                raise UnknownToolCallError(response.id)

            if result.cancelled():
                del self._pending[response.id]
                logger.warning(
                    f"Dropped response for {response.id}: caller stopped waiting"
                )
                return DeliveryStatus.DROPPED

            result.set_result(response.response)

        logger.info(f"Delivered response for {response.id} ({len(response.response):,} chars)")
        return DeliveryStatus.DELIVERED

    async def close(self) -> None:
        """Shut down: fail waiting callers, wake pollers, drop queued calls."""
        async with self._changed:
            if self._closed:
                return
            self._closed = True
            dropped = len(self._queue)
            self._queue.clear()

            failed = 0
            for call_id, result in list(self._pending.items()):
                if result.cancelled():
                    del self._pending[call_id]
                elif not result.done():
                    result.set_exception(
                        ChannelClosedError("Result channel closed before a response arrived")
                    )
                    failed += 1
            self._notify()

        logger.info(
            f"Dispatcher closed: {dropped} queued call(s) dropped, "
            f"{failed} waiting caller(s) failed"
        )

    async def stats(self) -> DispatcherStats:
        """Consistent snapshot of queue depth and in-flight entries."""
        async with self._lock:
            return DispatcherStats(
                queued=len(self._queue),
                pending=len(self._pending),
                generation=self._generation,
                closed=self._closed,
            )

    @property
    def closed(self) -> bool:
        return self._closed
