"""Tests for the dispatcher: queueing, correlation, long-polling, shutdown."""

import asyncio
import time
import uuid

import pytest

from helpers import wait_for_queued
from studio_bridge.config import LONG_POLL_SECONDS
from studio_bridge.dispatcher import (
    DeliveryStatus,
    DispatcherState,
    RunCode,
    ToolResponse,
)
from studio_bridge.errors import (
    ChannelClosedError,
    DispatcherClosedError,
    UnknownToolCallError,
)


class TestRoundTrip:
    """Enqueue, pick up, respond."""

    @pytest.mark.asyncio
    async def test_run_code_round_trip(self):
        """Enqueue print(1), pick it up, respond "1", caller gets "1"."""
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="print(1)")))

        call = await dispatcher.next_tool_call(timeout=1.0)
        assert call is not None
        assert call.id is not None
        assert call.args == RunCode(command="print(1)")

        status = await dispatcher.submit_response(ToolResponse(id=call.id, response="1"))
        assert status == DeliveryStatus.DELIVERED
        assert await caller == "1"

    @pytest.mark.asyncio
    async def test_payload_returned_unmodified(self):
        dispatcher = DispatcherState()
        payload = "  line one\n\tline two ✓  \n"
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))

        call = await dispatcher.next_tool_call(timeout=1.0)
        await dispatcher.submit_response(ToolResponse(id=call.id, response=payload))

        assert await caller == payload

    @pytest.mark.asyncio
    async def test_entry_removed_after_result(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))

        call = await dispatcher.next_tool_call(timeout=1.0)
        assert (await dispatcher.stats()).pending == 1

        await dispatcher.submit_response(ToolResponse(id=call.id, response="ok"))
        await caller

        stats = await dispatcher.stats()
        assert stats.pending == 0
        assert stats.queued == 0

    @pytest.mark.asyncio
    async def test_ids_are_unique(self):
        dispatcher = DispatcherState()
        callers = [
            asyncio.create_task(dispatcher.run_tool(RunCode(command=str(i))))
            for i in range(20)
        ]
        await wait_for_queued(dispatcher, 20)

        calls = [await dispatcher.next_tool_call(timeout=1.0) for _ in range(20)]
        assert len({c.id for c in calls}) == 20

        for call in calls:
            await dispatcher.submit_response(ToolResponse(id=call.id, response=call.args.command))
        assert await asyncio.gather(*callers) == [str(i) for i in range(20)]


class TestOrdering:
    """Pickup order matches enqueue order."""

    @pytest.mark.asyncio
    async def test_fifo_pickup(self):
        dispatcher = DispatcherState()
        commands = ["first", "second", "third", "fourth"]
        callers = []
        for i, command in enumerate(commands, start=1):
            callers.append(asyncio.create_task(dispatcher.run_tool(RunCode(command=command))))
            await wait_for_queued(dispatcher, i)

        picked = [await dispatcher.next_tool_call(timeout=1.0) for _ in commands]
        assert [c.args.command for c in picked] == commands

        for call in picked:
            await dispatcher.submit_response(ToolResponse(id=call.id, response="done"))
        await asyncio.gather(*callers)

    @pytest.mark.asyncio
    async def test_picked_up_call_not_redelivered(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="once")))

        assert await dispatcher.next_tool_call(timeout=1.0) is not None
        assert await dispatcher.next_tool_call(timeout=0.05) is None

        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller


class TestSubmission:
    """Result submission correlation rules."""

    @pytest.mark.asyncio
    async def test_unknown_id_rejected(self):
        dispatcher = DispatcherState()
        with pytest.raises(UnknownToolCallError):
            await dispatcher.submit_response(ToolResponse(id=uuid.uuid4(), response="x"))

    @pytest.mark.asyncio
    async def test_second_submission_rejected(self):
        """Submitting twice for the same id succeeds at most once."""
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        call = await dispatcher.next_tool_call(timeout=1.0)

        await dispatcher.submit_response(ToolResponse(id=call.id, response="first"))
        with pytest.raises(UnknownToolCallError):
            await dispatcher.submit_response(ToolResponse(id=call.id, response="second"))

        assert await caller == "first"

        # After the caller cleaned up, the id is simply unknown
        with pytest.raises(UnknownToolCallError):
            await dispatcher.submit_response(ToolResponse(id=call.id, response="third"))

    @pytest.mark.asyncio
    async def test_cancelled_caller_reports_dropped(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        call = await dispatcher.next_tool_call(timeout=1.0)

        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        await asyncio.sleep(0)

        status = await dispatcher.submit_response(ToolResponse(id=call.id, response="late"))
        assert status == DeliveryStatus.DROPPED
        assert (await dispatcher.stats()).pending == 0

        with pytest.raises(UnknownToolCallError):
            await dispatcher.submit_response(ToolResponse(id=call.id, response="later"))

    @pytest.mark.asyncio
    async def test_repeated_cancel_keeps_entry_for_late_result(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        call = await dispatcher.next_tool_call(timeout=1.0)

        caller.cancel()
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        assert (await dispatcher.stats()).pending == 1

        status = await dispatcher.submit_response(ToolResponse(id=call.id, response="late"))
        assert status == DeliveryStatus.DROPPED

    @pytest.mark.asyncio
    async def test_completed_caller_releases_entry(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        call = await dispatcher.next_tool_call(timeout=1.0)

        await dispatcher.submit_response(ToolResponse(id=call.id, response="ok"))
        assert await caller == "ok"
        assert (await dispatcher.stats()).pending == 0


class TestLongPoll:
    """Bounded waiting for work."""

    @pytest.mark.asyncio
    async def test_empty_queue_times_out_with_none(self):
        dispatcher = DispatcherState()
        start = time.monotonic()
        assert await dispatcher.next_tool_call(timeout=0.1) is None
        assert time.monotonic() - start >= 0.09

    @pytest.mark.asyncio
    async def test_zero_timeout_returns_immediately(self):
        dispatcher = DispatcherState()
        assert await dispatcher.next_tool_call(timeout=0) is None

    @pytest.mark.asyncio
    async def test_waiting_poll_wakes_on_enqueue(self):
        dispatcher = DispatcherState()
        poller = asyncio.create_task(dispatcher.next_tool_call(timeout=5.0))
        await asyncio.sleep(0.05)
        assert not poller.done()

        start = time.monotonic()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="wake")))
        call = await poller
        assert time.monotonic() - start < 1.0
        assert call.args.command == "wake"

        await dispatcher.submit_response(ToolResponse(id=call.id, response="ok"))
        assert await caller == "ok"

    @pytest.mark.asyncio
    async def test_racing_pollers_take_one_item_each(self):
        """Two pollers woken by the same notification: one wins, one keeps waiting."""
        dispatcher = DispatcherState()
        pollers = [
            asyncio.create_task(dispatcher.next_tool_call(timeout=0.3))
            for _ in range(2)
        ]
        await asyncio.sleep(0.05)
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="only")))

        results = await asyncio.gather(*pollers)
        found = [r for r in results if r is not None]
        assert len(found) == 1
        assert found[0].args.command == "only"

        await dispatcher.submit_response(ToolResponse(id=found[0].id, response="ok"))
        await caller

    @pytest.mark.asyncio
    async def test_notifications_bump_generation(self):
        dispatcher = DispatcherState()
        before = (await dispatcher.stats()).generation
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        await wait_for_queued(dispatcher, 1)
        assert (await dispatcher.stats()).generation == before + 1
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_default_bound_is_about_fifteen_seconds(self):
        dispatcher = DispatcherState()
        start = time.monotonic()
        assert await dispatcher.next_tool_call(timeout=LONG_POLL_SECONDS) is None
        elapsed = time.monotonic() - start
        assert 14.0 <= elapsed <= 16.0


class TestClose:
    """Shutdown behaviour."""

    @pytest.mark.asyncio
    async def test_close_fails_waiting_caller_and_cleans_up(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        await wait_for_queued(dispatcher, 1)

        await dispatcher.close()

        with pytest.raises(ChannelClosedError):
            await caller
        stats = await dispatcher.stats()
        assert stats.pending == 0
        assert stats.queued == 0
        assert stats.closed is True

    @pytest.mark.asyncio
    async def test_close_fails_picked_up_call(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        call = await dispatcher.next_tool_call(timeout=1.0)

        await dispatcher.close()

        with pytest.raises(ChannelClosedError):
            await caller
        with pytest.raises(UnknownToolCallError):
            await dispatcher.submit_response(ToolResponse(id=call.id, response="late"))

    @pytest.mark.asyncio
    async def test_close_discards_abandoned_entries(self):
        dispatcher = DispatcherState()
        caller = asyncio.create_task(dispatcher.run_tool(RunCode(command="x")))
        await dispatcher.next_tool_call(timeout=1.0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await dispatcher.close()
        assert (await dispatcher.stats()).pending == 0

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_pollers(self):
        dispatcher = DispatcherState()
        poller = asyncio.create_task(dispatcher.next_tool_call(timeout=5.0))
        await asyncio.sleep(0.05)

        await dispatcher.close()

        with pytest.raises(DispatcherClosedError):
            await poller

    @pytest.mark.asyncio
    async def test_run_tool_after_close_raises(self):
        dispatcher = DispatcherState()
        await dispatcher.close()
        with pytest.raises(ChannelClosedError):
            await dispatcher.run_tool(RunCode(command="x"))

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        dispatcher = DispatcherState()
        await dispatcher.close()
        await dispatcher.close()
        assert dispatcher.closed
