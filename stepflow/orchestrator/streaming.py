"""Turn a call that reports progress through an `on_chunk` callback into an async stream."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Any, AsyncIterator, Awaitable, Callable

from stepflow.core.contracts.functions import StreamChunk

_DONE = object()


async def relay_chunks(run: Callable[[Callable[[str], None]], Awaitable[Any]]) -> AsyncIterator[StreamChunk]:
    """Run `run(on_chunk)` as a task, yield each chunk as it arrives, then one final chunk with the result.

    An exception raised by the call is re-raised to the consumer after the chunks already queued.
    """
    queue: asyncio.Queue = asyncio.Queue()

    def on_chunk(text: str) -> None:
        if text:
            queue.put_nowait(StreamChunk(content=text))

    task = asyncio.create_task(run(on_chunk))
    task.add_done_callback(lambda _: queue.put_nowait(_DONE))
    try:
        while True:
            item = await queue.get()
            if item is _DONE:
                break
            yield item
        result = task.result()
        yield StreamChunk(is_final=True, parsed_result=result)
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
