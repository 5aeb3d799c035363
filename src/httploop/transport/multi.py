"""Multiplexed transport: many transfers over one :class:`httpx.AsyncClient`.

Each transfer is an asyncio task on a private event loop owned by the
transport. The loop never runs on its own; it is stepped one iteration at a
time by :meth:`AsyncioMultiTransport.perform` and run until the next
completion by :meth:`AsyncioMultiTransport.select`. The calling thread
therefore stays in control, and no background thread is involved.

Typical driving loop::

    handle = multi.add(request, settings)
    while multi.running:
        multi.select(1.0)
        while multi.perform():
            pass
        while (done := multi.info_read()) is not None:
            ...
            multi.remove(done)
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import IO, TYPE_CHECKING, Optional

import httpx

from httploop.models import DEFAULT_MAX_MEMORY_SIZE
from httploop.transport.base import (
    MultiTransport,
    RawResult,
    TransferHandle,
    TransportErrorCode,
    TransportSettings,
)
from httploop.transport.httpx_transport import (
    build_request,
    check_scheme,
    error_result,
    header_lines,
    new_sink,
    notify_headers,
    success_result,
)

if TYPE_CHECKING:
    from httploop.request import Request

logger = logging.getLogger(__name__)


class AsyncioMultiTransport(MultiTransport):
    """Run any number of transfers concurrently on a private event loop.

    Args:
        max_memory_size: Response bodies up to this size stay in memory;
            larger ones spill to a temporary file.
        verify: Verify TLS certificates.
        http_transport: Optional async httpx transport (e.g.
            :class:`httpx.MockTransport`) used instead of the network.
    """

    def __init__(
        self,
        *,
        max_memory_size: int = DEFAULT_MAX_MEMORY_SIZE,
        verify: bool = True,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.max_memory_size = max_memory_size
        self._verify = verify
        self._http_transport = http_transport
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._client: Optional[httpx.AsyncClient] = None
        self._tasks: dict[int, asyncio.Task[None]] = {}
        self._finished: deque[TransferHandle] = deque()
        # Bumped whenever a transfer moves forward; perform() compares it.
        self._progress = 0

    # ------------------------------------------------------------------ #
    # Lazily created loop and client
    # ------------------------------------------------------------------ #

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
        return self._loop

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._verify,
                follow_redirects=False,
                transport=self._http_transport,
            )
            del self._client.headers["Accept-Encoding"]
        return self._client

    # ------------------------------------------------------------------ #
    # Transfers
    # ------------------------------------------------------------------ #

    def add(self, request: Request, settings: TransportSettings) -> TransferHandle:
        handle = TransferHandle()
        loop = self._get_loop()
        self._tasks[handle.id] = loop.create_task(self._transfer(handle, request, dict(settings)))
        return handle

    async def _transfer(self, handle: TransferHandle, request: Request, settings: TransportSettings) -> None:
        self._progress += 1
        try:
            handle.result = await self._fetch(request, settings)
        except Exception as exc:
            logger.debug("Transfer #%d failed", handle.id, exc_info=True)
            handle.result = RawResult.from_error(TransportErrorCode.BAD_FUNCTION_ARGUMENT, str(exc))
        self._finished.append(handle)
        self._progress += 1

    async def _fetch(self, request: Request, settings: TransportSettings) -> RawResult:
        unsupported = check_scheme(request.url)
        if unsupported is not None:
            return unsupported

        client = self._get_client()
        try:
            http_request = build_request(client, request, settings)
            response = await client.send(http_request, stream=True)
        except (httpx.TransportError, httpx.InvalidURL) as exc:
            return error_result(exc)
        self._progress += 1

        sink: Optional[IO[bytes]] = None
        try:
            lines = header_lines(response)
            notify_headers(lines, settings)
            if not settings.get("nobody"):
                sink = new_sink(self.max_memory_size)
                async for chunk in response.aiter_bytes():
                    sink.write(chunk)
                    self._progress += 1
        except (httpx.TransportError, httpx.DecodingError) as exc:
            if sink is not None:
                sink.close()
            return error_result(exc)
        except asyncio.CancelledError:
            if sink is not None:
                sink.close()
            raise
        finally:
            await response.aclose()

        return success_result(response, lines, sink)

    # ------------------------------------------------------------------ #
    # Driving the loop
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def perform(self) -> bool:
        """Run one iteration of the event loop without blocking.

        Returns:
            ``True`` if a transfer advanced during this step and transfers
            are still running, i.e. calling again is likely to make further
            progress right away.
        """
        if self._loop is None or not self.running:
            return False
        before = self._progress
        self._loop.call_soon(self._loop.stop)
        self._loop.run_forever()
        return self._progress != before and self.running > 0

    def info_read(self) -> Optional[TransferHandle]:
        if not self._finished:
            return None
        return self._finished.popleft()

    def select(self, timeout: float) -> int:
        pending = [task for task in self._tasks.values() if not task.done()]
        if not pending or self._loop is None:
            return 0
        before = len(self._finished)
        self._loop.run_until_complete(
            asyncio.wait(pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        )
        return len(self._finished) - before

    def remove(self, handle: TransferHandle) -> None:
        task = self._tasks.pop(handle.id, None)
        if task is not None and not task.done() and self._loop is not None:
            task.cancel()
            self._loop.run_until_complete(asyncio.gather(task, return_exceptions=True))
            logger.debug("Aborted transfer #%d", handle.id)
        if handle in self._finished:
            self._finished.remove(handle)
        if handle.result is not None:
            handle.result.close()

    def close(self) -> None:
        if self._loop is None:
            return
        loop = self._loop
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            loop.run_until_complete(asyncio.gather(*tasks, return_exceptions=True))
        while self._finished:
            handle = self._finished.popleft()
            if handle.result is not None:
                handle.result.close()
        self._tasks.clear()
        try:
            if self._client is not None:
                loop.run_until_complete(self._client.aclose())
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            self._loop = None
            self._client = None
