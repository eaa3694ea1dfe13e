from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, MutableMapping

log = logging.getLogger(__name__)

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


async def within(awaitable: Awaitable[Any], deadline: float) -> Any:
    remaining = deadline - asyncio.get_running_loop().time()
    if remaining <= 0:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise asyncio.TimeoutError
    return await asyncio.wait_for(awaitable, remaining)


class TimeoutMiddleware:
    """Bound the total time spent reading the body and writing the response.

    Each HTTP request gets one read deadline and one write deadline, counted
    from the moment the request reaches the app. Missing either raises
    ``asyncio.TimeoutError`` inside the request task, which aborts only that
    request. Non-HTTP scopes (lifespan) pass through untouched.
    """

    def __init__(self, app: ASGIApp, read_timeout: float, write_timeout: float) -> None:
        self.app = app
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        loop = asyncio.get_running_loop()
        read_deadline = loop.time() + self.read_timeout
        write_deadline = loop.time() + self.write_timeout

        async def bounded_receive() -> Message:
            try:
                return await within(receive(), read_deadline)
            except asyncio.TimeoutError:
                log.warning("read timeout after %ss on %s", self.read_timeout, path)
                raise

        async def bounded_send(message: Message) -> None:
            try:
                await within(send(message), write_deadline)
            except asyncio.TimeoutError:
                log.warning("write timeout after %ss on %s", self.write_timeout, path)
                raise

        await self.app(scope, bounded_receive, bounded_send)
