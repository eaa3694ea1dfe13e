from __future__ import annotations

import asyncio
import enum
import logging
import signal
import threading
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .config import Settings
from .main import create_app
from .middleware import TimeoutMiddleware

log = logging.getLogger(__name__)

STARTUP_TIMEOUT = 10.0
# extra time allowed after the graceful deadline for aborted connections to close
JOIN_GRACE = 5.0


class State(str, enum.Enum):
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


class StartupError(RuntimeError):
    pass


class DrainingServer(uvicorn.Server):
    """uvicorn server whose shutdown drops whatever is still open at the deadline.

    When ``graceful_timeout`` elapses the remaining transports are aborted
    before their request tasks are cancelled; clients see a reset connection.
    """

    def __init__(self, config: uvicorn.Config, graceful_timeout: float) -> None:
        super().__init__(config)
        self.graceful_timeout = graceful_timeout

    def abort_connections(self) -> None:
        connections = list(self.server_state.connections)
        tasks = list(self.server_state.tasks)
        log.warning(
            "graceful timeout exceeded, aborting %d connection(s) and %d task(s)",
            len(connections),
            len(tasks),
        )
        for connection in connections:
            connection.transport.abort()
        for task in tasks:
            task.cancel()

    async def shutdown(self, sockets=None) -> None:
        timer = asyncio.get_running_loop().call_later(self.graceful_timeout, self.abort_connections)
        try:
            await super().shutdown(sockets=sockets)
        finally:
            timer.cancel()


class ServiceServer:
    """Run the app in a background thread until interrupted, then drain.

    The uvicorn event loop owns the listener and schedules one task per
    connection. The calling thread only waits for ``SIGINT`` and then asks
    uvicorn to shut down, bounded by ``settings.graceful_timeout``.
    """

    def __init__(self, settings: Settings, app: Optional[FastAPI] = None) -> None:
        self.settings = settings
        self.app = app if app is not None else create_app(settings)
        self.state = State.STARTING
        self._interrupted = threading.Event()
        config = uvicorn.Config(
            TimeoutMiddleware(
                self.app,
                read_timeout=settings.read_timeout,
                write_timeout=settings.write_timeout,
            ),
            host=settings.host,
            port=settings.service_port,
            timeout_keep_alive=int(settings.idle_timeout),
            log_config=None,
        )
        self._server = DrainingServer(config, settings.graceful_timeout)
        # uvicorn only installs its own signal handlers on the main thread
        self._thread = threading.Thread(target=self._server.run, name="http-serve", daemon=True)

    @property
    def serving(self) -> bool:
        return self._thread.is_alive()

    def start(self, timeout: float = STARTUP_TIMEOUT) -> None:
        """Launch the accept loop and block until it is listening."""
        address = f"{self.settings.host}:{self.settings.service_port}"
        log.info("starting %s on %s", self.settings.service_name, address)
        self._thread.start()
        deadline = time.monotonic() + timeout
        while not self._server.started:
            if not self._thread.is_alive():
                self.state = State.STOPPED
                raise StartupError(f"could not serve on {address}")
            if time.monotonic() > deadline:
                self._server.should_exit = True
                self.state = State.STOPPED
                raise StartupError(f"timed out starting on {address}")
            time.sleep(0.05)
        self.state = State.SERVING

    def interrupt(self, signum: Optional[int] = None, frame=None) -> None:
        self._interrupted.set()

    def wait(self) -> bool:
        """Block until interrupted. Returns False if the server stopped on its own."""
        while not self._interrupted.wait(0.1):
            if not self._thread.is_alive():
                return False
        return True

    def drain(self) -> None:
        """Stop accepting and give in-flight requests until the graceful deadline."""
        self.state = State.DRAINING
        log.info("draining connections for up to %ss", self.settings.graceful_timeout)
        self._server.should_exit = True
        self._thread.join(self.settings.graceful_timeout + JOIN_GRACE)
        if self._thread.is_alive():
            log.warning("server did not stop within the graceful timeout")
        self.state = State.STOPPED

    def run(self) -> int:
        """Serve until SIGINT and return the process exit status."""
        signal.signal(signal.SIGINT, self.interrupt)
        try:
            self.start()
        except StartupError as exc:
            log.error("%s", exc)
            return 1
        if not self.wait():
            log.error("server stopped unexpectedly")
            self.state = State.STOPPED
            return 1
        self.drain()
        log.info("shutting down")
        return 0
