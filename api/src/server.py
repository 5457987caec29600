"""
HTTP server runner with bounded graceful shutdown.

The listener runs on its own thread while the main thread waits for an
interrupt signal. On signal the server is asked to stop and given a fixed
amount of time to do so; past that deadline the remaining work is abandoned.
"""

import signal
import sys
import threading
import time
from typing import Iterable, Optional

import structlog
import uvicorn
from fastapi import FastAPI

from api.src.config import GRACEFUL_SHUTDOWN_SHARE, Settings, get_settings
from api.src.main import create_app
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class GracefulServer:
    """Run uvicorn on a background thread and stop it within a deadline."""

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 8080,
        shutdown_timeout: float = 5.0,
        log_level: str = "info",
        graceful_timeout: Optional[float] = None,
    ):
        """
        Initialize the server.

        Args:
            app: ASGI application to serve
            host: Bind host
            port: Bind port; 0 picks a free port
            shutdown_timeout: Seconds allowed for shutdown once requested
            log_level: uvicorn log level
            graceful_timeout: Seconds uvicorn waits for open connections;
                defaults to GRACEFUL_SHUTDOWN_SHARE of shutdown_timeout
        """
        if graceful_timeout is None:
            graceful_timeout = shutdown_timeout * GRACEFUL_SHUTDOWN_SHARE
        if graceful_timeout >= shutdown_timeout:
            raise ValueError("graceful_timeout must be shorter than shutdown_timeout")

        self.shutdown_timeout = shutdown_timeout
        self.graceful_timeout = graceful_timeout
        self.config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            access_log=False,
            timeout_graceful_shutdown=graceful_timeout,
        )
        self.server = uvicorn.Server(self.config)
        self._thread: Optional[threading.Thread] = None
        self._quit = threading.Event()

    @property
    def started(self) -> bool:
        return self.server.started

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def bound_port(self) -> Optional[int]:
        """Port the listener is bound to, once started."""
        for server in getattr(self.server, "servers", []):
            for sock in server.sockets:
                return sock.getsockname()[1]
        return None

    def start(self) -> None:
        """Start listening on a separate thread."""
        if self.running:
            raise RuntimeError("server already running")

        # uvicorn leaves signal handling to the caller off the main thread
        self._thread = threading.Thread(
            target=self.server.run,
            name="http-listener",
            daemon=True
        )
        self._thread.start()
        logger.info("server_starting", host=self.config.host, port=self.config.port)

    def wait_until_started(self, timeout: float = 5.0) -> bool:
        """
        Block until the listener accepts connections.

        Returns:
            True if started within ``timeout``; False if it did not or the
            listener thread died
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.server.started:
                logger.info("server_started", port=self.bound_port)
                return True
            if not self.running:
                break
            time.sleep(0.05)
        logger.error("server_start_failed", timeout=timeout)
        return False

    def request_shutdown(self) -> None:
        """Wake up wait_for_signal() as if an interrupt had arrived."""
        self._quit.set()

    def _handle_signal(self, signum, frame) -> None:
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        self._quit.set()

    def wait_for_signal(self, signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS) -> None:
        """
        Block the calling (main) thread until a shutdown signal arrives.

        Also returns when request_shutdown() is called or the listener
        thread exits on its own.
        """
        previous = {sig: signal.signal(sig, self._handle_signal) for sig in signals}
        try:
            while not self._quit.wait(timeout=0.5):
                if not self.running:
                    logger.warning("server_exited_unexpectedly")
                    break
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the server, waiting at most ``timeout`` seconds.

        Args:
            timeout: Deadline in seconds; defaults to shutdown_timeout

        Returns:
            True if the listener stopped in time, False if it was abandoned
        """
        timeout = self.shutdown_timeout if timeout is None else timeout
        logger.info("shutdown_server", timeout=timeout)

        self.server.should_exit = True
        if self._thread is None:
            return True

        self._thread.join(timeout)
        if self._thread.is_alive():
            self.server.force_exit = True
            logger.warning("shutdown_timed_out", timeout=timeout)
            return False

        logger.info("server_exiting")
        return True


def serve(settings: Optional[Settings] = None) -> int:
    """
    Run the application until interrupted.

    Returns:
        Process exit code
    """
    settings = settings or get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.app_name,
        environment=settings.environment,
    )

    server = GracefulServer(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        shutdown_timeout=settings.shutdown_timeout,
        log_level=settings.log_level,
        graceful_timeout=settings.graceful_shutdown_timeout,
    )
    server.start()
    if not server.wait_until_started():
        server.shutdown()
        return 1

    server.wait_for_signal()
    return 0 if server.shutdown() else 1


def main() -> None:
    """Console script entry point."""
    sys.exit(serve())
