"""
Chat Listener

Binds a TCP socket for the chat application and serves it with uvicorn on a
background thread.

Design choices
--------------
- Port conflicts are retried on the next higher port, in a bounded loop.
- SO_REUSEADDR is set, so a restart reclaims its port while old
  connections linger in TIME_WAIT.
- Starting a server returns a ``ChatServerHandle`` owned by the caller; there
  is no process-wide "active server". Replacing a running server is the
  caller's decision (stop, then start).
"""

from __future__ import annotations

import errno
import logging
import os
import socket
import threading
import time
from typing import Optional

import uvicorn

from ..chat.handler import ChatHandler
from ..config import settings
from ..core.errors import ListenerBindError, NamespaceNotConfiguredError
from ..main import create_app
from ..store import NamespaceStore

logger = logging.getLogger("ragchat.listener")


STARTUP_TIMEOUT = 10.0


def bind_socket(host: str, port: int, max_attempts: int) -> socket.socket:
    """
    Bind a TCP socket on ``port`` or the first free port above it.

    Raises
    ------
    ListenerBindError
        If ``max_attempts`` consecutive ports are in use, or binding fails
        for any reason other than the address being in use.
    """
    for candidate in range(port, port + max(1, max_attempts)):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if os.name == "posix":
            # Allows rebinding over TIME_WAIT; an active listener still conflicts.
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, candidate))
        except OSError as exc:
            sock.close()
            if exc.errno == errno.EADDRINUSE:
                logger.info("Port %d in use, trying %d", candidate, candidate + 1)
                continue
            raise ListenerBindError(f"Cannot bind {host}:{candidate}: {exc}") from exc

        return sock

    raise ListenerBindError(
        f"No free port in {port}-{port + max(1, max_attempts) - 1} on {host}"
    )


class ChatServerHandle:
    """
    A running chat server. Call ``stop()`` to shut it down.
    """

    def __init__(
        self,
        namespace: str,
        host: str,
        port: int,
        server: uvicorn.Server,
        thread: threading.Thread,
        sock: socket.socket,
    ) -> None:
        self.namespace = namespace
        self.host = host
        self.port = port
        self._server = server
        self._thread = thread
        self._sock = sock

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("127.0.0.1", "0.0.0.0") else self.host
        return f"http://{host}:{self.port}"

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._server.should_exit

    def stop(self, timeout: float = 5.0) -> None:
        if not self._thread.is_alive():
            self._sock.close()
            return

        logger.info("Stopping chat server for %s on port %d", self.namespace, self.port)
        self._server.should_exit = True
        self._thread.join(timeout)
        self._sock.close()

    def __repr__(self) -> str:
        return f"ChatServerHandle(namespace={self.namespace!r}, url={self.url!r})"


def start_chat_server(
    namespace: str,
    chat_handler: ChatHandler,
    store: NamespaceStore,
    port: Optional[int] = None,
    host: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> ChatServerHandle:
    """
    Serve ``namespace`` on a background thread.

    Raises
    ------
    NamespaceNotConfiguredError
        If the namespace has no config.

    ListenerBindError
        If no port could be bound, or the server failed to start.
    """
    if store.load_config(namespace) is None:
        raise NamespaceNotConfiguredError(namespace)

    host = host or settings.chat_host
    port = settings.chat_port if port is None else port
    max_attempts = max_attempts or settings.max_port_attempts

    sock = bind_socket(host, port, max_attempts)
    bound_port = sock.getsockname()[1]

    app = create_app(namespace, chat_handler)
    server = uvicorn.Server(uvicorn.Config(app, log_level="info", lifespan="off"))

    thread = threading.Thread(
        target=server.run,
        kwargs={"sockets": [sock]},
        name=f"ragchat-{namespace}-{bound_port}",
        daemon=True,
    )
    thread.start()

    deadline = time.monotonic() + STARTUP_TIMEOUT
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            server.should_exit = True
            sock.close()
            raise ListenerBindError(f"Chat server failed to start on port {bound_port}")
        time.sleep(0.05)

    handle = ChatServerHandle(namespace, host, bound_port, server, thread, sock)
    logger.info("Chat server running for %s at %s", namespace, handle.url)
    return handle
