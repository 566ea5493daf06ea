import socket

import httpx
import pytest

from ragchat_server.core.errors import ListenerBindError, NamespaceNotConfiguredError
from ragchat_server.server.listener import bind_socket, start_chat_server
from ragchat_server.store import NamespaceConfig


@pytest.fixture
def blocker():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock
    sock.close()


def test_bind_socket_moves_to_next_port(blocker):
    taken = blocker.getsockname()[1]

    sock = bind_socket("127.0.0.1", taken, max_attempts=5)
    try:
        port = sock.getsockname()[1]
        assert taken < port <= taken + 4
    finally:
        sock.close()


def test_bind_socket_gives_up(blocker):
    taken = blocker.getsockname()[1]

    with pytest.raises(ListenerBindError):
        bind_socket("127.0.0.1", taken, max_attempts=1)


def test_start_requires_configured_namespace(store, chat_handler):
    with pytest.raises(NamespaceNotConfiguredError):
        start_chat_server("missing", chat_handler, store, port=0, host="127.0.0.1")


def test_start_serve_and_stop(store, chat_handler):
    store.save_config(NamespaceConfig(namespace="acme", system_prompt="You help."))

    handle = start_chat_server("acme", chat_handler, store, port=0, host="127.0.0.1")
    try:
        assert handle.is_running
        assert handle.url == f"http://localhost:{handle.port}"

        r = httpx.get(f"http://127.0.0.1:{handle.port}/")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "namespace": "acme"}

        r = httpx.post(f"http://127.0.0.1:{handle.port}/chat", json={"message": "hello"})
        assert r.status_code == 200
        assert r.json()["reply"] == "Fake reply."
    finally:
        handle.stop()

    assert not handle.is_running


def test_restart_reuses_port_after_keep_alive_client(store, chat_handler):
    store.save_config(NamespaceConfig(namespace="acme", system_prompt="You help."))

    first = start_chat_server("acme", chat_handler, store, port=0, host="127.0.0.1")
    port = first.port
    with httpx.Client() as client:
        assert client.get(f"http://127.0.0.1:{port}/").status_code == 200
        first.stop()

    second = start_chat_server("acme", chat_handler, store, port=port, host="127.0.0.1", max_attempts=1)
    try:
        assert second.port == port
    finally:
        second.stop()
