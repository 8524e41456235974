"""Shared pytest fixtures: a live server on an ephemeral port and client trees."""

import threading
import time

import pytest

from boxsync.server import Server


def wait_for(condition, timeout=10.0, interval=0.05):
    """Poll condition until it returns True or timeout seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def server_root(tmp_path):
    return tmp_path / "server"


@pytest.fixture
def client_root(tmp_path):
    root = tmp_path / "client"
    root.mkdir()
    return root


@pytest.fixture
def populated_root(client_root):
    (client_root / "file1").write_bytes(b"file1 content")
    (client_root / "file2").write_bytes(b"file2 content")
    (client_root / "file3").write_bytes(b"")
    (client_root / "dir1").mkdir()
    (client_root / "dir1" / "file4").write_bytes(b"file4 content")
    return client_root


def start_server(root, **kwargs):
    """Bind a plain-TCP server for root on 127.0.0.1 and serve it from a thread."""
    srv = Server("127.0.0.1", 0, str(root), **kwargs)
    srv.bind()
    thread = threading.Thread(target=srv.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True)
    thread.start()
    return srv, thread


@pytest.fixture
def server(server_root):
    """Plain-TCP server serving server_root on 127.0.0.1."""
    srv, thread = start_server(server_root)
    yield srv
    srv.close()
    thread.join(5)


def tree_snapshot(root):
    """Map of relative path -> file bytes (None for directories)."""
    snapshot = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        snapshot[rel] = None if path.is_dir() else path.read_bytes()
    return snapshot
