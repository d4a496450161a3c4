"""pytest configuration and shared fixtures for LAN bridge tests."""

import socket
import time

import pytest

from config_loader import _apply_defaults


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


class FakeDatagramSocket:
    """Scripted stand-in for a UDP socket.

    ``replies`` is consumed in order by ``recvfrom``; an exception instance in
    the list is raised instead of returned. Once empty, ``recvfrom`` behaves
    like a read timeout.
    """

    def __init__(
        self,
        replies=None,
        bind_error=None,
        send_error=None,
        connect_error=None,
        local_address=("192.168.1.20", 50000),
    ):
        self.replies = list(replies or [])
        self.bind_error = bind_error
        self.send_error = send_error
        self.connect_error = connect_error
        self.local_address = local_address
        self.bound = None
        self.connected = None
        self.options = []
        self.timeouts = []
        self.sent = []
        self.closed = False

    def bind(self, address):
        if self.bind_error:
            raise self.bind_error
        self.bound = address

    def setsockopt(self, *args):
        self.options.append(args)

    def settimeout(self, value):
        self.timeouts.append(value)

    def sendto(self, data, address):
        if self.send_error:
            raise self.send_error
        self.sent.append((data, address))
        return len(data)

    def recvfrom(self, bufsize):
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, BaseException):
                raise reply
            return reply
        time.sleep(min(self.timeouts[-1] if self.timeouts else 0.01, 0.01))
        raise socket.timeout("timed out")

    def connect(self, address):
        if self.connect_error:
            raise self.connect_error
        self.connected = address

    def getsockname(self):
        return self.local_address

    def close(self):
        self.closed = True


@pytest.fixture
def fake_socket():
    """Build a FakeDatagramSocket and a socket_factory that returns it."""
    def _make(**kwargs):
        sock = FakeDatagramSocket(**kwargs)
        return sock, (lambda *args, **kw: sock)
    return _make


@pytest.fixture
def config():
    return _apply_defaults({})


@pytest.fixture
def unused_tcp_port():
    """A TCP port number that nothing is listening on."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port
