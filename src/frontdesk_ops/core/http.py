"""Thread-local ``requests`` sessions shared by the directory components."""

import threading

import requests

# (connect, read) timeouts are always finite; read comes from config
CONNECT_TIMEOUT = 10.0


class ThreadLocalSessions:
    """Hands out one ``requests.Session`` per thread.

    ``requests.Session`` is not documented as thread-safe, and directory
    calls run on worker threads (``asyncio.to_thread``), so each thread
    gets its own connection pool.
    """

    def __init__(self, insecure: bool = False):
        self._insecure = insecure
        self._local = threading.local()

    def get(self) -> requests.Session:
        if not hasattr(self._local, "session"):
            session = requests.Session()
            session.verify = not self._insecure
            session.headers["Content-Type"] = "application/json"
            self._local.session = session
        return self._local.session
