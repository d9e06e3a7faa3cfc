import asyncio
import os

import pytest


class FakeResponse:
    def __init__(self, status, headers=None):
        self.status = status
        self.headers = headers or {}
        self.read_called = False

    async def read(self):
        self.read_called = True
        return b""


class FakeRequest:
    """Stands in for aiohttp's request context manager."""

    def __init__(self, session, result):
        self.session = session
        self.result = result

    async def __aenter__(self):
        self.session.in_flight += 1
        self.session.peak_in_flight = max(self.session.peak_in_flight, self.session.in_flight)
        try:
            if self.session.latency:
                await asyncio.sleep(self.session.latency)
            if isinstance(self.result, BaseException):
                raise self.result
        except BaseException:
            self.session.in_flight -= 1
            raise
        return self.result

    async def __aexit__(self, exc_type, exc, tb):
        self.session.in_flight -= 1
        return False


class FakeSession:
    """Answers GETs from a routing table instead of the network.

    Requests are keyed by the Host header when one is set, else by URL.
    A route is a single answer or a list consumed in order (the last entry
    repeats). An answer is a status code, a (status, headers) tuple, or an
    exception instance to raise.
    """

    def __init__(self, routes=None, default=404, latency=0.0):
        self.routes = {k: (list(v) if isinstance(v, list) else [v]) for k, v in (routes or {}).items()}
        self.default = default
        self.latency = latency
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    def get(self, url, headers=None, allow_redirects=True):
        key = headers.get('Host') if headers and 'Host' in headers else url
        self.calls.append({'url': url, 'headers': headers, 'allow_redirects': allow_redirects, 'key': key})

        answers = self.routes.get(key)
        if answers:
            answer = answers.pop(0) if len(answers) > 1 else answers[0]
        else:
            answer = self.default

        if isinstance(answer, BaseException):
            return FakeRequest(self, answer)
        if isinstance(answer, tuple):
            status, resp_headers = answer
            return FakeRequest(self, FakeResponse(status, resp_headers))
        return FakeRequest(self, FakeResponse(answer))

    def hits(self, key):
        return sum(1 for call in self.calls if call['key'] == key)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Factory so each test can build its own routing table."""
    return FakeSession


@pytest.fixture
def clean_env(monkeypatch):
    """Private copy of os.environ without SLURP_* settings."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("SLURP_")}
    monkeypatch.setattr(os, "environ", env)
    return env
