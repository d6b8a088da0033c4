"""Shared fixtures: an in-memory stand-in for requests.Session."""

import threading
import time

import pytest
import requests
from requests.structures import CaseInsensitiveDict


class FakeResponse:
    """Just enough of requests.Response for the checker."""

    def __init__(self, url, status_code=200, text="", content_type="text/html; charset=utf-8", history=None):
        self.url = url
        self.status_code = status_code
        self.text = text
        self.body_delay = 0.0
        self.body_reads = 0
        self.headers = CaseInsensitiveDict({"Content-Type": content_type} if content_type else {})
        self.history = history or []
        self.closed = False

    @property
    def content(self):
        self.body_reads += 1
        if self.body_delay:
            time.sleep(self.body_delay)
        return self.text.encode("utf-8")

    def close(self):
        self.closed = True


class FakeSession:
    """Serves canned responses keyed by URL and records every request.

    A route is a FakeResponse, an exception to raise, or a list of those
    consumed one per request. Unknown URLs answer 404. delays maps a URL
    to its own latency in seconds.
    """

    def __init__(self, latency=0.0):
        self.routes = {}
        self.calls = []
        self.latency = latency
        self.delays = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def page(self, url, *hrefs, status=200):
        body = "<html><body>" + "".join(f'<a href="{h}">link</a>' for h in hrefs) + "</body></html>"
        self.routes[url] = FakeResponse(url, status, body)

    def respond(self, url, status=200, text="", content_type="text/html; charset=utf-8"):
        self.routes[url] = FakeResponse(url, status, text, content_type)

    def redirect(self, url, to, status=200, text="", content_type="text/html; charset=utf-8"):
        hop = FakeResponse(url, 301, content_type=None)
        self.routes[url] = FakeResponse(to, status, text, content_type, history=[hop])

    def response(self, url, status=200, text="<html></html>"):
        """Build a response without registering it, for use in fail() sequences."""
        return FakeResponse(url, status, text)

    def fail(self, url, *outcomes):
        self.routes[url] = list(outcomes)

    def requested(self, url):
        return [call for call in self.calls if call["url"] == url]

    def get(self, url, headers=None, timeout=None, allow_redirects=True, stream=False):
        with self._lock:
            self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(url, self.latency)
            if delay:
                time.sleep(delay)
            with self._lock:
                route = self.routes.get(url)
                if isinstance(route, list):
                    route = route.pop(0) if len(route) > 1 else route[0]
            if route is None:
                return FakeResponse(url, 404, "", "text/plain")
            if isinstance(route, Exception):
                raise route
            return route
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("Network error")
