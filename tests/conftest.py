# tests/conftest.py
"""Shared fixtures: an in-memory PageDriver and its request/response objects."""

import inspect
from collections import defaultdict

import pytest

from pagecrawl.driver import PageDriver
from pagecrawl.link_collector import FIND_LINKS_SCRIPT


class FakeRequest:
    """Request double recording how it was answered."""

    def __init__(self, url, headers=None, resource_type="document", redirect_chain=None, response=None):
        self._url = url
        self._headers = headers or {}
        self._resource_type = resource_type
        self._redirect_chain = redirect_chain or []
        self._response = response
        self.action = None
        self.body = None

    def url(self):
        return self._url

    def headers(self):
        return self._headers

    def resource_type(self):
        return self._resource_type

    def redirect_chain(self):
        return list(self._redirect_chain)

    def response(self):
        return self._response

    async def continue_(self):
        self.action = "continue"

    async def respond(self, body=""):
        self.action = "respond"
        self.body = body

    async def abort(self):
        self.action = "abort"


class FakeResponse:
    """Response double."""

    def __init__(self, url, status=200, headers=None, body="", request=None, ok=None):
        self._url = url
        self._status = status
        self._headers = headers or {"content-type": "text/html"}
        self._body = body
        self._request = request or FakeRequest(url)
        self._ok = (200 <= status <= 299) if ok is None else ok

    def ok(self):
        return self._ok

    def url(self):
        return self._url

    def status(self):
        return self._status

    def headers(self):
        return self._headers

    def request(self):
        return self._request

    async def text(self):
        return self._body


class FakeDialog:
    def __init__(self, kind="alert", message="hello", fail=False):
        self._kind = kind
        self._message = message
        self._fail = fail
        self.dismissed = False

    def type(self):
        return self._kind

    def message(self):
        return self._message

    async def dismiss(self):
        if self._fail:
            raise RuntimeError("dialog already closed")
        self.dismissed = True


class FakeConsoleMessage:
    def __init__(self, kind="log", text="ready"):
        self._kind = kind
        self._text = text

    def type(self):
        return self._kind

    def text(self):
        return self._text


class FakePageDriver(PageDriver):
    """
    PageDriver that records every call.

    ``link_reports`` is a list of (href, resolve) pairs replayed through the
    exposed callback when the link collection script is evaluated.
    ``failures`` maps method names to exceptions raised by that method.
    """

    def __init__(self, response=None, link_reports=None, evaluation_result=None, failures=None):
        self.response = response
        self.link_reports = link_reports or []
        self.evaluation_result = evaluation_result
        self.failures = failures or {}
        self.calls = []
        self.handlers = defaultdict(list)
        self.exposed = {}
        self.closed = False

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def call_names(self):
        return [name for name, _ in self.calls]

    async def navigate(self, url, timeout=None, wait_until=None):
        self._record("navigate", url, timeout, wait_until)
        return self.response

    async def evaluate(self, expression, *args):
        self._record("evaluate", expression, *args)
        if expression == FIND_LINKS_SCRIPT:
            push = self.exposed[args[0]]
            for href, resolve in self.link_reports:
                push(href, resolve)
            return None
        return self.evaluation_result

    async def evaluate_on_new_document(self, script):
        self._record("evaluate_on_new_document", script)

    async def authenticate(self, username, password):
        self._record("authenticate", username, password)

    async def emulate(self, device):
        self._record("emulate", device)

    async def set_cache_enabled(self, enabled):
        self._record("set_cache_enabled", enabled)

    async def set_user_agent(self, user_agent):
        self._record("set_user_agent", user_agent)

    async def set_extra_headers(self, headers):
        self._record("set_extra_headers", dict(headers))

    async def set_javascript_enabled(self, enabled):
        self._record("set_javascript_enabled", enabled)

    async def set_request_interception(self, enabled):
        self._record("set_request_interception", enabled)

    async def expose_function(self, name, fn):
        self._record("expose_function", name)
        self.exposed[name] = fn

    def on(self, event, handler):
        self.handlers[event].append(handler)

    async def wait_for(self, target, options=None, *args):
        self._record("wait_for", target, options, *args)

    async def screenshot(self, options=None):
        self._record("screenshot", options)
        return b"\x89PNG"

    async def add_script_tag(self, options):
        self._record("add_script_tag", options)

    async def close(self):
        self._record("close")
        self.closed = True

    async def emit(self, event, payload):
        """Deliver an event to registered handlers, awaiting async ones."""
        for handler in self.handlers[event]:
            outcome = handler(payload)
            if inspect.isawaitable(outcome):
                await outcome


@pytest.fixture
def ok_response():
    """A 200 response for http://example.com/ without redirects."""
    request = FakeRequest("http://example.com/", headers={"accept": "text/html"})
    return FakeResponse(
        "http://example.com/",
        status=200,
        headers={"content-type": "text/html"},
        body="<html><body><a href='/a'>a</a></body></html>",
        request=request,
    )


@pytest.fixture
def driver(ok_response):
    return FakePageDriver(
        response=ok_response,
        link_reports=[("/a", True), ("http://other.com/b", True)],
        evaluation_result={"title": "Example"},
    )
