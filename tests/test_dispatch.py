"""Tests for response handling."""

from __future__ import annotations

import asyncio

from crm_adapter.connection import Connection
from crm_adapter.dispatch import Outcome, handle_response, response_handler
from crm_adapter.hooks.chain import HookChain


def _run(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class TestOutcome:
    def test_ok(self):
        assert Outcome(None, [1]).ok
        assert not Outcome(ValueError("x"), None).ok

    def test_unpack(self):
        error, data = Outcome(None, [{"id": 1}])
        assert error is None
        assert data == [{"id": 1}]


class TestHandleResponse:
    def test_no_error_no_response(self):
        outcome = _run(handle_response(Connection(), None, None))
        assert outcome == Outcome(None, None)

    def test_error_without_response(self):
        failure = RuntimeError("timeout")
        outcome = _run(handle_response(Connection(), failure, None))
        assert outcome.error is failure
        assert outcome.data is None

    def test_response_data_surfaced(self):
        outcome = _run(handle_response(Connection(), None, FakeResponse([{"id": 1}])))
        assert outcome == Outcome(None, [{"id": 1}])

    def test_after_hooks_run_on_error(self):
        seen = []
        failure = RuntimeError("down")

        def after(error, response):
            seen.append(error)

        conn = Connection(after_hooks=HookChain([after]))
        _run(handle_response(conn, failure, None))
        assert seen == [failure]

    def test_after_hooks_all_run_and_first_error_wins(self):
        order = []
        first = ValueError("first")

        def hook_a(error, response):
            order.append("a")
            return first

        def hook_b(error, response):
            order.append("b")
            return KeyError("second")

        def hook_c(error, response):
            order.append("c")

        conn = Connection(after_hooks=HookChain([hook_a, hook_b, hook_c]))
        outcome = _run(handle_response(conn, None, FakeResponse([1])))

        assert order == ["a", "b", "c"]
        assert outcome.error is first
        assert outcome.data is None

    def test_after_hook_can_clear_data(self):
        def after(error, response):
            response.data = None

        conn = Connection(after_hooks=HookChain([after]))
        outcome = _run(handle_response(conn, None, FakeResponse([1])))
        assert outcome == Outcome(None, None)


class TestResponseHandler:
    def test_falsy_error_with_response_becomes_none(self):
        handler = response_handler(Connection())
        outcome = _run(handler("", FakeResponse({"id": 1})))
        assert outcome.error is None
        assert outcome.data == {"id": 1}

    def test_falsy_error_without_response_kept(self):
        handler = response_handler(Connection())
        outcome = _run(handler(None, None))
        assert outcome == Outcome(None, None)

    def test_real_error_kept(self):
        failure = ValueError("bad")
        handler = response_handler(Connection())
        outcome = _run(handler(failure, FakeResponse({"detail": "bad"})))
        assert outcome.error is failure
        assert outcome.data == {"detail": "bad"}
