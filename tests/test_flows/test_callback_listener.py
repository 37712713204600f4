"""Tests for callback evaluation and the local callback listener."""

from __future__ import annotations

import socket
import threading
import time
from http.client import HTTPConnection

import pytest

from oauth2cli.exceptions import (
    AuthServerError,
    FlowCancelledError,
    FlowTimeoutError,
    MissingCodeError,
    ServerBindError,
    StateMismatchError,
)
from oauth2cli.flows.callback import (
    CLOSE_WINDOW_PAGE,
    CallbackListener,
    CodeOutcome,
    FailureOutcome,
    ListenerState,
    evaluate_callback,
)


def _simulate_callback(port: int, path: str) -> tuple[int, bytes]:
    """Send a GET request to the local callback server."""
    conn = HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", path)
        response = conn.getresponse()
        return response.status, response.read()
    finally:
        conn.close()


def _listener(port: int, state: str = "expected-state") -> CallbackListener:
    return CallbackListener(
        expected_state=state, callback_path="/oauth/callback", host="127.0.0.1", port=port
    )


# -------------------------------------------------------------------------
# evaluate_callback
# -------------------------------------------------------------------------


class TestEvaluateCallback:
    def test_valid_code(self) -> None:
        outcome = evaluate_callback("code=xyz&state=abc", "abc", "http://h/cb")
        assert outcome == CodeOutcome("xyz")

    def test_state_mismatch_is_case_sensitive(self) -> None:
        outcome = evaluate_callback("code=xyz&state=abc", "ABC", "http://h/cb")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, StateMismatchError)
        assert outcome.error.expected == "ABC"
        assert outcome.error.actual == "abc"

    def test_missing_state_is_a_mismatch(self) -> None:
        outcome = evaluate_callback("code=xyz", "abc", "http://h/cb")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, StateMismatchError)
        assert outcome.error.actual == ""

    def test_state_checked_before_server_error(self) -> None:
        outcome = evaluate_callback("error=access_denied&state=other", "abc", "http://h/cb")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, StateMismatchError)

    def test_error_wins_over_code(self) -> None:
        outcome = evaluate_callback(
            "code=xyz&error=access_denied&error_description=User+denied&state=abc",
            "abc",
            "http://h/cb",
        )
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, AuthServerError)
        assert outcome.error.error == "access_denied"
        assert outcome.error.description == "User denied"

    def test_error_description_alone_is_a_server_error(self) -> None:
        outcome = evaluate_callback("error_description=boom&state=abc", "abc", "http://h/cb")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, AuthServerError)
        assert outcome.error.error == ""
        assert outcome.error.description == "boom"

    def test_empty_error_is_ignored(self) -> None:
        outcome = evaluate_callback("error=&code=xyz&state=abc", "abc", "http://h/cb")
        assert outcome == CodeOutcome("xyz")

    def test_missing_code(self) -> None:
        outcome = evaluate_callback("state=abc", "abc", "http://h/cb?state=abc")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, MissingCodeError)
        assert outcome.error.url == "http://h/cb?state=abc"

    def test_empty_code(self) -> None:
        outcome = evaluate_callback("code=&state=abc", "abc", "http://h/cb")
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, MissingCodeError)

    def test_first_value_wins_for_repeated_parameters(self) -> None:
        outcome = evaluate_callback("code=one&code=two&state=abc", "abc", "http://h/cb")
        assert outcome == CodeOutcome("one")


# -------------------------------------------------------------------------
# CallbackListener
# -------------------------------------------------------------------------


class TestCallbackListener:
    def test_resolves_with_code(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            assert listener.state is ListenerState.LISTENING
            status, body = _simulate_callback(
                free_port, "/oauth/callback?code=auth-code&state=expected-state"
            )
            outcome = listener.wait(timeout=5)

        assert status == 200
        assert body == CLOSE_WINDOW_PAGE
        assert outcome == CodeOutcome("auth-code")
        assert listener.state is ListenerState.CLOSED

    def test_resolves_with_state_mismatch(self, free_port: int) -> None:
        with _listener(free_port, state="ABC") as listener:
            _simulate_callback(free_port, "/oauth/callback?code=auth-code&state=abc")
            outcome = listener.wait(timeout=5)

        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, StateMismatchError)

    def test_resolves_with_server_error(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            status, body = _simulate_callback(
                free_port,
                "/oauth/callback?error=access_denied&error_description=User+denied"
                "&state=expected-state",
            )
            outcome = listener.wait(timeout=5)

        assert status == 200
        assert body == CLOSE_WINDOW_PAGE
        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, AuthServerError)

    def test_missing_code_reports_full_url(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            _simulate_callback(free_port, "/oauth/callback?state=expected-state")
            outcome = listener.wait(timeout=5)

        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, MissingCodeError)
        assert outcome.error.url.endswith("/oauth/callback?state=expected-state")
        assert outcome.error.url.startswith("http://")

    def test_other_paths_get_404_and_do_not_resolve(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            status, _ = _simulate_callback(free_port, "/favicon.ico")
            assert status == 404
            assert not listener.resolved

            _simulate_callback(free_port, "/oauth/callback?code=c&state=expected-state")
            outcome = listener.wait(timeout=5)

        assert outcome == CodeOutcome("c")

    def test_only_first_request_counts(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            _simulate_callback(free_port, "/oauth/callback?code=first&state=expected-state")
            status, body = _simulate_callback(
                free_port, "/oauth/callback?code=second&state=expected-state"
            )
            outcome = listener.wait(timeout=5)

        assert status == 200
        assert body == CLOSE_WINDOW_PAGE
        assert outcome == CodeOutcome("first")

    def test_wait_blocks_until_callback(self, free_port: int) -> None:
        def send_callback() -> None:
            time.sleep(0.3)
            _simulate_callback(free_port, "/oauth/callback?code=late&state=expected-state")

        with _listener(free_port) as listener:
            t = threading.Thread(target=send_callback, daemon=True)
            t.start()
            outcome = listener.wait(timeout=10)
            t.join(timeout=5)

        assert outcome == CodeOutcome("late")

    def test_timeout(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            outcome = listener.wait(timeout=0.2)

        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, FlowTimeoutError)
        assert outcome.error.timeout == 0.2

    def test_request_after_timeout_does_not_change_outcome(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            first = listener.wait(timeout=0.1)
            _simulate_callback(free_port, "/oauth/callback?code=late&state=expected-state")
            second = listener.wait(timeout=1)

        assert first is second
        assert isinstance(first, FailureOutcome)

    def test_cancel_from_another_thread(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            timer = threading.Timer(0.2, listener.cancel, kwargs={"reason": "user abort"})
            timer.start()
            outcome = listener.wait(timeout=10)
            timer.join()

        assert isinstance(outcome, FailureOutcome)
        assert isinstance(outcome.error, FlowCancelledError)
        assert outcome.error.reason == "user abort"

    def test_cancel_after_resolution_is_a_no_op(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            _simulate_callback(free_port, "/oauth/callback?code=c&state=expected-state")
            listener.wait(timeout=5)
            assert listener.cancel() is False

        assert listener.outcome == CodeOutcome("c")

    def test_port_released_after_close(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            _simulate_callback(free_port, "/oauth/callback?code=c&state=expected-state")
            listener.wait(timeout=5)

        with _listener(free_port) as second:
            _simulate_callback(free_port, "/oauth/callback?code=again&state=expected-state")
            outcome = second.wait(timeout=5)

        assert outcome == CodeOutcome("again")

    def test_port_released_after_timeout(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            listener.wait(timeout=0.1)

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind(("127.0.0.1", free_port))

    def test_port_released_when_body_raises(self, free_port: int) -> None:
        with pytest.raises(RuntimeError, match="boom"):
            with _listener(free_port):
                raise RuntimeError("boom")

        with _listener(free_port):
            pass

    def test_bind_error(self, free_port: int) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)

            listener = _listener(free_port)
            with pytest.raises(ServerBindError) as exc_info:
                listener.start()

        assert exc_info.value.port == free_port
        assert listener.state is ListenerState.IDLE

    def test_port_zero_picks_a_free_port(self) -> None:
        with _listener(0) as listener:
            assert listener.port != 0
            _simulate_callback(listener.port, "/oauth/callback?code=c&state=expected-state")
            outcome = listener.wait(timeout=5)

        assert outcome == CodeOutcome("c")

    def test_start_twice_raises(self, free_port: int) -> None:
        with _listener(free_port) as listener:
            with pytest.raises(RuntimeError):
                listener.start()

    def test_independent_listeners_do_not_share_routes(self) -> None:
        first = CallbackListener("s1", callback_path="/one", host="127.0.0.1", port=0)
        second = CallbackListener("s2", callback_path="/two", host="127.0.0.1", port=0)
        with first, second:
            status, _ = _simulate_callback(first.port, "/two?code=c&state=s2")
            assert status == 404
            _simulate_callback(second.port, "/two?code=c2&state=s2")
            _simulate_callback(first.port, "/one?code=c1&state=s1")

            assert first.wait(timeout=5) == CodeOutcome("c1")
            assert second.wait(timeout=5) == CodeOutcome("c2")

    def test_close_is_idempotent(self, free_port: int) -> None:
        listener = _listener(free_port)
        listener.start()
        listener.close()
        listener.close()
        assert listener.state is ListenerState.CLOSED
