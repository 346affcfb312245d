from unittest.mock import Mock

import pytest
import requests

from apijam.networking.config import ErrorHandlerConfig
from apijam.networking.error_handler import ApiErrorHandler, is_network_failure
from apijam.networking.errors import (
    ApplicationError,
    ErrorKind,
    HttpStatusError,
    InvalidHeaderError,
    InvalidUrlError,
    NetworkError,
    UnknownError,
)


@pytest.fixture
def logger():
    return Mock()


@pytest.fixture
def handler(logger):
    return ApiErrorHandler(ErrorHandlerConfig(logger=logger))


@pytest.mark.parametrize(
    "status, message",
    [
        (400, "Invalid request"),
        (401, "Unauthorized - Please login"),
        (403, "Forbidden - Insufficient permissions"),
        (404, "Resource not found"),
        (500, "Internal server error"),
        (418, "HTTP Error 418"),
    ],
)
def test_http_status_error_gets_table_message(handler, status, message):
    raw = HttpStatusError(status, "raw status text", details={"body": "x"})

    error = handler.handle(raw)

    assert isinstance(error, HttpStatusError)
    assert error.status == status
    assert error.message == message
    assert error.details == {"body": "x"}
    assert error.is_network_error is False
    assert error.original_error is raw


def test_custom_status_messages_are_used():
    handler = ApiErrorHandler(
        ErrorHandlerConfig(log_errors=False, status_messages={404: "Nothing here"})
    )

    assert handler.handle(HttpStatusError(404, "Not Found")).message == "Nothing here"


@pytest.mark.parametrize(
    "error",
    [
        RuntimeError("Network Error: getaddrinfo failed"),
        RuntimeError("TypeError: Failed to fetch"),
        OSError("[Errno 111] Connection refused"),
        requests.exceptions.ConnectionError("boom"),
        requests.exceptions.ReadTimeout("slow"),
    ],
)
def test_network_failures_are_classified(handler, error):
    result = handler.handle(error)

    assert isinstance(result, NetworkError)
    assert result.kind is ErrorKind.NETWORK
    assert result.is_network_error is True
    assert result.status == 0
    assert result.original_error is error


def test_other_exceptions_are_application_errors(handler):
    error = KeyError("missing")

    result = handler.handle(error)

    assert isinstance(result, ApplicationError)
    assert result.is_network_error is False
    assert result.status == 0
    assert result.message == "Unexpected application error"


@pytest.mark.parametrize("value", ["Please provide the HTTP Method", 42, None])
def test_non_exception_values_are_unknown(handler, value):
    result = handler.handle(value)

    assert isinstance(result, UnknownError)
    assert result.status == 500
    assert result.is_network_error is False
    assert result.original_error == value


@pytest.mark.parametrize(
    "error",
    [
        InvalidUrlError("bad url"),
        InvalidHeaderError("bad header"),
        NetworkError("Network Error: offline"),
    ],
)
def test_typed_errors_pass_through_unchanged(handler, error):
    assert handler.handle(error) is error


def test_logger_receives_normalized_entry(handler, logger):
    handler.handle(HttpStatusError(404, "Not Found", details={"body": None}))

    logger.assert_called_once_with(
        {"message": "Resource not found", "status": 404, "details": {"body": None}}
    )


def test_logging_can_be_disabled(logger):
    handler = ApiErrorHandler(ErrorHandlerConfig(log_errors=False, logger=logger))

    handler.handle(RuntimeError("x"))

    logger.assert_not_called()


def test_failing_logger_does_not_escape(logger):
    logger.side_effect = RuntimeError("logger down")
    handler = ApiErrorHandler(ErrorHandlerConfig(logger=logger))

    assert isinstance(handler.handle(RuntimeError("x")), ApplicationError)


def test_default_logger_is_used_without_custom_logger():
    handler = ApiErrorHandler()

    result = handler.handle(HttpStatusError(500, "Internal Server Error"))

    assert result.message == "Internal server error"


@pytest.mark.parametrize(
    "status, register",
    [
        (401, "on_unauthorized"),
        (403, "on_forbidden"),
        (429, "on_rate_limited"),
    ],
)
def test_status_hooks_are_notified(handler, status, register):
    hook = Mock()
    getattr(handler, register)(hook)

    result = handler.handle(HttpStatusError(status, "x"))

    hook.assert_called_once_with(result)


def test_hooks_run_in_registration_order_and_do_not_change_result(handler):
    calls = []
    handler.add_hook(401, lambda error: calls.append("first"))
    handler.add_hook(401, lambda error: calls.append("second"))
    handler.add_hook(403, lambda error: calls.append("other"))

    result = handler.handle(HttpStatusError(401, "Unauthorized"))

    assert calls == ["first", "second"]
    assert result.message == "Unauthorized - Please login"


def test_failing_hook_does_not_escape_or_stop_later_hooks(handler):
    later = Mock()
    handler.add_hook(429, Mock(side_effect=RuntimeError("hook broke")))
    handler.add_hook(429, later)

    result = handler.handle(HttpStatusError(429, "Too Many Requests"))

    assert result.status == 429
    later.assert_called_once_with(result)


@pytest.mark.parametrize(
    "error, expected",
    [
        (RuntimeError("Max retries exceeded with url: /"), True),
        (RuntimeError("Read timed out."), True),
        (RuntimeError("division by zero"), False),
        (ValueError("Invalid JSON"), False),
    ],
)
def test_is_network_failure(error, expected):
    assert is_network_failure(error) is expected
