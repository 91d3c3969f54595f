"""Tests for the event, response and result shapes."""

import pytest
from pydantic import ValidationError

from handler_protocol import (
    Failure,
    HandlerEvent,
    HttpResponse,
    InvokeEvent,
    RawResponse,
    Success,
    is_raw_response,
    to_result,
)


class TestHandlerEvent:
    """Test the RunPod envelope."""

    def test_handler_event_with_valid_input(self):
        event = HandlerEvent(**{"input": {"httpMethod": "GET", "headers": {}}})

        assert event.input == {"httpMethod": "GET", "headers": {}}

    def test_handler_event_missing_input_field(self):
        with pytest.raises(ValidationError) as exc_info:
            HandlerEvent(**{"wrong_field": "data"})

        assert "input" in str(exc_info.value)

    def test_handler_event_with_extra_fields(self):
        event = HandlerEvent(**{"input": {}, "id": "job-123"})

        assert event.id == "job-123"


class TestInvokeEvent:
    """Test inbound event parsing."""

    def test_defaults(self):
        event = InvokeEvent()

        assert event.headers == {}
        assert event.body is None
        assert event.queryString is None
        assert event.isBase64Encoded is False

    @pytest.mark.parametrize("raw", [None, 0, "text", []])
    def test_from_raw_non_mapping(self, raw):
        assert InvokeEvent.from_raw(raw) == InvokeEvent()

    def test_null_headers(self):
        assert InvokeEvent.from_raw({"headers": None}).headers == {}

    def test_null_base64_flag(self):
        assert InvokeEvent.from_raw({"isBase64Encoded": None}).isBase64Encoded is False

    def test_scalar_values_become_text(self):
        event = InvokeEvent.from_raw(
            {
                "headers": {"X-Count": 2, "X-Skip": None},
                "queryString": {"page": 1, "all": False, "skip": None},
            }
        )

        assert event.headers == {"X-Count": "2"}
        assert event.queryString == {"page": "1", "all": "false"}

    def test_unusable_body_rejected(self):
        with pytest.raises(ValidationError):
            InvokeEvent.from_raw({"body": {"a": 1}})

    def test_query_string_alias(self):
        event = InvokeEvent.from_raw({"queryStringParameters": {"page": "2"}})

        assert event.queryString == {"page": "2"}

    def test_header_lookup_is_case_insensitive(self):
        event = InvokeEvent.from_raw({"headers": {"Content-Type": "application/json"}})

        assert event.header("content-type") == "application/json"
        assert event.header("Content-Type") == "application/json"
        assert event.header("accept") is None

    def test_extra_fields_allowed(self):
        event = InvokeEvent.from_raw({"path": "/users", "requestContext": {"stage": "prod"}})

        assert event.path == "/users"


class TestHttpResponse:
    """Test the outbound envelope model."""

    def test_multi_value_headers(self):
        response = HttpResponse(statusCode=200, headers={"Set-Cookie": ["a=1", "b=2"], "X": "y"})

        assert response.model_dump(exclude_none=True) == {
            "statusCode": 200,
            "headers": {"Set-Cookie": ["a=1", "b=2"], "X": "y"},
            "isBase64Encoded": False,
        }


class TestResults:
    """Test tagging of handler return values."""

    def test_plain_value(self):
        assert to_result(1) == Success(1)
        assert to_result(None) == Success(None)

    def test_exception_value(self):
        error = ValueError("x")

        assert to_result(error) == Failure(error)

    def test_raw_response(self):
        envelope = {"statusCode": 200, "headers": {"X": "1"}, "body": "ok"}

        assert to_result(envelope) == RawResponse(envelope)

    @pytest.mark.parametrize(
        "value",
        [
            {"statusCode": 200},
            {"headers": {}},
            {"statusCode": 0, "headers": {}},
            {"statusCode": 200, "headers": "x"},
        ],
    )
    def test_not_raw_response(self, value):
        assert is_raw_response(value) is False
        assert to_result(value) == Success(value)

    def test_already_tagged(self):
        result = Success("x")

        assert to_result(result) is result
