"""Tests for provider error classification."""

import asyncio
from types import SimpleNamespace

import pytest

from chatrelay.llm.errors import (
    ERROR_MESSAGES,
    categorize_connection_error,
    classify_error,
    describe_error,
    simple_error_message,
)
from chatrelay.llm.types import ErrorCategory, ProviderId


class HTTPError(Exception):
    """Error carrying its HTTP response, as SDK errors do."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.response = SimpleNamespace(status_code=status_code)


class UnprintableError(Exception):
    def __str__(self):
        raise RuntimeError("bad str")


class AmbiguousValue:
    def __bool__(self):
        raise ValueError("ambiguous")


class NoisyAttributes:
    def __getattr__(self, name):
        raise RuntimeError(f"no {name}")


class TestClassifyError:
    @pytest.mark.parametrize(
        "error,category",
        [
            ("OpenAI API key not configured", ErrorCategory.CONFIGURATION),
            (Exception("Missing credentials"), ErrorCategory.CONFIGURATION),
            ({"status": 401, "message": "bad key"}, ErrorCategory.AUTHENTICATION),
            ({"statusCode": 403, "message": "nope"}, ErrorCategory.AUTHENTICATION),
            (Exception("Unauthorized"), ErrorCategory.AUTHENTICATION),
            (HTTPError("denied", 401), ErrorCategory.AUTHENTICATION),
            ({"status_code": 429, "message": ""}, ErrorCategory.RATE_LIMIT),
            ("Too Many Requests", ErrorCategory.RATE_LIMIT),
            ({"status": 404, "message": "gone"}, ErrorCategory.MODEL_NOT_FOUND),
            ("The model `gpt-9` does not exist", ErrorCategory.MODEL_NOT_FOUND),
            ({"status": 503, "message": "Service down"}, ErrorCategory.SERVER_ERROR),
            (HTTPError("bad gateway", 502), ErrorCategory.SERVER_ERROR),
            ("fetch failed", ErrorCategory.NETWORK),
            (Exception("connect ECONNREFUSED 127.0.0.1:11434"), ErrorCategory.NETWORK),
            ("getaddrinfo ENOTFOUND api.openai.com", ErrorCategory.NETWORK),
            ("Request timed out", ErrorCategory.TIMEOUT),
            (TimeoutError(), ErrorCategory.TIMEOUT),
            (asyncio.TimeoutError(), ErrorCategory.TIMEOUT),
            (Exception("something odd"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, error, category):
        assert classify_error(error).category == category

    def test_first_matching_rule_wins(self):
        assert (
            classify_error("API key missing: unauthorized").category
            == ErrorCategory.CONFIGURATION
        )
        assert (
            classify_error("rate limit hit on connection").category
            == ErrorCategory.RATE_LIMIT
        )
        assert (
            classify_error({"status": 500, "message": "connection reset"}).category
            == ErrorCategory.SERVER_ERROR
        )

    def test_matching_is_case_insensitive(self):
        assert classify_error("RATE LIMIT").category == ErrorCategory.RATE_LIMIT
        assert classify_error("Network Error").category == ErrorCategory.NETWORK

    @pytest.mark.parametrize("error", [None, "", {}])
    def test_empty_error_is_unknown(self, error):
        result = classify_error(error)
        assert result.category == ErrorCategory.UNKNOWN
        assert result.is_retryable is False
        assert result.should_fallback is True
        assert result.message == "Unknown error occurred"

    def test_unknown_exception_keeps_its_message(self):
        result = classify_error(Exception("something odd"))
        assert result.message == "something odd"
        assert result.should_fallback is True

    def test_unknown_non_exception_gets_generic_message(self):
        assert classify_error("something odd").message == "An unexpected error occurred"

    def test_retry_strategy_per_category(self):
        auth = classify_error({"status": 401})
        assert (auth.is_retryable, auth.should_fallback) == (False, True)

        rate = classify_error({"status": 429})
        assert (rate.is_retryable, rate.should_fallback) == (True, True)

        server = classify_error({"status": 500})
        assert (server.is_retryable, server.should_fallback) == (True, True)

    def test_explicit_retryable_flag_means_retry_not_fallback(self):
        result = classify_error({"message": "odd glitch", "is_retryable": True})
        assert result.category == ErrorCategory.UNKNOWN
        assert result.is_retryable is True
        assert result.should_fallback is False

    def test_explicit_non_retryable_flag_falls_back(self):
        error = Exception("odd glitch")
        error.isRetryable = False
        result = classify_error(error)
        assert result.is_retryable is False
        assert result.should_fallback is True
        assert result.message == "odd glitch"

    def test_boolean_status_is_ignored(self):
        assert classify_error({"status": True, "message": "odd"}).category == (
            ErrorCategory.UNKNOWN
        )

    def test_never_raises_on_odd_input(self):
        for error in (42, object(), ["list"], SimpleNamespace(status="abc")):
            assert classify_error(error).category in ErrorCategory

    def test_exception_with_broken_str_uses_class_name(self):
        result = classify_error(UnprintableError())
        assert result.category == ErrorCategory.UNKNOWN
        assert result.message == "UnprintableError"
        assert result.should_fallback is True

    def test_object_with_broken_truthiness(self):
        result = classify_error(AmbiguousValue())
        assert result.category == ErrorCategory.UNKNOWN
        assert result.should_fallback is True

    def test_object_with_raising_attributes(self):
        assert classify_error(NoisyAttributes()).category == ErrorCategory.UNKNOWN
        assert categorize_connection_error(NoisyAttributes()) == "unknown"
        assert describe_error(UnprintableError()).category == ErrorCategory.UNKNOWN


class TestCategorizeConnectionError:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (Exception("401 Unauthorized"), "auth"),
            (HTTPError("denied", 403), "auth"),
            (Exception("Incorrect API key provided"), "auth"),
            (Exception("Connection refused"), "network"),
            (Exception("request timed out"), "network"),
            (Exception("model not found"), "model"),
            (HTTPError("missing", 404), "model"),
            (Exception("weird"), "unknown"),
        ],
    )
    def test_categories(self, error, expected):
        assert categorize_connection_error(error) == expected


class TestDescribeError:
    @pytest.mark.parametrize(
        "error,category",
        [
            ("API key not configured", ErrorCategory.CONFIGURATION),
            ("fetch failed", ErrorCategory.NETWORK),
            ({"status": 429}, ErrorCategory.RATE_LIMIT),
            ({"status": 401}, ErrorCategory.AUTHENTICATION),
            ({"status": 404}, ErrorCategory.MODEL_NOT_FOUND),
            ({"status": 500}, ErrorCategory.SERVER_ERROR),
            ("timed out", ErrorCategory.TIMEOUT),
            (Exception("weird"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_every_category_has_a_description(self, error, category):
        described = describe_error(error, ProviderId.OPENAI)
        title, message, severity = ERROR_MESSAGES[category]
        assert described.category == category
        assert described.title == title
        assert described.message == message
        assert described.severity == severity
        assert described.actions

    def test_rate_limit_actions(self):
        described = describe_error({"status": 429}, ProviderId.OPENAI)
        assert [a.id for a in described.actions] == ["wait-retry", "use-apple"]

    def test_auth_on_cloud_provider_offers_settings(self):
        described = describe_error({"status": 401}, ProviderId.OPENROUTER)
        assert [a.id for a in described.actions] == ["configure-provider", "use-apple"]
        assert described.actions[0].provider == ProviderId.OPENROUTER

    def test_network_error_on_apple_only_retries(self):
        described = describe_error("network down", ProviderId.APPLE)
        assert [a.id for a in described.actions] == ["retry"]

    def test_unknown_error_actions(self):
        described = describe_error(Exception("weird"))
        assert [a.id for a in described.actions] == ["retry", "dismiss"]
        assert described.technical_details == "weird"

    def test_simple_error_message(self):
        assert simple_error_message("fetch failed") == (
            ERROR_MESSAGES[ErrorCategory.NETWORK][1]
        )
