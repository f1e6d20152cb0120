"""Provider error classification and user-facing descriptions."""

from collections.abc import Mapping
from typing import Any, List, Literal, Optional

from pydantic import BaseModel

from .types import ConnectionErrorCategory, ErrorCategory, ErrorClassification, ProviderId

_CONFIGURATION_PHRASES = ("api key", "not configured", "missing")
_AUTH_PHRASES = ("unauthorized", "forbidden")
_RATE_LIMIT_PHRASES = ("rate limit", "too many requests")
_MODEL_NOT_FOUND_PHRASES = ("model not found", "does not exist")
_NETWORK_PHRASES = ("network", "fetch", "connection", "econnrefused", "enotfound")
_TIMEOUT_PHRASES = ("timeout", "timed out")


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


def _lookup(error: Any, *names: str) -> Any:
    for name in names:
        try:
            if isinstance(error, Mapping):
                value = error.get(name)
            else:
                value = getattr(error, name, None)
        except Exception:
            continue
        if value is not None:
            return value
    return None


def _status_code(error: Any) -> Optional[int]:
    status = _lookup(error, "status_code", "statusCode", "status")
    if status is None and not isinstance(error, Mapping):
        # openai/httpx errors carry the status on their response
        status = _lookup(_lookup(error, "response"), "status_code")
    if isinstance(status, bool):
        return None
    try:
        return int(status) if status is not None else None
    except Exception:
        return None


def _is_empty(error: Any) -> bool:
    if error is None:
        return True
    if isinstance(error, (str, Mapping)):
        return len(error) == 0
    return False


def _raw_message(error: Any) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        error = _lookup(error, "message")
        if error is None:
            return ""
    try:
        text = str(error)
    except Exception:
        text = ""
    if isinstance(error, BaseException):
        return text or type(error).__name__
    return text


def classify_error(error: Any) -> ErrorClassification:
    """Classify a provider error to decide between retrying and falling back.

    Rules are checked in order and the first match wins: configuration,
    authentication, rate limit, model not found, server error, network,
    timeout, an explicit ``is_retryable`` flag, then unknown. Message matching
    is case-insensitive.

    Args:
        error: Exception, message string, mapping or any object

    Returns:
        ErrorClassification with the handling strategy
    """
    if _is_empty(error):
        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            is_retryable=False,
            should_fallback=True,
            message="Unknown error occurred",
        )

    raw_message = _raw_message(error)
    message = raw_message.lower()
    status = _status_code(error)

    if _contains_any(message, _CONFIGURATION_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.CONFIGURATION,
            is_retryable=False,
            should_fallback=True,
            message="Provider not configured properly",
        )

    if status in (401, 403) or _contains_any(message, _AUTH_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.AUTHENTICATION,
            is_retryable=False,
            should_fallback=True,
            message="Authentication failed - check your API key",
        )

    if status == 429 or _contains_any(message, _RATE_LIMIT_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.RATE_LIMIT,
            is_retryable=True,
            should_fallback=True,
            message="Rate limit exceeded - please wait or try another provider",
        )

    if status == 404 or _contains_any(message, _MODEL_NOT_FOUND_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.MODEL_NOT_FOUND,
            is_retryable=False,
            should_fallback=True,
            message="Model not found - try a different model",
        )

    if status is not None and 500 <= status < 600:
        return ErrorClassification(
            category=ErrorCategory.SERVER_ERROR,
            is_retryable=True,
            should_fallback=True,
            message="Provider server error - trying alternative",
        )

    if _contains_any(message, _NETWORK_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.NETWORK,
            is_retryable=True,
            should_fallback=True,
            message="Network error - check your connection",
        )

    if _contains_any(message, _TIMEOUT_PHRASES):
        return ErrorClassification(
            category=ErrorCategory.TIMEOUT,
            is_retryable=True,
            should_fallback=True,
            message="Request timed out - trying alternative",
        )

    retryable = _lookup(error, "is_retryable", "isRetryable")
    if isinstance(retryable, bool):
        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            is_retryable=retryable,
            should_fallback=not retryable,
            message=raw_message if isinstance(error, BaseException) else "An error occurred",
        )

    return ErrorClassification(
        category=ErrorCategory.UNKNOWN,
        is_retryable=False,
        should_fallback=True,
        message=(
            raw_message
            if isinstance(error, BaseException)
            else "An unexpected error occurred"
        ),
    )


def categorize_connection_error(error: Any) -> ConnectionErrorCategory:
    """Coarse category for a failed connection test."""
    message = _raw_message(error).lower()
    status = _status_code(error)

    if status in (401, 403) or _contains_any(
        message, ("unauthorized", "forbidden", "api key")
    ):
        return "auth"
    if _contains_any(
        message, ("network", "fetch", "connection", "timeout", "timed out", "econnrefused")
    ):
        return "network"
    if status == 404 or _contains_any(message, _MODEL_NOT_FOUND_PHRASES):
        return "model"
    return "unknown"


Severity = Literal["info", "warning", "error"]
ActionType = Literal["configure", "retry", "switch", "change_model", "dismiss"]


class ErrorAction(BaseModel):
    """Something the user can do about an error."""

    id: str
    label: str
    description: str
    action_type: ActionType
    provider: Optional[ProviderId] = None


class UserFacingError(BaseModel):
    """Error description suitable for display."""

    title: str
    message: str
    technical_details: Optional[str] = None
    category: ErrorCategory
    severity: Severity
    actions: List[ErrorAction]


ERROR_MESSAGES = {
    ErrorCategory.CONFIGURATION: (
        "Setup Required",
        "This provider needs to be configured before use.",
        "warning",
    ),
    ErrorCategory.NETWORK: (
        "Connection Issue",
        "Unable to connect to the AI service. Please check your internet connection.",
        "warning",
    ),
    ErrorCategory.RATE_LIMIT: (
        "Too Many Requests",
        "You've sent too many messages. Please wait a moment before trying again.",
        "info",
    ),
    ErrorCategory.AUTHENTICATION: (
        "Authentication Failed",
        "Your API key appears to be invalid. Please check your settings.",
        "error",
    ),
    ErrorCategory.MODEL_NOT_FOUND: (
        "Model Unavailable",
        "The selected model is not available. Please try a different model.",
        "warning",
    ),
    ErrorCategory.SERVER_ERROR: (
        "Service Unavailable",
        "The AI service is experiencing issues. Please try again later.",
        "error",
    ),
    ErrorCategory.TIMEOUT: (
        "Request Timed Out",
        "The request took too long. Please try again.",
        "warning",
    ),
    ErrorCategory.UNKNOWN: (
        "Something Went Wrong",
        "An unexpected error occurred. Please try again.",
        "error",
    ),
}

_RETRY = ErrorAction(
    id="retry", label="Try Again", description="Attempt the request again", action_type="retry"
)
_USE_APPLE = ErrorAction(
    id="use-apple",
    label="Use Apple Intelligence",
    description="Switch to the on-device model",
    action_type="switch",
    provider=ProviderId.APPLE,
)


def _actions_for(
    category: ErrorCategory, current_provider: Optional[ProviderId]
) -> List[ErrorAction]:
    cloud = current_provider is not None and current_provider != ProviderId.APPLE
    actions: List[ErrorAction] = []

    if category in (ErrorCategory.CONFIGURATION, ErrorCategory.AUTHENTICATION):
        if cloud:
            actions.append(
                ErrorAction(
                    id="configure-provider",
                    label="Check Settings",
                    description=f"Review the {current_provider.value} credentials",
                    action_type="configure",
                    provider=current_provider,
                )
            )
        actions.append(_USE_APPLE)
    elif category == ErrorCategory.RATE_LIMIT:
        actions.append(
            ErrorAction(
                id="wait-retry",
                label="Wait and Retry",
                description="The rate limit will reset shortly",
                action_type="retry",
            )
        )
        actions.append(_USE_APPLE)
    elif category in (
        ErrorCategory.NETWORK,
        ErrorCategory.SERVER_ERROR,
        ErrorCategory.TIMEOUT,
    ):
        actions.append(_RETRY)
        if current_provider != ProviderId.APPLE:
            actions.append(_USE_APPLE)
    elif category == ErrorCategory.MODEL_NOT_FOUND:
        actions.append(
            ErrorAction(
                id="change-model",
                label="Change Model",
                description="Select a different model",
                action_type="change_model",
                provider=current_provider,
            )
        )
    else:
        actions.append(_RETRY)
        actions.append(
            ErrorAction(
                id="dismiss",
                label="Dismiss",
                description="Close this message",
                action_type="dismiss",
            )
        )
    return actions


def describe_error(
    error: Any, current_provider: Optional[ProviderId] = None
) -> UserFacingError:
    """Turn a raw provider error into a displayable description with actions."""
    classification = classify_error(error)
    title, message, severity = ERROR_MESSAGES[classification.category]
    return UserFacingError(
        title=title,
        message=message,
        technical_details=classification.message,
        category=classification.category,
        severity=severity,
        actions=_actions_for(classification.category, current_provider),
    )


def simple_error_message(error: Any) -> str:
    return ERROR_MESSAGES[classify_error(error).category][1]
