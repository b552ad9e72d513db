"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"
    CREATED = "CREATED"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"

    # Account
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"

    # API Key management
    API_KEY_CREATED = "API_KEY_CREATED"
    API_KEY_REGENERATED = "API_KEY_REGENERATED"
    API_KEY_REVOKED = "API_KEY_REVOKED"
    API_KEY_NOT_FOUND = "API_KEY_NOT_FOUND"
    API_KEY_ALREADY_ACTIVE = "API_KEY_ALREADY_ACTIVE"
    INVALID_API_KEY = "INVALID_API_KEY"

    # Domain management
    DOMAIN_NOT_FOUND = "DOMAIN_NOT_FOUND"
    DOMAIN_ALREADY_REGISTERED = "DOMAIN_ALREADY_REGISTERED"
    DOMAIN_INACTIVE = "DOMAIN_INACTIVE"
    DOMAIN_NOT_CANCELABLE = "DOMAIN_NOT_CANCELABLE"
    DOMAIN_CANCELLED = "DOMAIN_CANCELLED"
    DOMAIN_LIMIT_EXCEEDED = "DOMAIN_LIMIT_EXCEEDED"
    EXTRA_DOMAINS_NOT_AVAILABLE = "EXTRA_DOMAINS_NOT_AVAILABLE"

    # Domain purchase
    PURCHASE_CREATED = "PURCHASE_CREATED"
    PURCHASE_COMPLETED = "PURCHASE_COMPLETED"
    PURCHASE_PENDING = "PURCHASE_PENDING"
    PURCHASE_FAILED = "PURCHASE_FAILED"
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Service Errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Generic errors
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    MessageCode.CREATED: "Resource created successfully",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    MessageCode.FORBIDDEN: "Access denied",
    # Account
    MessageCode.ACCOUNT_NOT_FOUND: "Account not found",
    # API Key management
    MessageCode.API_KEY_CREATED: "API key generated. Copy it now, it will not be shown again",
    MessageCode.API_KEY_REGENERATED: "API key regenerated. The previous key no longer works",
    MessageCode.API_KEY_REVOKED: "API key revoked successfully",
    MessageCode.API_KEY_NOT_FOUND: "API key not found",
    MessageCode.API_KEY_ALREADY_ACTIVE: "This domain already has an active API key. Regenerate it instead",
    MessageCode.INVALID_API_KEY: "API key is invalid or has been revoked",
    # Domain management
    MessageCode.DOMAIN_NOT_FOUND: "Domain not found",
    MessageCode.DOMAIN_ALREADY_REGISTERED: "This domain is already registered",
    MessageCode.DOMAIN_INACTIVE: "This domain has been cancelled. Purchase it again to use it",
    MessageCode.DOMAIN_NOT_CANCELABLE: "The base domain is part of your plan and cannot be cancelled",
    MessageCode.DOMAIN_CANCELLED: "Additional domain cancelled successfully",
    MessageCode.DOMAIN_LIMIT_EXCEEDED: "Your plan's domain limit has been reached",
    MessageCode.EXTRA_DOMAINS_NOT_AVAILABLE: "Only Business and Enterprise plans can add additional domains",
    # Domain purchase
    MessageCode.PURCHASE_CREATED: "Checkout session created",
    MessageCode.PURCHASE_COMPLETED: "Domain purchase completed",
    MessageCode.PURCHASE_PENDING: "Payment has not been confirmed yet",
    MessageCode.PURCHASE_FAILED: "The domain could not be added after payment. The subscription was cancelled",
    MessageCode.PURCHASE_NOT_FOUND: "Domain purchase not found",
    # Validation errors
    MessageCode.VALIDATION_ERROR: "Validation failed",
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Service Errors
    MessageCode.EXTERNAL_SERVICE_ERROR: "External service error",
    # Generic errors
    MessageCode.CONFLICT: "Resource conflict",
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
