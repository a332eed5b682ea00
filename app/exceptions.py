# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error response carries a machine-readable code and, where it helps,
# a suggestion telling the client how to fix the request.
# =============================================================================

import math
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ArchAssistantException(Exception):
    """
    Base exception for the ArchAssistant API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "ARCHASSISTANT_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Resource Exceptions
# =============================================================================

class ProjectNotFoundError(ArchAssistantException):
    """Raised when a project ID doesn't exist."""

    def __init__(self, project_id: str):
        super().__init__(
            message="Project not found",
            code="PROJECT_NOT_FOUND",
            status_code=404,
            suggestion="Check that the project_id is correct and the project hasn't been deleted",
            details={"project_id": project_id}
        )


class SnapshotNotFoundError(ArchAssistantException):
    """Raised when a snapshot ID doesn't exist."""

    def __init__(self, snapshot_id: str):
        super().__init__(
            message="Snapshot not found",
            code="SNAPSHOT_NOT_FOUND",
            status_code=404,
            suggestion="Check that the snapshot_id is correct",
            details={"snapshot_id": snapshot_id}
        )


class TaskNotFoundError(ArchAssistantException):
    """Raised when a task ID doesn't exist."""

    def __init__(self, task_id: str):
        super().__init__(
            message="Task not found",
            code="TASK_NOT_FOUND",
            status_code=404,
            suggestion="Check that the task_id is correct",
            details={"task_id": task_id}
        )


class NoSnapshotsError(ArchAssistantException):
    """Raised when a project has no snapshots yet."""

    def __init__(self, project_id: str):
        super().__init__(
            message="No snapshots found for this project",
            code="NO_SNAPSHOTS",
            status_code=404,
            suggestion="Generate a snapshot first using POST /projects/{id}/generate",
            details={"project_id": project_id}
        )


class NoBaselineSnapshotError(ArchAssistantException):
    """Raised when drift detection runs before any snapshot exists."""

    def __init__(self, project_id: str):
        super().__init__(
            message="No snapshots found. Please generate a snapshot first before detecting drift.",
            code="NO_BASELINE_SNAPSHOT",
            status_code=400,
            suggestion="Generate a snapshot first using POST /projects/{id}/generate",
            details={"project_id": project_id}
        )


class AccessDeniedError(ArchAssistantException):
    """Raised when a resource belongs to another user."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message="Access denied",
            code="ACCESS_DENIED",
            status_code=403,
            suggestion=f"You do not have access to this {resource}",
            details={f"{resource}_id": resource_id}
        )


# =============================================================================
# GitHub Exceptions
# =============================================================================

class GitHubTokenMissingError(ArchAssistantException):
    """Raised when a project has no stored GitHub token."""

    def __init__(self, project_id: str):
        super().__init__(
            message="GitHub token not found. Please reconnect your repository.",
            code="GITHUB_TOKEN_MISSING",
            status_code=400,
            suggestion="Reconnect the repository using POST /auth/github/connect",
            details={"project_id": project_id}
        )


class GitHubOAuthError(ArchAssistantException):
    """Raised when the GitHub OAuth exchange doesn't yield a usable result."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(
            message=message,
            code="GITHUB_OAUTH_ERROR",
            status_code=400,
            suggestion="Restart the GitHub authorization flow",
            details={"github_error": error_code} if error_code else None
        )


# =============================================================================
# Billing Exceptions
# =============================================================================

class LimitExceededError(ArchAssistantException):
    """Raised when the user's plan doesn't allow another resource."""

    def __init__(self, limit_type: str, current: int, limit: int):
        super().__init__(
            message=f"{limit_type} limit reached. You've used {current} of {limit}.",
            code="LIMIT_EXCEEDED",
            status_code=403,
            suggestion=f"Upgrade to Pro for unlimited {limit_type}.",
            details={"limit_type": limit_type, "current": current, "limit": limit}
        )


class PlanUpgradeRequiredError(ArchAssistantException):
    """Raised when a feature isn't part of the user's plan."""

    def __init__(self, feature: str, message: str):
        super().__init__(
            message=message,
            code="PLAN_UPGRADE_REQUIRED",
            status_code=403,
            suggestion="Upgrade to Pro using POST /billing/checkout",
            details={"feature": feature}
        )


class NoBillingAccountError(ArchAssistantException):
    """Raised when a user has never checked out with Stripe."""

    def __init__(self, user_id: str):
        super().__init__(
            message="No subscription found for this user",
            code="NO_BILLING_ACCOUNT",
            status_code=400,
            suggestion="Start a subscription using POST /billing/checkout first",
            details={"user_id": user_id}
        )


class WebhookError(ArchAssistantException):
    """Raised when a Stripe webhook can't be verified or processed."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Webhook Error: {error}",
            code="WEBHOOK_ERROR",
            status_code=400,
        )


# =============================================================================
# Infrastructure Exceptions
# =============================================================================

class ConfigurationError(ArchAssistantException):
    """Raised when a feature is used without its environment variables."""

    def __init__(self, message: str, setting: str):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            status_code=500,
            suggestion=f"Set {setting} in the server environment",
            details={"setting": setting}
        )


class ExternalServiceError(ArchAssistantException):
    """Raised when GitHub, the LLM provider or Stripe fails."""

    def __init__(self, service: str, error: str):
        super().__init__(
            message=f"{service} error: {error}",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
            suggestion=f"We're experiencing issues with {service}. Please try again later.",
            details={"service": service}
        )


class RateLimitExceededError(ArchAssistantException):
    """Raised when a caller exceeds a rate limiter's window."""

    def __init__(self, retry_after: int, limit: int, remaining: int, reset_at: float):
        super().__init__(
            message=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            details={"retry_after": retry_after},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": str(remaining),
                "X-RateLimit-Reset": str(math.ceil(reset_at)),
            },
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def archassistant_exception_handler(
    request: Request,
    exc: ArchAssistantException
) -> JSONResponse:
    """
    Convert ArchAssistantException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


def format_validation_errors(exc: RequestValidationError) -> dict[str, str]:
    """
    Flatten pydantic errors into {"body.field": "message"}.

    The leading "body"/"path"/"query" segment is kept so clients can tell
    which part of the request was rejected.
    """
    fields: dict[str, str] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error.get("loc", ()))
        fields[path] = error.get("msg", "Invalid value")
    return fields


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Returns 400 with a per-field message map.
    """
    fields = format_validation_errors(exc)
    content: dict[str, Any] = {
        "detail": "Validation failed",
        "code": "VALIDATION_ERROR",
    }
    if fields:
        content["fields"] = fields
    return JSONResponse(status_code=400, content=content)
