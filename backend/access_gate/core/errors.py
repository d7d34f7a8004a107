"""API error classes.

Every failure that reaches a caller is one of these. Handlers in main.py
render them into the standard error envelope, so no storage error codes
or stack traces ever leave the service.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class BotDetectedError(APIError):
    """Honeypot field was populated (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="BOT_DETECTED",
            message="Bot detected",
            status_code=400,
        )


class ChallengeFailedError(APIError):
    """Bot-challenge verification did not succeed (400).

    Raised for rejected tokens, verifier outages and missing server
    secrets alike. The caller cannot tell which.
    """

    def __init__(self) -> None:
        super().__init__(
            code="CHALLENGE_FAILED",
            message="Security verification failed",
            status_code=400,
        )


class DuplicateSubmissionError(APIError):
    """Email or phone already used to gain or request access (400).

    The message never says which field matched.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="DUPLICATE_SUBMISSION",
            message=message,
            status_code=400,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Use when requested resource doesn't exist.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class InvalidLinkError(APIError):
    """Access link cannot be redeemed (404).

    WHY ONE ERROR FOR EVERY CAUSE:
    - Unknown, malformed, used and expired tokens look identical
    - A prober learns nothing about which tokens exist
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_LINK",
            message=(
                "This link is invalid or has expired. "
                "Please request a new verification link."
            ),
            status_code=404,
        )


class InvalidStateError(APIError):
    """Business rule violation (422).

    Use when request is syntactically valid but violates business rules.
    E.g., trying to approve an already-approved access request.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=message,
            status_code=422,
        )


class RateLimitedError(APIError):
    """Too many submissions inside the limiter window (429).

    Attributes:
        retry_after: Seconds until the window resets.
    """

    def __init__(self, message: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            code="RATE_LIMITED",
            message=message,
            status_code=429,
        )


class EmailVolumeLimitError(APIError):
    """Email provider refused delivery because of volume limits (503)."""

    def __init__(
        self,
        message: str = (
            "We're sending a lot of emails right now. Please try again later."
        ),
    ) -> None:
        super().__init__(
            code="EMAIL_VOLUME_LIMIT",
            message=message,
            status_code=503,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
