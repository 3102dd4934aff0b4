from __future__ import annotations


class AdvisoryError(Exception):
    """Typed failure that crosses the request-handler boundary."""

    status_code = 500
    kind = "advisory_error"
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimited(AdvisoryError):
    status_code = 429
    kind = "rate_limited"
    default_message = "Too many requests. Please wait a moment."


class InvalidRequest(AdvisoryError):
    status_code = 400
    kind = "invalid_request"
    default_message = "Messages are required"


class ServiceUnavailable(AdvisoryError):
    status_code = 503
    kind = "service_unavailable"
    default_message = "Service temporarily unavailable"


class GenerationFailed(AdvisoryError):
    status_code = 500
    kind = "generation_failed"
    default_message = "Could not generate a response. Please try again."
