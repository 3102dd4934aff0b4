"""Request handler for the structured advisory endpoint."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from ..api.schemas import AdvisoryRequest
from ..config import Settings
from ..utils import now_utc_iso
from .completion import CompletionClient, build_completion_client
from .context import assemble_context
from .errors import InvalidRequest, RateLimited, ServiceUnavailable
from .prompts import compose_system_prompt
from .rate_limit import FixedWindowRateLimiter
from .retry import run_with_retry
from .schema import StructuredAdvisoryResponse

log = structlog.get_logger()


@dataclass
class AdvisoryResult:
    structured: StructuredAdvisoryResponse
    timestamp: str

    def to_dict(self) -> dict:
        return {"structured": self.structured.model_dump(mode="json"), "timestamp": self.timestamp}


class AdvisoryService:
    def __init__(
        self,
        settings: Settings,
        limiter: FixedWindowRateLimiter | None = None,
        client_factory: Callable[[Settings], CompletionClient | None] = build_completion_client,
        clock: Callable[[], str] = now_utc_iso,
    ):
        self.settings = settings
        self.limiter = limiter or FixedWindowRateLimiter(
            capacity=settings.rate_limit_capacity,
            window_seconds=settings.rate_limit_window_seconds,
        )
        self._client_factory = client_factory
        self._clock = clock

    async def handle(self, payload: Any, caller_id: str) -> AdvisoryResult:
        """Answer one advisory request or raise a typed AdvisoryError.

        The rate-limit slot is taken before anything else is looked at, so
        rejected and failed requests count against the caller too.
        """
        start = time.monotonic()
        if not self.limiter.allow(caller_id):
            log.info("copilot_rate_limited", caller_id=caller_id)
            raise RateLimited()

        try:
            request = AdvisoryRequest.model_validate(payload)
        except ValidationError as e:
            log.info("copilot_invalid_request", errors=e.error_count())
            raise InvalidRequest("Invalid request body")
        if not request.messages:
            log.info("copilot_invalid_request", reason="no_messages")
            raise InvalidRequest("Messages are required")
        question = request.last_user_message()
        if question is None:
            log.info("copilot_invalid_request", reason="no_user_message")
            raise InvalidRequest("A user message is required")

        client = self._client_factory(self.settings)
        if client is None:
            log.error("copilot_not_configured", provider=self.settings.provider)
            raise ServiceUnavailable()

        context = assemble_context(
            request.portfolio,
            request.analytics,
            request.selected_news,
            request.user_profile,
            currency=self.settings.currency_symbol,
        )
        system_prompt = compose_system_prompt(request.user_profile)

        structured = await run_with_retry(client, system_prompt, context, question.content)
        log.info(
            "copilot_request_ok",
            provider=client.provider,
            latency_ms=int((time.monotonic() - start) * 1000),
        )
        return AdvisoryResult(structured=structured, timestamp=self._clock())
