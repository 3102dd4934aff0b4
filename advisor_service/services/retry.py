"""Two-attempt validate-then-retry policy.

    ATTEMPT_1 --ok--> SUCCESS
    ATTEMPT_1 --fail--> ATTEMPT_2 --ok--> SUCCESS
                        ATTEMPT_2 --fail--> FAIL

Only ATTEMPT_2 runs in strict mode, and nothing leaves SUCCESS or FAIL.
"""
from __future__ import annotations

import time
from enum import Enum

import structlog

from .completion import CompletionClient
from .errors import GenerationFailed
from .schema import StructuredAdvisoryResponse, schema_violation, validate_response

log = structlog.get_logger()

FAILURE_SCHEMA_VIOLATION = "schema_violation"


class AttemptState(str, Enum):
    ATTEMPT_1 = "attempt_1"
    ATTEMPT_2 = "attempt_2"
    SUCCESS = "success"
    FAIL = "fail"

    @property
    def terminal(self) -> bool:
        return self in (AttemptState.SUCCESS, AttemptState.FAIL)


ATTEMPT_NUMBER = {AttemptState.ATTEMPT_1: 1, AttemptState.ATTEMPT_2: 2}
STRICT_MODE = {AttemptState.ATTEMPT_1: False, AttemptState.ATTEMPT_2: True}

_TRANSITIONS = {
    (AttemptState.ATTEMPT_1, True): AttemptState.SUCCESS,
    (AttemptState.ATTEMPT_1, False): AttemptState.ATTEMPT_2,
    (AttemptState.ATTEMPT_2, True): AttemptState.SUCCESS,
    (AttemptState.ATTEMPT_2, False): AttemptState.FAIL,
}


def next_state(state: AttemptState, ok: bool) -> AttemptState:
    if state.terminal:
        raise ValueError(f"no transition out of terminal state {state.value}")
    return _TRANSITIONS[(state, bool(ok))]


async def run_with_retry(
    client: CompletionClient,
    system_prompt: str,
    context: str,
    question: str,
) -> StructuredAdvisoryResponse:
    """Drive the attempt state machine; raise GenerationFailed when both attempts miss."""
    start = time.monotonic()
    state = AttemptState.ATTEMPT_1
    result: StructuredAdvisoryResponse | None = None
    while not state.terminal:
        attempt = ATTEMPT_NUMBER[state]
        outcome = await client.complete(system_prompt, context, question, strict=STRICT_MODE[state])
        if outcome.ok:
            result = validate_response(outcome.payload)
            if result is None:
                log.warning(
                    "copilot_attempt_failed",
                    attempt=attempt,
                    category=FAILURE_SCHEMA_VIOLATION,
                    violation=schema_violation(outcome.payload),
                    latency_ms=outcome.latency_ms,
                )
        else:
            result = None
            log.warning(
                "copilot_attempt_failed",
                attempt=attempt,
                category=outcome.failure,
                latency_ms=outcome.latency_ms,
            )
        state = next_state(state, result is not None)

    total_ms = int((time.monotonic() - start) * 1000)
    if state is AttemptState.FAIL:
        log.error("copilot_generation_failed", attempts=2, latency_ms=total_ms)
        raise GenerationFailed()
    log.info("copilot_generation_ok", attempts=attempt, latency_ms=total_ms)
    return result
