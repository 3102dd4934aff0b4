import unittest
from types import SimpleNamespace

import anthropic
import httpx

from advisor_service.services.completion import (
    FAILURE_HTTP_STATUS,
    FAILURE_TRANSPORT,
    AnthropicCompletionClient,
    CompletionOutcome,
)
from advisor_service.services.errors import GenerationFailed
from advisor_service.services.retry import AttemptState, next_state, run_with_retry
from advisor_service.services.schema import StructuredAdvisoryResponse
from payloads import valid_payload


class StubCompletionClient:
    provider = "stub"

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def complete(self, system_prompt, context, question, strict=False):
        self.calls.append({"system_prompt": system_prompt, "context": context, "question": question, "strict": strict})
        return self.outcomes.pop(0)


def ok(payload=None):
    return CompletionOutcome(payload=valid_payload() if payload is None else payload, latency_ms=5)


def failed(category=FAILURE_TRANSPORT):
    return CompletionOutcome(failure=category, latency_ms=5)


class TransitionTests(unittest.TestCase):
    def test_transitions(self):
        self.assertIs(next_state(AttemptState.ATTEMPT_1, True), AttemptState.SUCCESS)
        self.assertIs(next_state(AttemptState.ATTEMPT_1, False), AttemptState.ATTEMPT_2)
        self.assertIs(next_state(AttemptState.ATTEMPT_2, True), AttemptState.SUCCESS)
        self.assertIs(next_state(AttemptState.ATTEMPT_2, False), AttemptState.FAIL)

    def test_no_transition_out_of_terminal_states(self):
        for state in (AttemptState.SUCCESS, AttemptState.FAIL):
            for outcome in (True, False):
                with self.assertRaises(ValueError):
                    next_state(state, outcome)

    def test_no_path_reaches_a_third_attempt(self):
        reachable = {AttemptState.ATTEMPT_1}
        frontier = [AttemptState.ATTEMPT_1]
        while frontier:
            state = frontier.pop()
            for outcome in (True, False):
                nxt = next_state(state, outcome)
                if nxt not in reachable:
                    reachable.add(nxt)
                    if not nxt.terminal:
                        frontier.append(nxt)
        self.assertEqual(reachable, set(AttemptState))


class RetryControllerTests(unittest.IsolatedAsyncioTestCase):
    async def test_first_attempt_success_makes_one_call(self):
        client = StubCompletionClient(ok())
        result = await run_with_retry(client, "SYS", "CTX", "Q?")
        self.assertIsInstance(result, StructuredAdvisoryResponse)
        self.assertEqual(len(client.calls), 1)
        self.assertFalse(client.calls[0]["strict"])

    async def test_schema_rejection_then_success(self):
        bad = valid_payload()
        bad["key_numbers"] = bad["key_numbers"][:2]
        client = StubCompletionClient(ok(bad), ok())
        result = await run_with_retry(client, "SYS", "CTX", "Q?")
        self.assertEqual(result.model_dump(mode="json"), valid_payload())
        self.assertEqual(len(client.calls), 2)
        self.assertEqual([c["strict"] for c in client.calls], [False, True])

    async def test_retry_reuses_prompt_context_and_question(self):
        client = StubCompletionClient(failed(FAILURE_HTTP_STATUS), ok())
        await run_with_retry(client, "SYS", "CTX", "Q?")
        first, second = client.calls
        for key in ("system_prompt", "context", "question"):
            self.assertEqual(first[key], second[key])

    async def test_transport_failure_then_success(self):
        client = StubCompletionClient(failed(), ok())
        result = await run_with_retry(client, "SYS", "CTX", "Q?")
        self.assertIsNotNone(result)
        self.assertEqual(len(client.calls), 2)

    async def test_undecodable_provider_response_is_retried(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        results = [
            anthropic.APIResponseValidationError(response=httpx.Response(200, request=request), body=None),
            SimpleNamespace(content=[SimpleNamespace(type="tool_use", input=valid_payload())]),
        ]
        calls = []

        async def create(**kwargs):
            calls.append(kwargs)
            result = results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        client = AnthropicCompletionClient("key", client=SimpleNamespace(messages=SimpleNamespace(create=create)))
        result = await run_with_retry(client, "SYS", "CTX", "Q?")
        self.assertEqual(result.model_dump(mode="json"), valid_payload())
        self.assertEqual(len(calls), 2)

    async def test_both_attempts_fail(self):
        client = StubCompletionClient(failed(), ok({"summary": "only"}), ok())
        with self.assertRaises(GenerationFailed):
            await run_with_retry(client, "SYS", "CTX", "Q?")
        self.assertEqual(len(client.calls), 2)
        # The third queued outcome is never consumed.
        self.assertEqual(len(client.outcomes), 1)


if __name__ == "__main__":
    unittest.main()
