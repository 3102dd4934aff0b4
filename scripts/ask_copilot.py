#!/usr/bin/env python3
"""
Run one advisory request from a JSON file against the configured provider.

With --dry-run, prints the system prompt and context block that would be
sent, without making any upstream call.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from advisor_service.api.schemas import AdvisoryRequest
from advisor_service.config import settings
from advisor_service.logging import setup_logging
from advisor_service.services.advisor import AdvisoryService
from advisor_service.services.context import assemble_context
from advisor_service.services.errors import AdvisoryError
from advisor_service.services.prompts import compose_system_prompt


def dry_run(payload) -> int:
    try:
        request = AdvisoryRequest.model_validate(payload)
    except ValidationError as e:
        print(f"ERROR: invalid request file: {e}")
        return 1
    print("=== SYSTEM PROMPT ===")
    print(compose_system_prompt(request.user_profile))
    print("\n=== CONTEXT ===")
    print(assemble_context(
        request.portfolio,
        request.analytics,
        request.selected_news,
        request.user_profile,
        currency=settings.currency_symbol,
    ))
    question = request.last_user_message()
    print("\n=== QUESTION ===")
    print(question.content if question else "(no user message)")
    return 0


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("request_file", help="Path to an AdvisoryRequest JSON document")
    parser.add_argument("--dry-run", action="store_true", help="Print prompt and context only")
    args = parser.parse_args()

    payload = json.loads(Path(args.request_file).read_text(encoding="utf-8"))
    if args.dry_run:
        return dry_run(payload)

    setup_logging()
    service = AdvisoryService(settings)
    try:
        result = asyncio.run(service.handle(payload, caller_id="cli"))
    except AdvisoryError as e:
        print(f"ERROR ({e.status_code}): {e.message}")
        return 1
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
