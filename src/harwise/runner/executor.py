"""Interprets one test descriptor: substitute, send, assert, extract."""

import logging
import time
from functools import lru_cache
from typing import Any

import requests
from jsonpath_ng.ext import parse as jsonpath_parse
from pydantic import BaseModel

from harwise.errors import AssertionFailure
from harwise.generator.descriptor import TestCase
from harwise.parser.match import compile_pattern
from harwise.runner.context import TestContext

logger = logging.getLogger(__name__)


class CaseOutcome(BaseModel):
    assertions: int
    request_ms: float
    status: int


@lru_cache(maxsize=256)
def _compile_jsonpath(expr: str):
    return jsonpath_parse(expr)


def jsonpath_values(expr: str, data: Any) -> list[Any]:
    """All values matched by a JSONPath expression; none for missing data."""
    if data is None:
        return []
    return [match.value for match in _compile_jsonpath(expr).find(data)]


def apply_substitutions(case: TestCase, context: TestContext) -> tuple[str, str | None]:
    """Return the URL and body with context variables substituted in."""
    url, body = case.url, case.body
    for rule in case.substitutions:
        value = context.get(rule.var)
        if value is None:
            continue
        pattern = compile_pattern(rule.pattern)
        if pattern is None:
            continue
        replacement = str(value)
        url = pattern.sub(lambda _: replacement, url)
        if body:
            body = pattern.sub(lambda _: replacement, body)
        logger.debug("Substituted %s into %s", rule.var, case.name)
    return url, body


class CaseExecutor:
    """Runs test descriptors over one HTTP session."""

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def execute(self, case: TestCase, context: TestContext) -> CaseOutcome:
        """Run one descriptor. Raises on the first failed check."""
        url, body = apply_substitutions(case, context)
        # The body may have changed length; let the transport set it.
        headers = {k: v for k, v in case.headers.items() if k.lower() != "content-length"}

        start = time.perf_counter()
        response = self.session.request(
            case.method,
            url,
            headers=headers,
            data=body.encode("utf-8") if body else None,
            timeout=self.timeout,
        )
        request_ms = (time.perf_counter() - start) * 1000

        checks = _Checks()
        low, high = case.status_range
        checks.ok(low <= response.status_code < high, f"Unexpected status {response.status_code}")

        content_type = response.headers.get("content-type", "")
        if case.expected_mime:
            checks.ok(
                case.expected_mime in content_type,
                f"Expected content-type to contain {case.expected_mime}, got {content_type}",
            )

        checks.ok(
            request_ms <= case.max_time_ms,
            f"Response time {request_ms:.0f}ms exceeded limit of {case.max_time_ms}ms "
            f"(sample: {case.sample_time}ms)",
        )

        data = None
        if "json" in content_type.lower() and response.content:
            data = response.json()

        for rule in case.jsonpath_assertions:
            matches = jsonpath_values(rule.path, data)
            if rule.exists:
                checks.ok(len(matches) > 0, f"{rule.path} should exist")
            if rule.min_length is not None:
                checks.ok(
                    len(matches) >= rule.min_length,
                    f"{rule.path} should have at least {rule.min_length} items",
                )

        if data is not None:
            for rule in case.extractions:
                values = jsonpath_values(rule.from_, data)
                if values:
                    context.set(rule.to, values[0])
                    logger.info("Extracted %s from %s", rule.to, case.name)

        return CaseOutcome(assertions=checks.count, request_ms=request_ms, status=response.status_code)


class _Checks:
    """Counts passed assertions; raises AssertionFailure on the first miss."""

    def __init__(self):
        self.count = 0

    def ok(self, condition: bool, message: str) -> None:
        if not condition:
            raise AssertionFailure(message)
        self.count += 1
