"""Code generator: renders test descriptors as pytest+requests files.

The exported files are a portable, inspectable form of the suite: each
one replays a single request and runs the same checks the in-process
runner applies to its descriptor. A generated ``conftest.py`` provides the
shared ``ctx`` variable store and keeps tests in capture order.
"""

from harwise.generator.descriptor import TestCase


class CodeGenerator:
    """Generates pytest + requests code files from test descriptors."""

    def generate(self, cases: list[TestCase]) -> dict[str, str]:
        """Generate code files for the given descriptors.

        Returns a dict of {filename: code_content}.
        """
        files = {"conftest.py": self._render_conftest()}
        for case in cases:
            files[f"test_{case.index}.py"] = self._render_test(case)
        return files

    def _render_conftest(self) -> str:
        return '''# conftest.py
import json
import os
import re
from pathlib import Path

import pytest

VARS_FILE = Path(__file__).parent / ".harwise.env.json"


class Context:
    def __init__(self, variables):
        self.variables = dict(variables)
        self.extracted = {}

    def get(self, key):
        if key in self.variables:
            return self.variables[key]
        return os.environ.get(key)

    def set(self, key, value):
        self.variables[key] = value
        self.extracted[key] = value


@pytest.fixture(scope="session")
def ctx():
    stored = {}
    if VARS_FILE.exists():
        stored = json.loads(VARS_FILE.read_text(encoding="utf-8"))
    context = Context(stored)
    yield context
    if context.extracted:
        stored.update(context.extracted)
        VARS_FILE.write_text(json.dumps(stored, indent=2), encoding="utf-8")


def pytest_collection_modifyitems(items):
    # test_2 must run before test_10
    items.sort(key=lambda item: int(re.sub(r"\\D", "", item.path.stem) or 0))
'''

    def _render_test(self, case: TestCase) -> str:
        low, high = case.status_range
        lines = [
            f"# test_{case.index}.py",
            f"{case.name!r}",
            "",
            "import re",
            "import time",
            "",
            "import requests",
            "from jsonpath_ng.ext import parse as jsonpath",
            "",
            f"METHOD = {case.method!r}",
            f"URL = {case.url!r}",
            f"HEADERS = {case.headers!r}",
            f"BODY = {case.body!r}",
            f"STATUS_RANGE = ({low!r}, {high!r})",
            f"EXPECTED_MIME = {case.expected_mime!r}",
            f"SAMPLE_TIME = {case.sample_time!r}",
            f"MAX_TIME_MS = {case.max_time_ms!r}",
            "",
            "",
            f"def test_{case.index}(ctx):",
            "    url, body = URL, BODY",
        ]
        lines += self._render_substitutions(case)
        lines += [
            "",
            '    headers = {k: v for k, v in HEADERS.items() if k.lower() != "content-length"}',
            "    start = time.perf_counter()",
            "    response = requests.request(",
            "        METHOD, url, headers=headers,",
            '        data=body.encode("utf-8") if body else None,',
            "    )",
            "    elapsed_ms = (time.perf_counter() - start) * 1000",
            "",
            "    assert STATUS_RANGE[0] <= response.status_code < STATUS_RANGE[1], (",
            '        f"Unexpected status {response.status_code}"',
            "    )",
            '    content_type = response.headers.get("content-type", "")',
        ]
        if case.expected_mime:
            lines += [
                "    assert EXPECTED_MIME in content_type, (",
                '        f"Expected content-type to contain {EXPECTED_MIME}, got {content_type}"',
                "    )",
            ]
        lines += [
            "    assert elapsed_ms <= MAX_TIME_MS, (",
            '        f"Response time {elapsed_ms:.0f}ms exceeded limit of {MAX_TIME_MS}ms (sample: {SAMPLE_TIME}ms)"',
            "    )",
            "",
            "    data = None",
            '    if "json" in content_type.lower() and response.content:',
            "        data = response.json()",
        ]
        lines += self._render_assertions(case)
        lines += self._render_extractions(case)
        return "\n".join(lines) + "\n"

    def _render_substitutions(self, case: TestCase) -> list[str]:
        lines = []
        for rule in case.substitutions:
            lines += [
                "",
                f"    value = ctx.get({rule.var!r})",
                "    if value is not None:",
                '        replacement = str(value).replace("\\\\", "\\\\\\\\")',
                f"        url = re.sub({rule.pattern!r}, replacement, url)",
                "        if body:",
                f"            body = re.sub({rule.pattern!r}, replacement, body)",
            ]
        return lines

    def _render_assertions(self, case: TestCase) -> list[str]:
        lines = []
        for i, rule in enumerate(case.jsonpath_assertions):
            name = f"matches_{i}"
            lines += [
                "",
                f"    {name} = [m.value for m in jsonpath({rule.path!r}).find(data)] if data is not None else []",
            ]
            if rule.exists:
                lines.append(f"    assert {name}, {rule.path + ' should exist'!r}")
            if rule.min_length is not None:
                message = f"{rule.path} should have at least {rule.min_length} items"
                lines.append(f"    assert len({name}) >= {rule.min_length!r}, {message!r}")
        return lines

    def _render_extractions(self, case: TestCase) -> list[str]:
        if not case.extractions:
            return []
        lines = ["", "    if data is not None:"]
        for rule in case.extractions:
            lines += [
                f"        found = jsonpath({rule.from_!r}).find(data)",
                "        if found:",
                f"            ctx.set({rule.to!r}, found[0].value)",
            ]
        return lines
