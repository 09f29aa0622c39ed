"""Exports samples as a bash script of curl invocations."""

import shlex

from harwise.generator.config import DEFAULT_MASK_HEADERS
from harwise.parser.base import Sample
from harwise.parser.url import path_and_query


def render_curl_suite(
    samples: list[Sample],
    strict: bool = False,
    mask_headers: list[str] | None = None,
    base_url: str = "",
) -> str:
    """Render one curl command per sample, in capture order."""
    masked = {h.lower() for h in (DEFAULT_MASK_HEADERS if mask_headers is None else mask_headers)}
    lines = ["#!/usr/bin/env bash"]
    if strict:
        lines.append("set -euo pipefail")
    lines.append(f"# {len(samples)} requests exported by harwise")

    for i, sample in enumerate(samples):
        url = f"{base_url.rstrip('/')}{path_and_query(sample.url)}" if base_url else sample.url
        parts = [f"curl -sS -X {shlex.quote(sample.method)} {shlex.quote(url)}"]
        for name, value in sample.req_headers.items():
            if name.lower() in masked or name.startswith(":"):
                continue
            parts.append(f"-H {shlex.quote(f'{name}: {value}')}")
        if sample.req_body:
            parts.append(f"--data-raw {shlex.quote(sample.req_body)}")

        lines.append("")
        lines.append(f"# [{i}] {sample.key or sample.method + ' ' + sample.url}")
        lines.append(" \\\n  ".join(parts))

    return "\n".join(lines) + "\n"
