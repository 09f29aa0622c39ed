"""HAR 1.2 capture parser.

Reads a HAR log and converts every entry into a normalized Sample, then
keeps only API-like exchanges and assigns their correlation keys.
"""

import json
import logging
from pathlib import Path

from harwise.errors import CaptureLoadError
from harwise.parser.base import Sample
from harwise.parser.match import filter_samples, generate_key
from harwise.parser.url import canonicalize_url

logger = logging.getLogger(__name__)


def load_har(file_path: Path) -> dict:
    """Read and JSON-decode a capture file."""
    try:
        text = Path(file_path).read_text(encoding="utf-8")
        return json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CaptureLoadError(str(e), path=str(file_path)) from e


def parse_har(
    har: dict,
    include: str | None = None,
    exclude: str | None = None,
    template: bool = True,
) -> list[Sample]:
    """Parse a decoded HAR document into filtered, keyed samples."""
    samples = [_parse_entry(entry, template) for entry in _entries(har)]
    filtered = filter_samples(samples, include=include, exclude=exclude, template=template)
    for sample in filtered:
        sample.key = generate_key(sample)
    return filtered


def parse_har_file(file_path: Path, **options) -> list[Sample]:
    """Load a capture file and parse it. See :func:`parse_har` for options."""
    return parse_har(load_har(file_path), **options)


def _entries(har) -> list[dict]:
    log = har.get("log") if isinstance(har, dict) else None
    entries = log.get("entries") if isinstance(log, dict) else None
    if not isinstance(entries, list):
        logger.info("Capture has no log.entries; treating it as empty")
        return []
    return [e for e in entries if isinstance(e, dict)]


def _parse_entry(entry: dict, template: bool) -> Sample:
    request = entry.get("request") or {}
    response = entry.get("response") or {}
    content = response.get("content") or {}
    post_data = request.get("postData") or {}

    raw_url = request.get("url", "")
    canon_url, templated_url = canonicalize_url(raw_url)

    return Sample(
        method=request.get("method", ""),
        url=canon_url,
        original_url=raw_url,
        templated_url=templated_url if template else None,
        status=response.get("status") or 0,
        time=_total_time(entry.get("timings")),
        size=content.get("size") or 0,
        mime=content.get("mimeType") or "",
        req_headers=_header_map(request.get("headers")),
        res_headers=_header_map(response.get("headers")),
        req_body=post_data.get("text"),
        res_body=content.get("text"),
    )


def _total_time(timings: dict | None) -> float:
    """Sum every numeric timing phase; other values are ignored."""
    if not isinstance(timings, dict):
        return 0
    return sum(
        v for v in timings.values()
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    )


def _header_map(headers: list[dict] | None) -> dict[str, str]:
    """Lower-case header names; the last header with a given name wins."""
    result: dict[str, str] = {}
    for h in headers or []:
        if isinstance(h, dict) and "name" in h:
            result[h["name"].lower()] = h.get("value", "")
    return result
