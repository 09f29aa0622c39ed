"""API-likeness filtering, include/exclude rules and correlation keys."""

import logging
import re
from functools import lru_cache

from harwise.parser.base import Sample

logger = logging.getLogger(__name__)

API_MIME_PATTERN = re.compile(r"(json|xml|text|javascript)", re.IGNORECASE)
API_URL_PATTERN = re.compile(r"/api/|/v\d+/")


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern | None:
    """Compile a user-supplied regex, or return None if it is invalid."""
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning("Ignoring invalid regex %r: %s", pattern, e)
        return None


def search(pattern: str, text: str) -> bool:
    """Regex search that treats an invalid pattern as non-matching."""
    compiled = compile_pattern(pattern)
    return compiled is not None and compiled.search(text) is not None


def is_api_like(sample: Sample) -> bool:
    """Heuristic: XHR/fetch request, API-ish MIME type, or API-ish URL."""
    headers = sample.req_headers
    if headers.get("x-requested-with") == "XMLHttpRequest" or "fetch-mode" in headers:
        return True
    if API_MIME_PATTERN.search(sample.mime):
        return True
    return API_URL_PATTERN.search(sample.url) is not None


def filter_samples(
    samples: list[Sample],
    include: str | None = None,
    exclude: str | None = None,
    template: bool = True,
) -> list[Sample]:
    """Keep API-like samples that pass the include/exclude regexes."""
    kept = []
    for sample in samples:
        if not is_api_like(sample):
            continue
        target = sample.match_url if template else sample.url
        if include and not search(include, target):
            continue
        if exclude and search(exclude, target):
            continue
        kept.append(sample)

    logger.info("Filtered %d samples down to %d", len(samples), len(kept))
    return kept


def generate_key(sample: Sample) -> str:
    return f"{sample.method} {sample.match_url}"
