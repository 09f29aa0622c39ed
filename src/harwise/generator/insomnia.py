"""Exports samples as an Insomnia collection (export format 4)."""

import json

from harwise.generator.config import DEFAULT_MASK_HEADERS
from harwise.parser.base import Sample
from harwise.parser.url import origin_of, path_and_query

BASE_ENV_ID = "env_base"
GROUP_ID = "fld_root"
BEARER_PREFIX = "Bearer "


def render_insomnia(
    samples: list[Sample],
    base_url: str = "",
    mask_headers: list[str] | None = None,
) -> str:
    """Render the collection as pretty-printed JSON."""
    masked = {h.lower() for h in (DEFAULT_MASK_HEADERS if mask_headers is None else mask_headers)}

    resources: list[dict] = [
        {
            "_id": BASE_ENV_ID,
            "_type": "environment",
            "name": "Base",
            "data": {"base_url": base_url, "auth_token": _find_bearer_token(samples)},
        },
        {"_id": GROUP_ID, "_type": "request_group", "name": "harwise import"},
    ]

    for i, sample in enumerate(samples):
        resources.append({
            "_id": f"req_{i}",
            "_type": "request",
            "parentId": GROUP_ID,
            "name": f"{sample.method} {path_and_query(sample.match_url)}",
            "method": sample.method,
            "url": _rebase(sample.url, base_url),
            "headers": _headers(sample.req_headers, masked),
            "body": _body(sample.req_body, sample.req_headers.get("content-type", "")),
        })

    return json.dumps({"_type": "export", "__export_format": 4, "resources": resources}, indent=2)


def _find_bearer_token(samples: list[Sample]) -> str:
    for sample in samples:
        auth = sample.req_headers.get("authorization", "")
        if auth.startswith(BEARER_PREFIX):
            return auth[len(BEARER_PREFIX):]
    return ""


def _rebase(url: str, base_url: str) -> str:
    if base_url and origin_of(url) and origin_of(url) == origin_of(base_url):
        return "{{ base_url }}" + path_and_query(url)
    return url


def _headers(headers: dict[str, str], masked: set[str]) -> list[dict]:
    result = []
    for name, value in headers.items():
        if name.startswith(":"):
            continue
        if name.lower() in masked:
            if name.lower() == "authorization" and value.startswith(BEARER_PREFIX):
                value = "Bearer {{ auth_token }}"
            else:
                value = "[MASKED]"
        result.append({"name": name, "value": value})
    return result


def _body(body: str | None, content_type: str) -> dict:
    if not body:
        return {}
    if "application/json" in content_type:
        try:
            return {"mimeType": "application/json", "text": json.dumps(json.loads(body), indent=2)}
        except json.JSONDecodeError:
            pass
    return {"mimeType": content_type or "text/plain", "text": body}
