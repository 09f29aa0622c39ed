"""URL canonicalization and path templating.

Two requests that differ only in query-parameter order, fragment, or in a
numeric/UUID path segment should correlate to the same endpoint. The
canonical URL handles the first two; the templated URL additionally
replaces identifier-like path segments with placeholders.
"""

import re
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
NUMERIC_PATTERN = re.compile(r"^[0-9]+$")

UUID_PLACEHOLDER = "{uuid}"
ID_PLACEHOLDER = "{id}"

DEFAULT_PORTS = {"http": 80, "https": 443}


def canonicalize_url(raw_url: str) -> tuple[str, str]:
    """Return ``(canonical_url, templated_url)`` for a captured URL.

    Strings that do not parse as absolute URLs are kept as the canonical
    URL and templated segment-wise as-is.
    """
    try:
        parts = urlsplit(raw_url)
        origin = _origin(parts)
    except ValueError:
        origin = None

    if origin is None:
        return raw_url, template_path(raw_url)

    path = parts.path or "/"
    query = sort_query(parts.query)
    qs = f"?{query}" if query else ""
    return f"{origin}{path}{qs}", f"{origin}{template_path(path)}{qs}"


def sort_query(query: str) -> str:
    """Sort query pairs by key, then value, and re-serialize them."""
    pairs = parse_qsl(query, keep_blank_values=True)
    pairs.sort()
    return urlencode(pairs)


def template_path(pathname: str) -> str:
    """Replace UUID and all-digit path segments with placeholders."""
    return "/".join(_template_segment(seg) for seg in pathname.split("/"))


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` of an absolute URL, or ''."""
    try:
        return _origin(urlsplit(url)) or ""
    except ValueError:
        return ""


def path_and_query(url: str) -> str:
    """Strip the origin from an absolute URL. Other strings pass through."""
    try:
        parts = urlsplit(url)
        if _origin(parts) is None:
            return url
    except ValueError:
        return url
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def path_pattern(url: str) -> str:
    """Query-stripped path used to match per-URL generation rules."""
    return path_and_query(url).split("?")[0]


def _origin(parts) -> str | None:
    if not parts.scheme or not parts.hostname:
        return None
    scheme = parts.scheme.lower()
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def _template_segment(segment: str) -> str:
    if not segment:
        return segment
    try:
        decoded = unquote(segment, errors="strict")
    except UnicodeDecodeError:
        decoded = segment
    if UUID_PATTERN.fullmatch(decoded):
        return UUID_PLACEHOLDER
    if NUMERIC_PATTERN.fullmatch(decoded):
        return ID_PLACEHOLDER
    return segment
