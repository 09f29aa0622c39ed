"""Test generation config: assertion, extraction and substitution rules.

A user-supplied partial config is merged over the built-in defaults field
by field. Scalars and lists replace the default outright (lists are never
concatenated); ``assertions.global`` is merged key by key so overriding
one tolerance keeps the other defaults.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from harwise.errors import ConfigError

DEFAULT_STATUS_RANGE = (200, 399)
DEFAULT_MAX_TIME_PCT = 25.0
DEFAULT_MASK_HEADERS = ["authorization", "cookie"]


class _Rule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GlobalAssertions(_Rule):
    status_range: tuple[int, int] = Field(DEFAULT_STATUS_RANGE, alias="statusRange")  # [low, high)
    max_time_pct_over_sample: float = Field(DEFAULT_MAX_TIME_PCT, alias="maxTimePctOverSample")


class JsonPathAssertion(_Rule):
    path: str
    exists: bool | None = None
    min_length: int | None = Field(None, alias="minLength")


class UrlAssertions(_Rule):
    match: str
    jsonpath: list[JsonPathAssertion] = []


class Assertions(_Rule):
    global_: GlobalAssertions = Field(default_factory=GlobalAssertions, alias="global")
    by_url: list[UrlAssertions] = Field([], alias="byUrl")


class ExtractRule(_Rule):
    """Store the first value of JSONPath ``from`` into context variable ``to``."""

    match: str
    from_: str = Field(alias="from")
    to: str


class SubstituteRule(_Rule):
    """Replace ``pattern`` in URL and body with context variable ``var``."""

    match: str
    pattern: str
    var: str


class TestConfig(_Rule):
    __test__ = False

    assertions: Assertions = Field(default_factory=Assertions)
    extract: list[ExtractRule] = []
    substitute: list[SubstituteRule] = []
    mask_headers: list[str] = Field(default_factory=lambda: list(DEFAULT_MASK_HEADERS), alias="maskHeaders")
    base_url: str = Field("", alias="baseUrl")

    def dump(self) -> dict:
        """JSON-ready dict using the on-disk camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


def merge_config(overrides: dict | None = None) -> TestConfig:
    """Merge a partial config dict over the defaults."""
    overrides = overrides or {}
    if not isinstance(overrides, dict):
        raise ConfigError("Config must be a mapping")

    merged = TestConfig().dump()
    for key in ("extract", "substitute", "maskHeaders", "baseUrl"):
        if overrides.get(key) is not None:
            merged[key] = overrides[key]

    assertions = overrides.get("assertions") or {}
    if not isinstance(assertions, dict):
        raise ConfigError("'assertions' must be a mapping")
    if assertions.get("global") is not None:
        if not isinstance(assertions["global"], dict):
            raise ConfigError("'assertions.global' must be a mapping")
        merged["assertions"]["global"].update(assertions["global"])
    if assertions.get("byUrl") is not None:
        merged["assertions"]["byUrl"] = assertions["byUrl"]

    try:
        config = TestConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid test config: {e}") from e

    config.mask_headers = [h.lower() for h in config.mask_headers]
    return config


def read_config_file(file_path: Path) -> dict:
    """Read a partial config from a YAML or JSON file."""
    try:
        data = yaml.safe_load(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"{file_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{file_path}: config must be a mapping")
    return data


def load_config(file_path: Path | None, overrides: dict | None = None) -> TestConfig:
    """Read a config file, apply top-level ``overrides`` and merge over the defaults."""
    data = read_config_file(file_path) if file_path is not None else {}
    data.update(overrides or {})
    return merge_config(data)
