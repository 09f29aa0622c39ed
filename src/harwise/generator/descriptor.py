"""Structured test descriptors and the suite manifest.

Generation writes one TestCase per sample plus a TestManifest; the runner
reads them back in manifest order. Nested rules keep their camelCase
on-disk names (``from``, ``minLength``).
"""

from pydantic import BaseModel

from harwise.generator.config import (
    ExtractRule,
    JsonPathAssertion,
    SubstituteRule,
    TestConfig,
)

MANIFEST_NAME = ".harwise.manifest.json"


class TestCase(BaseModel):
    """Interpretable descriptor for one generated test."""

    __test__ = False

    index: int
    name: str
    method: str
    url: str
    headers: dict[str, str] = {}
    body: str | None = None
    path_pattern: str = ""
    substitutions: list[SubstituteRule] = []
    status_range: tuple[int, int]  # [low, high)
    expected_mime: str = ""
    sample_time: float = 0
    max_time_ms: int
    jsonpath_assertions: list[JsonPathAssertion] = []
    extractions: list[ExtractRule] = []

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ManifestEntry(BaseModel):
    file: str
    name: str


class TestManifest(BaseModel):
    __test__ = False

    tests: list[ManifestEntry] = []
    config: TestConfig

    def dump(self) -> dict:
        return {
            "tests": [t.model_dump() for t in self.tests],
            "config": self.config.dump(),
        }


def descriptor_file(index: int) -> str:
    return f"test_{index}.json"
