"""Test suite generator: turns normalized samples into test descriptors.

Each sample becomes one TestCase: a structured description of the request
to replay and the checks to run on its response. The runner interprets
descriptors directly; :mod:`harwise.generator.code` can additionally
render them as standalone pytest files.
"""

import json
import logging
import math
from pathlib import Path

from harwise.errors import GenerationError
from harwise.generator.code import CodeGenerator
from harwise.generator.config import JsonPathAssertion, TestConfig, merge_config
from harwise.generator.descriptor import (
    MANIFEST_NAME,
    ManifestEntry,
    TestCase,
    TestManifest,
    descriptor_file,
)
from harwise.generator.validator import validate_files
from harwise.parser.base import Sample
from harwise.parser.match import search
from harwise.parser.url import origin_of, path_and_query, path_pattern

logger = logging.getLogger(__name__)


class SuiteGenerator:
    """Builds test descriptors and the manifest for a sample set."""

    def __init__(self, config: TestConfig | None = None):
        self.config = config or merge_config()

    def build_case(self, sample: Sample, index: int) -> TestCase:
        """Build the descriptor for one sample. Deterministic."""
        config = self.config
        base_url = config.base_url.rstrip("/") or origin_of(sample.url)
        pattern = path_pattern(sample.match_url)
        pct = config.assertions.global_.max_time_pct_over_sample

        return TestCase(
            index=index,
            name=f"{sample.method} {sample.url}",
            method=sample.method,
            url=f"{base_url}{path_and_query(sample.url)}",
            headers=self._unmasked_headers(sample.req_headers),
            body=sample.req_body,
            path_pattern=pattern,
            substitutions=[s for s in config.substitute if search(s.match, pattern)],
            status_range=config.assertions.global_.status_range,
            expected_mime=sample.mime,
            sample_time=sample.time,
            max_time_ms=math.ceil(sample.time * (1 + pct / 100)),
            jsonpath_assertions=self._url_assertions(pattern),
            extractions=[e for e in config.extract if search(e.match, pattern)],
        )

    def generate(self, samples: list[Sample]) -> tuple[list[TestCase], TestManifest]:
        """Build descriptors for all samples, in sample order."""
        cases = [self.build_case(sample, i) for i, sample in enumerate(samples)]
        manifest = TestManifest(
            tests=[ManifestEntry(file=descriptor_file(c.index), name=c.name) for c in cases],
            config=self.config,
        )
        return cases, manifest

    def write(self, samples: list[Sample], output_dir: Path, export_pytest: bool = False) -> TestManifest:
        """Generate and write descriptors, the manifest and optional pytest files."""
        cases, manifest = self.generate(samples)

        files: dict[str, str] = {}
        for case in cases:
            files[descriptor_file(case.index)] = json.dumps(case.dump(), indent=2)
        files[MANIFEST_NAME] = json.dumps(manifest.dump(), indent=2)

        if export_pytest:
            files.update(CodeGenerator().generate(cases))

        errors = validate_files(files)
        if errors:
            details = "; ".join(f"{name}: {err}" for name, err in errors.items())
            raise GenerationError(f"Generated suite failed validation: {details}")

        output_dir.mkdir(parents=True, exist_ok=True)
        for filename, content in files.items():
            (output_dir / filename).write_text(content, encoding="utf-8")
        logger.info("Wrote %d tests to %s", len(cases), output_dir)
        return manifest

    def _unmasked_headers(self, headers: dict[str, str]) -> dict[str, str]:
        masked = {h.lower() for h in self.config.mask_headers}
        # HTTP/2 pseudo-headers (":authority", ...) cannot be sent as headers.
        return {
            name: value for name, value in headers.items()
            if name.lower() not in masked and not name.startswith(":")
        }

    def _url_assertions(self, pattern: str) -> list[JsonPathAssertion]:
        """JSONPath checks of the first ``byUrl`` rule matching the path."""
        for rule in self.config.assertions.by_url:
            if search(rule.match, pattern):
                return list(rule.jsonpath)
        return []
