"""Sequential test runner.

Loads the manifest written by the suite generator and runs its tests one
at a time, in manifest order, over a single shared TestContext: later
tests substitute variables that earlier tests extracted. A failing test is
recorded and the run continues.
"""

import json
import logging
import math
import time
from enum import Enum
from pathlib import Path
from typing import Literal

import requests
from pydantic import BaseModel, ValidationError

from harwise.errors import ManifestError
from harwise.generator.descriptor import MANIFEST_NAME, TestCase, TestManifest
from harwise.runner.context import VARS_FILE_NAME, TestContext, save_variables
from harwise.runner.executor import CaseExecutor

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    LOADING_MANIFEST = "loading_manifest"
    EXECUTING = "executing"
    AGGREGATING = "aggregating"
    DONE = "done"


class TimingBreakdown(BaseModel):
    start: float  # epoch ms
    end: float
    duration: float
    request: float | None = None


class TestResult(BaseModel):
    __test__ = False

    name: str
    status: Literal["pass", "fail"]
    time: float
    assertions: int
    error: str | None = None
    timing: TimingBreakdown | None = None


class RunSummary(BaseModel):
    total: int
    passed: int
    failed: int
    total_time: float
    avg_time: int
    p50: float
    p95: float


def percentile(times: list[float], p: float) -> float:
    """Nearest-rank percentile; 0 for no samples."""
    if not times:
        return 0
    ordered = sorted(times)
    index = math.ceil(p / 100 * len(ordered)) - 1
    return ordered[max(0, index)]


def load_manifest(tests_dir: Path) -> TestManifest:
    path = tests_dir / MANIFEST_NAME
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return TestManifest.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ManifestError(f"Cannot load manifest {path}: {e}") from e


def load_case(path: Path) -> TestCase:
    return TestCase.model_validate(json.loads(path.read_text(encoding="utf-8")))


class TestRunner:
    """Runs a generated suite and aggregates its results."""

    __test__ = False

    def __init__(
        self,
        context: TestContext | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.context = context or TestContext()
        self.executor = CaseExecutor(session=session, timeout=timeout)
        self.results: list[TestResult] = []
        self.state = RunState.IDLE

    def run(self, tests_dir: Path) -> list[TestResult]:
        """Run every test of the manifest in ``tests_dir``, in order."""
        tests_dir = Path(tests_dir)
        self.state = RunState.LOADING_MANIFEST
        manifest = load_manifest(tests_dir)
        logger.info("Running %d tests from %s", len(manifest.tests), tests_dir)

        self.state = RunState.EXECUTING
        for entry in manifest.tests:
            self.results.append(self._run_entry(tests_dir / entry.file, entry.name))

        self.state = RunState.AGGREGATING
        extracted = self.context.extracted
        if extracted:
            save_variables(tests_dir / VARS_FILE_NAME, extracted)

        self.state = RunState.DONE
        return self.results

    def _run_entry(self, path: Path, name: str) -> TestResult:
        return self._timed(name, lambda: load_case(path))

    def _timed(self, name: str, load) -> TestResult:
        start = time.time() * 1000
        try:
            outcome = self.executor.execute(load(), self.context)
        except Exception as e:
            end = time.time() * 1000
            logger.info("FAIL %s: %s", name, e)
            return TestResult(
                name=name,
                status="fail",
                time=end - start,
                assertions=0,
                error=str(e) or type(e).__name__,
                timing=TimingBreakdown(start=start, end=end, duration=end - start),
            )

        end = time.time() * 1000
        logger.info("PASS %s (status %d, %.0fms)", name, outcome.status, outcome.request_ms)
        return TestResult(
            name=name,
            status="pass",
            time=end - start,
            assertions=outcome.assertions,
            timing=TimingBreakdown(
                start=start, end=end, duration=end - start, request=outcome.request_ms
            ),
        )

    def summary(self) -> RunSummary:
        total = len(self.results)
        passed = sum(1 for r in self.results if r.status == "pass")
        total_time = sum(r.time for r in self.results)
        times = [r.time for r in self.results]
        return RunSummary(
            total=total,
            passed=passed,
            failed=total - passed,
            total_time=total_time,
            avg_time=round(total_time / total) if total else 0,
            p50=percentile(times, 50),
            p95=percentile(times, 95),
        )
