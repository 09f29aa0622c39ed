"""Regression comparator for two normalized captures.

Samples are joined on their correlation key. Endpoints that vanished from
the new capture, got slower or larger beyond a threshold, or changed status
are regressions; endpoints that only exist in the new capture are not.
"""

import logging

from pydantic import BaseModel

from harwise.parser.base import Sample

logger = logging.getLogger(__name__)

DEFAULT_TIME_THRESHOLD_PCT = 10.0
DEFAULT_SIZE_THRESHOLD_PCT = 15.0


class ComparisonResult(BaseModel):
    """Correlation outcome for one endpoint key."""

    endpoint: str
    status_old: int = 0
    status_new: int = 0
    time_old: float = 0
    time_new: float = 0
    size_old: int = 0
    size_new: int = 0
    delta_pct: float = 0
    regression: bool = False


class ComparisonReport(BaseModel):
    results: list[ComparisonResult]
    time_threshold_pct: float = DEFAULT_TIME_THRESHOLD_PCT
    size_threshold_pct: float = DEFAULT_SIZE_THRESHOLD_PCT

    @property
    def regressions(self) -> list[ComparisonResult]:
        return [r for r in self.results if r.regression]

    @property
    def has_regression(self) -> bool:
        return any(r.regression for r in self.results)


def compare_samples(
    baseline: list[Sample],
    new: list[Sample],
    time_threshold_pct: float = DEFAULT_TIME_THRESHOLD_PCT,
    size_threshold_pct: float = DEFAULT_SIZE_THRESHOLD_PCT,
) -> ComparisonReport:
    """Compare two sample sets keyed by their correlation key."""
    # Later samples overwrite earlier ones under the same key.
    baseline_map = {s.key: s for s in baseline}
    new_map = {s.key: s for s in new}

    results: list[ComparisonResult] = []
    for key, base in baseline_map.items():
        current = new_map.get(key)
        if current is None:
            results.append(_removed(key, base))
        else:
            results.append(_changed(key, base, current, time_threshold_pct, size_threshold_pct))

    for key, current in new_map.items():
        if key not in baseline_map:
            results.append(_added(key, current))

    report = ComparisonReport(
        results=results,
        time_threshold_pct=time_threshold_pct,
        size_threshold_pct=size_threshold_pct,
    )
    logger.info(
        "Compared %d endpoints, %d regressions", len(results), len(report.regressions)
    )
    return report


def _removed(key: str, base: Sample) -> ComparisonResult:
    return ComparisonResult(
        endpoint=key,
        status_old=base.status,
        time_old=base.time,
        size_old=base.size,
        delta_pct=-100,
        regression=True,
    )


def _added(key: str, current: Sample) -> ComparisonResult:
    return ComparisonResult(
        endpoint=key,
        status_new=current.status,
        time_new=current.time,
        size_new=current.size,
        delta_pct=100,
        regression=False,
    )


def _changed(
    key: str,
    base: Sample,
    current: Sample,
    time_threshold_pct: float,
    size_threshold_pct: float,
) -> ComparisonResult:
    time_regression = current.time > base.time * (1 + time_threshold_pct / 100)
    size_regression = current.size > base.size * (1 + size_threshold_pct / 100)
    status_regression = current.status != base.status

    delta_pct = (current.time - base.time) / base.time * 100 if base.time > 0 else 0

    return ComparisonResult(
        endpoint=key,
        status_old=base.status,
        status_new=current.status,
        time_old=base.time,
        time_new=current.time,
        size_old=base.size,
        size_new=current.size,
        delta_pct=delta_pct,
        regression=time_regression or size_regression or status_regression,
    )


# -- markdown report --------------------------------------------------------


def render_markdown(report: ComparisonReport, baseline_name: str, new_name: str) -> str:
    """Render a comparison report as a Markdown document."""
    regressions = report.regressions
    lines = [
        "# HAR Comparison Report",
        "",
        f"**Baseline:** {baseline_name}",
        f"**New:** {new_name}",
        f"**Time Regression Threshold:** {_num(report.time_threshold_pct)}%",
        f"**Size Regression Threshold:** {_num(report.size_threshold_pct)}%",
        "",
        "## Summary",
        "",
        f"- **Total Endpoints:** {len(report.results)}",
        f"- **Regressions:** {len(regressions)}",
        f"- **Clean:** {len(report.results) - len(regressions)}",
        "",
        "## Results",
        "",
        "| Endpoint | Status | Time (ms) | Size (bytes) | Δ% | Regression |",
        "|----------|--------|-----------|--------------|----|------------|",
    ]

    for r in report.results:
        status = _transition(r.status_old, r.status_new)
        time = _transition(r.time_old, r.time_new)
        size = _transition(r.size_old, r.size_new)
        delta = "-" if r.delta_pct == 0 else _signed_pct(r.delta_pct)
        marker = "⚠️" if r.regression else "✅"
        lines.append(f"| {r.endpoint} | {status} | {time} | {size} | {delta} | {marker} |")

    if regressions:
        lines.extend(["", "## Regressions", ""])
        for r in regressions:
            lines.append(f"- **{r.endpoint}**: {_signed_pct(r.delta_pct)} change")

    return "\n".join(lines) + "\n"


def _transition(old, new) -> str:
    if old == new:
        return _num(old)
    return f"{_num(old)} → {_num(new)}"


def _signed_pct(value: float) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.1f}%"


def _num(value) -> str:
    """Format whole floats without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
