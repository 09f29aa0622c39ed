"""Quick summary of a single capture."""

from collections import Counter

from pydantic import BaseModel

from harwise.parser.base import Sample


class CaptureStats(BaseModel):
    total: int
    avg_time: float
    avg_size: float
    status_counts: dict[int, int]


def summarize(samples: list[Sample]) -> CaptureStats:
    total = len(samples)
    if not total:
        return CaptureStats(total=0, avg_time=0, avg_size=0, status_counts={})
    return CaptureStats(
        total=total,
        avg_time=sum(s.time for s in samples) / total,
        avg_size=sum(s.size for s in samples) / total,
        status_counts=dict(sorted(Counter(s.status for s in samples).items())),
    )


def render_stats(stats: CaptureStats, name: str) -> str:
    if not stats.total:
        return "No API-like requests found in HAR file"
    lines = [
        f"HAR Stats: {name}",
        f"Total API requests: {stats.total}",
        f"Average time: {stats.avg_time:.2f}ms",
        f"Average size: {stats.avg_size:.2f} bytes",
        "Status codes:",
    ]
    lines += [f"  {status}: {count}" for status, count in stats.status_counts.items()]
    return "\n".join(lines)
