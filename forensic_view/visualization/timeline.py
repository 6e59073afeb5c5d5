"""
Timeline Visualization Contracts

Responsibility:
Deterministic transformation of event histograms into a renderable
timeline with an optional brush overlay.
Input: TimelineHistogram (overview + brushed) -> Output: TimelineView
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from forensic_graph.contracts import TimeWindow
from forensic_graph.core import TimelineHistogram


@dataclass(frozen=True)
class TimelineBar:
    """One histogram bar; height is normalized to the tallest overview bar."""
    bucket: int
    start_ms: int
    end_ms: int
    count: int
    height: float


@dataclass(frozen=True)
class TimelineView:
    """
    Fully calculated timeline visualization.

    Brushed bars share the overview's normalization so that the two
    layers can be drawn on the same axis.
    """
    granularity_ms: int
    bars: Tuple[TimelineBar, ...]
    brushed_bars: Tuple[TimelineBar, ...]
    max_count: int
    brush: Optional[Tuple[int, int]]

    def to_dict(self) -> dict:
        def bars(values):
            return [
                {"bucket": b.bucket, "start_ms": b.start_ms, "end_ms": b.end_ms, "count": b.count, "height": b.height}
                for b in values
            ]

        return {
            "granularity_ms": self.granularity_ms,
            "max_count": self.max_count,
            "brush": list(self.brush) if self.brush else None,
            "bars": bars(self.bars),
            "brushed_bars": bars(self.brushed_bars),
        }


def _bars(histogram: TimelineHistogram, max_count: int) -> Tuple[TimelineBar, ...]:
    g = histogram.granularity_ms
    return tuple(
        TimelineBar(
            bucket=b.bucket,
            start_ms=b.start_ms,
            end_ms=b.start_ms + g,
            count=b.count,
            height=(b.count / max_count) if max_count else 0.0,
        )
        for b in histogram.buckets
    )


def build_timeline_view(
    overview: TimelineHistogram,
    brushed: Optional[TimelineHistogram] = None,
    brush: Optional[TimeWindow] = None
) -> TimelineView:
    max_count = overview.max_count
    return TimelineView(
        granularity_ms=overview.granularity_ms,
        bars=_bars(overview, max_count),
        brushed_bars=_bars(brushed, max_count) if brushed is not None else (),
        max_count=max_count,
        brush=(brush.start_ms, brush.end_ms) if brush is not None else None,
    )
