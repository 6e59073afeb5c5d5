"""
Quantile Classifier
===================

Five-bucket quantile color scale over the byte proportions of the
currently active links of one kind.

The scale is rebuilt on every window change: "high" and "low" traffic
are relative to what is on screen, not to the whole Search.

Thresholds are the 20/40/60/80% quantiles (linear interpolation) of the
domain [min, max]; a value maps to the number of thresholds <= value.
A degenerate domain (one distinct value) puts every value in a single
bucket. An empty domain (no links, or only zero-byte links) classifies
nothing.
"""

from __future__ import annotations
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from ..contracts.links import TrafficLink


# Ordered low -> high intensity.
QUANTILE_COLORS: Tuple[str, ...] = ('#9096f8', '#78f6ef', '#6ce18b', '#f19938', '#eb4d70')


@dataclass
class QuantileConfig:
    """Configuration for intensity classification."""
    colors: Tuple[str, ...] = QUANTILE_COLORS


@dataclass(frozen=True)
class QuantileScale:
    """
    Maps a byte proportion to a color bucket.

    The color string doubles as the bucket id tested by the intensity
    filter.
    """
    domain: Optional[Tuple[float, float]]
    thresholds: Tuple[float, ...]
    colors: Tuple[str, ...]

    @property
    def is_degenerate(self) -> bool:
        return self.domain is None or self.domain[0] == self.domain[1]

    def bucket_index(self, proportion: float) -> Optional[int]:
        if self.domain is None:
            return None
        return bisect_right(self.thresholds, proportion)

    def classify(self, proportion: float) -> Optional[str]:
        index = self.bucket_index(proportion)
        if index is None:
            return None
        return self.colors[index]

    __call__ = classify

    def classify_many(self, proportions: Sequence[float]) -> Tuple[Optional[str], ...]:
        if self.domain is None:
            return tuple(None for _ in proportions)
        positions = np.searchsorted(np.asarray(self.thresholds, dtype=float), np.asarray(proportions, dtype=float), side='right')
        return tuple(self.colors[int(p)] for p in positions)


def quantile_scale(
    proportions: Iterable[float],
    colors: Tuple[str, ...] = QUANTILE_COLORS
) -> QuantileScale:
    """Build the scale for a set of proportions (may be empty)."""
    values = np.asarray([p for p in proportions if p is not None], dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return QuantileScale(domain=None, thresholds=(), colors=colors)

    low, high = float(values.min()), float(values.max())
    steps = len(colors)
    probabilities = [i / steps for i in range(1, steps)]
    thresholds = np.quantile(np.array([low, high]), probabilities)
    return QuantileScale(
        domain=(low, high),
        thresholds=tuple(float(t) for t in thresholds),
        colors=colors
    )


class QuantileClassifier:
    """Builds per-kind scales for the active links."""

    def __init__(self, config: Optional[QuantileConfig] = None):
        self._config = config or QuantileConfig()

    @property
    def colors(self) -> Tuple[str, ...]:
        return self._config.colors

    def scale_for(self, links: Iterable[TrafficLink]) -> QuantileScale:
        # Zero-byte links have no meaningful proportion and stay uncolored.
        links = list(links)
        if sum(link.total_bytes for link in links) == 0:
            return QuantileScale(domain=None, thresholds=(), colors=self._config.colors)
        return quantile_scale((link.byte_proportion for link in links), self._config.colors)
