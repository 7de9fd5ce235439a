import math
from typing import Dict, Iterable, List, Optional, Sequence

from . import config
from .models import ExceedancePoint, HistogramBin, SeriesSummary


def percentiles(values: Sequence[float], quantiles: Iterable[float]) -> Dict[float, float]:
    """
    Linear interpolation between order statistics, idx = (n - 1) * q.
    Empty input gives NaN for every quantile.
    """
    s = sorted(values)
    out: Dict[float, float] = {}
    for q in quantiles:
        if not s:
            out[q] = math.nan
            continue
        idx = (len(s) - 1) * min(max(q, 0.0), 1.0)
        i0, i1 = math.floor(idx), math.ceil(idx)
        if i0 == i1:
            out[q] = s[i0]
        else:
            w = idx - i0
            out[q] = s[i0] * (1.0 - w) + s[i1] * w
    return out


def compliance_probability(values: Sequence[float], ceiling: Optional[float]) -> Optional[float]:
    # percent of draws at or below the ceiling; None when there is no ceiling
    if ceiling is None or not values:
        return None
    hits = sum(1 for x in values if x <= ceiling)
    return hits / len(values) * 100.0


def _finite(values: Sequence[float]) -> List[float]:
    return [x for x in values if math.isfinite(x)]


def histogram(values: Sequence[float], bins: int = config.HISTOGRAM_BINS) -> List[HistogramBin]:
    # non-finite draws are left out of the bins
    values = _finite(values)
    if not values:
        return []
    lo, hi = min(values), max(values)
    width = (hi - lo) / bins or 1.0
    counts = [0] * bins
    for x in values:
        idx = math.floor((x - lo) / width)
        counts[min(max(idx, 0), bins - 1)] += 1
    return [
        HistogramBin(low=lo + i * width, high=lo + (i + 1) * width, count=c)
        for i, c in enumerate(counts)
    ]


def exceedance_curve(values: Sequence[float]) -> List[ExceedancePoint]:
    """Duration curve: i-th largest value vs percent of samples >= it."""
    desc = sorted(values, reverse=True)
    n = len(desc)
    return [ExceedancePoint(percent=(i + 1) / n * 100.0, value=v) for i, v in enumerate(desc)]


def summarize(values: Sequence[float]) -> SeriesSummary:
    values = _finite(values)
    if not values:
        return SeriesSummary(mean=math.nan, std=math.nan, min=math.nan, max=math.nan)
    n = len(values)
    mean = math.fsum(values) / n
    var = math.fsum((x - mean) ** 2 for x in values) / n
    return SeriesSummary(mean=mean, std=math.sqrt(var), min=min(values), max=max(values))
