import logging
from dataclasses import replace
from typing import Optional

from . import config
from .distributions import sample
from .models import (
    DistributionSpec,
    Lognormal,
    MonteCarloRequest,
    MonteCarloResult,
    SampleRow,
    Triangular,
)
from .prng import Mulberry32
from .regulations import MaxLimit, RegulatoryTable
from .statistics import (
    compliance_probability,
    exceedance_curve,
    histogram,
    percentiles,
    summarize,
)

logger = logging.getLogger(__name__)


def _floor_triangular(spec: Triangular) -> Triangular:
    return Triangular(min=max(0.0, spec.min), mode=max(0.0, spec.mode), max=max(0.0, spec.max))


def _floor_influent(spec: DistributionSpec) -> DistributionSpec:
    # concentrations cannot be negative; lognormal needs a usable mean/cv
    if isinstance(spec, Lognormal):
        return Lognormal(mean=max(config.LOGNORMAL_MIN_MEAN, spec.mean), cv=max(config.LOGNORMAL_MIN_CV, spec.cv))
    if isinstance(spec, Triangular):
        return _floor_triangular(spec)
    return spec


def clamp_sample_count(n: int) -> int:
    clamped = min(max(1, int(n)), config.MAX_SAMPLES)
    if clamped != n:
        logger.warning("Sample count %s clamped to %s", n, clamped)
    return clamped


def run_monte_carlo(req: MonteCarloRequest) -> MonteCarloResult:
    """
    Propagate influent and removal uncertainty to the effluent series.

    Each sample draws the influent first and the removal percentage second
    from one generator, so the whole run is a function of (seed, n, specs).
    """
    n = clamp_sample_count(req.n_samples)
    rng = Mulberry32(req.seed)
    influent_spec = _floor_influent(req.influent)
    removal_spec = _floor_triangular(req.removal)
    logger.debug("Monte Carlo run seed=%s n=%s influent=%r", req.seed, n, influent_spec)

    rows = []
    for i in range(n):
        e = sample(influent_spec, rng)
        r_pct = min(100.0, max(0.0, sample(removal_spec, rng)))
        s = e * (1.0 - r_pct / 100.0)
        rows.append(SampleRow(index=i + 1, influent=e, removal_pct=r_pct, effluent=s))

    effluent = [r.effluent for r in rows]
    return MonteCarloResult(
        seed=req.seed,
        n_samples=n,
        samples=rows,
        percentiles=percentiles(effluent, req.quantiles),
        compliance_probability=compliance_probability(effluent, req.ceiling),
        ceiling=req.ceiling,
        histogram=histogram(effluent, config.HISTOGRAM_BINS),
        exceedance=exceedance_curve(effluent),
        summary=summarize(effluent),
    )


def ceiling_for(table: RegulatoryTable, parameter_id: str, receptor: str, category: str) -> Optional[float]:
    limit = table.lookup(parameter_id, receptor, category)
    return limit.limit if isinstance(limit, MaxLimit) else None


def simulate_parameter(
    table: RegulatoryTable,
    parameter_id: str,
    receptor: str,
    category: str,
    req: MonteCarloRequest,
) -> MonteCarloResult:
    """Run `req` against the regulatory ceiling of one parameter."""
    ceiling = ceiling_for(table, parameter_id, receptor, category)
    return run_monte_carlo(replace(req, ceiling=ceiling))
