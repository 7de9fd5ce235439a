import math
from statistics import NormalDist
from typing import Dict, Protocol

from . import config
from .models import (
    Constant,
    DistributionSpec,
    Exponential,
    Lognormal,
    Triangular,
    Uniform,
)

_STANDARD_NORMAL = NormalDist()


class UniformSource(Protocol):
    def random(self) -> float: ...


def _clamp_u(u: float) -> float:
    return min(max(u, config.U_EPSILON), 1.0 - config.U_EPSILON)


def _unit(u: float) -> float:
    return min(max(u, 0.0), 1.0)


def _bound(x: float) -> float:
    # keeps every draw, and sums of draws, finite
    return min(max(x, -config.VALUE_CEILING), config.VALUE_CEILING)


def inverse_triangular(u: float, lo: float, mode: float, hi: float) -> float:
    # caller's ordering is not trusted
    a = min(lo, mode, hi)
    c = max(lo, mode, hi)
    b = max(min(mode, c), a)
    if c == a:
        return a
    fm = (b - a) / (c - a)
    if u < fm:
        return a + math.sqrt(u * (c - a) * (b - a))
    return c - math.sqrt((1.0 - u) * (c - a) * (c - b))


def _lognormal_params(mean: float, cv: float):
    cvf = min(max(cv, config.CV_FLOOR), config.CV_CEILING)
    sigma2 = math.log(1.0 + cvf * cvf)
    mu = math.log(min(max(mean, config.MEAN_FLOOR), config.VALUE_CEILING)) - 0.5 * sigma2
    return mu, math.sqrt(sigma2)


def box_muller(rng: UniformSource) -> float:
    # consumes exactly two draws
    u1 = max(rng.random(), config.U_EPSILON)
    u2 = rng.random()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def sample_from_u(u: float, spec: DistributionSpec) -> float:
    """Map a single uniform draw through the inverse CDF of `spec`."""
    if isinstance(spec, Exponential):
        m = min(max(config.MEAN_FLOOR, spec.mean), config.VALUE_CEILING)
        return -m * math.log(1.0 - _clamp_u(u))
    if isinstance(spec, Uniform):
        a, b = _bound(min(spec.a, spec.b)), _bound(max(spec.a, spec.b))
        return a + (b - a) * _unit(u)
    if isinstance(spec, Triangular):
        return inverse_triangular(_unit(u), _bound(spec.min), _bound(spec.mode), _bound(spec.max))
    if isinstance(spec, Constant):
        return min(max(0.0, spec.c), config.VALUE_CEILING)
    if isinstance(spec, Lognormal):
        mu, sigma = _lognormal_params(spec.mean, spec.cv)
        return math.exp(mu + sigma * _STANDARD_NORMAL.inv_cdf(_clamp_u(u)))
    raise ValueError(f"Unknown distribution: {spec!r}")


def sample(spec: DistributionSpec, rng: UniformSource) -> float:
    if isinstance(spec, Lognormal):
        mu, sigma = _lognormal_params(spec.mean, spec.cv)
        return math.exp(mu + sigma * box_muller(rng))
    if isinstance(spec, Constant):
        # no draw consumed
        return min(max(0.0, spec.c), config.VALUE_CEILING)
    return sample_from_u(rng.random(), spec)


_BUILDERS = {
    "exponential": lambda p: Exponential(mean=p["mean"]),
    "uniform": lambda p: Uniform(a=p["a"], b=p["b"]),
    "triangular": lambda p: Triangular(min=p["min"], mode=p["mode"], max=p["max"]),
    "constant": lambda p: Constant(c=p["c"]),
    "lognormal": lambda p: Lognormal(mean=p["mean"], cv=p["cv"]),
}


def spec_from_dict(spec: Dict) -> DistributionSpec:
    kind = str(spec["kind"]).strip().lower()
    if kind not in _BUILDERS:
        raise ValueError(f"Unknown distribution kind: {kind}")
    try:
        return _BUILDERS[kind](spec)
    except KeyError as exc:
        raise ValueError(f"{kind} distribution requires parameter {exc.args[0]!r}") from None
