import logging
import math

from . import config
from .models import (
    Err,
    MixValues,
    MonteCarloResult,
    Ok,
    QualityCurve,
    Refusal,
    Result,
    SagParameters,
    SagPoint,
    SagProfile,
)

logger = logging.getLogger(__name__)


def mix(params: SagParameters) -> MixValues:
    # oxygen comes from the river term only; BOD load from the discharge only
    qm = params.qr + params.qw
    if qm <= 0:
        c0, l0 = 0.0, 0.0
    else:
        c0 = (params.qr * params.cr) / qm
        l0 = (params.qw * params.lw) / qm
    return MixValues(qm=qm, c0=c0, l0=l0, d0=params.cs - c0)


def deficit(t: float, kd: float, kr: float, l0: float, d0: float) -> float:
    """Streeter-Phelps oxygen deficit after `t` days."""
    if abs(kr - kd) < config.RATE_EPSILON:
        return (kd * l0 * t + d0) * math.exp(-kd * t)
    return (kd * l0 / (kr - kd)) * (math.exp(-kd * t) - math.exp(-kr * t)) + d0 * math.exp(-kr * t)


def solve_oxygen_sag(params: SagParameters) -> Result[SagProfile]:
    if params.v <= 0:
        logger.warning("Oxygen sag refused: velocity %s", params.v)
        return Err(Refusal(
            code="non_positive_velocity",
            message="stream velocity v must be greater than zero",
            received=params.v,
        ))

    m = mix(params)
    steps = int(math.floor(max(0.0, params.max_distance_km) * 1000.0 / config.STEP_M))
    points = []
    for i in range(steps + 1):
        x_m = i * config.STEP_M
        t = x_m / (params.v * config.SECONDS_PER_DAY)
        d = deficit(t, params.kd, params.kr, m.l0, m.d0)
        points.append(SagPoint(
            distance_km=x_m / 1000.0,
            travel_time_days=t,
            deficit=d,
            oxygen=max(0.0, params.cs - d),
        ))
    return Ok(SagProfile(params=params, mix=m, points=points))


def quality_curve(
    mc: MonteCarloResult,
    parameter_id: str,
    river: SagParameters,
    quantile: float = config.QUALITY_CURVE_QUANTILE,
) -> Result[QualityCurve]:
    """
    Oxygen profile downstream of the discharge, using a simulated effluent
    percentile (P95 by default) as the discharge BOD load.
    """
    if parameter_id != config.QUALITY_CURVE_PARAMETER:
        return Err(Refusal(
            code="unsupported_parameter",
            message=f"quality curve needs {config.QUALITY_CURVE_PARAMETER} effluent, got {parameter_id}",
        ))
    lw = mc.percentiles.get(quantile)
    if lw is None or not math.isfinite(lw) or lw <= 0:
        return Err(Refusal(code="missing_percentile", message=f"no valid P{quantile * 100:g} effluent value"))

    profile = solve_oxygen_sag(SagParameters(
        qr=river.qr, cr=river.cr, qw=river.qw, lw=lw, cs=river.cs,
        kd=river.kd, kr=river.kr, v=river.v, max_distance_km=river.max_distance_km,
    ))
    if isinstance(profile, Err):
        return profile
    return Ok(QualityCurve(parameter_id=parameter_id, discharge_load=lw, profile=profile.value))
