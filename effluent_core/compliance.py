import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from . import config
from .regulations import AnalysisOnly, Limit, MaxLimit, RangeLimit, RegulatoryTable

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    NOT_APPLICABLE = "not_applicable"


class Severity(str, Enum):
    ACCEPTABLE = "acceptable"
    INSUFFICIENT = "insufficient"   # misses the limit by <= 20 %
    DEFICIENT = "deficient"         # misses the limit by more than 20 %


UNACCEPTABLE = "unacceptable"
ANALYSIS = "analysis"


@dataclass(frozen=True)
class Evaluation:
    parameter_id: str
    limit: Limit
    verdict: Verdict
    severity: Severity
    deviation: float
    grade: str
    ratio: Optional[float]             # R = S / E
    removal_efficiency: Optional[float]  # RP = (1 - R) * 100
    observations: Tuple[str, ...] = ()


def _finite(v: Optional[float]) -> Optional[float]:
    if v is None or not isinstance(v, (int, float)) or not math.isfinite(v):
        return None
    return float(v)


def relative_deviation(limit: Limit, value: Optional[float]) -> float:
    if value is None:
        return 0.0
    if isinstance(limit, MaxLimit) and limit.limit:
        return (value - limit.limit) / limit.limit
    if isinstance(limit, RangeLimit):
        if value < limit.min:
            return (limit.min - value) / max(1.0, abs(limit.min))
        if value > limit.max:
            return (value - limit.max) / max(1.0, abs(limit.max))
    return 0.0


def quality_grade(table: RegulatoryTable, parameter_id: str, value: Optional[float]) -> str:
    """Graded scale for a measured effluent value; `analysis` when unscaled."""
    if value is None:
        return UNACCEPTABLE
    scale = table.quality_scales.get(parameter_id)
    if not scale:
        return ANALYSIS
    for bound, grade in scale:
        if value <= bound:
            return grade
    return UNACCEPTABLE


def evaluate(
    table: RegulatoryTable,
    parameter_id: str,
    limit: Limit,
    influent: Optional[float],
    effluent: Optional[float],
) -> Evaluation:
    e, s = _finite(influent), _finite(effluent)

    ratio = None
    if parameter_id not in config.SINGLE_VALUE_PARAMETERS and e is not None and s is not None and e > 0:
        ratio = s / e
    removal = (1.0 - ratio) * 100.0 if ratio is not None else None

    notes: List[str] = []
    if isinstance(limit, AnalysisOnly):
        verdict = Verdict.NOT_APPLICABLE
        notes.append("analysis and report only, no numeric limit")
    elif s is None:
        verdict = Verdict.NON_COMPLIANT
        notes.append("missing effluent value")
    elif isinstance(limit, RangeLimit):
        ok_min, ok_max = s >= limit.min, s <= limit.max
        verdict = Verdict.COMPLIANT if ok_min and ok_max else Verdict.NON_COMPLIANT
        if not ok_min:
            notes.append(f"S ({s:g}) < min ({limit.min:g})")
        if not ok_max:
            notes.append(f"S ({s:g}) > max ({limit.max:g})")
    else:
        verdict = Verdict.COMPLIANT if s <= limit.limit else Verdict.NON_COMPLIANT
        if verdict is Verdict.NON_COMPLIANT:
            notes.append(f"S ({s:g}) > limit ({limit.limit:g})")

    deviation = relative_deviation(limit, s)
    if verdict is Verdict.NON_COMPLIANT:
        severity = Severity.DEFICIENT if deviation > config.SEVERITY_DEVIATION else Severity.INSUFFICIENT
        grade = UNACCEPTABLE
    else:
        severity = Severity.ACCEPTABLE
        grade = quality_grade(table, parameter_id, s)

    return Evaluation(
        parameter_id=parameter_id,
        limit=limit,
        verdict=verdict,
        severity=severity,
        deviation=deviation,
        grade=grade,
        ratio=ratio,
        removal_efficiency=removal,
        observations=tuple(notes),
    )


def evaluate_all(
    table: RegulatoryTable,
    receptor: str,
    category: str,
    measurements: Dict[str, Tuple[Optional[float], Optional[float]]],
) -> List[Evaluation]:
    """Evaluate every catalogued parameter; absent ones count as missing."""
    out = []
    for param in table.parameters:
        e, s = measurements.get(param.id, (None, None))
        limit = table.lookup(param.id, receptor, category)
        out.append(evaluate(table, param.id, limit, e, s))
    failed = [ev.parameter_id for ev in out if ev.verdict is Verdict.NON_COMPLIANT]
    if failed:
        logger.info("Non-compliant parameters (%s/%s): %s", receptor, category, ", ".join(failed))
    return out
