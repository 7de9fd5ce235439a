import logging
import math
from typing import Dict, List, Optional, Sequence, Union

from . import config
from .expression import Formula, FormulaError, compile_formula
from .models import (
    Err,
    EventInterval,
    EventRequest,
    EventRow,
    EventRunResult,
    Ok,
    ProbabilityEvent,
    Refusal,
    Result,
)
from .prng import Mulberry32

logger = logging.getLogger(__name__)


def build_intervals(events: Sequence[ProbabilityEvent]) -> List[EventInterval]:
    acc = 0.0
    out = []
    for ev in events:
        out.append(EventInterval(event=ev, low=acc, high=acc + ev.probability))
        acc += ev.probability
    return out


def locate(intervals: Sequence[EventInterval], u: float) -> int:
    for i, iv in enumerate(intervals):
        if iv.contains(u):
            return i
    # rounding can leave the cumulative sum just below 1
    return len(intervals) - 1


def _check_request(req: EventRequest) -> Optional[Refusal]:
    if not req.events:
        return Refusal(code="no_events", message="at least one event is required")
    total = math.fsum(ev.probability for ev in req.events)
    if abs(total - 1.0) > config.PROBABILITY_TOLERANCE:
        return Refusal(
            code="probability_sum",
            message=f"event probabilities must sum to 1, got {total:.6g}",
            expected=1.0,
            received=total,
        )
    if req.draws is not None:
        if len(req.draws) < req.n_draws:
            return Refusal(
                code="insufficient_values",
                message=f"{req.n_draws} random values required, {len(req.draws)} received",
                expected=req.n_draws,
                received=len(req.draws),
            )
        for i, u in enumerate(req.draws[:req.n_draws]):
            if not 0.0 <= u < 1.0:
                return Refusal(
                    code="draw_out_of_range",
                    message=f"random value #{i + 1} ({u}) must lie in [0, 1)",
                    received=u,
                    index=i,
                )
    return None


def run_events(req: EventRequest) -> Result[EventRunResult]:
    refusal = _check_request(req)
    if refusal is not None:
        logger.warning("Event run refused: %s", refusal.message)
        return Err(refusal)

    n = max(1, int(req.n_draws))
    draws = list(req.draws[:n]) if req.draws is not None else Mulberry32(req.seed).take(n)
    intervals = build_intervals(req.events)

    # one compile per event; a bad formula poisons only its own rows
    formulas: List[Union[Formula, FormulaError, None]] = []
    for ev in req.events:
        if ev.formula and ev.formula.strip():
            try:
                formulas.append(compile_formula(ev.formula))
            except FormulaError as exc:
                formulas.append(exc)
        else:
            formulas.append(None)

    rows: List[EventRow] = []
    counts: Dict[str, int] = {ev.name: 0 for ev in req.events}
    for i, u in enumerate(draws):
        k = locate(intervals, u)
        ev = req.events[k]
        counts[ev.name] += 1
        compiled = formulas[k]
        error = None
        if compiled is None:
            result = ev.value
        elif isinstance(compiled, Formula):
            try:
                result = compiled.evaluate(u, ev.value)
            except FormulaError as exc:
                result, error = math.nan, str(exc)
        else:
            result, error = math.nan, str(compiled)
        rows.append(EventRow(index=i + 1, event=ev.name, value=ev.value, rnd=u, result=result, error=error))

    valid = [r.result for r in rows if math.isfinite(r.result)]
    return Ok(EventRunResult(
        rows=rows,
        intervals=intervals,
        mean_result=sum(valid) / len(valid) if valid else None,
        invalid_rows=len(rows) - len(valid),
        counts=counts,
    ))
