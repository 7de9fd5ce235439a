import math

import pytest

from effluent_core.events import build_intervals, locate, run_events
from effluent_core.expression import FormulaError, compile_formula
from effluent_core.models import Err, EventRequest, Ok, ProbabilityEvent

EVENTS = (
    ProbabilityEvent("arrival", 0.3, 5, "value + rnd * 5"),
    ProbabilityEvent("service", 0.5, 10, "value - rnd * 3"),
    ProbabilityEvent("wait", 0.2, 2),
)


# =============================================================================
# Formulas
# =============================================================================

def test_formula_arithmetic():
    f = compile_formula("value + rnd * 5")
    assert f.evaluate(0.5, 5) == pytest.approx(7.5)
    assert compile_formula("-(value - 1) / 2").evaluate(0, 5) == -2
    assert compile_formula("sqrt(value) + max(rnd, 0.25)").evaluate(0.1, 16) == pytest.approx(4.25)


@pytest.mark.parametrize("text", [
    "__import__('os').system('ls')",
    "value.__class__",
    "rnd ** 2",
    "x + 1",
    "open('f')",
    "[1, 2]",
    "1 if rnd else 2",
    "lambda: 1",
    "'abc'",
    "value +",
    "",
    "rnd < 1",
])
def test_formula_rejected_at_parse(text):
    with pytest.raises(FormulaError):
        compile_formula(text)


@pytest.mark.parametrize("text", ["value / 0", "log(rnd - 1)", "exp(1000)", "1e308 * 10", "-1e308 - value * 1e308"])
def test_formula_evaluation_failures(text):
    with pytest.raises(FormulaError):
        compile_formula(text).evaluate(0.5, 1.0)


def test_valor_is_an_alias_of_value():
    assert compile_formula("valor + rnd * 5").evaluate(0.5, 5) == pytest.approx(7.5)


@pytest.mark.parametrize("text", [
    "rnd" + " + 1" * 3000,
    "(" * 240 + "rnd" + ")" * 240,
])
def test_oversized_or_deep_formula_rejected(text):
    with pytest.raises(FormulaError):
        compile_formula(text).evaluate(0.5, 1.0)


# =============================================================================
# Intervals
# =============================================================================

def test_intervals_partition_in_declared_order():
    ivs = build_intervals(EVENTS)
    assert [(iv.low, iv.high) for iv in ivs] == [
        (0.0, 0.3),
        (0.3, pytest.approx(0.8)),
        (pytest.approx(0.8), pytest.approx(1.0)),
    ]
    assert locate(ivs, 0.0) == 0
    assert locate(ivs, 0.3) == 1
    assert locate(ivs, 0.95) == 2


def test_rounding_gap_falls_back_to_last_interval():
    events = (ProbabilityEvent("a", 0.3, 1), ProbabilityEvent("b", 0.5, 2), ProbabilityEvent("c", 0.199999999, 3))
    res = run_events(EventRequest(events=events, n_draws=2, draws=(0.95, 0.9999999995)))
    assert [r.event for r in res.value.rows] == ["c", "c"]


# =============================================================================
# Runs
# =============================================================================

def test_manual_draws():
    res = run_events(EventRequest(events=EVENTS, n_draws=3, draws=(0.1, 0.5, 0.95)))
    assert isinstance(res, Ok)
    rows = res.value.rows
    assert [r.event for r in rows] == ["arrival", "service", "wait"]
    assert rows[0].result == pytest.approx(5.5)
    assert rows[1].result == pytest.approx(8.5)
    assert rows[2].result == 2
    assert res.value.mean_result == pytest.approx(16 / 3)
    assert res.value.counts == {"arrival": 1, "service": 1, "wait": 1}


def test_generated_draws_reproducible():
    a = run_events(EventRequest(events=EVENTS, n_draws=50, seed=9))
    b = run_events(EventRequest(events=EVENTS, n_draws=50, seed=9))
    assert a.value.rows == b.value.rows
    assert sum(a.value.counts.values()) == 50
    assert all(0 <= r.rnd < 1 for r in a.value.rows)


def test_probability_sum_refused():
    events = (ProbabilityEvent("a", 0.5, 1), ProbabilityEvent("b", 0.4, 2))
    res = run_events(EventRequest(events=events, n_draws=3))
    assert isinstance(res, Err)
    assert res.reason.code == "probability_sum"
    assert res.reason.received == pytest.approx(0.9)


def test_sum_within_tolerance_accepted():
    events = (ProbabilityEvent("a", 0.5, 1), ProbabilityEvent("b", 0.5005, 2))
    assert isinstance(run_events(EventRequest(events=events, n_draws=3)), Ok)


def test_insufficient_draws_refused():
    res = run_events(EventRequest(events=EVENTS, n_draws=4, draws=(0.1, 0.2)))
    assert isinstance(res, Err)
    assert (res.reason.code, res.reason.expected, res.reason.received) == ("insufficient_values", 4, 2)


@pytest.mark.parametrize("bad", [1.0, 1.5, -0.1])
def test_out_of_range_draw_refused(bad):
    res = run_events(EventRequest(events=EVENTS, n_draws=2, draws=(0.2, bad)))
    assert isinstance(res, Err)
    assert res.reason.code == "draw_out_of_range"
    assert res.reason.index == 1


def test_bad_formula_marks_row_only():
    events = (
        ProbabilityEvent("ok", 0.5, 1, "value * 2"),
        ProbabilityEvent("broken", 0.5, 1, "value / (rnd - rnd)"),
    )
    res = run_events(EventRequest(events=events, n_draws=3, draws=(0.1, 0.7, 0.2)))
    rows = res.value.rows
    assert rows[0].result == 2 and rows[2].result == 2
    assert math.isnan(rows[1].result)
    assert rows[1].error
    assert res.value.invalid_rows == 1
    assert res.value.mean_result == 2


def test_unparseable_formula_marks_rows():
    events = (ProbabilityEvent("x", 1.0, 3, "import os"),)
    res = run_events(EventRequest(events=events, n_draws=2, draws=(0.1, 0.2)))
    assert all(math.isnan(r.result) for r in res.value.rows)
    assert res.value.mean_result is None


def test_oversized_formula_marks_rows():
    events = (ProbabilityEvent("x", 1.0, 3, "rnd" + " + 1" * 3000),)
    res = run_events(EventRequest(events=events, n_draws=2, draws=(0.1, 0.2)))
    assert isinstance(res, Ok)
    assert all(math.isnan(r.result) and r.error for r in res.value.rows)
    assert res.value.invalid_rows == 2


def test_overflowing_formula_marks_row():
    events = (ProbabilityEvent("x", 1.0, 3, "value * 1e308 * 10"),)
    res = run_events(EventRequest(events=events, n_draws=1, draws=(0.1,)))
    row = res.value.rows[0]
    assert math.isnan(row.result)
    assert row.error
