"""
Wastewater discharge compliance and downstream water-quality simulation.
"""

from .prng import Mulberry32
from .models import (
    Constant,
    Exponential,
    Lognormal,
    Triangular,
    Uniform,
    Ok,
    Err,
    Refusal,
    MonteCarloRequest,
    SagParameters,
    StreamSpec,
    QueueRequest,
    ProbabilityEvent,
    EventRequest,
)
from .monte_carlo import run_monte_carlo, simulate_parameter
from .oxygen_sag import solve_oxygen_sag, quality_curve
from .simulation import simulate, parse_uniform_list
from .events import run_events
from .regulations import load_table, RegulatoryTable
from .compliance import evaluate, evaluate_all, Verdict, Severity

__all__ = [
    "Mulberry32",
    "Constant",
    "Exponential",
    "Lognormal",
    "Triangular",
    "Uniform",
    "Ok",
    "Err",
    "Refusal",
    "MonteCarloRequest",
    "SagParameters",
    "StreamSpec",
    "QueueRequest",
    "ProbabilityEvent",
    "EventRequest",
    "run_monte_carlo",
    "simulate_parameter",
    "solve_oxygen_sag",
    "quality_curve",
    "simulate",
    "parse_uniform_list",
    "run_events",
    "load_table",
    "RegulatoryTable",
    "evaluate",
    "evaluate_all",
    "Verdict",
    "Severity",
]
