from dataclasses import dataclass, field
from typing import Dict, Generic, List, Literal, Optional, Tuple, TypeVar, Union

from . import config

T = TypeVar("T")

StreamMode = Literal["rng", "manual_u", "values"]


# ---------- Distribution specs ----------
@dataclass(frozen=True)
class Exponential:
    mean: float
    kind: Literal["exponential"] = "exponential"


@dataclass(frozen=True)
class Uniform:
    a: float
    b: float
    kind: Literal["uniform"] = "uniform"


@dataclass(frozen=True)
class Triangular:
    min: float
    mode: float
    max: float
    kind: Literal["triangular"] = "triangular"


@dataclass(frozen=True)
class Constant:
    c: float
    kind: Literal["constant"] = "constant"


@dataclass(frozen=True)
class Lognormal:
    mean: float
    cv: float
    kind: Literal["lognormal"] = "lognormal"


DistributionSpec = Union[Exponential, Uniform, Triangular, Constant, Lognormal]


# ---------- Tagged run result ----------
@dataclass(frozen=True)
class Refusal:
    code: str        # e.g. "probability_sum", "insufficient_values"
    message: str
    expected: Optional[float] = None
    received: Optional[float] = None
    stream: Optional[str] = None
    index: Optional[int] = None

    def to_dict(self) -> Dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: Refusal


Result = Union[Ok[T], Err]


# ---------- Monte Carlo ----------
@dataclass(frozen=True)
class MonteCarloRequest:
    influent: DistributionSpec
    removal: Triangular                  # percent domain
    n_samples: int = config.DEFAULT_SAMPLES
    seed: int = config.DEFAULT_SEED
    ceiling: Optional[float] = None      # None -> compliance not applicable
    quantiles: Tuple[float, ...] = config.PERCENTILES


@dataclass(frozen=True)
class SampleRow:
    index: int
    influent: float
    removal_pct: float
    effluent: float


@dataclass(frozen=True)
class HistogramBin:
    low: float
    high: float
    count: int


@dataclass(frozen=True)
class ExceedancePoint:
    percent: float
    value: float


@dataclass(frozen=True)
class SeriesSummary:
    mean: float
    std: float
    min: float
    max: float


@dataclass(frozen=True)
class MonteCarloResult:
    seed: int
    n_samples: int
    samples: List[SampleRow]
    percentiles: Dict[float, float]
    compliance_probability: Optional[float]
    ceiling: Optional[float]
    histogram: List[HistogramBin]
    exceedance: List[ExceedancePoint]
    summary: SeriesSummary

    @property
    def effluent(self) -> List[float]:
        return [s.effluent for s in self.samples]


# ---------- Streeter-Phelps ----------
@dataclass(frozen=True)
class SagParameters:
    qr: float = config.RIVER_DEFAULTS["qr"]   # river flow, m3/s
    cr: float = config.RIVER_DEFAULTS["cr"]   # river DO, mg/L
    qw: float = config.RIVER_DEFAULTS["qw"]   # discharge flow, m3/s
    lw: float = config.RIVER_DEFAULTS["lw"]   # discharge BOD load, mg/L
    cs: float = config.RIVER_DEFAULTS["cs"]   # DO saturation, mg/L
    kd: float = config.RIVER_DEFAULTS["kd"]   # deoxygenation, 1/d
    kr: float = config.RIVER_DEFAULTS["kr"]   # reaeration, 1/d
    v: float = config.RIVER_DEFAULTS["v"]     # velocity, m/s
    max_distance_km: float = config.RIVER_DEFAULTS["max_distance_km"]


@dataclass(frozen=True)
class MixValues:
    qm: float
    c0: float
    l0: float
    d0: float


@dataclass(frozen=True)
class SagPoint:
    distance_km: float
    travel_time_days: float
    deficit: float
    oxygen: float


@dataclass(frozen=True)
class SagProfile:
    params: SagParameters
    mix: MixValues
    points: List[SagPoint]

    @property
    def critical_point(self) -> Optional[SagPoint]:
        if not self.points:
            return None
        return min(self.points, key=lambda p: p.oxygen)


@dataclass(frozen=True)
class QualityCurve:
    parameter_id: str
    discharge_load: float
    profile: SagProfile


# ---------- Queue ----------
@dataclass(frozen=True)
class StreamSpec:
    mode: StreamMode = "rng"
    distribution: Optional[DistributionSpec] = None
    uniforms: Tuple[float, ...] = ()     # manual_u
    values: Tuple[float, ...] = ()       # precomputed durations


@dataclass(frozen=True)
class QueueRequest:
    n_entities: int
    servers: int
    arrival: StreamSpec
    service: StreamSpec
    seed: int = config.QUEUE_DEFAULT_SEED
    run_id: int = 0


@dataclass(frozen=True)
class QueueRow:
    entity_id: int
    server: int
    inter_arrival: float
    arrival: float
    start: float
    service: float
    end: float
    wait: float
    system_time: float


@dataclass(frozen=True)
class GanttBlock:
    server_id: int
    entity_id: int
    start: float
    end: float


@dataclass(frozen=True)
class QueueResult:
    rows: List[QueueRow]
    gantt: List[GanttBlock]
    mean_wait: float
    mean_service: float
    mean_system_time: float
    waited_pct: float
    utilization: List[float]
    makespan: float


# ---------- Probabilistic events ----------
@dataclass(frozen=True)
class ProbabilityEvent:
    name: str
    probability: float
    value: float
    formula: Optional[str] = None


@dataclass(frozen=True)
class EventInterval:
    event: ProbabilityEvent
    low: float
    high: float

    def contains(self, u: float) -> bool:
        return self.low <= u < self.high


@dataclass(frozen=True)
class EventRequest:
    events: Tuple[ProbabilityEvent, ...]
    n_draws: int
    draws: Optional[Tuple[float, ...]] = None   # None -> generated from seed
    seed: int = config.DEFAULT_SEED


@dataclass(frozen=True)
class EventRow:
    index: int
    event: str
    value: float
    rnd: float
    result: float
    error: Optional[str] = None


@dataclass(frozen=True)
class EventRunResult:
    rows: List[EventRow]
    intervals: List[EventInterval]
    mean_result: Optional[float]
    invalid_rows: int
    counts: Dict[str, int] = field(default_factory=dict)
