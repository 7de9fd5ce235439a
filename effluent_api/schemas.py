from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from effluent_core import config


class _Strict(BaseModel):
    # reject NaN / inf on every numeric field
    model_config = ConfigDict(allow_inf_nan=False)


# ---------- Distributions ----------
class ExponentialSchema(_Strict):
    kind: Literal["exponential"]
    mean: float = Field(..., gt=0, le=config.VALUE_CEILING)

class UniformSchema(_Strict):
    kind: Literal["uniform"]
    a: float = Field(..., ge=0, le=config.VALUE_CEILING)
    b: float = Field(..., ge=0, le=config.VALUE_CEILING)

class TriangularSchema(_Strict):
    kind: Literal["triangular"]
    min: float = Field(..., ge=0, le=config.VALUE_CEILING)
    mode: float = Field(..., ge=0, le=config.VALUE_CEILING)
    max: float = Field(..., ge=0, le=config.VALUE_CEILING)

class ConstantSchema(_Strict):
    kind: Literal["constant"]
    c: float = Field(..., ge=0, le=config.VALUE_CEILING)

class LognormalSchema(_Strict):
    kind: Literal["lognormal"]
    mean: float = Field(..., gt=0, le=config.VALUE_CEILING)
    cv: float = Field(..., gt=0, le=config.CV_CEILING)

DistributionSchema = Annotated[
    Union[ExponentialSchema, UniformSchema, TriangularSchema, ConstantSchema, LognormalSchema],
    Field(discriminator="kind"),
]


# ---------- Refusal ----------
class RefusalSchema(BaseModel):
    code: str
    message: str
    expected: Optional[float] = None
    received: Optional[float] = None
    stream: Optional[str] = None
    index: Optional[int] = None


# ---------- Monte Carlo ----------
class MonteCarloRequest(_Strict):
    parameter_id: str = Field("bod5", examples=["bod5", "cod", "tss", "fog"])
    receptor: str = Field("surface", examples=["surface", "sewer"])
    category: str = Field("individual", examples=["individual", "le_625", "625_to_3000", "gt_3000"])
    n_samples: int = Field(config.DEFAULT_SAMPLES, ge=1, le=config.MAX_SAMPLES)
    seed: int = config.DEFAULT_SEED
    influent: DistributionSchema
    removal: TriangularSchema
    quantiles: List[float] = Field(default_factory=lambda: list(config.PERCENTILES))

    @model_validator(mode="after")
    def check_quantiles(self):
        if not self.quantiles or any(q < 0 or q > 1 for q in self.quantiles):
            raise ValueError("quantiles must be non-empty and within [0, 1]")
        return self

class SampleRowSchema(BaseModel):
    index: int
    influent: float
    removal_pct: float
    effluent: float

class HistogramBinSchema(BaseModel):
    low: float
    high: float
    count: int

class ExceedancePointSchema(BaseModel):
    percent: float
    value: float

class SummarySchema(BaseModel):
    mean: float
    std: float
    min: float
    max: float

class MonteCarloResponse(BaseModel):
    seed: int
    n_samples: int
    ceiling: Optional[float]
    compliance_probability: Optional[float]
    percentiles: Dict[str, float]
    summary: SummarySchema
    histogram: List[HistogramBinSchema]
    exceedance: List[ExceedancePointSchema]
    samples: List[SampleRowSchema]


# ---------- Streeter-Phelps ----------
class SagRequest(_Strict):
    qr: float = Field(config.RIVER_DEFAULTS["qr"], ge=0)
    cr: float = Field(config.RIVER_DEFAULTS["cr"], ge=0)
    qw: float = Field(config.RIVER_DEFAULTS["qw"], ge=0)
    lw: float = Field(config.RIVER_DEFAULTS["lw"], ge=0)
    cs: float = Field(config.RIVER_DEFAULTS["cs"], ge=0)
    kd: float = Field(config.RIVER_DEFAULTS["kd"], ge=0)
    kr: float = Field(config.RIVER_DEFAULTS["kr"], ge=0)
    # v <= 0 is refused by the solver itself
    v: float = config.RIVER_DEFAULTS["v"]
    max_distance_km: float = Field(config.RIVER_DEFAULTS["max_distance_km"], ge=0, le=1000)

class SagPointSchema(BaseModel):
    distance_km: float
    travel_time_days: float
    deficit: float
    oxygen: float

class MixSchema(BaseModel):
    qm: float
    c0: float
    l0: float
    d0: float

class SagResponse(BaseModel):
    mix: MixSchema
    points: List[SagPointSchema]
    critical_point: Optional[SagPointSchema] = None

class QualityCurveRequest(_Strict):
    simulation: MonteCarloRequest
    river: SagRequest = Field(default_factory=SagRequest)

class QualityCurveResponse(BaseModel):
    parameter_id: str
    discharge_load: float
    profile: SagResponse


# ---------- Queue ----------
class StreamSchema(_Strict):
    mode: Literal["rng", "manual_u", "values"] = "rng"
    distribution: Optional[DistributionSchema] = None
    uniforms: Optional[List[float]] = None
    uniforms_text: Optional[str] = None   # pasted list, parsed server-side
    values: Optional[List[float]] = None

    @model_validator(mode="after")
    def check_mode(self):
        if self.mode in ("rng", "manual_u") and self.distribution is None:
            raise ValueError(f"{self.mode} streams require a distribution")
        if self.values and any(v < 0 or v > config.VALUE_CEILING for v in self.values):
            raise ValueError(f"durations must be within [0, {config.VALUE_CEILING:g}]")
        return self

class QueueRequest(_Strict):
    n_entities: int = Field(5, ge=1, le=config.MAX_ENTITIES)
    servers: int = Field(1, ge=1, le=config.MAX_SERVERS)
    seed: int = config.QUEUE_DEFAULT_SEED
    run_id: int = Field(0, ge=0)
    arrival: StreamSchema
    service: StreamSchema

class QueueRowSchema(BaseModel):
    entity_id: int
    server: int
    inter_arrival: float
    arrival: float
    start: float
    service: float
    end: float
    wait: float
    system_time: float

class GanttBlockSchema(BaseModel):
    server_id: int
    entity_id: int
    start: float
    end: float

class QueueResponse(BaseModel):
    rows: List[QueueRowSchema]
    gantt: List[GanttBlockSchema]
    mean_wait: float
    mean_service: float
    mean_system_time: float
    waited_pct: float
    utilization: List[float]
    makespan: float


# ---------- Probabilistic events ----------
class EventSchema(_Strict):
    name: str
    probability: float = Field(..., ge=0, le=1)
    value: float
    formula: Optional[str] = Field(None, examples=["value + rnd * 5"])

class EventRequest(_Strict):
    events: List[EventSchema] = Field(..., min_length=1)
    n_draws: int = Field(20, ge=1, le=config.MAX_SAMPLES)
    draws: Optional[List[float]] = None
    seed: int = config.DEFAULT_SEED

class EventRowSchema(BaseModel):
    index: int
    event: str
    value: float
    rnd: float
    # None marks a formula failure (NaN is not valid JSON)
    result: Optional[float]
    error: Optional[str] = None

class EventIntervalSchema(BaseModel):
    event: str
    low: float
    high: float

class EventResponse(BaseModel):
    rows: List[EventRowSchema]
    intervals: List[EventIntervalSchema]
    mean_result: Optional[float]
    invalid_rows: int
    counts: Dict[str, int]


# ---------- Compliance ----------
class MeasurementSchema(_Strict):
    influent: Optional[float] = Field(None, ge=0)
    effluent: Optional[float] = Field(None, ge=0)

class ComplianceRequest(_Strict):
    receptor: str = "surface"
    category: str = "individual"
    measurements: Dict[str, MeasurementSchema]

class EvaluationSchema(BaseModel):
    parameter_id: str
    limit: Dict[str, Union[str, float]]
    verdict: Literal["compliant", "non_compliant", "not_applicable"]
    severity: Literal["acceptable", "insufficient", "deficient"]
    deviation: float
    grade: str
    ratio: Optional[float]
    removal_efficiency: Optional[float]
    observations: List[str]

class ComplianceResponse(BaseModel):
    receptor: str
    category: str
    evaluations: List[EvaluationSchema]

class ParameterSchema(BaseModel):
    id: str
    name: str
    unit: Optional[str] = None
