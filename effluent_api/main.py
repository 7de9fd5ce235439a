import logging
import math
from dataclasses import asdict
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from effluent_api import schemas
from effluent_api.settings import Settings, get_settings

from effluent_core.compliance import evaluate_all
from effluent_core.distributions import spec_from_dict
from effluent_core.events import run_events
from effluent_core.models import (
    Err,
    EventRequest as CoreEventRequest,
    MonteCarloRequest as CoreMonteCarloRequest,
    ProbabilityEvent,
    QueueRequest as CoreQueueRequest,
    Refusal,
    SagParameters,
    SagProfile,
    StreamSpec,
    Triangular,
)
from effluent_core.monte_carlo import simulate_parameter
from effluent_core.oxygen_sag import quality_curve, solve_oxygen_sag
from effluent_core.regulations import RegulatoryTable, load_table
from effluent_core.simulation import parse_uniform_list, simulate

logger = logging.getLogger(__name__)


def _refuse(reason: Refusal):
    raise HTTPException(status_code=422, detail=reason.to_dict())


def _table(request: Request) -> RegulatoryTable:
    return request.app.state.table


def _check_selectors(table: RegulatoryTable, receptor: str, category: str):
    if receptor not in table.receptors or category not in table.categories:
        raise HTTPException(
            status_code=422,
            detail={"code": "unknown_selector", "message": f"unknown receptor/category {receptor}/{category}"},
        )


# ---------- schema -> core ----------
def _to_core_dist(d):
    return spec_from_dict(d.model_dump()) if d is not None else None

def _to_core_mc(req: schemas.MonteCarloRequest) -> CoreMonteCarloRequest:
    return CoreMonteCarloRequest(
        influent=_to_core_dist(req.influent),
        removal=Triangular(min=req.removal.min, mode=req.removal.mode, max=req.removal.max),
        n_samples=req.n_samples,
        seed=req.seed,
        quantiles=tuple(req.quantiles),
    )

def _to_core_stream(s: schemas.StreamSchema) -> StreamSpec:
    uniforms = list(s.uniforms or [])
    if s.uniforms_text:
        uniforms += parse_uniform_list(s.uniforms_text)
    return StreamSpec(
        mode=s.mode,
        distribution=_to_core_dist(s.distribution),
        uniforms=tuple(uniforms),
        values=tuple(s.values or []),
    )

def _to_core_sag(s: schemas.SagRequest) -> SagParameters:
    return SagParameters(**s.model_dump())

def _quantile_key(q: float) -> str:
    return f"p{q * 100:g}"

def _finite_or_none(x: Optional[float]) -> Optional[float]:
    return x if x is not None and math.isfinite(x) else None

def _profile_dict(profile: SagProfile) -> dict:
    critical = profile.critical_point
    return {
        "mix": asdict(profile.mix),
        "points": [asdict(p) for p in profile.points],
        "critical_point": asdict(critical) if critical else None,
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Effluent Compliance Simulator API", version="1.0")
    app.state.table = load_table(settings.regulations_path)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/regulations/parameters", response_model=List[schemas.ParameterSchema])
    def parameters(request: Request):
        return [asdict(p) for p in _table(request).parameters]

    @app.get("/regulations/limit")
    def limit(request: Request, parameter_id: str, receptor: str = "surface", category: str = "individual"):
        table = _table(request)
        _check_selectors(table, receptor, category)
        return asdict(table.lookup(parameter_id, receptor, category))

    @app.post("/monte-carlo", response_model=schemas.MonteCarloResponse)
    def monte_carlo(req: schemas.MonteCarloRequest, request: Request):
        table = _table(request)
        _check_selectors(table, req.receptor, req.category)
        res = simulate_parameter(table, req.parameter_id, req.receptor, req.category, _to_core_mc(req))
        return schemas.MonteCarloResponse(
            seed=res.seed,
            n_samples=res.n_samples,
            ceiling=res.ceiling,
            compliance_probability=res.compliance_probability,
            percentiles={_quantile_key(q): v for q, v in res.percentiles.items()},
            summary=asdict(res.summary),
            histogram=[asdict(b) for b in res.histogram],
            exceedance=[asdict(p) for p in res.exceedance],
            samples=[asdict(s) for s in res.samples],
        )

    @app.post("/oxygen-sag", response_model=schemas.SagResponse)
    def oxygen_sag(req: schemas.SagRequest):
        res = solve_oxygen_sag(_to_core_sag(req))
        if isinstance(res, Err):
            _refuse(res.reason)
        return _profile_dict(res.value)

    @app.post("/quality-curve", response_model=schemas.QualityCurveResponse)
    def curve(req: schemas.QualityCurveRequest, request: Request):
        table = _table(request)
        sim = req.simulation
        _check_selectors(table, sim.receptor, sim.category)
        mc = simulate_parameter(table, sim.parameter_id, sim.receptor, sim.category, _to_core_mc(sim))
        res = quality_curve(mc, sim.parameter_id, _to_core_sag(req.river))
        if isinstance(res, Err):
            _refuse(res.reason)
        return {
            "parameter_id": res.value.parameter_id,
            "discharge_load": res.value.discharge_load,
            "profile": _profile_dict(res.value.profile),
        }

    @app.post("/queue", response_model=schemas.QueueResponse)
    def queue(req: schemas.QueueRequest):
        res = simulate(CoreQueueRequest(
            n_entities=req.n_entities,
            servers=req.servers,
            arrival=_to_core_stream(req.arrival),
            service=_to_core_stream(req.service),
            seed=req.seed,
            run_id=req.run_id,
        ))
        if isinstance(res, Err):
            _refuse(res.reason)
        return asdict(res.value)

    @app.post("/events", response_model=schemas.EventResponse)
    def events(req: schemas.EventRequest):
        res = run_events(CoreEventRequest(
            events=tuple(ProbabilityEvent(**e.model_dump()) for e in req.events),
            n_draws=req.n_draws,
            draws=tuple(req.draws) if req.draws is not None else None,
            seed=req.seed,
        ))
        if isinstance(res, Err):
            _refuse(res.reason)
        out = res.value
        return schemas.EventResponse(
            rows=[
                schemas.EventRowSchema(
                    index=r.index, event=r.event, value=r.value, rnd=r.rnd,
                    result=_finite_or_none(r.result), error=r.error,
                )
                for r in out.rows
            ],
            intervals=[
                schemas.EventIntervalSchema(event=iv.event.name, low=iv.low, high=iv.high)
                for iv in out.intervals
            ],
            mean_result=out.mean_result,
            invalid_rows=out.invalid_rows,
            counts=out.counts,
        )

    @app.post("/compliance", response_model=schemas.ComplianceResponse)
    def compliance(req: schemas.ComplianceRequest, request: Request):
        table = _table(request)
        _check_selectors(table, req.receptor, req.category)
        measurements = {pid: (m.influent, m.effluent) for pid, m in req.measurements.items()}
        evaluations = evaluate_all(table, req.receptor, req.category, measurements)
        return {
            "receptor": req.receptor,
            "category": req.category,
            "evaluations": [
                {
                    "parameter_id": ev.parameter_id,
                    "limit": asdict(ev.limit),
                    "verdict": ev.verdict.value,
                    "severity": ev.severity.value,
                    "deviation": ev.deviation,
                    "grade": ev.grade,
                    "ratio": ev.ratio,
                    "removal_efficiency": ev.removal_efficiency,
                    "observations": list(ev.observations),
                }
                for ev in evaluations
            ],
        }

    return app


app = create_app()
