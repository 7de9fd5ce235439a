# run.py

from effluent_core.models import (
    EventRequest,
    Exponential,
    Lognormal,
    MonteCarloRequest,
    Ok,
    ProbabilityEvent,
    QueueRequest,
    SagParameters,
    StreamSpec,
    Triangular,
    Uniform,
)
from effluent_core.monte_carlo import simulate_parameter
from effluent_core.oxygen_sag import quality_curve, solve_oxygen_sag
from effluent_core.simulation import simulate
from effluent_core.events import run_events
from effluent_core.regulations import load_table
from effluent_core.compliance import evaluate_all

table = load_table()

# =====================================================
# 1️⃣ Monte Carlo — BOD5 effluent vs. surface limit
# =====================================================
mc = simulate_parameter(
    table, "bod5", "surface", "individual",
    MonteCarloRequest(
        influent=Lognormal(mean=300, cv=0.5),
        removal=Triangular(min=30, mode=60, max=85),
        n_samples=200,
        seed=42,
    ),
)

print("=== Monte Carlo (BOD5, seed=42, N=200) ===")
print("ceiling:", mc.ceiling)
print("P(compliance) %:", mc.compliance_probability)
print("percentiles:", {f"P{q * 100:g}": round(v, 2) for q, v in mc.percentiles.items()})
print("histogram:", [b.count for b in mc.histogram])

# =====================================================
# 2️⃣ Streeter-Phelps
# =====================================================
sag = solve_oxygen_sag(SagParameters())
if isinstance(sag, Ok):
    print("\n=== Oxygen sag (every 5 km) ===")
    for p in sag.value.points[::5]:
        print(f"{p.distance_km:5.0f} km  DO={p.oxygen:.3f} mg/L")
    print("critical:", sag.value.critical_point)

curve = quality_curve(mc, "bod5", SagParameters())
print("\nQuality curve:", curve.value.discharge_load if isinstance(curve, Ok) else curve.reason)

# =====================================================
# 3️⃣ Queue — 2 servers
# =====================================================
res = simulate(QueueRequest(
    n_entities=10,
    servers=2,
    arrival=StreamSpec(distribution=Exponential(mean=5)),
    service=StreamSpec(distribution=Uniform(a=3, b=7)),
))

print("\n=== Queue (first 5 entities) ===")
if isinstance(res, Ok):
    for r in res.value.rows[:5]:
        print(r)
    print("utilization %:", [round(u, 2) for u in res.value.utilization])
else:
    print(res.reason)

# =====================================================
# 4️⃣ Probabilistic events
# =====================================================
ev = run_events(EventRequest(
    events=(
        ProbabilityEvent("Arrival", 0.3, 5, "value + rnd * 5"),
        ProbabilityEvent("Service", 0.5, 10, "value - rnd * 3"),
        ProbabilityEvent("Wait", 0.2, 2),
    ),
    n_draws=10,
))
print("\n=== Events ===")
print(ev.value.counts if isinstance(ev, Ok) else ev.reason)

# =====================================================
# 5️⃣ Compliance
# =====================================================
print("\n=== Compliance (surface / individual) ===")
for e in evaluate_all(table, "surface", "individual", {
    "ph": (None, 7.2),
    "bod5": (310.0, 120.0),
    "cod": (600.0, 150.0),
}):
    print(e.parameter_id, e.verdict.value, e.severity.value, e.grade, e.observations)
