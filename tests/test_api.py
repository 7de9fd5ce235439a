"""HTTP surface tests."""

import pytest
from fastapi.testclient import TestClient

from effluent_api.main import app, create_app
from effluent_api.settings import Settings, get_settings


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def mc_payload():
    return {
        "parameter_id": "bod5",
        "receptor": "surface",
        "category": "individual",
        "n_samples": 200,
        "seed": 42,
        "influent": {"kind": "lognormal", "mean": 300, "cv": 0.5},
        "removal": {"kind": "triangular", "min": 30, "mode": 60, "max": 85},
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_parameters(client):
    ids = [p["id"] for p in client.get("/regulations/parameters").json()]
    assert "bod5" in ids and "ph" in ids


def test_limit_lookup(client):
    r = client.get("/regulations/limit", params={"parameter_id": "cod", "receptor": "sewer", "category": "gt_3000"})
    assert r.json() == {"limit": 225.0, "type": "max"}
    bad = client.get("/regulations/limit", params={"parameter_id": "cod", "receptor": "lake"})
    assert bad.status_code == 422


class TestMonteCarloEndpoint:
    def test_run(self, client, mc_payload):
        r = client.post("/monte-carlo", json=mc_payload)
        assert r.status_code == 200
        body = r.json()
        assert body["ceiling"] == 90
        assert set(body["percentiles"]) == {"p50", "p90", "p95"}
        assert body["percentiles"]["p50"] <= body["percentiles"]["p90"] <= body["percentiles"]["p95"]
        assert sum(b["count"] for b in body["histogram"]) == 200
        assert len(body["samples"]) == 200
        assert client.post("/monte-carlo", json=mc_payload).json() == body

    def test_analysis_parameter_has_no_probability(self, client, mc_payload):
        mc_payload["parameter_id"] = "ftc"
        body = client.post("/monte-carlo", json=mc_payload).json()
        assert body["ceiling"] is None
        assert body["compliance_probability"] is None

    def test_validation(self, client, mc_payload):
        mc_payload["n_samples"] = 0
        assert client.post("/monte-carlo", json=mc_payload).status_code == 422
        mc_payload["n_samples"] = 10
        mc_payload["influent"] = {"kind": "gamma", "shape": 2}
        assert client.post("/monte-carlo", json=mc_payload).status_code == 422


def test_oxygen_sag(client):
    r = client.post("/oxygen-sag", json={})
    assert r.status_code == 200
    body = r.json()
    assert len(body["points"]) == 31
    assert body["critical_point"]["oxygen"] == min(p["oxygen"] for p in body["points"])


def test_oxygen_sag_velocity_refusal(client):
    r = client.post("/oxygen-sag", json={"v": 0})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "non_positive_velocity"


def test_quality_curve(client, mc_payload):
    r = client.post("/quality-curve", json={"simulation": mc_payload})
    assert r.status_code == 200
    assert r.json()["discharge_load"] > 0
    mc_payload["parameter_id"] = "tss"
    refused = client.post("/quality-curve", json={"simulation": mc_payload})
    assert refused.json()["detail"]["code"] == "unsupported_parameter"


class TestQueueEndpoint:
    def test_values_mode(self, client):
        r = client.post("/queue", json={
            "n_entities": 3,
            "servers": 1,
            "arrival": {"mode": "values", "values": [2, 2, 2]},
            "service": {"mode": "values", "values": [5, 1, 1]},
        })
        assert r.status_code == 200
        assert [row["wait"] for row in r.json()["rows"]] == [0, 3, 2]

    def test_manual_text_shortfall(self, client):
        r = client.post("/queue", json={
            "n_entities": 5,
            "servers": 2,
            "arrival": {"mode": "manual_u", "distribution": {"kind": "exponential", "mean": 5},
                        "uniforms_text": "0,12 0.5 0.33"},
            "service": {"distribution": {"kind": "uniform", "a": 3, "b": 7}},
        })
        assert r.status_code == 422
        detail = r.json()["detail"]
        assert detail == {
            "code": "insufficient_values",
            "message": "arrival: 5 values required, 3 received",
            "expected": 5,
            "received": 3,
            "stream": "arrival",
        }

    def test_rng_stream_needs_distribution(self, client):
        r = client.post("/queue", json={"arrival": {"mode": "rng"}, "service": {"mode": "values", "values": [1]}})
        assert r.status_code == 422


class TestEventsEndpoint:
    events = [
        {"name": "arrival", "probability": 0.3, "value": 5, "formula": "value + rnd * 5"},
        {"name": "service", "probability": 0.5, "value": 10, "formula": "value / (rnd - rnd)"},
        {"name": "wait", "probability": 0.2, "value": 2},
    ]

    def test_invalid_rows_serialised_as_null(self, client):
        r = client.post("/events", json={"events": self.events, "n_draws": 3, "draws": [0.1, 0.5, 0.95]})
        assert r.status_code == 200
        body = r.json()
        assert [row["result"] for row in body["rows"]] == [pytest.approx(5.5), None, 2]
        assert body["invalid_rows"] == 1

    def test_probability_refusal(self, client):
        events = [dict(e, probability=0.1) for e in self.events]
        r = client.post("/events", json={"events": events, "n_draws": 3})
        assert r.status_code == 422
        assert r.json()["detail"]["code"] == "probability_sum"


def test_compliance(client):
    r = client.post("/compliance", json={
        "receptor": "surface",
        "category": "individual",
        "measurements": {"bod5": {"influent": 300, "effluent": 120}, "ph": {"effluent": 7}},
    })
    assert r.status_code == 200
    by_id = {ev["parameter_id"]: ev for ev in r.json()["evaluations"]}
    assert by_id["bod5"]["verdict"] == "non_compliant"
    assert by_id["bod5"]["severity"] == "deficient"
    assert by_id["bod5"]["removal_efficiency"] == pytest.approx(60)
    assert by_id["ph"]["grade"] == "excellent"
    assert by_id["tss"]["observations"] == ["missing effluent value"]


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("EFFLUENT_LOG_LEVEL", "debug")
    monkeypatch.setenv("EFFLUENT_CORS_ORIGINS", "http://a.example, http://b.example")
    s = get_settings()
    assert s.log_level == "DEBUG"
    assert s.cors_origins == ["http://a.example", "http://b.example"]
    assert s.regulations_path is None


def test_create_app_with_custom_table(tmp_path):
    from effluent_core.regulations import DEFAULT_LIMITS_PATH
    path = tmp_path / "limits.json"
    path.write_text(DEFAULT_LIMITS_PATH.read_text(encoding="utf-8").replace('"temperature_max": 40', '"temperature_max": 35'), encoding="utf-8")
    custom = TestClient(create_app(Settings(regulations_path=path)))
    r = custom.get("/regulations/limit", params={"parameter_id": "temperature"})
    assert r.json()["limit"] == 35


@pytest.mark.parametrize("influent", [
    {"kind": "lognormal", "mean": 1e308, "cv": 0.5},
    {"kind": "lognormal", "mean": 300, "cv": 1e200},
    {"kind": "exponential", "mean": 1e307},
])
def test_extreme_influent_is_rejected(client, mc_payload, influent):
    r = client.post("/monte-carlo", json=dict(mc_payload, influent=influent))
    assert r.status_code == 422


def test_queue_manual_u_outside_unit_interval(client):
    r = client.post("/queue", json={
        "n_entities": 2,
        "servers": 1,
        "arrival": {"mode": "manual_u", "distribution": {"kind": "triangular", "min": 1, "mode": 2, "max": 4},
                    "uniforms_text": "0.5 -0.2"},
        "service": {"mode": "values", "values": [1, 1]},
    })
    assert r.status_code == 200
    assert all(1 <= row["inter_arrival"] <= 4 for row in r.json()["rows"])


def test_queue_server_count_bounded(client):
    r = client.post("/queue", json={
        "servers": 10**9,
        "arrival": {"mode": "values", "values": [1] * 5},
        "service": {"mode": "values", "values": [1] * 5},
    })
    assert r.status_code == 422


def test_events_oversized_formula(client):
    events = [{"name": "x", "probability": 1.0, "value": 1, "formula": "rnd" + " + 1" * 3000}]
    r = client.post("/events", json={"events": events, "n_draws": 2, "draws": [0.1, 0.2]})
    assert r.status_code == 200
    body = r.json()
    assert [row["result"] for row in body["rows"]] == [None, None]
    assert body["invalid_rows"] == 2
