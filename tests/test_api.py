import pytest
from fastapi.testclient import TestClient

from fieldmap.api.main import app
from fieldmap.transformations import registry as registry_module
from fieldmap.transformations.registry import PipelineRegistry


@pytest.fixture
def pipelines_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(registry_module, "_registry", PipelineRegistry(tmp_path))
    return tmp_path


@pytest.fixture
def client(pipelines_dir):
    with TestClient(app) as test_client:
        yield test_client


def _pipeline_body(key="upper_names", **overrides):
    body = {
        "pipeline_key": key,
        "pipeline_name": "Upper names",
        "steps": [{"id": "u", "type": "uppercase", "source_field": "name"}],
    }
    body.update(overrides)
    return body


# ==========================================================
# SERVICE
# ==========================================================


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "Fieldmap API"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["pipelines_loaded"] == 0


# ==========================================================
# TRANSFORMATIONS
# ==========================================================


def test_catalog_and_available(client):
    catalog = client.get("/v1/transformations").json()
    assert "string" in catalog

    available = client.get(
        "/v1/transformations/available", params={"source": "string", "target": "string"}
    ).json()
    ids = [t["id"] for t in available]
    assert ids.index("ai-transform") == ids.index("regex-extract") - 1

    unknown = client.get(
        "/v1/transformations/available", params={"source": "blob", "target": "blob"}
    ).json()
    assert [t["id"] for t in unknown] == ["ai-transform"]


def test_kinds(client):
    kinds = client.get("/v1/transformations/kinds").json()
    assert "custom-aggregate" in kinds
    assert "round" in kinds


def test_execute_success_and_failure(client):
    ok = client.post(
        "/v1/transformations/execute",
        json={"type": "round", "value": "50.698", "config": {"precision": 1}},
    ).json()
    assert ok["success"] is True
    assert ok["data"] == 50.7

    failed = client.post(
        "/v1/transformations/execute", json={"type": "warp", "value": "x"}
    )
    assert failed.status_code == 200
    assert failed.json()["success"] is False
    assert failed.json()["data"] == "x"


def test_execute_with_fields(client):
    response = client.post(
        "/v1/transformations/execute",
        json={
            "type": "string-format",
            "value": "Mamdani",
            "config": {"template": "{{value}} ({{party}})"},
            "fields": {"party": "D"},
        },
    )
    assert response.json()["data"] == "Mamdani (D)"


# ==========================================================
# PIPELINES
# ==========================================================


def test_pipeline_crud(client, pipelines_dir):
    created = client.post("/v1/pipelines", json=_pipeline_body())
    assert created.status_code == 201
    assert (pipelines_dir / "upper_names.json").exists()

    assert client.post("/v1/pipelines", json=_pipeline_body()).status_code == 409

    listed = client.get("/v1/pipelines").json()
    assert [p["pipeline_key"] for p in listed] == ["upper_names"]

    updated = client.put(
        "/v1/pipelines/upper_names", json=_pipeline_body(description="edited")
    )
    assert updated.json()["description"] == "edited"

    mismatch = client.put("/v1/pipelines/upper_names", json=_pipeline_body("other"))
    assert mismatch.status_code == 400

    assert client.get("/v1/pipelines/upper_names").json()["description"] == "edited"
    assert client.delete("/v1/pipelines/upper_names").json() == {
        "deleted": "upper_names"
    }
    assert client.get("/v1/pipelines/upper_names").status_code == 404
    assert client.delete("/v1/pipelines/upper_names").status_code == 404


def test_reload(client):
    assert client.post("/v1/pipelines/reload").json() == {"reloaded": True, "count": 0}


def test_apply_inline_steps(client, race):
    response = client.post(
        "/v1/pipelines/apply",
        json={
            "record": race,
            "steps": [
                {"id": "chart", "type": "custom-aggregate", "source_field": "",
                 "target_field": "chart",
                 "config": {"aggregateType": "election-chart",
                            "roundPercentages": True}},
            ],
        },
    )
    body = response.json()

    assert response.status_code == 200
    assert body["step_count"] == 1
    assert body["record"]["chart"]["label"] == ["Mamdani", "Cuomo", "Sliwa", "Adams"]


def test_apply_saved_pipeline(client):
    client.post("/v1/pipelines", json=_pipeline_body())

    body = client.post(
        "/v1/pipelines/apply",
        json={"record": {"name": "adams"}, "pipeline_key": "upper_names"},
    ).json()

    assert body["record"] == {"name": "ADAMS"}
    assert body["pipeline_key"] == "upper_names"


def test_apply_requires_steps_or_key(client):
    assert client.post("/v1/pipelines/apply", json={"record": {}}).status_code == 400
    missing = client.post(
        "/v1/pipelines/apply", json={"record": {}, "pipeline_key": "ghost"}
    )
    assert missing.status_code == 404


def test_apply_strict_failure_is_422(client):
    steps = [{"id": "bad", "type": "regex-extract", "source_field": "a",
              "config": {"pattern": "("}}]

    lenient = client.post("/v1/pipelines/apply", json={"record": {"a": "x"}, "steps": steps})
    assert lenient.json()["record"] == {"a": "x"}

    strict = client.post(
        "/v1/pipelines/apply",
        json={"record": {"a": "x"}, "steps": steps, "strict": True},
    )
    assert strict.status_code == 422
    assert strict.json()["detail"]["step_id"] == "bad"
