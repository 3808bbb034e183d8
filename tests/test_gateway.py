import json

from conftest import RecordingTool, ScriptedFunction, make_executor
from fastapi.testclient import TestClient

from stepflow.core.config import StrategyConfig
from stepflow.core.contracts import ModelRole
from stepflow.core.exceptions import AllProvidersFailedError
from stepflow.orchestrator.agent import AgentOrchestrator
from stepflow.orchestrator.main import Engine, create_app

PLAN = {"steps": [{"step_number": 1, "target_name": "echo", "parameters": {"message": "hi"}}]}


def _client(*functions):
    executor = make_executor([RecordingTool("echo", "hi")], list(functions))
    return TestClient(create_app(engine=Engine(executor)))


def test_health():
    assert _client().get("/health").json() == {"status": "ok"}


def test_single_run_is_stored():
    client = _client(
        ScriptedFunction(ModelRole.PLANNER, PLAN),
        ScriptedFunction(ModelRole.SUMMARIZER, "Said hi."),
    )
    r = client.post("/run", json={"goal": "greet", "strategy": "single"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "completed"
    assert body["final_answer"] == "Said hi."
    assert body["iterations"] == 1

    trace = client.get(f"/run/{body['run_id']}").json()
    assert trace["goal"] == "greet"
    assert trace["strategy"] == "single"
    assert trace["status"] == "completed"
    assert trace["plan"]["steps"][0]["target_name"] == "echo"
    assert trace["result"]["execution"]["is_success"]

    assert client.get("/run/last").json()["run_id"] == body["run_id"]


def test_react_run():
    client = _client(
        ScriptedFunction(ModelRole.REASONER, "nothing to do"),
        ScriptedFunction(ModelRole.PLANNER, {"type": "finish"}),
        ScriptedFunction(ModelRole.SUMMARIZER, "all done"),
    )
    body = client.post("/run", json={"goal": "noop", "strategy": "REACT", "session_id": "s-1"}).json()
    assert body["status"] == "completed"
    assert body["final_answer"] == "all done"
    trace = client.get(f"/run/{body['run_id']}").json()
    assert trace["session_id"] == "s-1"
    assert trace["result"]["session_id"] == "s-1"


def test_failed_run_reports_error():
    body = _client().post("/run", json={"goal": "anything", "strategy": "plan_execute"}).json()
    assert body["status"] == "failed"
    assert body["error"] == "planning failed: no planner function registered"


def test_unknown_strategy_is_rejected():
    r = _client().post("/run", json={"goal": "x", "strategy": "telepathy"})
    assert r.status_code == 400


def test_missing_runs_are_404():
    client = _client()
    assert client.get("/run/last").status_code == 404
    assert client.get("/run/does-not-exist").status_code == 404


def test_stream_ends_with_json_response():
    client = _client(
        ScriptedFunction(ModelRole.REASONER, "thinking hard"),
        ScriptedFunction(ModelRole.PLANNER, {"type": "finish"}),
        ScriptedFunction(ModelRole.SUMMARIZER, "streamed"),
    )
    r = client.post("/run/stream", json={"goal": "noop", "strategy": "react"})
    assert r.status_code == 200
    lines = r.text.strip().splitlines()
    assert "[react] thought 1: thinking hard" in r.text
    final = json.loads(lines[-1])
    assert final["status"] == "completed"
    assert final["final_answer"] == "streamed"


def test_engine_applies_iteration_limits():
    engine = Engine(make_executor(), StrategyConfig(plan_execute_max_iterations=2, react_max_iterations=5))
    assert engine.runner("plan_execute").max_iterations == 2
    assert engine.runner("react").max_iterations == 5
    assert isinstance(engine.runner("single"), AgentOrchestrator)


def test_single_run_failure_is_stored():
    client = _client(ScriptedFunction(ModelRole.PLANNER, AllProvidersFailedError("no backend")))
    r = client.post("/run", json={"goal": "greet", "strategy": "single"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "failed"
    assert body["error"] == "orchestrator error: no backend"
    assert client.get(f"/run/{body['run_id']}").json()["status"] == "failed"
