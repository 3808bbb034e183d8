"""Orchestrator FastAPI app: POST /run -> strategy run, GET /run/{id} -> stored trace."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from stepflow.core.config.loader import load_engine_config
from stepflow.core.config.models import EngineConfig, StrategyConfig
from stepflow.core.contracts.gateway import RunRequest, RunResponse
from stepflow.core.contracts.runs import StrategyResult
from stepflow.functions.factory import build_functions
from stepflow.llm.factory import build_provider
from stepflow.orchestrator.agent import AgentOrchestrator, AgentRunResult
from stepflow.orchestrator.plan_executor import PlanExecutor
from stepflow.orchestrator.session import InMemorySessionStore
from stepflow.orchestrator.streaming import relay_chunks
from stepflow.strategies import STRATEGIES
from stepflow.tools.registry import ToolRegistry, get_tools

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
for _p in (PROJECT_ROOT / "config" / ".env", PROJECT_ROOT / ".env"):
    if _p.exists():
        load_dotenv(_p, override=False)
        break

CONFIG_PATH = os.environ.get("STEPFLOW_CONFIG_PATH", "config/engine.json")
STRATEGY_NAMES = (*STRATEGIES, "single")

log = logging.getLogger("orchestrator")


def build_executor(config: EngineConfig, project_root: Path = PROJECT_ROOT) -> PlanExecutor:
    provider = build_provider(config)
    functions = build_functions(provider, config)
    root = Path(config.tools.workspace_root)
    if not root.is_absolute():
        root = project_root / root
    tools = ToolRegistry(get_tools(config.tools.enabled, workspace_root=root))
    return PlanExecutor(tools, functions)


class Engine:
    """Builds a runner per request; the executor and its registries are shared."""

    def __init__(self, executor: PlanExecutor, strategy_config: StrategyConfig | None = None):
        self.executor = executor
        self.strategy_config = strategy_config or StrategyConfig()

    def runner(self, name: str):
        if name == "single":
            return AgentOrchestrator(self.executor)
        strategy = STRATEGIES.get(name)
        if strategy is None:
            raise ValueError(f"unknown strategy: {name}")
        limits = {
            "plan_execute": self.strategy_config.plan_execute_max_iterations,
            "react": self.strategy_config.react_max_iterations,
        }
        return strategy(self.executor, limits.get(name))


def _response(run_id: str, result: StrategyResult | AgentRunResult) -> RunResponse:
    iterations = result.iterations if isinstance(result, StrategyResult) else 1
    return RunResponse(
        run_id=run_id,
        status="completed" if result.is_success else "failed",
        final_answer=result.final_answer,
        error=result.error_message,
        iterations=iterations,
    )


def create_app(
    engine: Engine | None = None,
    store: InMemorySessionStore | None = None,
    config_path: str = CONFIG_PATH,
) -> FastAPI:
    app = FastAPI(title="stepflow: Orchestrator")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    store = store or InMemorySessionStore()
    state = {"engine": engine, "default_strategy": "plan_execute"}

    def get_engine() -> Engine:
        if state["engine"] is None:
            config = load_engine_config(config_path, project_root=PROJECT_ROOT)
            state["engine"] = Engine(build_executor(config), config.strategy)
            state["default_strategy"] = config.strategy.default
        return state["engine"]

    def strategy_name(req: RunRequest) -> str:
        get_engine()
        name = (req.strategy or state["default_strategy"]).lower()
        if name not in STRATEGY_NAMES:
            raise HTTPException(status_code=400, detail=f"unknown strategy: {req.strategy}")
        return name

    async def run(req: RunRequest, name: str, run_id: str, on_chunk=None):
        runner = get_engine().runner(name)
        if isinstance(runner, AgentOrchestrator):
            result = await runner.execute(req.goal, on_chunk=on_chunk)
            if result.plan is not None:
                store.save_plan(run_id, result.plan)
        else:
            result = await runner.execute(req.goal, session_id=req.session_id, on_chunk=on_chunk)
        response = _response(run_id, result)
        store.save_result(run_id, response.status, response.final_answer, response.error, result)
        return response

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/run", response_model=RunResponse)
    async def run_goal(req: RunRequest):
        name = strategy_name(req)
        log.info("RUN [%s]: %s", name, (req.goal[:200] + "…") if len(req.goal) > 200 else req.goal)
        run_id = store.create_run(req.goal, name, req.session_id)
        return await run(req, name, run_id)

    @app.post("/run/stream")
    async def run_goal_stream(req: RunRequest):
        name = strategy_name(req)
        run_id = store.create_run(req.goal, name, req.session_id)

        async def lines():
            async for chunk in relay_chunks(lambda on_chunk: run(req, name, run_id, on_chunk)):
                if chunk.is_final:
                    yield json.dumps(chunk.parsed_result.model_dump()) + "\n"
                else:
                    yield chunk.content

        return StreamingResponse(lines(), media_type="text/plain")

    @app.get("/run/last")
    def get_last_run():
        run_id = store.latest_run_id()
        if not run_id:
            raise HTTPException(status_code=404, detail="No runs found")
        return store.get_run(run_id)

    @app.get("/run/{run_id}")
    def get_run(run_id: str):
        trace = store.get_run(run_id)
        if trace is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return trace

    app.state.store = store
    return app


app = create_app()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")

    import uvicorn

    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
