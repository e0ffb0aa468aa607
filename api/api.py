"""
Workflow API
============

FastAPI server exposing the registered workflows.

- CORS from settings
- Bearer-token check on every /api/* route
- run (JSON) and stream (Server-Sent Events) endpoints per workflow
"""
import asyncio
import json
import logging
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sse_starlette.sse import EventSourceResponse

from api.api_schemas import ErrorResponse, RunRequest, RunResponse, StreamEvent
from api.api_utils import check_bearer, error_status
from core.config import Settings
from core.errors import PipelineError
from core.logging_setup import setup_logging
from core.run_state import PipelineRun
from stepPipeline.pipeline import Pipeline
from workflows.weather_workflow import WORKFLOW_ID, create_weather_workflow

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Statuses produced by error_status() for a failed run
ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (404, 422, 500, 502, 504)}


def _error_body(error: PipelineError, run: PipelineRun) -> Dict:
    return ErrorResponse(
        run_id=run.run_id,
        kind=error.kind,
        step=error.step_name,
        message=error.message,
    ).model_dump()


def create_app(settings: Optional[Settings] = None, workflows: Optional[Dict[str, Pipeline]] = None) -> FastAPI:
    """
    Build the API.

    Args:
        settings: Service settings (default: read from the environment)
        workflows: Workflows by id (default: the weather workflow built from settings)
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    if workflows is None:
        workflows = {WORKFLOW_ID: create_weather_workflow(settings)}
    if not settings.bearer_key:
        logger.warning("⚠️ [API] BEARER_KEY is not set: every /api/* request will be rejected")

    app = FastAPI(
        title="Weather Activity Pipeline API",
        description="Typed step pipelines: forecast lookup and streamed activity planning",
        version=VERSION,
    )
    app.state.settings = settings
    app.state.workflows = workflows

    @app.middleware("http")
    async def bearer_auth(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            rejection = check_bearer(request.headers.get("Authorization"), settings.bearer_key)
            if rejection:
                return PlainTextResponse(rejection, status_code=401)
        return await call_next(request)

    # Added last so it wraps the auth middleware and answers preflights itself
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    def get_workflow(workflow_id: str) -> Pipeline:
        pipeline = workflows.get(workflow_id)
        if pipeline is None:
            raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
        return pipeline

    @app.get("/")
    async def root():
        return {
            "message": "Weather Activity Pipeline API",
            "version": VERSION,
            "workflows": list(workflows),
            "endpoints": {
                "/api/workflows": "GET - List workflows",
                "/api/workflows/{id}/run": "POST - Run a workflow",
                "/api/workflows/{id}/stream": "POST - Run a workflow with streaming",
                "/health": "GET - Health check",
            },
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "workflows": len(workflows)}

    @app.get("/api/workflows")
    async def list_workflows():
        return {workflow_id: pipeline.describe() for workflow_id, pipeline in workflows.items()}

    @app.post("/api/workflows/{workflow_id}/run", response_model=RunResponse, responses=ERROR_RESPONSES)
    async def run_workflow(workflow_id: str, request: RunRequest):
        pipeline = get_workflow(workflow_id)
        run = PipelineRun()
        try:
            result = await pipeline.execute(request.inputData, run=run)
        except PipelineError as e:
            return JSONResponse(status_code=error_status(e), content=_error_body(e, run))
        return RunResponse(run_id=run.run_id, result=result, steps=run.completed_steps)

    @app.post("/api/workflows/{workflow_id}/stream")
    async def stream_workflow(workflow_id: str, request: RunRequest):
        """
        Run a workflow, forwarding streamed fragments as they arrive.

        Events carry a JSON StreamEvent: any number of "fragment" events, then
        exactly one "result" or "error".
        """
        pipeline = get_workflow(workflow_id)
        run = PipelineRun()
        queue: asyncio.Queue = asyncio.Queue()

        async def on_fragment(fragment: str):
            await queue.put(("fragment", fragment))

        async def worker():
            try:
                result = await pipeline.execute(request.inputData, on_fragment=on_fragment, run=run)
                await queue.put(("result", result))
            except PipelineError as e:
                await queue.put(("error", e))
            except Exception as e:
                logger.exception(f"❌ [API] Unexpected failure in run {run.run_id}")
                await queue.put(("error", PipelineError(f"Internal error: {e}")))

        async def generate_stream() -> AsyncGenerator[str, None]:
            task = asyncio.create_task(worker())
            try:
                while True:
                    kind, payload = await queue.get()
                    if kind == "fragment":
                        yield json.dumps(StreamEvent(type="fragment", content=payload).model_dump())
                    elif kind == "result":
                        yield json.dumps(StreamEvent(
                            type="result",
                            metadata={"run_id": run.run_id, "result": payload, "steps": run.completed_steps},
                        ).model_dump())
                        break
                    else:
                        yield json.dumps(StreamEvent(type="error", metadata=_error_body(payload, run)).model_dump())
                        break
            finally:
                # Client went away: abort the provider calls still in flight
                if not task.done():
                    task.cancel()

        return EventSourceResponse(generate_stream())

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.api:create_app", factory=True, host="0.0.0.0", port=8000)
