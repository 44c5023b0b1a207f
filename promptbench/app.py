# promptbench/app.py
import os
import time
from typing import Optional, List

# Load .env BEFORE any promptbench imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse, Response, PlainTextResponse

from promptbench import monitoring
from promptbench import templates as templatesmod
from promptbench.db import Database
from promptbench.errors import (
    E_EMPTY_NAME, E_INTERNAL, E_INVALID_ID,
    BadRequest, PromptBenchError,
)
from promptbench.orchestrator import GenerationOrchestrator
from promptbench.schemas import (
    Fragment, FragmentUpdate, GenerateRequest, GenerateResponse,
    LatestPrompt, PromptSummary, TemplateResponse,
)

FRONTEND_DIR = os.path.join(os.path.dirname(__file__), "..", "frontend")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

ARTIFACT_DOWNLOADS = {
    "cpp": ("text/x-c++src", "generated_{id}.cpp"),
    "uml": ("text/plain", "diagram_{id}.puml"),
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_database(request: Request) -> Database:
    return request.app.state.database


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def _parse_prompt_id(raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise BadRequest("Invalid id", E_INVALID_ID)


def _download(database: Database, raw_id: str, kind: str) -> Response:
    prompt_id = _parse_prompt_id(raw_id)
    body = database.get_artifact(prompt_id, kind)
    media_type, filename = ARTIFACT_DOWNLOADS[kind]
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename.format(id=prompt_id)}"'},
    )


def create_app(database: Optional[Database] = None,
               orchestrator: Optional[GenerationOrchestrator] = None) -> FastAPI:
    app = FastAPI(title="PromptBench API")

    database = database or Database()
    # Initialize DB tables on startup
    database.init_db()
    app.state.database = database
    app.state.orchestrator = orchestrator or GenerationOrchestrator(database)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Serve frontend static files
    # -----------------------------------------------------------------------
    if os.path.isdir(FRONTEND_DIR):
        app.mount("/frontend", StaticFiles(directory=FRONTEND_DIR, html=True), name="frontend")

    # -----------------------------------------------------------------------
    # Metrics middleware
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = time.time()
        endpoint = request.url.path
        method = request.method
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            monitoring.observe_request(start, endpoint, method, status)

    # -----------------------------------------------------------------------
    # Error handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(PromptBenchError)
    async def promptbench_error_handler(request: Request, exc: PromptBenchError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        monitoring.logger.exception("Unhandled exception in request", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"error": "Server error", "error_code": E_INTERNAL})

    # -----------------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics():
        if not monitoring.PROMETHEUS_ENABLED:
            return PlainTextResponse("Prometheus disabled", status_code=404)
        payload, content_type = monitoring.prometheus_metrics_response()
        return Response(content=payload, media_type=content_type)

    @app.post("/api/generate", response_model=GenerateResponse)
    def generate(req: GenerateRequest, orch: GenerationOrchestrator = Depends(get_orchestrator)):
        """
        POST /api/generate
        Body: { "prompt": "...", "exp_name": "...", "architecture": "...", "description_type": "..." }
        200 with the two artifacts, 422 with the raw model output when the reply is malformed.
        """
        monitoring.logger.info(
            "Received /api/generate request",
            extra={"prompt_preview": (req.prompt or "")[:200], "exp_name": req.exp_name},
        )
        outcome = orch.handle_generate(
            req.prompt,
            exp_name=req.exp_name,
            architecture=req.architecture,
            description_type=req.description_type,
        )
        if not outcome.ok:
            return JSONResponse(status_code=422, content=outcome.failure_payload())
        return outcome.success_payload()

    @app.get("/api/latest", response_model=Optional[LatestPrompt])
    def latest(database: Database = Depends(get_database)):
        return database.latest_prompt()

    @app.get("/api/prompts", response_model=List[PromptSummary])
    def list_prompts(database: Database = Depends(get_database)):
        return database.list_prompt_summaries()

    @app.get("/api/prompts/{prompt_id}/cpp")
    def download_cpp(prompt_id: str = Path(..., description="Prompt row id"),
                     database: Database = Depends(get_database)):
        return _download(database, prompt_id, "cpp")

    @app.get("/api/prompts/{prompt_id}/uml")
    def download_uml(prompt_id: str = Path(..., description="Prompt row id"),
                     database: Database = Depends(get_database)):
        return _download(database, prompt_id, "uml")

    @app.get("/api/prompt-template", response_model=TemplateResponse)
    def prompt_template(arch: Optional[str] = Query(None, description="3tier | mvc | microservices"),
                        spec: Optional[str] = Query(None, description="srs | frnfr"),
                        database: Database = Depends(get_database)):
        tpl = templatesmod.build_template(database, arch, spec)
        return {"arch": tpl.arch, "spec": tpl.spec, "prompt": tpl.prompt}

    @app.get("/api/prompt-experiment", response_model=List[Fragment])
    def list_fragments(database: Database = Depends(get_database)):
        return database.list_fragments()

    @app.put("/api/prompt-experiment/{name:path}", response_model=Fragment)
    def upsert_fragment(req: FragmentUpdate,
                        name: str = Path(..., description="Fragment name"),
                        database: Database = Depends(get_database)):
        name = name.strip()
        if not name:
            raise BadRequest("Empty name", E_EMPTY_NAME)
        return database.upsert_fragment(name, req.prompt_part or "")

    return app
