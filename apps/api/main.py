# apps/api/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api.routers import applications, auth, documents, stats, triage
from core.config import settings
from core.errors import AuthenticationError, ValidationError, WorkflowError
from core.logging import configure_logging
from services.persistence.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    init_db()
    logger.info("ALM licensing API started")
    yield
    close_db()


app = FastAPI(title="ALM Licensing API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    body: dict = {"detail": exc.message}
    headers = None
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, AuthenticationError):
        body["login_url"] = settings.LOGIN_URL
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(applications.router)
app.include_router(documents.router)
app.include_router(triage.router)
app.include_router(stats.router)
