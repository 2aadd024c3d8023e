import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import state
from api.routers import ops, tasks
from storage import db
from storage.task_store import TaskStore

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Config
INIT_DB_SCHEMA = os.getenv("INIT_DB_SCHEMA", "true").lower() in {"1", "true", "yes"}
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database pool on start-up and close it on shutdown."""
    try:
        await db.init_db_pool()
        if INIT_DB_SCHEMA:
            await db.init_schema()
        state.task_store = TaskStore()
        logger.info("Task store ready")
    except Exception as e:
        # Serve /health and /classify anyway; task routes answer 503.
        logger.error(f"Database unavailable, task routes disabled: {e}")

    try:
        yield
    finally:
        state.task_store = None
        if db.is_initialized():
            await db.close_db_pool()


app = FastAPI(
    title="Smart Tasks Backend",
    version="1.0.0",
    description="Task CRUD with rule-based classification.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    logger.info(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"detail": message})


app.include_router(ops.router)
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
