"""
Exam Grading Service - FastAPI application.

Wires together:
- structured JSON logging and a request id per HTTP call (X-Request-ID)
- the grading routes (teacher side) and the attempt routes (student side
  plus the read-only grading view)
- a health check that also verifies the database connection

Modules:
- routes/: HTTP handlers; failures come back as ActionResult bodies
- services/: state machine, graders, aggregator, review and the operations
- ai/: AI grading client, rubric prompts and response schemas
- models/: SQLAlchemy ORM models
"""

import time
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from exam_grading.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from exam_grading.routes import attempts, grading
from exam_grading.database import DATABASE_URL, create_tables, get_db

# Registers every model with Base.metadata
import exam_grading.models  # noqa: F401

VERSION = "1.0.0"

setup_logging()
logger = get_logger("http")

if DATABASE_URL.startswith("sqlite"):
    logger.info("SQLite database, creating tables without migrations")
    create_tables()

app = FastAPI(
    title="Exam Grading Service",
    description=(
        "Grades submitted exam attempts: automatic multiple-choice grading, "
        "AI-assisted grading of free-text answers with human review, "
        "and finalization of attempts into results."
    ),
    version=VERSION,
)

# The grading UI is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag the request with an id and log who called what, and how long it took."""
    req_id = generate_request_id()
    request_id_var.set(req_id)
    caller = {
        "user_id": request.headers.get("x-user-id", ""),
        "role": request.headers.get("x-user-role", ""),
    }
    started = time.time()

    log_with_context(logger, "DEBUG", f"{request.method} {request.url.path}",
                     context={"request_id": req_id, **caller})

    response = await call_next(request)
    response.headers["X-Request-ID"] = req_id

    # 4xx here means the request never reached an operation (bad identity or body)
    level = "WARNING" if 400 <= response.status_code < 500 else "INFO"
    log_with_context(logger, level,
        f"{request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id, **caller},
        extra_data={
            "duration_ms": round((time.time() - started) * 1000, 2),
            "status_code": response.status_code,
        })
    return response


app.include_router(grading.router, tags=["Grading"])
app.include_router(attempts.router, tags=["Attempts"])


@app.get("/health", tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    status = {"status": "healthy", "service": "exam-grading-backend", "version": VERSION}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        log_with_context(logger, "ERROR", f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail={**status, "status": "unhealthy",
                                                     "database": "disconnected"})
    status["database"] = "connected"
    return status


@app.get("/", tags=["Root"])
def root():
    """List the service's endpoints."""
    return {
        "service": app.title,
        "version": VERSION,
        "docs": app.docs_url,
        "endpoints": sorted(
            "{} {}".format(method.upper(), path)
            for path, operations in app.openapi()["paths"].items()
            if path.startswith("/api/")
            for method in operations
        ),
    }


if __name__ == "__main__":
    import uvicorn
    from exam_grading.config import HOST, PORT

    uvicorn.run("exam_grading.main:app", host=HOST, port=PORT, access_log=False)
