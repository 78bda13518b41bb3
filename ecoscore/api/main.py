#!/usr/bin/env python3
"""
FastAPI app for the Classroom Eco-Score engine

Serves:
- Global and per-division leaderboards
- Monthly winner declaration and win counts
- Evaluation records
- The monthly archival rollover
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecoscore import __version__
from ecoscore.api.routes import archive, evaluations, leaderboard, winners
from ecoscore.database.connection import init_db
from ecoscore.errors import (
    ConsistencyError,
    EcoScoreError,
    NotFoundError,
    StorageError,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (StorageError, 503),
    (ConsistencyError, 500),
)


def status_code_for(error: EcoScoreError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Classroom Eco-Score API")
    init_db()
    yield
    logger.info("Shutting down Classroom Eco-Score API")


app = FastAPI(
    title="Classroom Eco-Score API",
    description="Leaderboards, monthly winners and archival for classroom sustainability evaluations",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EcoScoreError)
async def eco_score_error_handler(request: Request, exc: EcoScoreError):
    """Map engine errors to HTTP responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.context}")
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


# Include routers
app.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
app.include_router(winners.router, prefix="/winners", tags=["winners"])
app.include_router(evaluations.router, prefix="/evaluations", tags=["evaluations"])
app.include_router(archive.router, prefix="/archive", tags=["archive"])


@app.get("/")
async def root():
    """API documentation."""
    return {
        "name": "Classroom Eco-Score API",
        "version": __version__,
        "endpoints": {
            "GET /leaderboard": "Global leaderboard",
            "GET /leaderboard/divisions": "Top classrooms of every division",
            "GET /leaderboard/divisions/{division}": "Division leaderboard (optional year/month)",
            "GET /leaderboard/stats": "Program and grade-level statistics",
            "GET /winners": "List declared monthly winners",
            "POST /winners": "Declare or replace a monthly winner",
            "DELETE /winners/{winner_id}": "Remove a winner declaration",
            "GET /winners/counts": "Lifetime win counts per classroom",
            "GET /winners/candidates": "Ranked candidates for a division and month",
            "GET /evaluations": "List active evaluations",
            "POST /evaluations": "Record an evaluation",
            "DELETE /evaluations/{evaluation_id}": "Delete an active evaluation",
            "POST /archive/check": "Run the monthly archival check",
            "POST /archive/manual": "Archive all active evaluations now",
            "GET /archive/runs": "Recent archive runs",
        },
        "documentation": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def run():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
